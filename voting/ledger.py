"""
Vote Ledger Gateway - the boundary to the append-only votes table.

has_voted_today() answers "did this identity vote since UTC midnight?"
and cast_vote() appends a record. cast_vote() does NOT re-check the daily
rule: callers check first, so enforcement is read-then-write and two
concurrent submissions from one identity can both land (known gap, would
need a unique (identity, day) constraint or a compare-and-swap).
"""

import logging
from dataclasses import dataclass

from django.db import DatabaseError, transaction
from django.db.models import Sum

from authentication.clock import default_clock, start_of_day_utc, to_iso
from authentication.crypto_utils import mask_email, normalize_email
from authentication.errors import AuthResult, ErrorKind

from .models import Project, Vote

logger = logging.getLogger(__name__)

JURY_WEIGHT = 2
VALID_WEIGHTS = (1, JURY_WEIGHT)


class LedgerError(Exception):
    """The votes store could not be read."""


@dataclass(frozen=True)
class VoteInfo:
    project_id: str
    is_jury: bool

    def to_dict(self):
        return {'projectId': self.project_id, 'isJury': self.is_jury}


class VoteLedgerGateway:
    """
    Usage:
        ledger = VoteLedgerGateway()
        ledger.cast_vote("ana@x.com", "proj-1", weight=2)
        ledger.has_voted_today("ana@x.com")   # VoteInfo('proj-1', True)
    """

    def __init__(self, clock=None):
        self._clock = clock or default_clock

    def has_voted_today(self, identity):
        """
        Most recent vote by `identity` since start of today (UTC), or None.

        Raises:
            LedgerError: If the store cannot be queried
        """
        identity = normalize_email(identity)
        since = start_of_day_utc(self._clock.now())

        try:
            latest = (
                Vote.objects
                .filter(user_identity=identity, timestamp__gte=since)
                .order_by('-timestamp', '-id')
                .first()
            )
        except DatabaseError as e:
            raise LedgerError(f"Vote lookup failed: {e}") from e

        if latest is None:
            return None

        return VoteInfo(project_id=latest.project_id, is_jury=latest.weight == JURY_WEIGHT)

    def cast_vote(self, identity, project_id, weight):
        """
        Append a vote stamped with the current time.

        Unknown project ids are accepted and logged (orphaned vote).
        """
        identity = normalize_email(identity)
        project_id = (project_id or '').strip()

        if not identity or not project_id:
            return AuthResult.fail(ErrorKind.INVALID_INPUT, 'Voto inválido.')

        if weight not in VALID_WEIGHTS:
            return AuthResult.fail(ErrorKind.INVALID_INPUT, 'Peso de voto inválido.')

        timestamp = self._clock.now()

        try:
            with transaction.atomic():
                if not Project.objects.filter(id=project_id).exists():
                    logger.warning(f"Vote for unknown project {project_id} accepted as orphan")

                vote = Vote.objects.create(
                    project_id=project_id,
                    user_identity=identity,
                    weight=weight,
                    timestamp=timestamp,
                )
        except DatabaseError as e:
            logger.error(f"Error recording vote for {mask_email(identity)}: {e}")
            return AuthResult.fail(
                ErrorKind.TRANSIENT,
                'Hubo un error al registrar tu voto. Por favor, inténtalo de nuevo.'
            )

        logger.info(
            f"Vote cast - identity: {mask_email(identity)}, "
            f"project: {project_id}, weight: {weight}"
        )

        return AuthResult.ok(
            'Voto registrado',
            vote_id=vote.id,
            projectId=project_id,
            isJury=weight == JURY_WEIGHT,
            timestamp=to_iso(timestamp),
        )

    def tally(self):
        """
        Weighted vote totals for every known project, highest first.
        Orphaned votes are not counted.
        """
        totals = dict(
            Vote.objects.order_by().values_list('project_id').annotate(total=Sum('weight'))
        )

        results = []
        for project in Project.objects.all():
            results.append({
                'id': project.id,
                'name': project.name,
                'description': project.description,
                'voteCount': totals.get(project.id, 0) or 0,
            })

        results.sort(key=lambda x: x['voteCount'], reverse=True)
        return results
