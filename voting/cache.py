"""
Vote Cache - short-lived local memo of "has this identity voted today?".

Purely advisory: it only saves ledger queries. Entries live in the
client's ephemeral storage under `vote-lookup-cache:<identity>` with a
`:time` sidecar holding the epoch milliseconds of the write.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.conf import settings

from authentication.clock import default_clock
from authentication.crypto_utils import normalize_email

from .ledger import VoteInfo

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = 'vote-lookup-cache:'


def cache_key(identity):
    return f"{CACHE_KEY_PREFIX}{normalize_email(identity)}"


@dataclass(frozen=True)
class CachedVoteLookup:
    identity: str
    found: bool
    cached_at: object
    project_id: Optional[str] = None
    is_jury: Optional[bool] = None

    @property
    def vote_info(self):
        if not self.found:
            return None
        return VoteInfo(project_id=self.project_id, is_jury=bool(self.is_jury))


class VoteCache:
    """
    Usage:
        cache = VoteCache(request.session)
        info = cache.lookup("ana@x.com", ledger)   # VoteInfo or None
    """

    def __init__(self, storage, clock=None, ttl_seconds=None, enabled=None):
        self._storage = storage
        self._clock = clock or default_clock
        self._ttl = timedelta(
            seconds=settings.VOTE_CACHE_SECONDS if ttl_seconds is None else ttl_seconds
        )
        self._enabled = settings.VOTE_CACHE_ENABLED if enabled is None else enabled

    def get(self, identity):
        """Fresh cached lookup for `identity`, or None on a miss."""
        if not self._enabled:
            return None

        key = cache_key(identity)
        raw = self._storage.get(key)
        stamp = self._storage.get(f"{key}:time")
        if raw is None or stamp is None:
            return None

        try:
            cached_at_ms = int(stamp)
            found = bool(raw['found'])
            project_id = None
            is_jury = None
            if found:
                data = raw['data']
                project_id = data['projectId']
                is_jury = bool(data['isJury'])
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Discarding corrupt vote cache entry: {e}")
            self.invalidate(identity)
            return None

        now_ms = int(self._clock.now().timestamp() * 1000)
        if now_ms - cached_at_ms >= self._ttl.total_seconds() * 1000:
            return None

        return CachedVoteLookup(
            identity=normalize_email(identity),
            found=found,
            cached_at=cached_at_ms,
            project_id=project_id,
            is_jury=is_jury,
        )

    def put(self, identity, vote_info):
        """Store a lookup outcome; `vote_info` None means 'not voted'."""
        if not self._enabled:
            return

        key = cache_key(identity)
        if vote_info is None:
            self._storage[key] = {'found': False}
        else:
            self._storage[key] = {'found': True, 'data': vote_info.to_dict()}
        self._storage[f"{key}:time"] = str(int(self._clock.now().timestamp() * 1000))

    def invalidate(self, identity):
        key = cache_key(identity)
        self._storage.pop(key, None)
        self._storage.pop(f"{key}:time", None)

    def lookup(self, identity, ledger):
        """
        Read-through: cached answer when fresh, otherwise ask the ledger
        and cache its answer. Ledger errors propagate and are not cached.
        """
        cached = self.get(identity)
        if cached is not None:
            logger.debug("Vote lookup served from cache")
            return cached.vote_info

        vote_info = ledger.has_voted_today(identity)
        self.put(identity, vote_info)
        return vote_info
