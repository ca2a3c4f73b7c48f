"""
Credential Issuer - one-time verification artifacts for registrants.

Flow of issue():
1. Validate email shape and display name
2. Reject identities that already voted today (no artifact is issued)
3. Generate a 6-digit code and a signed link for the email
4. Store the PendingRegistration (one per email, last-issued-wins)
5. Ask the notifier to deliver the artifact
"""

import hmac
import logging
import re
from datetime import timedelta

from django.conf import settings
from django.db import DatabaseError, transaction

from .clock import default_clock, to_iso
from .crypto_utils import (
    build_verification_url,
    generate_link_nonce,
    generate_verification_code,
    hash_code,
    mask_email,
    normalize_email,
    sign_verification_link,
)
from .errors import AuthResult, ErrorKind
from .models import PendingRegistration
from .notifier import get_notifier
from voting.ledger import LedgerError

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def is_valid_email(email):
    return bool(email) and EMAIL_RE.match(email) is not None


def is_jury_code(jury_code):
    """Constant-time match against settings.JURY_CODE. An unset code matches nothing."""
    expected = settings.JURY_CODE or ''
    candidate = (jury_code or '').strip()
    if not expected or not candidate:
        return False
    return hmac.compare_digest(candidate.encode(), expected.encode())


class CredentialIssuer:
    """
    Usage:
        issuer = CredentialIssuer(ledger)
        result = issuer.issue("ana@x.com", "Ana", jury_code="JURY2025")
        if not result.success:
            print(result.kind, result.message)
    """

    def __init__(self, ledger, notifier=None, clock=None):
        self._ledger = ledger
        self._notifier = notifier or get_notifier()
        self._clock = clock or default_clock

    @property
    def ttl(self):
        return timedelta(seconds=settings.VERIFICATION_TTL_SECONDS)

    def issue(self, email, display_name, jury_code=''):
        """
        Issue a fresh artifact for `email`.

        Returns:
            AuthResult: data has email, user_name, is_jury, issued_at on success
        """
        email = normalize_email(email)
        display_name = (display_name or '').strip()

        if not is_valid_email(email):
            return AuthResult.fail(ErrorKind.INVALID_INPUT, 'Correo electrónico inválido')

        if not display_name:
            return AuthResult.fail(ErrorKind.INVALID_INPUT, 'El nombre es requerido')

        is_jury = is_jury_code(jury_code)

        try:
            existing_vote = self._ledger.has_voted_today(email)

            if existing_vote is not None:
                logger.info(f"Issue rejected, {mask_email(email)} already voted today")
                return AuthResult.fail(ErrorKind.ALREADY_VOTED)

            return self._issue_artifact(email, display_name, is_jury)

        except LedgerError as e:
            logger.error(f"Vote lookup failed while issuing for {mask_email(email)}: {e}")
            return AuthResult.fail(ErrorKind.TRANSIENT)

        except Exception as e:
            logger.error(f"Error issuing verification for {mask_email(email)}: {e}", exc_info=True)
            return AuthResult.fail(
                ErrorKind.UNKNOWN,
                'Error al enviar el link de verificación. Por favor intenta de nuevo.'
            )

    def _issue_artifact(self, email, display_name, is_jury):
        issued_at = self._clock.now()
        code = generate_verification_code()
        nonce = generate_link_nonce()
        token = sign_verification_link(email, nonce, issued_at)

        try:
            with transaction.atomic():
                pending, _ = PendingRegistration.objects.update_or_create(
                    email=email,
                    defaults={
                        'display_name': display_name,
                        'is_jury': is_jury,
                        'code_hash': hash_code(code),
                        'link_nonce': nonce,
                        'issued_at': issued_at,
                    },
                )
        except DatabaseError as e:
            logger.error(f"Could not store pending registration for {mask_email(email)}: {e}")
            return AuthResult.fail(ErrorKind.TRANSIENT)

        template_params = {
            'user_name': display_name,
            'code': code,
            'token': token,
            'link': build_verification_url(code, email, token),
            'is_jury': is_jury,
            'ttl_minutes': settings.VERIFICATION_TTL_SECONDS // 60,
        }
        try:
            notification = self._notifier.send(email, template_params)
        except Exception as e:
            logger.error(f"Notifier raised for {mask_email(email)}: {e}", exc_info=True)
            self._discard(pending, nonce)
            return AuthResult.fail(ErrorKind.TRANSIENT)

        if not notification.success:
            logger.warning(f"Notifier rejected artifact for {mask_email(email)}: {notification.message}")
            self._discard(pending, nonce)
            return AuthResult.fail(ErrorKind.TRANSIENT, notification.message)

        logger.info(
            f"Verification issued for {mask_email(email)} "
            f"({'jury' if is_jury else 'voter'})"
        )

        return AuthResult.ok(
            'Se envió un link de verificación a tu correo. Por favor revisa tu email.',
            email=email,
            user_name=display_name,
            is_jury=is_jury,
            issued_at=to_iso(issued_at),
        )

    def _discard(self, pending, nonce):
        """Undelivered artifacts must not stay verifiable."""
        PendingRegistration.objects.filter(pk=pending.pk, link_nonce=nonce).delete()
