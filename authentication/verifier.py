"""
Credential Verifier - consumes one-time artifacts issued by CredentialIssuer.

Per artifact this is a small state machine:
    Issued -> Verified            (success, pending record deleted)
    Issued -> Expired | Invalid   (terminal failure, caller must re-issue)

A successful verification deletes the pending record, so replaying the
same code or link fails with NOT_FOUND.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

import jwt
from django.conf import settings
from django.db import DatabaseError, transaction

from .clock import default_clock
from .crypto_utils import (
    decode_verification_link,
    encrypt_user_data,
    hash_code,
    mask_email,
    normalize_email,
)
from .errors import AuthResult, ErrorKind
from .models import PendingRegistration, RegisteredUser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    email: str
    display_name: str
    is_jury: bool

    @classmethod
    def from_data(cls, data):
        return cls(
            email=data['email'],
            display_name=data.get('user_name') or 'Usuario',
            is_jury=bool(data.get('is_jury')),
        )


class CredentialVerifier:
    """
    Usage:
        verifier = CredentialVerifier()
        result = verifier.verify_code("123456", "ana@x.com")
        result = verifier.verify_link(token)
        identity = VerifiedIdentity.from_data(result.data)
    """

    def __init__(self, clock=None):
        self._clock = clock or default_clock

    @property
    def ttl(self):
        return timedelta(seconds=settings.VERIFICATION_TTL_SECONDS)

    def verify(self, code=None, email=None, token=None):
        """Dispatch on the artifact variant presented."""
        if token:
            return self.verify_link(token)
        return self.verify_code(code, email)

    def verify_code(self, code, email):
        """
        Verify a (code, email) pair.

        Failure kinds, in the order they are checked:
            NOT_FOUND      no pending record holds this code
            EXPIRED        the record is older than the TTL
            EMAIL_MISMATCH the code was issued for another email
        """
        code = (code or '').strip()
        email = normalize_email(email)

        if not code or not email:
            return AuthResult.fail(ErrorKind.INVALID_INPUT, 'Código o email inválido.')

        def select(queryset):
            candidates = list(queryset.filter(code_hash=hash_code(code)))
            if not candidates:
                return None
            # Codes are short; prefer the record bound to the presented email
            return next((p for p in candidates if p.email == email), candidates[0])

        return self._consume(select, expected_email=email)

    def verify_link(self, token):
        """Verify a signed one-time link token."""
        try:
            claims = decode_verification_link(token)
        except (jwt.InvalidTokenError, ValueError) as e:
            logger.warning(f"Rejected verification link: {e}")
            return AuthResult.fail(ErrorKind.NOT_FOUND)

        def select(queryset):
            return queryset.filter(
                email=normalize_email(claims['email']),
                link_nonce=claims['jti'],
            ).first()

        return self._consume(select, expected_email=None)

    def _consume(self, select, expected_email):
        try:
            with transaction.atomic():
                pending = select(PendingRegistration.objects.select_for_update())

                if pending is None:
                    return AuthResult.fail(ErrorKind.NOT_FOUND)

                if pending.is_expired(self._clock.now(), self.ttl):
                    pending.delete()
                    logger.info(f"Expired artifact presented for {mask_email(pending.email)}")
                    return AuthResult.fail(ErrorKind.EXPIRED)

                if expected_email is not None and pending.email != expected_email:
                    logger.warning(
                        f"Email mismatch: artifact for {mask_email(pending.email)} "
                        f"presented as {mask_email(expected_email)}"
                    )
                    return AuthResult.fail(ErrorKind.EMAIL_MISMATCH)

                identity = VerifiedIdentity(
                    email=pending.email,
                    display_name=pending.display_name,
                    is_jury=pending.is_jury,
                )
                pending.delete()

        except DatabaseError as e:
            logger.error(f"Verification lookup failed: {e}")
            return AuthResult.fail(ErrorKind.TRANSIENT)
        except Exception as e:
            logger.error(f"Error verifying artifact: {e}", exc_info=True)
            return AuthResult.fail(
                ErrorKind.UNKNOWN,
                'Error al verificar el código. Por favor intenta de nuevo.'
            )

        logger.info(f"Email verified for {mask_email(identity.email)}")

        return AuthResult.ok(
            '¡Email verificado! Procede a votar.',
            email=identity.email,
            user_name=identity.display_name,
            is_jury=identity.is_jury,
        )


def record_verified_user(session, clock=None):
    """
    Write the verified identity to the users collection, keyed by session id.
    Record-keeping only: failures are logged and never block the login.
    """
    now = (clock or default_clock).now()
    try:
        with transaction.atomic():
            RegisteredUser.objects.create(
                session_id=session.session_id,
                role=session.role.value,
                is_jury=session.is_jury,
                created_at=now,
                last_verified_at=now,
                **encrypt_user_data(session.user_email, session.user_name),
            )
        return True
    except Exception as e:
        logger.error(f"Could not record verified user {mask_email(session.user_email)}: {e}")
        return False
