"""
Session Store - voter and admin sessions in client-side ephemeral storage.

`storage` is any mutable mapping of JSON-serialisable values: the
request's Django session in the API, a plain dict in tests. Voter and
admin sessions live under independent keys; either, both or neither may
be active. Expiry is checked lazily on read and an expired record is
cleared as a side effect.
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, MutableMapping, Optional

from django.conf import settings

from .clock import default_clock, from_iso, to_iso
from .crypto_utils import generate_session_id, mask_email
from .errors import AuthResult, ErrorKind

logger = logging.getLogger(__name__)

VOTER_SESSION_KEY = 'voter-session'
ADMIN_SESSION_KEY = 'admin-session'
PENDING_VERIFICATION_KEY = 'pending-verification'

ADMIN_EMAIL = 'admin@pluginpitch.local'
ADMIN_NAME = 'Administrador'


class Role(str, Enum):
    VOTER = 'voter'
    JURY = 'jury'
    ADMIN = 'admin'


def weight_for(role: Role) -> int:
    return 2 if role == Role.JURY else 1


@dataclass(frozen=True)
class Session:
    session_id: str
    user_email: str
    user_name: str
    role: Role
    weight: int
    created_at: Any
    expires_at: Any
    is_jury: bool = False

    def is_expired(self, now) -> bool:
        return now > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sessionId': self.session_id,
            'userEmail': self.user_email,
            'userName': self.user_name,
            'role': self.role.value,
            'weight': self.weight,
            'createdAt': to_iso(self.created_at),
            'expiresAt': to_iso(self.expires_at),
            'isJury': self.is_jury,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Session':
        role = Role(data['role'])
        weight = int(data['weight'])
        if weight != weight_for(role):
            raise ValueError(f"Session weight {weight} does not match role {role.value}")
        created_at = from_iso(data['createdAt'])
        expires_at = from_iso(data['expiresAt'])
        if expires_at <= created_at:
            raise ValueError("Session expires before it was created")
        return cls(
            session_id=data['sessionId'],
            user_email=data['userEmail'],
            user_name=data['userName'],
            role=role,
            weight=weight,
            created_at=created_at,
            expires_at=expires_at,
            is_jury=role == Role.JURY,
        )


@dataclass(frozen=True)
class AuthContext:
    """Both login kinds at once; the state machine decides precedence."""
    voter: Optional[Session] = None
    admin: Optional[Session] = None


class DjangoSessionIdentityProvider:
    """
    Signing out of the request's session rotates its key. The stored data
    is carried over: some backends (signed cookies) drop it on rotation,
    and the admin slot must survive a voter logout.
    """

    def __init__(self, request):
        self._request = request

    def sign_out(self):
        session = self._request.session
        data = dict(session.items())
        session.cycle_key()
        session.update(data)


class SessionStore:
    """
    Usage:
        store = SessionStore(request.session)
        session = store.create_voter_session(identity)
        store.get_current_session()      # None once expired
        store.clear_session()
    """

    def __init__(
        self,
        storage: MutableMapping[str, Any],
        clock=None,
        identity_provider=None,
    ) -> None:
        self._storage = storage
        self._clock = clock or default_clock
        self._identity_provider = identity_provider

    @property
    def storage(self) -> MutableMapping[str, Any]:
        return self._storage

    @property
    def clock(self):
        return self._clock

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_voter_session(self, identity) -> Session:
        """Replace any prior voter session with a fresh 24h one."""
        now = self._clock.now()
        role = Role.JURY if identity.is_jury else Role.VOTER
        session = Session(
            session_id=generate_session_id('session'),
            user_email=identity.email,
            user_name=identity.display_name or 'Usuario',
            role=role,
            weight=weight_for(role),
            created_at=now,
            expires_at=now + timedelta(hours=settings.VOTER_SESSION_HOURS),
            is_jury=role == Role.JURY,
        )
        self._storage[VOTER_SESSION_KEY] = session.to_dict()
        logger.info(f"Voter session created for {mask_email(identity.email)} ({role.value})")
        return session

    def create_admin_session(self) -> Session:
        """Only call after validate_admin_key() succeeded."""
        now = self._clock.now()
        session = Session(
            session_id=generate_session_id('admin'),
            user_email=ADMIN_EMAIL,
            user_name=ADMIN_NAME,
            role=Role.ADMIN,
            weight=1,
            created_at=now,
            expires_at=now + timedelta(hours=settings.ADMIN_SESSION_HOURS),
        )
        self._storage[ADMIN_SESSION_KEY] = session.to_dict()
        logger.info("Admin session created")
        return session

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _read(self, key: str) -> Optional[Session]:
        raw = self._storage.get(key)
        if raw is None:
            return None

        try:
            session = Session.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            # Corrupt record reads as logged out
            logger.warning(f"Discarding corrupt {key} record: {e}")
            self._storage.pop(key, None)
            return None

        if session.is_expired(self._clock.now()):
            logger.info(f"{key} expired, clearing")
            self._storage.pop(key, None)
            return None

        return session

    def get_current_session(self) -> Optional[Session]:
        return self._read(VOTER_SESSION_KEY)

    def get_current_admin_session(self) -> Optional[Session]:
        return self._read(ADMIN_SESSION_KEY)

    def has_active_session(self) -> bool:
        return self.get_current_session() is not None

    def has_active_admin_session(self) -> bool:
        return self.get_current_admin_session() is not None

    def context(self) -> AuthContext:
        return AuthContext(
            voter=self.get_current_session(),
            admin=self.get_current_admin_session(),
        )

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def clear_session(self) -> None:
        """Remove the voter session and sign out of the identity provider (best effort)."""
        self._storage.pop(VOTER_SESSION_KEY, None)
        if self._identity_provider is None:
            return
        try:
            self._identity_provider.sign_out()
        except Exception as e:
            logger.error(f"Error signing out: {e}")

    def clear_admin_session(self) -> None:
        self._storage.pop(ADMIN_SESSION_KEY, None)

    def clear_all_sessions(self) -> None:
        self.clear_session()
        self.clear_admin_session()

    # ------------------------------------------------------------------
    # Pending verification (survives reloads while the user checks email)
    # ------------------------------------------------------------------

    def save_pending(self, email, user_name, is_jury, jury_code='') -> None:
        self._storage[PENDING_VERIFICATION_KEY] = {
            'email': email,
            'userName': user_name,
            'isJury': bool(is_jury),
            'juryCode': jury_code or '',
            'timestamp': to_iso(self._clock.now()),
        }

    def get_pending(self) -> Optional[Dict[str, Any]]:
        pending = self._storage.get(PENDING_VERIFICATION_KEY)
        if not isinstance(pending, dict) or not pending.get('email'):
            return None
        return pending

    def clear_pending(self) -> None:
        self._storage.pop(PENDING_VERIFICATION_KEY, None)


def validate_admin_key(admin_key) -> AuthResult:
    """Constant-time comparison with settings.ADMIN_KEY; an unset key rejects everything."""
    expected = settings.ADMIN_KEY or ''
    candidate = admin_key or ''
    if not expected or not candidate:
        logger.warning("Admin login rejected")
        return AuthResult.fail(ErrorKind.UNAUTHORIZED)
    if not hmac.compare_digest(candidate.encode(), expected.encode()):
        logger.warning("Admin login rejected")
        return AuthResult.fail(ErrorKind.UNAUTHORIZED)
    return AuthResult.ok('Acceso de administrador concedido')
