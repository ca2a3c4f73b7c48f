"""
Result and error types shared by the authentication and voting cores.

Every core operation returns an AuthResult instead of raising: failures
from external calls are caught where they happen and converted here.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    INVALID_INPUT = 'invalid_input'    # malformed email/name, user corrects
    ALREADY_VOTED = 'already_voted'    # wait until next UTC day
    NOT_FOUND = 'not_found'            # unknown, consumed or superseded artifact
    EXPIRED = 'expired'
    EMAIL_MISMATCH = 'email_mismatch'
    UNAUTHORIZED = 'unauthorized'      # bad admin key / missing session
    TRANSIENT = 'transient'            # store or network failure, retry
    UNKNOWN = 'unknown'


# Default display messages (the UI is in Spanish)
DEFAULT_MESSAGES = {
    ErrorKind.INVALID_INPUT: 'Datos inválidos.',
    ErrorKind.ALREADY_VOTED: 'Ya has votado hoy.',
    ErrorKind.NOT_FOUND: 'Código inválido o expirado. Por favor solicita uno nuevo.',
    ErrorKind.EXPIRED: 'El código ha expirado. Por favor solicita uno nuevo.',
    ErrorKind.EMAIL_MISMATCH: 'Email no coincide. Por favor verifica los datos.',
    ErrorKind.UNAUTHORIZED: 'Clave de administrador incorrecta',
    ErrorKind.TRANSIENT: 'Error de conexión. Por favor intenta de nuevo.',
    ErrorKind.UNKNOWN: 'Error desconocido. Por favor intenta de nuevo.',
}

# HTTP status used by the views for each kind
HTTP_STATUS = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.ALREADY_VOTED: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.EXPIRED: 410,
    ErrorKind.EMAIL_MISMATCH: 403,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.TRANSIENT: 503,
    ErrorKind.UNKNOWN: 500,
}


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a core operation. `message` is for display only."""
    success: bool
    message: str = ''
    kind: Optional[ErrorKind] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message='', **data):
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, kind, message=None, **data):
        return cls(
            success=False,
            message=message or DEFAULT_MESSAGES[kind],
            kind=kind,
            data=data,
        )

    @property
    def http_status(self):
        if self.success:
            return 200
        return HTTP_STATUS.get(self.kind, 500)

    def to_response(self):
        """
        Body used by the API views: successes return their data,
        failures use the same 'error'/'detail' shape as the rest of the API.
        """
        if self.success:
            return {'success': True, 'message': self.message, **self.data}
        return {
            'success': False,
            'error': self.message,
            'detail': self.message,
            'kind': self.kind.value if self.kind else ErrorKind.UNKNOWN.value,
            **self.data,
        }
