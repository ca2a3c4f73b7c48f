"""
Per-request wiring of the voting core.

Each request rebuilds the state machine on top of request.session, which
holds the client's ephemeral storage (sessions, pending verification,
vote cache, app state).
"""

from rest_framework.response import Response

from authentication.clock import default_clock
from authentication.errors import AuthResult, ErrorKind
from authentication.issuer import CredentialIssuer
from authentication.sessions import DjangoSessionIdentityProvider, SessionStore
from authentication.verifier import CredentialVerifier

from .cache import VoteCache
from .feeds import live_state
from .ledger import VoteLedgerGateway
from .state_machine import AppStateMachine


def session_store_for(request, clock=None):
    return SessionStore(
        request.session,
        clock=clock or default_clock,
        identity_provider=DjangoSessionIdentityProvider(request),
    )


def machine_for(request, clock=None, notifier=None):
    clock = clock or default_clock
    ledger = VoteLedgerGateway(clock=clock)
    return AppStateMachine(
        sessions=session_store_for(request, clock),
        issuer=CredentialIssuer(ledger, notifier=notifier, clock=clock),
        verifier=CredentialVerifier(clock=clock),
        ledger=ledger,
        vote_cache=VoteCache(request.session, clock=clock),
        live_state=live_state.attach(),
        clock=clock,
    )


def result_response(result, machine=None):
    """AuthResult -> DRF Response, with the client's app snapshot attached."""
    body = result.to_response()
    if machine is not None:
        body['app'] = machine.snapshot()
    return Response(body, status=result.http_status)


def validation_error_response(errors):
    result = AuthResult.fail(ErrorKind.INVALID_INPUT)
    body = result.to_response()
    body['detail'] = errors
    return Response(body, status=result.http_status)


def require_admin(request):
    """Failed AuthResult when the request carries no live admin session, else None."""
    if session_store_for(request).get_current_admin_session() is None:
        return AuthResult.fail(ErrorKind.UNAUTHORIZED, 'Se requiere una sesión de administrador.')
    return None
