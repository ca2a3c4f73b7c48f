"""Shared fixtures: controllable clock, recording notifier, wired core objects."""

from datetime import datetime, timedelta, timezone

import pytest

from authentication.issuer import CredentialIssuer
from authentication.notifier import NotificationResult
from authentication.sessions import SessionStore
from authentication.verifier import CredentialVerifier
from voting.cache import VoteCache
from voting.feeds import live_state
from voting.ledger import VoteLedgerGateway
from voting.state_machine import AppStateMachine

START = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start=START):
        self._now = start

    def now(self):
        return self._now

    def advance(self, **kwargs):
        self._now = self._now + timedelta(**kwargs)
        return self._now

    def set(self, moment):
        self._now = moment


class RecordingNotifier:
    """Captures every send; can be told to fail."""

    def __init__(self, succeed=True):
        self.succeed = succeed
        self.sent = []

    def send(self, email, template_params):
        self.sent.append((email, template_params))
        if self.succeed:
            return NotificationResult(True, 'Email enviado')
        return NotificationResult(False, 'Error al enviar el email. Por favor intenta más tarde.')

    @property
    def last_code(self):
        return self.sent[-1][1]['code']

    @property
    def last_token(self):
        return self.sent[-1][1]['token']


class RecordingIdentityProvider:
    def __init__(self, error=None):
        self.error = error
        self.sign_outs = 0

    def sign_out(self):
        self.sign_outs += 1
        if self.error:
            raise self.error


@pytest.fixture(autouse=True)
def voting_settings(settings):
    settings.ADMIN_KEY = 'admin-secret'
    settings.JURY_CODE = 'JURY2025'
    settings.VERIFICATION_LINK_SECRET = 'test-link-secret-0123456789abcdef0123456789'
    settings.ENCRYPTION_KEY = 'test-encryption-key'
    settings.VERIFICATION_TTL_SECONDS = 3600
    settings.VOTER_SESSION_HOURS = 24
    settings.ADMIN_SESSION_HOURS = 8
    settings.VOTE_CACHE_SECONDS = 300
    settings.VOTE_CACHE_ENABLED = True
    settings.THANK_YOU_SECONDS = 3
    settings.NOTIFIER_BACKEND = 'authentication.notifier.DjangoMailNotifier'
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    return settings


@pytest.fixture(autouse=True)
def reset_live_state():
    yield
    live_state.detach()
    live_state.projects = []
    live_state.winner = {'winnerId': None, 'announcedAt': None}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def ledger(clock):
    return VoteLedgerGateway(clock=clock)


@pytest.fixture
def issuer(ledger, notifier, clock):
    return CredentialIssuer(ledger, notifier=notifier, clock=clock)


@pytest.fixture
def verifier(clock):
    return CredentialVerifier(clock=clock)


@pytest.fixture
def storage():
    return {}


@pytest.fixture
def identity_provider():
    return RecordingIdentityProvider()


@pytest.fixture
def sessions(storage, clock, identity_provider):
    return SessionStore(storage, clock=clock, identity_provider=identity_provider)


@pytest.fixture
def vote_cache(storage, clock):
    return VoteCache(storage, clock=clock)


@pytest.fixture
def machine(sessions, issuer, verifier, ledger, vote_cache, clock):
    state = live_state.attach()
    return AppStateMachine(
        sessions, issuer, verifier, ledger, vote_cache,
        live_state=state, clock=clock,
    )
