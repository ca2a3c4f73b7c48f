"""
Application State Machine - routes a client between screens.

It composes the Session Store, Credential Issuer/Verifier, Vote Ledger
Gateway and Vote Cache. The machine never enters an error state: a failed
action returns a failed AuthResult (whose message the UI shows as an
alert) and the machine stays in, or reverts to, the state it was in.

State is persisted in the client's storage under `app-state`, so each
HTTP request can rebuild the machine and continue where the client was.
"""

import logging
from datetime import timedelta
from enum import Enum

from django.conf import settings

from authentication.clock import default_clock, from_iso, to_iso
from authentication.crypto_utils import mask_email
from authentication.errors import AuthResult, ErrorKind
from authentication.sessions import validate_admin_key
from authentication.verifier import VerifiedIdentity, record_verified_user

from .ledger import LedgerError, VoteInfo

logger = logging.getLogger(__name__)

APP_STATE_KEY = 'app-state'


class AppState(str, Enum):
    LOADING = 'loading'
    WELCOME = 'welcome'
    REGISTRATION = 'registration'
    AWAITING_VERIFICATION = 'awaiting_verification'
    VOTING = 'voting'
    VOTED = 'voted'
    ADMIN_LOGIN = 'admin_login'
    ADMIN_PANEL = 'admin_panel'
    THANK_YOU = 'thank_you'


# Screens the user can navigate to directly, and from where
NAVIGATION = {
    AppState.WELCOME: {
        AppState.REGISTRATION, AppState.AWAITING_VERIFICATION, AppState.ADMIN_LOGIN,
    },
    AppState.REGISTRATION: {
        AppState.WELCOME, AppState.AWAITING_VERIFICATION,
    },
    AppState.ADMIN_LOGIN: set(AppState) - {AppState.ADMIN_PANEL, AppState.LOADING},
}

REGISTRATION_STATES = {
    AppState.WELCOME, AppState.REGISTRATION, AppState.AWAITING_VERIFICATION,
}


class AppStateMachine:
    """
    Usage:
        machine = AppStateMachine(sessions, issuer, verifier, ledger, vote_cache)
        machine.resolve()                              # LOADING -> ...
        machine.register("ana@x.com", "Ana", "JURY2025")
        machine.verify(code="123456", email="ana@x.com")
        machine.cast_vote("proj-1")                    # -> THANK_YOU -> VOTED
    """

    def __init__(
        self,
        sessions,
        issuer,
        verifier,
        ledger,
        vote_cache,
        live_state=None,
        clock=None,
    ):
        self._sessions = sessions
        self._issuer = issuer
        self._verifier = verifier
        self._ledger = ledger
        self._cache = vote_cache
        self._live_state = live_state
        self._clock = clock or sessions.clock or default_clock
        self._storage = sessions.storage
        self._vote_in_flight = False

    # ------------------------------------------------------------------
    # Persisted state
    # ------------------------------------------------------------------

    def _load(self):
        raw = self._storage.get(APP_STATE_KEY)
        if not isinstance(raw, dict):
            return {'state': AppState.LOADING.value}
        try:
            AppState(raw.get('state'))
        except ValueError:
            logger.warning(f"Unknown app state {raw.get('state')!r}, restarting")
            return {'state': AppState.LOADING.value}
        return dict(raw)

    def _save(self, data):
        self._storage[APP_STATE_KEY] = data

    def _transition(self, new_state, **extra):
        data = self._load()
        old_state = AppState(data['state'])

        if old_state == AppState.THANK_YOU and new_state != AppState.THANK_YOU:
            # Leaving early cancels the pending auto-advance
            data.pop('thankYouUntil', None)

        data['state'] = new_state.value
        data.update(extra)
        self._save(data)

        if old_state != new_state:
            logger.debug(f"App state {old_state.value} -> {new_state.value}")
        return new_state

    def current_state(self):
        """Current state, applying the ThankYou auto-advance when due."""
        data = self._load()
        state = AppState(data['state'])

        if state == AppState.THANK_YOU:
            deadline = data.get('thankYouUntil')
            if deadline is None or self._clock.now() >= from_iso(deadline):
                return self._transition(AppState.VOTED)

        return state

    @property
    def vote_info(self):
        info = self._load().get('voteInfo')
        if not info:
            return None
        return VoteInfo(project_id=info['projectId'], is_jury=bool(info['isJury']))

    def _set_vote_info(self, vote_info):
        data = self._load()
        data['voteInfo'] = vote_info.to_dict() if vote_info else None
        self._save(data)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def resolve(self, code=None, email=None, token=None):
        """
        Resolve LOADING. A verification artifact in the request is tried
        first; otherwise admin session, then voter session, then Welcome.
        """
        if token or code:
            return self.verify(code=code, email=email, token=token)

        context = self._sessions.context()

        if context.admin is not None:
            self._transition(AppState.ADMIN_PANEL)
            return AuthResult.ok()

        if context.voter is not None:
            try:
                vote_info = self._cache.lookup(context.voter.user_email, self._ledger)
            except LedgerError as e:
                logger.error(f"Could not check vote status during startup: {e}")
                self._transition(AppState.WELCOME)
                return AuthResult.fail(ErrorKind.TRANSIENT)

            if vote_info is not None:
                self._set_vote_info(vote_info)
                self._transition(AppState.VOTED)
            else:
                self._set_vote_info(None)
                self._transition(AppState.VOTING)
            return AuthResult.ok()

        self._set_vote_info(None)
        self._transition(AppState.WELCOME)
        return AuthResult.ok()

    def ensure_resolved(self):
        """
        Resolve LOADING, and re-check the stored screen against the sessions
        it depends on: an expired admin or voter session sends the client
        back through resolve(), and the voter screens follow the ledger
        (a vote from another device, or a new UTC day).
        """
        state = self.current_state()

        if state == AppState.LOADING:
            return self.resolve()

        if state == AppState.ADMIN_PANEL:
            if self._sessions.get_current_admin_session() is None:
                logger.info("Admin session gone, re-resolving screen")
                return self.resolve()
            return AuthResult.ok()

        if state in (AppState.VOTING, AppState.VOTED):
            voter = self._sessions.get_current_session()
            if voter is None:
                logger.info("Voter session gone, re-resolving screen")
                return self.resolve()
            return self._refresh_vote_status(voter)

        return AuthResult.ok()

    def _refresh_vote_status(self, voter):
        try:
            vote_info = self._cache.lookup(voter.user_email, self._ledger)
        except LedgerError as e:
            logger.error(f"Could not refresh vote status: {e}")
            return AuthResult.fail(ErrorKind.TRANSIENT)

        self._set_vote_info(vote_info)
        self._transition(AppState.VOTED if vote_info is not None else AppState.VOTING)
        return AuthResult.ok()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def navigate(self, target):
        """Move to a screen that needs no side effect (welcome, registration, admin login)."""
        current = self.current_state()
        allowed_from = NAVIGATION.get(target)

        if allowed_from is None or (current != target and current not in allowed_from):
            return AuthResult.fail(ErrorKind.INVALID_INPUT, 'Acción no disponible en este momento.')

        self._transition(target)
        return AuthResult.ok()

    def start_registration(self):
        return self.navigate(AppState.REGISTRATION)

    def open_admin_login(self):
        return self.navigate(AppState.ADMIN_LOGIN)

    def back_to_welcome(self):
        return self.navigate(AppState.WELCOME)

    # ------------------------------------------------------------------
    # Registration and verification
    # ------------------------------------------------------------------

    def register(self, email, user_name, jury_code=''):
        """REGISTRATION -> AWAITING_VERIFICATION on success; stays put on failure."""
        if self.current_state() not in REGISTRATION_STATES:
            return AuthResult.fail(ErrorKind.INVALID_INPUT, 'Acción no disponible en este momento.')

        result = self._issuer.issue(email, user_name, jury_code)

        if not result.success:
            self._transition(AppState.REGISTRATION)
            return result

        self._sessions.save_pending(
            result.data['email'],
            result.data['user_name'],
            result.data['is_jury'],
            jury_code=jury_code,
        )
        self._transition(AppState.AWAITING_VERIFICATION)
        return result

    def resend(self):
        """Re-issue with the stored registration parameters. No backoff here."""
        pending = self._sessions.get_pending()
        if pending is None:
            return AuthResult.fail(ErrorKind.NOT_FOUND, 'No hay una verificación pendiente.')

        result = self._issuer.issue(
            pending['email'],
            pending.get('userName', ''),
            pending.get('juryCode', ''),
        )
        if result.success:
            self._sessions.save_pending(
                result.data['email'],
                result.data['user_name'],
                result.data['is_jury'],
                jury_code=pending.get('juryCode', ''),
            )
            self._transition(AppState.AWAITING_VERIFICATION)
        return result

    def verify(self, code=None, email=None, token=None):
        """Artifact -> voter session -> VOTING; any failure -> WELCOME."""
        result = self._verifier.verify(code=code, email=email, token=token)

        if not result.success:
            self._transition(AppState.WELCOME)
            return result

        identity = VerifiedIdentity.from_data(result.data)
        session = self._sessions.create_voter_session(identity)
        record_verified_user(session, self._clock)
        self._sessions.clear_pending()
        self._cache.invalidate(identity.email)

        self._set_vote_info(None)
        self._transition(AppState.VOTING)

        return AuthResult.ok(
            result.message,
            session=session.to_dict(),
        )

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    def cast_vote(self, project_id):
        """
        VOTING -> THANK_YOU (auto-advances to VOTED after THANK_YOU_SECONDS).
        Failures keep the machine on VOTING.
        """
        state = self.current_state()
        if state != AppState.VOTING:
            return AuthResult.fail(ErrorKind.INVALID_INPUT, 'Acción no disponible en este momento.')

        voter = self._sessions.get_current_session()
        if voter is None:
            self._transition(AppState.WELCOME)
            return AuthResult.fail(
                ErrorKind.UNAUTHORIZED,
                'Tu sesión ha expirado. Por favor verifica tu email de nuevo.'
            )

        if self._vote_in_flight or self._load().get('voteInFlight'):
            return AuthResult.fail(ErrorKind.INVALID_INPUT, 'Tu voto se está registrando...')

        self._vote_in_flight = True
        data = self._load()
        data['voteInFlight'] = True
        self._save(data)

        try:
            return self._submit_vote(voter, project_id)
        except Exception as e:
            logger.error(f"Error submitting vote: {e}", exc_info=True)
            self._transition(AppState.VOTING)
            return AuthResult.fail(
                ErrorKind.UNKNOWN,
                'Hubo un error al registrar tu voto. Por favor, inténtalo de nuevo.'
            )
        finally:
            self._vote_in_flight = False
            data = self._load()
            data.pop('voteInFlight', None)
            self._save(data)

    def _submit_vote(self, voter, project_id):
        # The ledger decides; the cache only records its answer
        try:
            existing = self._ledger.has_voted_today(voter.user_email)
        except LedgerError as e:
            logger.error(f"Could not check vote status before casting: {e}")
            return AuthResult.fail(ErrorKind.TRANSIENT)

        if existing is not None:
            logger.info(f"Duplicate vote attempt by {mask_email(voter.user_email)}")
            self._cache.put(voter.user_email, existing)
            self._set_vote_info(existing)
            self._transition(AppState.VOTED)
            return AuthResult.fail(ErrorKind.ALREADY_VOTED, voteInfo=existing.to_dict())

        result = self._ledger.cast_vote(voter.user_email, project_id, voter.weight)
        if not result.success:
            return result

        vote_info = VoteInfo(project_id=result.data['projectId'], is_jury=voter.is_jury)
        self._cache.put(voter.user_email, vote_info)
        self._set_vote_info(vote_info)

        deadline = self._clock.now() + timedelta(seconds=settings.THANK_YOU_SECONDS)
        self._transition(AppState.THANK_YOU, thankYouUntil=to_iso(deadline))

        return AuthResult.ok('¡Gracias por votar!', voteInfo=vote_info.to_dict())

    # ------------------------------------------------------------------
    # Admin and logout
    # ------------------------------------------------------------------

    def admin_login(self, admin_key):
        """Correct key -> ADMIN_PANEL; wrong key stays on ADMIN_LOGIN, no session."""
        result = validate_admin_key(admin_key)

        if not result.success:
            self._transition(AppState.ADMIN_LOGIN)
            return result

        session = self._sessions.create_admin_session()
        self._transition(AppState.ADMIN_PANEL)
        return AuthResult.ok(result.message, adminSession=session.to_dict())

    def admin_logout(self):
        """ADMIN_PANEL -> WELCOME, clearing the admin and any voter session."""
        self._sessions.clear_admin_session()
        if self._sessions.get_current_session() is not None:
            self._logout_voter()
        self._transition(AppState.WELCOME)
        return AuthResult.ok('Sesión cerrada')

    def logout(self):
        self._logout_voter()
        self._transition(AppState.WELCOME)
        return AuthResult.ok('Sesión cerrada')

    def _logout_voter(self):
        voter = self._sessions.get_current_session()
        if voter is not None:
            self._cache.invalidate(voter.user_email)
        self._sessions.clear_session()
        self._set_vote_info(None)

    # ------------------------------------------------------------------
    # Views of live data
    # ------------------------------------------------------------------

    def winner_notice(self):
        """Winner announcement for display, or None while no winner is declared."""
        if self._live_state is None:
            return None

        winner = self._live_state.winner or {}
        winner_id = winner.get('winnerId')
        if not winner_id:
            return None

        vote_info = self.vote_info
        return {
            'winnerId': winner_id,
            'announcedAt': winner.get('announcedAt'),
            'project': self._live_state.find_project(winner_id),
            'userVotedForWinner': bool(vote_info and vote_info.project_id == winner_id),
        }

    def snapshot(self):
        """Everything the UI needs to render the current screen."""
        state = self.current_state()
        context = self._sessions.context()
        vote_info = self.vote_info

        voted_project = None
        if vote_info and self._live_state is not None:
            voted_project = self._live_state.find_project(vote_info.project_id)

        return {
            'state': state.value,
            'session': context.voter.to_dict() if context.voter else None,
            'adminSession': context.admin.to_dict() if context.admin else None,
            'pending': self._sessions.get_pending(),
            'voteInfo': vote_info.to_dict() if vote_info else None,
            'votedProject': voted_project,
            'projects': list(self._live_state.projects) if self._live_state else [],
            'winner': self.winner_notice(),
        }
