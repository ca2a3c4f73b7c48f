"""Tests for the application state machine: full voter and admin flows."""

import pytest

from authentication.errors import AuthResult, ErrorKind
from authentication.models import RegisteredUser
from voting.ledger import VoteInfo
from voting.models import Project, Vote, Winner
from voting.state_machine import APP_STATE_KEY, AppState

pytestmark = pytest.mark.django_db


@pytest.fixture
def projects():
    return [
        Project.objects.create(id="proj-1", name="Alpha", description="Primer proyecto"),
        Project.objects.create(id="proj-2", name="Beta", description="Segundo proyecto"),
    ]


def register_and_verify(machine, notifier, email="ana@x.com", name="Ana", jury_code=""):
    machine.resolve()
    machine.start_registration()
    result = machine.register(email, name, jury_code)
    assert result.success, result.message
    return machine.verify(code=notifier.last_code, email=email)


class TestStartup:
    def test_fresh_client_lands_on_welcome(self, machine) -> None:
        assert machine.current_state() == AppState.LOADING
        assert machine.resolve().success
        assert machine.current_state() == AppState.WELCOME

    def test_admin_session_takes_precedence(self, machine, sessions, notifier) -> None:
        register_and_verify(machine, notifier)
        sessions.create_admin_session()

        machine.resolve()

        assert machine.current_state() == AppState.ADMIN_PANEL

    def test_voter_without_vote_goes_to_voting(self, machine, notifier) -> None:
        register_and_verify(machine, notifier)
        machine.resolve()
        assert machine.current_state() == AppState.VOTING

    def test_voter_who_voted_goes_to_voted(self, machine, notifier, ledger, vote_cache) -> None:
        register_and_verify(machine, notifier)
        ledger.cast_vote("ana@x.com", "proj-1", 1)
        vote_cache.invalidate("ana@x.com")

        machine.resolve()

        assert machine.current_state() == AppState.VOTED
        assert machine.vote_info == VoteInfo("proj-1", False)

    def test_expired_voter_session_goes_to_welcome(self, machine, notifier, clock) -> None:
        register_and_verify(machine, notifier)
        clock.advance(hours=25)

        machine.resolve()

        assert machine.current_state() == AppState.WELCOME

    def test_artifact_in_request_is_verified_first(self, machine, issuer, notifier) -> None:
        issuer.issue("ana@x.com", "Ana")

        result = machine.resolve(code=notifier.last_code, email="ana@x.com")

        assert result.success
        assert machine.current_state() == AppState.VOTING

    def test_unknown_persisted_state_restarts(self, machine, storage) -> None:
        storage[APP_STATE_KEY] = {"state": "bogus"}
        assert machine.current_state() == AppState.LOADING


class TestNavigation:
    def test_welcome_registration_round_trip(self, machine) -> None:
        machine.resolve()
        assert machine.start_registration().success
        assert machine.current_state() == AppState.REGISTRATION
        assert machine.back_to_welcome().success
        assert machine.current_state() == AppState.WELCOME

    def test_cannot_register_screen_from_voting(self, machine, notifier) -> None:
        register_and_verify(machine, notifier)

        result = machine.start_registration()

        assert result.kind == ErrorKind.INVALID_INPUT
        assert machine.current_state() == AppState.VOTING

    def test_register_rejected_outside_registration_flow(self, machine, notifier) -> None:
        register_and_verify(machine, notifier)
        assert machine.register("bob@x.com", "Bob").kind == ErrorKind.INVALID_INPUT


class TestVoterFlow:
    def test_jury_member_votes_once(self, machine, notifier, ledger, clock, projects) -> None:
        result = register_and_verify(machine, notifier, jury_code="JURY2025")

        assert result.success
        assert result.data["session"]["weight"] == 2
        assert result.data["session"]["isJury"] is True
        assert machine.current_state() == AppState.VOTING
        assert RegisteredUser.objects.filter(session_id=result.data["session"]["sessionId"]).exists()

        vote = machine.cast_vote("proj-1")

        assert vote.success
        assert vote.data["voteInfo"] == {"projectId": "proj-1", "isJury": True}
        assert machine.current_state() == AppState.THANK_YOU
        assert ledger.has_voted_today("ana@x.com") == VoteInfo("proj-1", True)
        assert Vote.objects.get(user_identity="ana@x.com").weight == 2

        clock.advance(seconds=3)
        assert machine.current_state() == AppState.VOTED
        assert machine.snapshot()["votedProject"]["name"] == "Alpha"

    def test_same_day_reissue_is_rejected(self, machine, notifier, clock) -> None:
        register_and_verify(machine, notifier)
        machine.cast_vote("proj-1")
        machine.logout()
        sent_before = len(notifier.sent)

        clock.advance(hours=2)
        machine.start_registration()
        result = machine.register("ana@x.com", "Ana")

        assert result.kind == ErrorKind.ALREADY_VOTED
        assert len(notifier.sent) == sent_before
        assert machine.current_state() == AppState.REGISTRATION

    def test_next_utc_day_can_register_again(self, machine, notifier, clock) -> None:
        register_and_verify(machine, notifier)
        machine.cast_vote("proj-1")
        machine.logout()

        clock.advance(days=1)
        machine.start_registration()

        assert machine.register("ana@x.com", "Ana").success

    def test_failed_registration_stays_on_registration(self, machine) -> None:
        machine.resolve()
        machine.start_registration()

        result = machine.register("not-an-email", "Ana")

        assert result.kind == ErrorKind.INVALID_INPUT
        assert machine.current_state() == AppState.REGISTRATION

    def test_pending_is_kept_for_resend(self, machine, notifier, storage) -> None:
        machine.resolve()
        machine.start_registration()
        machine.register("ana@x.com", "Ana", "JURY2025")

        result = machine.resend()

        assert result.success
        assert len(notifier.sent) == 2
        assert notifier.sent[-1][1]["is_jury"] is True
        assert machine.current_state() == AppState.AWAITING_VERIFICATION

    def test_resend_without_pending(self, machine) -> None:
        machine.resolve()
        assert machine.resend().kind == ErrorKind.NOT_FOUND

    def test_failed_verification_returns_to_welcome(self, machine) -> None:
        machine.resolve()
        machine.start_registration()

        result = machine.verify(code="123456", email="ana@x.com")

        assert not result.success
        assert machine.current_state() == AppState.WELCOME

    def test_second_cast_reports_already_voted(self, machine, notifier, ledger, projects) -> None:
        register_and_verify(machine, notifier)
        machine.cast_vote("proj-1")
        machine._transition(AppState.VOTING)

        result = machine.cast_vote("proj-2")

        assert result.kind == ErrorKind.ALREADY_VOTED
        assert result.data["voteInfo"]["projectId"] == "proj-1"
        assert machine.current_state() == AppState.VOTED
        assert Vote.objects.count() == 1

    def test_cast_vote_outside_voting(self, machine) -> None:
        machine.resolve()
        assert machine.cast_vote("proj-1").kind == ErrorKind.INVALID_INPUT
        assert Vote.objects.count() == 0

    def test_cast_vote_with_expired_session(self, machine, notifier, clock) -> None:
        register_and_verify(machine, notifier)
        clock.advance(hours=24, seconds=1)

        result = machine.cast_vote("proj-1")

        assert result.kind == ErrorKind.UNAUTHORIZED
        assert machine.current_state() == AppState.WELCOME
        assert Vote.objects.count() == 0

    def test_vote_in_flight_blocks_second_submit(self, machine, notifier, storage) -> None:
        register_and_verify(machine, notifier)
        storage[APP_STATE_KEY]["voteInFlight"] = True

        result = machine.cast_vote("proj-1")

        assert not result.success
        assert Vote.objects.count() == 0

    def test_in_flight_flag_cleared_after_submit(self, machine, notifier, storage) -> None:
        register_and_verify(machine, notifier)
        machine.cast_vote("proj-1")
        assert "voteInFlight" not in storage[APP_STATE_KEY]

    def test_ledger_failure_stays_on_voting(self, machine, notifier, ledger, monkeypatch) -> None:
        register_and_verify(machine, notifier)
        monkeypatch.setattr(
            ledger, "cast_vote",
            lambda *args, **kwargs: AuthResult.fail(ErrorKind.TRANSIENT),
        )

        result = machine.cast_vote("proj-1")

        assert result.kind == ErrorKind.TRANSIENT
        assert machine.current_state() == AppState.VOTING

    def test_ledger_decides_over_cached_not_voted(self, machine, notifier, ledger, vote_cache) -> None:
        register_and_verify(machine, notifier)
        machine.resolve()
        assert vote_cache.get("ana@x.com").found is False
        # Vote recorded from another device while the cache still says "not voted"
        ledger.cast_vote("ana@x.com", "proj-1", 1)

        result = machine.cast_vote("proj-2")

        assert result.kind == ErrorKind.ALREADY_VOTED
        assert result.data["voteInfo"]["projectId"] == "proj-1"
        assert Vote.objects.filter(user_identity="ana@x.com").count() == 1
        assert machine.current_state() == AppState.VOTED
        assert vote_cache.get("ana@x.com").found is True


class TestRefreshOnStatus:
    def test_expired_admin_session_leaves_panel(self, machine, clock) -> None:
        machine.resolve()
        machine.open_admin_login()
        machine.admin_login("admin-secret")
        clock.advance(hours=9)

        machine.ensure_resolved()

        snapshot = machine.snapshot()
        assert snapshot["state"] == "welcome"
        assert snapshot["adminSession"] is None

    def test_live_admin_session_keeps_panel(self, machine, clock) -> None:
        machine.resolve()
        machine.open_admin_login()
        machine.admin_login("admin-secret")
        clock.advance(hours=7)

        machine.ensure_resolved()

        assert machine.current_state() == AppState.ADMIN_PANEL

    def test_expired_admin_falls_back_to_voter(self, machine, notifier, clock) -> None:
        register_and_verify(machine, notifier)
        machine.open_admin_login()
        machine.admin_login("admin-secret")
        clock.advance(hours=9)

        machine.ensure_resolved()

        assert machine.current_state() == AppState.VOTING

    def test_expired_voter_session_leaves_voted(self, machine, notifier, clock) -> None:
        register_and_verify(machine, notifier)
        machine.cast_vote("proj-1")
        clock.advance(hours=24, seconds=1)

        machine.ensure_resolved()

        snapshot = machine.snapshot()
        assert snapshot["state"] == "welcome"
        assert snapshot["session"] is None
        assert snapshot["voteInfo"] is None

    def test_expired_voter_session_leaves_voting(self, machine, notifier, clock) -> None:
        register_and_verify(machine, notifier)
        clock.advance(hours=24, seconds=1)

        machine.ensure_resolved()

        assert machine.current_state() == AppState.WELCOME

    def test_new_utc_day_reopens_voting(self, machine, notifier, clock) -> None:
        register_and_verify(machine, notifier)
        machine.cast_vote("proj-1")
        clock.advance(seconds=3)
        assert machine.current_state() == AppState.VOTED

        # 01:00 UTC the next day; the 24h session is still valid
        clock.advance(hours=13)
        machine.ensure_resolved()

        assert machine.current_state() == AppState.VOTING
        assert machine.vote_info is None

    def test_vote_from_other_device_moves_to_voted(self, machine, notifier, ledger) -> None:
        register_and_verify(machine, notifier)
        ledger.cast_vote("ana@x.com", "proj-1", 2)

        machine.ensure_resolved()

        assert machine.current_state() == AppState.VOTED
        assert machine.vote_info == VoteInfo("proj-1", True)

    def test_registration_screens_are_left_alone(self, machine) -> None:
        machine.resolve()
        machine.start_registration()

        machine.ensure_resolved()

        assert machine.current_state() == AppState.REGISTRATION


class TestThankYou:
    def test_still_thank_you_before_deadline(self, machine, notifier, clock) -> None:
        register_and_verify(machine, notifier)
        machine.cast_vote("proj-1")

        clock.advance(seconds=2)

        assert machine.current_state() == AppState.THANK_YOU

    def test_leaving_early_cancels_auto_advance(self, machine, notifier, clock, storage) -> None:
        register_and_verify(machine, notifier)
        machine.cast_vote("proj-1")

        machine.logout()
        clock.advance(seconds=5)

        assert machine.current_state() == AppState.WELCOME
        assert "thankYouUntil" not in storage[APP_STATE_KEY]


class TestAdmin:
    def test_right_key_opens_panel(self, machine, sessions) -> None:
        machine.resolve()
        machine.open_admin_login()

        result = machine.admin_login("admin-secret")

        assert result.success
        assert machine.current_state() == AppState.ADMIN_PANEL
        assert sessions.has_active_admin_session()

    def test_wrong_key_stays_on_login(self, machine, sessions) -> None:
        machine.resolve()
        machine.open_admin_login()

        result = machine.admin_login("nope")

        assert result.kind == ErrorKind.UNAUTHORIZED
        assert result.message == "Clave de administrador incorrecta"
        assert machine.current_state() == AppState.ADMIN_LOGIN
        assert not sessions.has_active_admin_session()

    def test_admin_logout_clears_both_sessions(self, machine, sessions, notifier, identity_provider) -> None:
        register_and_verify(machine, notifier)
        machine.open_admin_login()
        machine.admin_login("admin-secret")

        machine.admin_logout()

        assert machine.current_state() == AppState.WELCOME
        assert not sessions.has_active_admin_session()
        assert not sessions.has_active_session()
        assert identity_provider.sign_outs == 1


class TestWinnerNotice:
    def test_no_winner(self, machine) -> None:
        machine.resolve()
        assert machine.winner_notice() is None
        assert machine.snapshot()["winner"] is None

    def test_winner_pushed_to_live_state(self, machine, notifier, clock, projects) -> None:
        register_and_verify(machine, notifier)
        machine.cast_vote("proj-1")

        Winner.declare("proj-1", clock.now())

        notice = machine.winner_notice()
        assert notice["winnerId"] == "proj-1"
        assert notice["project"]["name"] == "Alpha"
        assert notice["userVotedForWinner"] is True

    def test_last_write_wins(self, machine, notifier, clock, projects) -> None:
        register_and_verify(machine, notifier)
        machine.cast_vote("proj-1")

        Winner.declare("proj-1", clock.now())
        Winner.declare("proj-2", clock.advance(minutes=1))

        notice = machine.winner_notice()
        assert notice["winnerId"] == "proj-2"
        assert notice["userVotedForWinner"] is False

    def test_projects_list_follows_changes(self, machine, projects) -> None:
        machine.resolve()
        Project.objects.create(id="proj-3", name="Gamma", description="Tercero")
        Project.objects.filter(id="proj-1").first().delete()

        ids = [p["id"] for p in machine.snapshot()["projects"]]
        assert ids == ["proj-2", "proj-3"]
