"""End-to-end API tests through DRF's test client."""

import re

import pytest
from django.core import mail
from rest_framework.test import APIClient

from voting.models import Project, Vote, Winner

pytestmark = pytest.mark.django_db

CODE_RE = re.compile(r"código de verificación es: (\d{6})")


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def admin_client():
    client = APIClient()
    response = client.post("/api/auth/admin/login/", {"admin_key": "admin-secret"}, format="json")
    assert response.status_code == 200
    return client


@pytest.fixture
def project():
    return Project.objects.create(id="proj-1", name="Alpha", description="Primer proyecto")


def last_code():
    return CODE_RE.search(mail.outbox[-1].body).group(1)


def register(client, email="ana@x.com", name="Ana", jury_code=""):
    return client.post(
        "/api/auth/register/",
        {"email": email, "name": name, "jury_code": jury_code},
        format="json",
    )


class TestHealth:
    def test_health(self, client) -> None:
        response = client.get("/health/")
        assert response.status_code == 200
        assert response.json()["service"] == "pitch-voting-api"


class TestAppStatus:
    def test_fresh_client(self, client) -> None:
        response = client.get("/api/app/status/")

        assert response.status_code == 200
        assert response.data["app"]["state"] == "welcome"
        assert response.data["app"]["session"] is None

    def test_navigate(self, client) -> None:
        response = client.post("/api/app/navigate/", {"to": "registration"}, format="json")
        assert response.data["app"]["state"] == "registration"

    def test_navigate_rejects_unknown_target(self, client) -> None:
        response = client.post("/api/app/navigate/", {"to": "voting"}, format="json")
        assert response.status_code == 400
        assert response.data["kind"] == "invalid_input"


class TestVoterFlow:
    def test_register_verify_vote(self, client, project) -> None:
        response = register(client, jury_code="JURY2025")

        assert response.status_code == 200
        assert response.data["is_jury"] is True
        assert response.data["app"]["state"] == "awaiting_verification"
        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == ["ana@x.com"]

        response = client.post(
            "/api/auth/verify/", {"code": last_code(), "email": "ana@x.com"}, format="json"
        )
        assert response.status_code == 200
        assert response.data["session"]["weight"] == 2
        assert response.data["app"]["state"] == "voting"

        response = client.post("/api/voting/vote/", {"project_id": "proj-1"}, format="json")
        assert response.status_code == 201
        assert response.data["voteInfo"] == {"projectId": "proj-1", "isJury": True}
        assert response.data["app"]["state"] == "thank_you"
        assert Vote.objects.get().weight == 2

    def test_link_in_status_request_verifies(self, client) -> None:
        register(client)
        link = re.search(r"https?://\S+", mail.outbox[-1].body).group(0)
        query = link.split("?", 1)[1]

        response = client.get(f"/api/app/status/?{query}")

        assert response.status_code == 200
        assert response.data["app"]["state"] == "voting"

    def test_already_voted_today(self, client, project) -> None:
        register(client)
        client.post("/api/auth/verify/", {"code": last_code(), "email": "ana@x.com"}, format="json")
        client.post("/api/voting/vote/", {"project_id": "proj-1"}, format="json")
        client.post("/api/auth/logout/", format="json")
        client.post("/api/app/navigate/", {"to": "registration"}, format="json")

        response = register(client)

        assert response.status_code == 409
        assert response.data["kind"] == "already_voted"
        assert response.data["error"] == "Ya has votado hoy."
        assert len(mail.outbox) == 1

    def test_invalid_email(self, client) -> None:
        response = register(client, email="nope")
        assert response.status_code == 400
        assert response.data["app"]["state"] == "registration"

    def test_wrong_code(self, client) -> None:
        register(client)
        wrong = "000000" if last_code() != "000000" else "111111"

        response = client.post(
            "/api/auth/verify/", {"code": wrong, "email": "ana@x.com"}, format="json"
        )

        assert response.status_code == 404
        assert response.data["app"]["state"] == "welcome"

    def test_verify_requires_artifact(self, client) -> None:
        response = client.post("/api/auth/verify/", {"code": "123456"}, format="json")
        assert response.status_code == 400

    def test_resend(self, client) -> None:
        register(client)
        response = client.post("/api/auth/resend/", format="json")

        assert response.status_code == 200
        assert len(mail.outbox) == 2

    def test_vote_without_session(self, client) -> None:
        response = client.post("/api/voting/vote/", {"project_id": "proj-1"}, format="json")
        assert response.status_code == 400
        assert Vote.objects.count() == 0

    def test_logout(self, client) -> None:
        register(client)
        client.post("/api/auth/verify/", {"code": last_code(), "email": "ana@x.com"}, format="json")

        response = client.post("/api/auth/logout/", format="json")

        assert response.data["app"]["state"] == "welcome"
        assert response.data["app"]["session"] is None


class TestAdmin:
    def test_wrong_key(self, client) -> None:
        response = client.post("/api/auth/admin/login/", {"admin_key": "nope"}, format="json")

        assert response.status_code == 401
        assert response.data["error"] == "Clave de administrador incorrecta"
        assert response.data["app"]["state"] == "admin_login"
        assert response.data["app"]["adminSession"] is None

    def test_login_opens_panel(self, admin_client) -> None:
        response = admin_client.get("/api/app/status/")
        assert response.data["app"]["state"] == "admin_panel"
        assert response.data["app"]["adminSession"]["role"] == "admin"

    def test_project_crud(self, admin_client) -> None:
        response = admin_client.post(
            "/api/voting/projects/", {"name": " Alpha ", "description": "Uno"}, format="json"
        )
        assert response.status_code == 201
        project_id = response.data["id"]
        assert response.data["name"] == "Alpha"

        response = admin_client.patch(
            f"/api/voting/projects/{project_id}/", {"name": "Alpha 2"}, format="json"
        )
        assert response.status_code == 200
        assert Project.objects.get(id=project_id).name == "Alpha 2"

        response = admin_client.delete(f"/api/voting/projects/{project_id}/")
        assert response.status_code == 204
        assert not Project.objects.exists()

    def test_missing_project(self, admin_client) -> None:
        response = admin_client.delete("/api/voting/projects/ghost/")
        assert response.status_code == 404

    def test_project_writes_need_admin(self, client) -> None:
        response = client.post(
            "/api/voting/projects/", {"name": "Alpha", "description": "Uno"}, format="json"
        )
        assert response.status_code == 401
        assert not Project.objects.exists()

    def test_public_project_list(self, client, project) -> None:
        response = client.get("/api/voting/projects/")
        assert response.data["count"] == 1
        assert response.data["projects"][0]["id"] == "proj-1"

    def test_declare_winner(self, admin_client, client, project) -> None:
        response = admin_client.post("/api/voting/winner/", {"winner_id": "proj-1"}, format="json")

        assert response.status_code == 201
        assert response.data["winnerId"] == "proj-1"
        assert Winner.load().winner_id == "proj-1"

        response = client.get("/api/app/status/")
        assert response.data["app"]["winner"]["winnerId"] == "proj-1"
        assert response.data["app"]["winner"]["userVotedForWinner"] is False

    def test_declare_unknown_winner(self, admin_client) -> None:
        response = admin_client.post("/api/voting/winner/", {"winner_id": "ghost"}, format="json")
        assert response.status_code == 400

    def test_results(self, admin_client, project) -> None:
        Vote.objects.create(project_id="proj-1", user_identity="ana@x.com", weight=2,
                            timestamp=project.created_at)
        Vote.objects.create(project_id="proj-1", user_identity="bob@x.com", weight=1,
                            timestamp=project.created_at)

        response = admin_client.get("/api/voting/results/")

        assert response.status_code == 200
        assert response.data["total_votes"] == 3
        assert response.data["results"][0]["voteCount"] == 3

    def test_results_need_admin(self, client) -> None:
        assert client.get("/api/voting/results/").status_code == 401

    def test_admin_logout(self, admin_client) -> None:
        response = admin_client.post("/api/auth/admin/logout/", format="json")

        assert response.data["app"]["state"] == "welcome"
        assert admin_client.get("/api/voting/results/").status_code == 401
