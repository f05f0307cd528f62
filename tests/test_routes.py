"""
Tests for the Flask API, using the Flask test client against a temporary
database with fake AI, mailbox and calendar collaborators.
"""

from unittest.mock import Mock, patch

import pytest

from applyops import create_app
from applyops.google import GMAIL_SCOPE, read_state, sign_state
from applyops.models import ApplicationStatus
from applyops.services import Services

from conftest import USER_ID, FakeAIProvider, FakeMailbox, make_message, verdict_json

HEADERS = {"X-User-Id": USER_ID}


@pytest.fixture
def mailboxes():
    """user_id -> FakeMailbox; users without an entry have no Gmail connection."""
    return {}


@pytest.fixture
def services(test_config, calendar, mailboxes):
    return Services(
        test_config,
        ai_provider=FakeAIProvider(),
        calendar=calendar,
        mailbox_factory=mailboxes.get,
        sleep=Mock(),
    )


@pytest.fixture
def client(test_config, services):
    app = create_app(config=test_config, services=services)
    app.config["TESTING"] = True
    return app.test_client()


def create(client, **data):
    body = {"company": "Acme Corp", "role": "Backend Engineer"}
    body.update(data)
    response = client.post("/api/applications", json=body, headers=HEADERS)
    assert response.status_code == 201
    return response.get_json()["data"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_user_header_required(client):
    response = client.get("/api/applications")
    assert response.status_code == 401
    assert response.get_json() == {"success": False, "message": "Authentication required"}


class TestApplicationsCrud:
    def test_create_defaults_to_applied(self, client):
        data = create(client)
        assert data["status"] == "applied"
        assert data["company"] == "Acme Corp"

    def test_create_requires_company_and_role(self, client):
        response = client.post("/api/applications", json={"company": "Acme"}, headers=HEADERS)
        assert response.status_code == 400
        assert response.get_json()["message"] == "role is required"

    def test_create_rejects_unknown_status(self, client):
        response = client.post(
            "/api/applications",
            json={"company": "Acme", "role": "Dev", "status": "ghosted"},
            headers=HEADERS,
        )
        assert response.status_code == 400

    def test_list_is_paginated_and_lowercased(self, client):
        for name in ("One", "Two", "Three"):
            create(client, company=name, status="INTERVIEWING")

        response = client.get("/api/applications?page=2&limit=2", headers=HEADERS)
        body = response.get_json()

        assert body["success"] is True
        assert body["total"] == 3
        assert body["totalPages"] == 2
        assert body["page"] == 2
        assert [a["company"] for a in body["data"]] == ["One"]
        assert body["data"][0]["status"] == "interviewing"

    def test_applications_are_scoped_to_user(self, client):
        app_id = create(client)["id"]

        response = client.get(f"/api/applications/{app_id}", headers={"X-User-Id": "intruder"})
        assert response.status_code == 404
        assert response.get_json()["message"] == "Application not found"

        assert client.get(f"/api/applications/{app_id}", headers=HEADERS).status_code == 200

    def test_patch_fields(self, client):
        app_id = create(client)["id"]

        response = client.patch(
            f"/api/applications/{app_id}", json={"status": "OFFERED", "salary": "100k"}, headers=HEADERS
        )

        data = response.get_json()["data"]
        assert data["status"] == "offered"
        assert data["salary"] == "100k"
        assert data["version"] == 1

    def test_patch_interview_date_schedules_and_sets_interviewing(self, client, calendar):
        app_id = create(client)["id"]

        response = client.patch(
            f"/api/applications/{app_id}",
            json={"interviewAt": "2024-07-01T10:00:00Z"},
            headers=HEADERS,
        )

        data = response.get_json()["data"]
        assert data["status"] == "interviewing"
        assert data["interviewAt"] == "2024-07-01T10:00:00+00:00"
        assert data["calendarEventId"] == "evt-1"
        calendar.ensure_interview_event.assert_called_once()

    def test_patch_interview_date_moves_existing_event(self, client, calendar, services):
        app_id = create(client)["id"]
        services.store.update_application(app_id, {"calendar_event_id": "evt-9"}, expected_version=0)

        client.patch(
            f"/api/applications/{app_id}", json={"interviewAt": "2024-07-02T10:00:00Z"}, headers=HEADERS
        )

        calendar.update_interview_event.assert_called_once()
        assert calendar.update_interview_event.call_args.args[1] == "evt-9"
        calendar.ensure_interview_event.assert_not_called()

    @pytest.mark.parametrize("status", ["OFFERED", "REJECTED"])
    def test_patch_interview_date_keeps_final_statuses(self, client, status):
        app_id = create(client, status=status)["id"]

        response = client.patch(
            f"/api/applications/{app_id}", json={"interviewAt": "2024-07-01T10:00:00Z"}, headers=HEADERS
        )

        assert response.get_json()["data"]["status"] == status.lower()

    def test_patch_survives_calendar_failure(self, client, calendar):
        calendar.ensure_interview_event.return_value = None
        app_id = create(client)["id"]

        response = client.patch(
            f"/api/applications/{app_id}", json={"interviewAt": "2024-07-01T10:00:00Z"}, headers=HEADERS
        )

        assert response.status_code == 200
        assert response.get_json()["data"]["calendarEventId"] is None

    def test_patch_invalid_date(self, client):
        app_id = create(client)["id"]
        response = client.patch(
            f"/api/applications/{app_id}", json={"interviewAt": "soon"}, headers=HEADERS
        )
        assert response.status_code == 400

    def test_delete_removes_calendar_event(self, client, calendar, services):
        app_id = create(client)["id"]
        services.store.update_application(app_id, {"calendar_event_id": "evt-9"}, expected_version=0)

        response = client.delete(f"/api/applications/{app_id}", headers=HEADERS)

        assert response.get_json() == {"success": True, "message": "Application deleted"}
        calendar.delete_interview_event.assert_called_once_with(USER_ID, "evt-9")
        assert client.get(f"/api/applications/{app_id}", headers=HEADERS).status_code == 404


class TestSync:
    def test_sync(self, client, services, mailboxes):
        mailboxes[USER_ID] = FakeMailbox([make_message()])
        services._ai_provider.responses = [verdict_json(status="APPLIED")]

        response = client.post("/api/applications/sync", headers=HEADERS)

        body = response.get_json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["count"] == 1
        assert body["message"] == "Processed 1 updates from Gmail"
        assert services.store.count_applications(USER_ID) == 1

    def test_sync_without_gmail(self, client):
        response = client.post("/api/applications/sync", headers=HEADERS)
        assert response.status_code == 400
        assert response.get_json() == {"success": False, "message": "Gmail not connected"}

    def test_sync_already_running(self, client, services, mailboxes):
        mailboxes[USER_ID] = FakeMailbox()
        services.scanner._acquire(USER_ID)
        try:
            response = client.post("/api/applications/sync", headers=HEADERS)
        finally:
            services.scanner._release(USER_ID)

        assert response.status_code == 409
        assert response.get_json()["success"] is False

    def test_unexpected_error_is_500(self, client, mailboxes):
        broken = Mock()
        broken.list_candidate_messages.side_effect = RuntimeError("boom")
        mailboxes[USER_ID] = broken

        response = client.post("/api/applications/sync", headers=HEADERS)

        assert response.status_code == 500
        assert response.get_json() == {"success": False, "message": "Internal server error"}


class TestGoogleConnect:
    def test_auth_url_requires_client_config(self, client):
        response = client.get("/api/google/auth-url", headers=HEADERS)
        assert response.status_code == 500

    def test_callback_requires_code_and_state(self, client):
        response = client.get("/api/google/callback?code=abc")
        assert response.status_code == 400

    def test_callback_stores_token(self, client, services):
        flow = Mock()
        flow.credentials.token = "access"
        flow.credentials.refresh_token = "refresh"
        flow.credentials.expiry = None
        flow.credentials.scopes = ["scope-a"]
        state = sign_state(client.application.secret_key, USER_ID)

        with patch.object(services, "oauth_flow", return_value=flow):
            response = client.get("/api/google/callback", query_string={"code": "abc", "state": state})

        assert response.status_code == 200
        flow.fetch_token.assert_called_once_with(code="abc")
        token = services.store.get_google_token(USER_ID)
        assert token["access_token"] == "access"
        assert token["scopes"] == "scope-a"

    @pytest.mark.parametrize("state", [USER_ID, "someone-else"])
    def test_callback_rejects_unsigned_state(self, client, services, state):
        flow = Mock()

        with patch.object(services, "oauth_flow", return_value=flow):
            response = client.get("/api/google/callback", query_string={"code": "abc", "state": state})

        assert response.status_code == 400
        assert response.get_json()["message"] == "Invalid OAuth state"
        flow.fetch_token.assert_not_called()
        assert services.store.get_google_token(state) is None

    def test_callback_rejects_state_signed_with_other_key(self, client, services):
        flow = Mock()
        state = sign_state("not-the-app-key", USER_ID)

        with patch.object(services, "oauth_flow", return_value=flow):
            response = client.get("/api/google/callback", query_string={"code": "abc", "state": state})

        assert response.status_code == 400
        flow.fetch_token.assert_not_called()

    def test_auth_url_signs_user_id(self, client, services):
        flow = Mock()
        flow.authorization_url.return_value = ("https://accounts.google.com/o/oauth2/auth?x=1", "s")

        with patch.object(services, "oauth_flow", return_value=flow):
            response = client.get("/api/google/auth-url", headers=HEADERS)

        assert response.get_json()["url"].startswith("https://accounts.google.com/")
        kwargs = flow.authorization_url.call_args.kwargs
        assert kwargs["access_type"] == "offline"
        assert kwargs["state"] != USER_ID
        assert read_state(client.application.secret_key, kwargs["state"]) == USER_ID

    def test_status_without_token(self, client):
        response = client.get("/api/google/status", headers=HEADERS)

        assert response.status_code == 200
        assert response.get_json()["data"] == {
            "gmailConnected": False,
            "calendarConnected": False,
            "connectedAt": None,
        }

    def test_status_reports_granted_scopes(self, client, services):
        services.store.ensure_user(USER_ID)
        services.store.save_google_token(USER_ID, "access", "refresh", scopes=[GMAIL_SCOPE])

        data = client.get("/api/google/status", headers=HEADERS).get_json()["data"]

        assert data["gmailConnected"] is True
        assert data["calendarConnected"] is False
        assert data["connectedAt"]

    def test_disconnect_removes_token(self, client, services):
        services.store.ensure_user(USER_ID)
        services.store.save_google_token(USER_ID, "access", "refresh")

        response = client.delete("/api/google/connection", headers=HEADERS)

        assert response.status_code == 200
        assert response.get_json()["message"] == "Gmail disconnected"
        assert services.store.get_google_token(USER_ID) is None
        status = client.get("/api/google/status", headers=HEADERS).get_json()["data"]
        assert status["gmailConnected"] is False

    def test_disconnect_without_token(self, client):
        response = client.delete("/api/google/connection", headers=HEADERS)
        assert response.status_code == 404


class TestAiRoutes:
    def test_analyze_resume_falls_back(self, client, services):
        from applyops.ai import AIProviderError

        services._ai_provider.responses = [AIProviderError("down")]
        response = client.post(
            "/api/resumes/analyze",
            json={"resumeText": "x" * 100, "jobDescription": "Build things"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert response.get_json()["data"]["score"] == 80

    def test_analyze_resume_rejects_short_resume(self, client):
        response = client.post(
            "/api/resumes/analyze",
            json={"resumeText": "too short", "jobDescription": "Build things"},
            headers=HEADERS,
        )
        assert response.status_code == 400


class TestCoverLetters:
    def generate(self, client, services, content="Dear team", **data):
        services._ai_provider.responses = [content]
        body = {"company": "Acme", "role": "Dev"}
        body.update(data)
        return client.post("/api/cover-letters/generate", json=body, headers=HEADERS)

    def test_generate_stores_letter(self, client, services):
        response = self.generate(client, services, tone="casual")

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["content"] == "Dear team"
        assert data["tone"] == "CASUAL"
        assert data["id"]

        letters = client.get("/api/cover-letters", headers=HEADERS).get_json()["data"]
        assert [letter["id"] for letter in letters] == [data["id"]]

    def test_generate_rejects_unknown_tone(self, client, services):
        response = self.generate(client, services, tone="sarcastic")
        assert response.status_code == 400

    def test_generate_falls_back_when_ai_fails(self, client, services):
        from applyops.ai import AIProviderError

        response = self.generate(client, services, content=AIProviderError("down"), userName="Asha")

        assert response.status_code == 201
        content = response.get_json()["data"]["content"]
        assert content.startswith("Dear Hiring Manager,")
        assert content.endswith("Sincerely,\nAsha")

    def test_patch_replaces_content(self, client, services):
        letter_id = self.generate(client, services).get_json()["data"]["id"]

        response = client.patch(
            f"/api/cover-letters/{letter_id}", json={"content": "Edited"}, headers=HEADERS
        )

        assert response.status_code == 200
        assert response.get_json()["data"]["content"] == "Edited"
        assert services.store.get_cover_letter(letter_id, USER_ID).content == "Edited"

    def test_patch_requires_content(self, client, services):
        letter_id = self.generate(client, services).get_json()["data"]["id"]

        response = client.patch(f"/api/cover-letters/{letter_id}", json={}, headers=HEADERS)

        assert response.status_code == 400
        assert response.get_json()["message"] == "content is required"

    def test_letters_are_scoped_to_user(self, client, services):
        letter_id = self.generate(client, services).get_json()["data"]["id"]
        other = {"X-User-Id": "someone-else"}

        assert client.get("/api/cover-letters", headers=other).get_json()["data"] == []
        response = client.patch(f"/api/cover-letters/{letter_id}", json={"content": "x"}, headers=other)
        assert response.status_code == 404
        assert client.delete(f"/api/cover-letters/{letter_id}", headers=other).status_code == 404

    def test_delete(self, client, services):
        letter_id = self.generate(client, services).get_json()["data"]["id"]

        response = client.delete(f"/api/cover-letters/{letter_id}", headers=HEADERS)

        assert response.status_code == 200
        assert response.get_json()["message"] == "Cover letter deleted"
        assert client.get("/api/cover-letters", headers=HEADERS).get_json()["data"] == []
        assert client.delete(f"/api/cover-letters/{letter_id}", headers=HEADERS).status_code == 404
