"""End-to-end tests for audit trail recording and admin retrieval."""

import pytest

from src.pupfinance.core.services.audit import REDACTION_MARKER
from src.pupfinance.entities.core.audit_entry import AuditEntry, AuditEntryRepository
from src.pupfinance.runtime.config.config_data import AuditConfig

ADMIN = {"roles": ["admin"], "permissions": ["read:audit_logs"]}

pytestmark = pytest.mark.integration


@pytest.fixture
def test_config(test_config):
    return test_config.model_copy(update={"audit": AuditConfig(persist=True)})


@pytest.fixture
def audit_entries(api_session) -> AuditEntryRepository:
    return AuditEntryRepository(api_session)


def flush_audit(client) -> None:
    recorder = client.app.state.app_dependencies.audit_recorder
    client.portal.call(recorder.flush)


class TestAuditRecording:
    def test_authenticated_request_is_audited_and_redacted(
        self, api_client, bearer, service_headers, subject_id, audit_entries
    ):
        api_client.post(
            "/users/sync",
            json={"auth0Id": subject_id, "email": "pup@example.com"},
            headers=service_headers,
        )

        api_client.patch(
            "/users/me",
            json={"givenName": "Rex", "password": "hunter2"},
            headers={**bearer(), "User-Agent": "pytest-agent"},
        )
        flush_audit(api_client)

        [entry] = audit_entries.list_for_user(subject_id)
        assert entry.action == "PATCH /users/me"
        assert entry.user_agent == "pytest-agent"
        assert entry.metadata["body"] == {"givenName": "Rex", "password": REDACTION_MARKER}

    def test_sync_callback_is_not_audited(
        self, api_client, service_headers, audit_entries
    ):
        api_client.post(
            "/users/sync",
            json={"auth0Id": "p|1", "email": "a@example.com"},
            headers=service_headers,
        )
        flush_audit(api_client)

        assert audit_entries.list_for_user() == []

    def test_unauthenticated_request_is_not_audited(self, api_client, audit_entries):
        api_client.get("/users/me")
        flush_audit(api_client)

        assert audit_entries.list_for_user() == []


class TestAdminAudit:
    def test_admin_lists_entries_for_user(self, api_client, bearer, audit_entries):
        audit_entries.create(AuditEntry(user_id="auth0|a", action="GET /users/me"))
        audit_entries.create(AuditEntry(user_id="auth0|b", action="GET /users/me"))

        response = api_client.get(
            "/admin/audit", params={"userId": "auth0|a"}, headers=bearer(**ADMIN)
        )

        assert response.status_code == 200
        [entry] = response.json()
        assert entry["userId"] == "auth0|a"
        assert entry["action"] == "GET /users/me"

    @pytest.mark.parametrize(
        "claims",
        [
            {"roles": ["admin"]},
            {"permissions": ["read:audit_logs"]},
            {"roles": ["user"], "permissions": ["read:audit_logs"]},
            {},
        ],
    )
    def test_requires_role_and_permission(self, api_client, bearer, claims):
        response = api_client.get("/admin/audit", headers=bearer(**claims))

        assert response.status_code == 403

    def test_requires_authentication(self, api_client):
        assert api_client.get("/admin/audit").status_code == 401

    def test_limit_is_validated(self, api_client, bearer):
        response = api_client.get("/admin/audit", params={"limit": 0}, headers=bearer(**ADMIN))

        assert response.status_code == 400
