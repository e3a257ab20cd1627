"""
HTTP-level tests for the blueprints (Flask test client, SQL store).

Covers:
  - health probes are public
  - 401 without / with an invalid Bearer token
  - event create → status change → forbidden transition (422) → delete (403 for members)
  - stakeholder assignment round trip through the API
  - /users/me capabilities, role management endpoints
  - invite validation (404 for unknown tokens) and acceptance
  - notifications: send, list, mark read, delete (owner only)
"""

from datetime import timedelta

import pytest

from conftest import START, make_event, make_principal, make_stakeholder
from eventdesk import limiter
from eventdesk.models.enums import Role
from eventdesk.utils.helpers import to_iso


@pytest.fixture()
def member_headers(auth_headers):
    return auth_headers(make_principal(id="member-1", role=Role.MEMBER))


@pytest.fixture()
def manager_headers(auth_headers):
    return auth_headers(make_principal(id="manager-1", role=Role.MANAGER))


def _event_body(**overrides):
    body = {
        "title": "Design Review",
        "start_time": to_iso(START),
        "end_time": to_iso(START + timedelta(hours=1)),
    }
    body.update(overrides)
    return body


class TestHealth:
    def test_ready(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json()["status"] == "ok"

    def test_live(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        assert res.get_json()["store"]["backend"] == "sql"

    def test_request_id_header(self, client):
        res = client.get("/api/v1/health", headers={"X-Request-ID": "req-42"})
        assert res.headers["X-Request-ID"] == "req-42"


class TestAppFactory:
    def test_limiter_storage_comes_from_app_config(self, app):
        # testing config sets its own URI; nothing is read from the environment at import
        assert app.config["RATELIMIT_STORAGE_URI"] == "memory://testing"
        assert limiter._storage_uri in (None, app.config["RATELIMIT_STORAGE_URI"])

    def test_notification_routes_registered(self, app):
        assert "notifications" in app.blueprints


class TestAuth:
    def test_missing_token(self, client):
        res = client.get("/api/v1/events")
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHORIZED"

    def test_invalid_token(self, client):
        res = client.get("/api/v1/events", headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401

    def test_deactivated_principal_is_forbidden(self, client, auth_headers):
        headers = auth_headers(make_principal(id="gone", role=Role.MANAGER, is_active=False))
        res = client.get("/api/v1/events", headers=headers)
        assert res.status_code == 403


class TestEventFlow:
    def test_member_lifecycle(self, client, member_headers):
        res = client.post("/api/v1/events", json=_event_body(), headers=member_headers)
        assert res.status_code == 201
        event = res.get_json()
        assert event["owner_id"] == "member-1"
        assert event["status"] == "draft"
        eid = event["id"]

        res = client.get(f"/api/v1/events/{eid}", headers=member_headers)
        assert res.get_json()["can_edit"] is True
        assert res.get_json()["can_delete"] is False

        res = client.post(f"/api/v1/events/{eid}/status", json={"status": "completed"},
                          headers=member_headers)
        assert res.status_code == 200
        assert res.get_json()["status"] == "completed"

        res = client.post(f"/api/v1/events/{eid}/status", json={"status": "draft"},
                          headers=member_headers)
        assert res.status_code == 422
        assert res.get_json()["error"] == "Cannot revert a completed event to draft"

        res = client.delete(f"/api/v1/events/{eid}", headers=member_headers)
        assert res.status_code == 403

    def test_validation_error_body(self, client, member_headers):
        res = client.post("/api/v1/events", json=_event_body(title="ab"), headers=member_headers)
        assert res.status_code == 422
        body = res.get_json()
        assert body["code"] == "ERR_BUSINESS_RULE"
        assert "Title must be at least 3 characters" in body["details"]["errors"]

    def test_status_required(self, client, services, member_headers):
        make_event(services.store, owner_id="member-1")
        res = client.post("/api/v1/events/event-1/status", json={}, headers=member_headers)
        assert res.status_code == 400

    def test_unknown_event(self, client, member_headers):
        res = client.get("/api/v1/events/ghost", headers=member_headers)
        assert res.status_code == 404

    def test_manager_deletes(self, client, services, manager_headers):
        make_event(services.store)
        res = client.delete("/api/v1/events/event-1", headers=manager_headers)
        assert res.status_code == 200
        assert services.store.get_by_id("events", "event-1") is None

    def test_events_on_day(self, client, services, member_headers):
        make_event(services.store)
        res = client.get("/api/v1/events/on/2030-05-01", headers=member_headers)
        assert res.get_json()["total"] == 1
        res = client.get("/api/v1/events/on/someday", headers=member_headers)
        assert res.status_code == 400


class TestStakeholderLinks:
    def test_assign_and_unassign(self, client, services, member_headers):
        make_event(services.store)
        make_stakeholder(services.store, id="s1")

        res = client.post("/api/v1/events/event-1/stakeholders/s1", headers=member_headers)
        assert res.status_code == 200
        assert res.get_json()["event_ids"] == ["event-1"]

        res = client.get("/api/v1/events/event-1/stakeholders", headers=member_headers)
        assert [s["id"] for s in res.get_json()["items"]] == ["s1"]

        res = client.get("/api/v1/stakeholders/s1/events", headers=member_headers)
        assert res.status_code == 200
        assert res.get_json()["total"] == 1

        res = client.delete("/api/v1/events/event-1/stakeholders/s1", headers=member_headers)
        assert res.get_json()["event_ids"] == []

    def test_audit_requires_reports(self, client, services, member_headers, manager_headers):
        make_event(services.store)
        assert client.get("/api/v1/events/event-1/audit", headers=member_headers).status_code == 403
        res = client.get("/api/v1/events/event-1/audit", headers=manager_headers)
        assert res.get_json()["consistent"] is True

    def test_create_stakeholder(self, client, manager_headers):
        res = client.post("/api/v1/stakeholders",
                          json={"name": "Grace Hopper", "email": "grace@example.com"},
                          headers=manager_headers)
        assert res.status_code == 201
        assert res.get_json()["participation_status"] == "pending"


class TestUsers:
    def test_me(self, client, member_headers):
        res = client.get("/api/v1/users/me", headers=member_headers)
        body = res.get_json()
        assert body["id"] == "member-1"
        assert body["capabilities"]["create_event"] is True
        assert body["capabilities"]["delete_event"] is False

    def test_member_cannot_list_users(self, client, member_headers):
        assert client.get("/api/v1/users", headers=member_headers).status_code == 403

    def test_manager_changes_role(self, client, member_headers, manager_headers):
        res = client.put("/api/v1/users/member-1/role", json={"role": "viewer"},
                         headers=manager_headers)
        assert res.status_code == 200
        assert res.get_json()["role"] == "viewer"

        # role is re-read on every request
        assert client.post("/api/v1/events", json=_event_body(),
                           headers=member_headers).status_code == 403


class TestInvites:
    def test_unknown_token(self, client):
        res = client.get("/api/v1/invites/unknown-token")
        assert res.status_code == 404
        assert res.get_json()["error_message"] == "Invalid invite link"

    def test_invite_and_accept(self, client, services, manager_headers, auth_headers):
        make_stakeholder(services.store, id="s1", email="ada@example.com")
        res = client.post("/api/v1/invites", json={"stakeholder_id": "s1"}, headers=manager_headers)
        assert res.status_code == 201
        token = res.get_json()["token"]
        assert res.get_json()["link"].endswith(f"/invite?token={token}")

        assert client.get(f"/api/v1/invites/{token}").status_code == 200

        ada = auth_headers(make_principal(id="ada", role=Role.VIEWER, email="ada@example.com"))
        res = client.post(f"/api/v1/invites/{token}/accept", headers=ada)
        assert res.status_code == 200
        assert res.get_json()["stakeholder_id"] == "s1"
        assert res.get_json()["role"] == "member"


class TestNotifications:
    def test_send_list_and_read(self, client, member_headers, manager_headers):
        res = client.post("/api/v1/notifications/send",
                          json={"user_id": "member-1", "title": "Room change", "body": "Now in B2"},
                          headers=manager_headers)
        assert res.status_code == 201
        nid = res.get_json()["id"]

        res = client.get("/api/v1/notifications", headers=member_headers)
        body = res.get_json()
        assert body["total"] == 1
        assert body["unread"] == 1
        assert body["items"][0]["title"] == "Room change"

        res = client.post(f"/api/v1/notifications/{nid}/read", headers=member_headers)
        assert res.get_json()["is_read"] is True
        res = client.get("/api/v1/notifications/unread-count", headers=member_headers)
        assert res.get_json()["unread"] == 0

        # not visible to anyone else
        assert client.delete(f"/api/v1/notifications/{nid}",
                             headers=manager_headers).status_code == 404
        assert client.delete(f"/api/v1/notifications/{nid}",
                             headers=member_headers).status_code == 200

    def test_member_cannot_send(self, client, member_headers):
        res = client.post("/api/v1/notifications/send",
                          json={"user_id": "member-1", "title": "x", "body": "y"},
                          headers=member_headers)
        assert res.status_code == 403

    def test_send_requires_user(self, client, manager_headers):
        res = client.post("/api/v1/notifications/send", json={}, headers=manager_headers)
        assert res.status_code == 400

    def test_read_all_and_clear(self, client, services, member_headers):
        for title in ("One", "Two"):
            services.notifications.notify("member-1", "general", title, "body")
        assert client.post("/api/v1/notifications/read-all",
                           headers=member_headers).get_json()["updated"] == 2
        assert client.delete("/api/v1/notifications",
                             headers=member_headers).get_json()["deleted"] == 2

    def test_requires_auth(self, client):
        assert client.get("/api/v1/notifications").status_code == 401
