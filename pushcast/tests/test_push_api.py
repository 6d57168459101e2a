"""HTTP surface: subscription endpoints, admin broadcast, audit log."""

import pytest
from fastapi.testclient import TestClient

import pushcast.api.deps as deps_mod
import pushcast.api.health as health_mod
from pushcast.api.deps import get_dispatcher, get_subscription_store
from pushcast.core.errors import MissingCredentials, PersistenceError
from pushcast.main import app
from pushcast.services.notification_log import NotificationLog
from pushcast.services.push_service import BroadcastDispatcher
from pushcast.services.subscription_store import SubscriptionStore
from pushcast.tests.conftest import FakeSender, auth_headers, create_user, make_descriptor
from pushcast.tests.test_push_service import CREDENTIALS, CountingStore

BROADCAST = {"payload": {"title": "Union meeting", "body": "Tonight at 7pm", "url": "/events/3"}}


def failing_record(self, *args, **kwargs):
    raise PersistenceError("audit table is locked")


@pytest.fixture()
def sender(db):
    fake = FakeSender()

    def override_dispatcher():
        return BroadcastDispatcher(SubscriptionStore(db), CREDENTIALS, sender=fake)

    app.dependency_overrides[get_dispatcher] = override_dispatcher
    yield fake
    app.dependency_overrides.pop(get_dispatcher, None)


@pytest.fixture()
def admin(db):
    return create_user(db, email="admin@example.com", is_admin=True)


@pytest.fixture()
def member(db):
    return create_user(db, email="member@example.com")


# ---------------------------------------------------------------------------
# Subscription endpoints
# ---------------------------------------------------------------------------


class TestSubscriptionEndpoints:
    def test_vapid_public_key_is_public(self, client: TestClient):
        resp = client.get("/api/push/vapid-public-key")
        assert resp.status_code == 200
        assert resp.json()["key"].startswith("BEl62")

    def test_subscribe_status_unsubscribe(self, client: TestClient, member):
        headers = auth_headers(member)

        resp = client.post("/api/push/subscribe", json=make_descriptor(1), headers=headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "subscribed"
        assert client.get("/api/push/status", headers=headers).json() == {"subscribed": True}

        resp = client.delete("/api/push/unsubscribe", headers=headers)
        assert resp.json() == {"status": "unsubscribed", "removed": True}
        assert client.get("/api/push/status", headers=headers).json() == {"subscribed": False}

    def test_resubscribe_keeps_one_row(self, client: TestClient, db, member):
        headers = auth_headers(member)
        client.post("/api/push/subscribe", json=make_descriptor(1), headers=headers)
        client.post("/api/push/subscribe", json=make_descriptor(2), headers=headers)

        subs = SubscriptionStore(db).list()
        assert len(subs) == 1
        assert subs[0].endpoint.endswith("device-2")

    def test_subscribe_requires_keys(self, client: TestClient, member):
        resp = client.post(
            "/api/push/subscribe",
            json={"endpoint": "https://push.example.com/x"},
            headers=auth_headers(member),
        )
        assert resp.status_code == 422

    def test_subscribe_without_token_is_401(self, client: TestClient):
        resp = client.post("/api/push/subscribe", json=make_descriptor(1))
        assert resp.status_code == 401

    def test_tampered_token_is_401(self, client: TestClient, member):
        headers = {"Authorization": auth_headers(member)["Authorization"] + "tampered"}
        resp = client.get("/api/push/status", headers=headers)
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Broadcast
# ---------------------------------------------------------------------------


class TestBroadcast:
    def test_admin_broadcast_reports_counts(self, client: TestClient, db, admin, member, sender):
        store = SubscriptionStore(db)
        store.upsert(member.id, make_descriptor(1))
        store.upsert(admin.id, make_descriptor(2))
        sender.fail_status["https://push.example.com/send/device-2"] = 500

        resp = client.post("/api/push/send", json=BROADCAST, headers=auth_headers(admin))

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "sent": 1, "failed": 1}

    def test_targeted_broadcast(self, client: TestClient, db, admin, member, sender):
        store = SubscriptionStore(db)
        store.upsert(member.id, make_descriptor(1))
        store.upsert(admin.id, make_descriptor(2))

        body = {"userIds": [member.id], **BROADCAST}
        resp = client.post("/api/push/send", json=body, headers=auth_headers(admin))

        assert resp.json()["sent"] == 1
        assert sender.endpoints == {"https://push.example.com/send/device-1"}

    def test_broadcast_with_no_subscribers(self, client: TestClient, admin, sender):
        resp = client.post("/api/push/send", json=BROADCAST, headers=auth_headers(admin))
        assert resp.json() == {"success": True, "sent": 0, "failed": 0}

    def test_unauthenticated_broadcast_is_401(self, client: TestClient, sender):
        resp = client.post("/api/push/send", json=BROADCAST)
        assert resp.status_code == 401
        assert sender.calls == []

    def test_non_admin_rejected_before_store_access(self, client: TestClient, member):
        store = CountingStore()
        app.dependency_overrides[get_subscription_store] = lambda: store

        resp = client.post("/api/push/send", json=BROADCAST, headers=auth_headers(member))

        assert resp.status_code == 403
        assert store.accesses == 0

    def test_empty_title_rejected(self, client: TestClient, admin, sender):
        body = {"payload": {"title": "", "body": "Tonight"}}
        resp = client.post("/api/push/send", json=body, headers=auth_headers(admin))
        assert resp.status_code == 422
        assert sender.calls == []

    def test_missing_credentials_is_500(self, client: TestClient, admin, monkeypatch):
        def no_credentials():
            raise MissingCredentials("VAPID keys not configured")

        monkeypatch.setattr(deps_mod, "load_credentials", no_credentials)

        resp = client.post("/api/push/send", json=BROADCAST, headers=auth_headers(admin))

        assert resp.status_code == 500
        assert resp.json() == {"error": "VAPID keys not configured"}

    def test_admin_can_remove_a_users_subscription(self, client: TestClient, db, admin, member):
        SubscriptionStore(db).upsert(member.id, make_descriptor(1))

        resp = client.delete(f"/api/push/subscriptions/{member.id}", headers=auth_headers(admin))
        assert resp.status_code == 200
        assert SubscriptionStore(db).get(member.id) is None

        resp = client.delete(f"/api/push/subscriptions/{member.id}", headers=auth_headers(admin))
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------


class TestNotificationHistory:
    def test_broadcast_is_recorded_and_resendable(self, client: TestClient, db, admin, member, sender):
        SubscriptionStore(db).upsert(member.id, make_descriptor(1))
        headers = auth_headers(admin)
        client.post("/api/push/send", json=BROADCAST, headers=headers)

        history = client.get("/api/notifications", headers=headers).json()
        assert len(history) == 1
        assert history[0]["title"] == "Union meeting"
        assert history[0]["sent"] == 1
        assert history[0]["created_by"] == admin.id

        resp = client.post(f"/api/notifications/{history[0]['id']}/resend", headers=headers)
        assert resp.json() == {"success": True, "sent": 1, "failed": 0}
        assert len(sender.calls) == 2
        assert len(client.get("/api/notifications", headers=headers).json()) == 2

    def test_unrecorded_broadcast_still_reports_counts(self, client: TestClient, db, admin, member, sender, monkeypatch):
        SubscriptionStore(db).upsert(member.id, make_descriptor(1))
        monkeypatch.setattr(NotificationLog, "record", failing_record)

        resp = client.post("/api/push/send", json=BROADCAST, headers=auth_headers(admin))

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "sent": 1, "failed": 0}

    def test_unrecorded_resend_still_reports_counts(self, client: TestClient, db, admin, member, sender, monkeypatch):
        SubscriptionStore(db).upsert(member.id, make_descriptor(1))
        headers = auth_headers(admin)
        client.post("/api/push/send", json=BROADCAST, headers=headers)
        notification_id = client.get("/api/notifications", headers=headers).json()[0]["id"]
        monkeypatch.setattr(NotificationLog, "record", failing_record)

        resp = client.post(f"/api/notifications/{notification_id}/resend", headers=headers)

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "sent": 1, "failed": 0}
        assert len(sender.calls) == 2

    def test_resend_unknown_notification_is_404(self, client: TestClient, admin, sender):
        resp = client.post("/api/notifications/999/resend", headers=auth_headers(admin))
        assert resp.status_code == 404

    def test_history_is_admin_only(self, client: TestClient, member):
        resp = client.get("/api/notifications", headers=auth_headers(member))
        assert resp.status_code == 403


def test_health(client: TestClient):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy", "database": "connected", "push": "configured"}


def test_health_reports_unconfigured_push(client: TestClient, monkeypatch):
    def no_credentials():
        raise MissingCredentials("VAPID keys not configured")

    monkeypatch.setattr(health_mod, "load_credentials", no_credentials)

    resp = client.get("/health")

    assert resp.json()["status"] == "healthy"
    assert resp.json()["push"] == "unconfigured"
