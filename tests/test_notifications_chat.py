"""
In-app notifications and user/builder chat.
"""
from datetime import datetime, timedelta

import pytest

from model.chat import ChatMessage
from model.notification import Notification
from src.notification_service import create_notification, notify


def _note(db, recipient, **fields):
    values = dict(
        recipient_type="user",
        recipient_id=recipient.id,
        notification_type="system_announcement",
        title="Hello",
        description="Something happened",
    )
    values.update(fields)
    return create_notification(db, **values)


# ===================================================================
# Notifications
# ===================================================================

class TestNotificationService:

    def test_rejects_unknown_type(self, db_session, user):
        with pytest.raises(ValueError, match="Unknown notification type"):
            _note(db_session, user, notification_type="nonsense")

    def test_notify_swallows_failures(self, db_session, user):
        assert notify(db_session, recipient_type="nobody", recipient_id=user.id,
                      notification_type="welcome", title="t", description="d") is None

    def test_long_title_is_truncated(self, db_session, user):
        row = _note(db_session, user, title="x" * 300)
        assert len(row.title) == 200


class TestInbox:
    """Each recipient only sees and changes their own rows."""

    def test_list_and_unread_count(self, client, db_session, user, user_headers):
        _note(db_session, user)
        _note(db_session, user, priority="high")

        page = client.get("/v1/notifications/", headers=user_headers).json()
        assert page["totalResults"] == 2
        assert page["results"][0]["action_data"]["type"] == "none"

        high = client.get("/v1/notifications/", params={"priority": "high"}, headers=user_headers).json()
        assert high["totalResults"] == 1

        count = client.get("/v1/notifications/unread-count", headers=user_headers).json()
        assert count == {"unread_count": 2}

    def test_expired_rows_are_hidden(self, client, db_session, user, user_headers):
        _note(db_session, user, expires_at=datetime.utcnow() - timedelta(hours=1))
        _note(db_session, user)
        assert client.get("/v1/notifications/", headers=user_headers).json()["totalResults"] == 1

    def test_mark_read(self, client, db_session, user, user_headers):
        row = _note(db_session, user)
        res = client.patch(f"/v1/notifications/{row.id}/read", headers=user_headers)
        assert res.status_code == 200
        assert res.json()["is_read"] is True
        assert res.json()["read_at"] is not None

        res = client.get("/v1/notifications/", params={"is_read": False}, headers=user_headers)
        assert res.json()["totalResults"] == 0

    def test_mark_all_read(self, client, db_session, user, user_headers):
        _note(db_session, user)
        _note(db_session, user)
        res = client.patch("/v1/notifications/mark-all-read", headers=user_headers)
        assert res.json()["count"] == 2
        assert client.get("/v1/notifications/unread-count", headers=user_headers).json()["unread_count"] == 0

    def test_other_recipients_rows_are_404(self, client, db_session, make_user, auth_header, user):
        row = _note(db_session, user)
        other = make_user(email="other@example.com")
        headers = auth_header("user", other)

        assert client.get(f"/v1/notifications/{row.id}", headers=headers).status_code == 404
        assert client.patch(f"/v1/notifications/{row.id}/read", headers=headers).status_code == 404
        assert client.delete(f"/v1/notifications/{row.id}", headers=headers).status_code == 404

    def test_user_and_builder_with_same_id_are_separate(self, client, db_session, user, builder, user_headers):
        assert user.id == builder.id
        _note(db_session, builder, recipient_type="builder")
        assert client.get("/v1/notifications/", headers=user_headers).json()["totalResults"] == 0

    def test_delete_all(self, client, db_session, user, make_user, user_headers):
        other = make_user(email="other@example.com")
        _note(db_session, user)
        _note(db_session, other)
        res = client.delete("/v1/notifications/delete-all", headers=user_headers)
        assert res.json()["count"] == 1
        assert db_session.query(Notification).count() == 1

    def test_admins_have_no_inbox(self, client, admin_headers):
        assert client.get("/v1/notifications/", headers=admin_headers).status_code == 403


class TestAdminNotifications:

    def test_admin_creates_notification(self, client, db_session, user, admin, admin_headers):
        res = client.post("/v1/notifications/admin/create", headers=admin_headers, json={
            "recipient_type": "user", "recipient_id": user.id,
            "title": "Maintenance", "description": "Down tonight", "priority": "urgent",
        })
        assert res.status_code == 201
        body = res.json()
        assert body["sender_type"] == "admin"
        assert body["sender_id"] == admin.id
        assert body["priority"] == "urgent"

    def test_unknown_recipient(self, client, admin_headers):
        res = client.post("/v1/notifications/admin/create", headers=admin_headers, json={
            "recipient_type": "builder", "recipient_id": 999, "title": "Hi", "description": "There",
        })
        assert res.status_code == 404
        assert res.json()["message"] == "Recipient not found"

    def test_unknown_type_is_400(self, client, user, admin_headers):
        res = client.post("/v1/notifications/admin/create", headers=admin_headers, json={
            "recipient_type": "user", "recipient_id": user.id, "notification_type": "nonsense",
            "title": "Hi", "description": "There",
        })
        assert res.status_code == 400

    def test_stats_and_purge(self, client, db_session, user, admin_headers):
        _note(db_session, user, expires_at=datetime.utcnow() - timedelta(days=1))
        _note(db_session, user, notification_type="welcome")

        stats = client.get("/v1/notifications/admin/stats", headers=admin_headers).json()
        assert stats["total"] == 2
        assert stats["by_type"] == {"system_announcement": 1, "welcome": 1}

        res = client.delete("/v1/notifications/admin/purge-expired", headers=admin_headers)
        assert res.json()["count"] == 1

    def test_users_cannot_use_admin_endpoints(self, client, user_headers):
        assert client.get("/v1/notifications/admin/stats", headers=user_headers).status_code == 403


# ===================================================================
# Chat
# ===================================================================

class TestChat:

    def test_user_writes_builder(self, client, db_session, user, builder, user_headers):
        res = client.post("/v1/chat/send", json={"builderId": builder.id, "message": "Is it available?"},
                          headers=user_headers)
        assert res.status_code == 201
        body = res.json()
        assert body["sender_type"] == "User"
        assert body["user_id"] == user.id

        note = db_session.query(Notification).one()
        assert (note.recipient_type, note.recipient_id) == ("builder", builder.id)
        assert note.notification_type == "user_inquiry"

    def test_builder_replies(self, client, db_session, user, builder_headers):
        res = client.post("/v1/chat/send", json={"user_id": user.id, "message": "Yes it is"},
                          headers=builder_headers)
        assert res.status_code == 201
        assert res.json()["sender_type"] == "Builder"
        assert db_session.query(Notification).one().notification_type == "builder_message"

    def test_counterpart_required(self, client, user_headers, builder_headers):
        res = client.post("/v1/chat/send", json={"message": "Hi"}, headers=user_headers)
        assert res.status_code == 400
        assert res.json()["message"] == "builder_id is required"
        res = client.post("/v1/chat/send", json={"message": "Hi"}, headers=builder_headers)
        assert res.json()["message"] == "user_id is required"

    def test_unknown_counterpart(self, client, user_headers):
        res = client.post("/v1/chat/send", json={"builder_id": 999, "message": "Hi"}, headers=user_headers)
        assert res.status_code == 404

    def test_admins_cannot_chat(self, client, user, admin_headers):
        res = client.post("/v1/chat/send", json={"user_id": user.id, "message": "Hi"}, headers=admin_headers)
        assert res.status_code == 403

    def test_history_is_oldest_first(self, client, user, builder, user_headers, builder_headers):
        client.post("/v1/chat/send", json={"builder_id": builder.id, "message": "one"}, headers=user_headers)
        client.post("/v1/chat/send", json={"user_id": user.id, "message": "two"}, headers=builder_headers)
        client.post("/v1/chat/send", json={"builder_id": builder.id, "message": "three"}, headers=user_headers)

        page = client.get("/v1/chat/history", params={"builder_id": builder.id}, headers=user_headers).json()
        assert [m["message"] for m in page["results"]] == ["one", "two", "three"]
        assert page["limit"] == 50

        page = client.get("/v1/chat/history", params={"user_id": user.id}, headers=builder_headers).json()
        assert page["totalResults"] == 3

    def test_history_of_others_is_forbidden(self, client, make_user, make_builder, auth_header, builder):
        other_user = make_user(email="other@example.com")
        third = make_user(email="third@example.com")
        res = client.get(
            "/v1/chat/history",
            params={"user_id": other_user.id, "builder_id": builder.id},
            headers=auth_header("user", third),
        )
        assert res.status_code == 403

    def test_history_needs_both_sides(self, client, admin_headers, user):
        res = client.get("/v1/chat/history", params={"user_id": user.id}, headers=admin_headers)
        assert res.status_code == 400

    def test_latest_message_per_conversation(self, client, db_session, user, builder, make_builder, user_headers):
        other = make_builder(email="other@example.com")
        for builder_id, text in ((builder.id, "a1"), (other.id, "b1"), (builder.id, "a2")):
            client.post("/v1/chat/send", json={"builder_id": builder_id, "message": text}, headers=user_headers)

        latest = client.get("/v1/chat/messages", headers=user_headers).json()
        assert sorted(m["message"] for m in latest) == ["a2", "b1"]
        assert db_session.query(ChatMessage).count() == 3
