"""
Builder review workflow and team members.

Tests:
- Transition table
- Workflow operations against the database
- Review endpoints (builder submits, admin decides)
- Team member accounts and their tokens
"""
import pytest

from model.notification import Notification
from model.profiles.builder import BuilderTeamMember
from src.builder_workflow import BuilderWorkflow, InvalidStatusTransitionError
from src.utils import hash_password

from tests.conftest import PASSWORD


# ===================================================================
# Transition table
# ===================================================================

class TestTransitions:
    """The allowed moves, independent of the database."""

    def test_valid_transitions(self):
        """Draft -> submitted -> approved/rejected, rejected -> draft."""
        assert BuilderWorkflow.can_transition("draft", "submitted")
        assert BuilderWorkflow.can_transition("submitted", "approved")
        assert BuilderWorkflow.can_transition("submitted", "rejected")
        assert BuilderWorkflow.can_transition("rejected", "draft")

    def test_invalid_transitions(self):
        assert not BuilderWorkflow.can_transition("draft", "approved")
        assert not BuilderWorkflow.can_transition("draft", "rejected")
        assert not BuilderWorkflow.can_transition("rejected", "submitted")

    def test_approved_is_terminal(self):
        for target in ("draft", "submitted", "rejected"):
            assert not BuilderWorkflow.can_transition("approved", target)

    def test_validate_transition_raises(self):
        with pytest.raises(InvalidStatusTransitionError):
            BuilderWorkflow.validate_transition("approved", "draft")


# ===================================================================
# Operations
# ===================================================================

class TestOperations:
    """Workflow methods update the row or leave it untouched."""

    def test_submit_then_approve(self, db_session, builder, admin):
        BuilderWorkflow.submit(db_session, builder)
        assert builder.status == "submitted"

        BuilderWorkflow.approve(db_session, builder, admin.id, "Looks good")
        assert builder.status == "approved"
        assert builder.admin_decision["status"] == "approved"
        assert builder.admin_decision["notes"] == "Looks good"
        assert builder.admin_decision["reviewed_by"] == admin.id

    def test_reject_draft_is_refused(self, db_session, builder, admin):
        """A draft was never submitted, so there is nothing to reject."""
        with pytest.raises(InvalidStatusTransitionError, match="Only submitted profiles can be rejected"):
            BuilderWorkflow.reject(db_session, builder, admin.id, "Missing documents")
        db_session.refresh(builder)
        assert builder.status == "draft"
        assert builder.admin_decision is None

    def test_reject_requires_notes(self, db_session, builder, admin):
        BuilderWorkflow.submit(db_session, builder)
        with pytest.raises(InvalidStatusTransitionError, match="Rejection notes are required"):
            BuilderWorkflow.reject(db_session, builder, admin.id, "   ")
        assert builder.status == "submitted"

    def test_reset_clears_decision(self, db_session, builder, admin):
        BuilderWorkflow.submit(db_session, builder)
        BuilderWorkflow.reject(db_session, builder, admin.id, "Missing RERA id")
        BuilderWorkflow.reset_to_draft(db_session, builder)

        assert builder.status == "draft"
        assert builder.admin_decision is None

    def test_decision_notifies_builder(self, db_session, builder, admin):
        BuilderWorkflow.submit(db_session, builder)
        BuilderWorkflow.approve(db_session, builder, admin.id)

        notes = db_session.query(Notification).filter_by(recipient_type="builder", recipient_id=builder.id).all()
        assert len(notes) == 1


# ===================================================================
# Review endpoints
# ===================================================================

class TestReviewEndpoints:
    """Builders submit their own profile; only admins decide."""

    def test_builder_submits_own_profile(self, client, builder, builder_headers):
        res = client.post(f"/v1/builders/{builder.id}/submit", headers=builder_headers)
        assert res.status_code == 200
        assert res.json()["status"] == "submitted"

    def test_builder_cannot_submit_another_profile(self, client, make_builder, builder_headers):
        other = make_builder(email="other@example.com")
        res = client.post(f"/v1/builders/{other.id}/submit", headers=builder_headers)
        assert res.status_code == 403

    def test_submit_twice_is_400(self, client, builder, builder_headers):
        client.post(f"/v1/builders/{builder.id}/submit", headers=builder_headers)
        res = client.post(f"/v1/builders/{builder.id}/submit", headers=builder_headers)
        assert res.status_code == 400
        assert res.json()["message"] == "Only draft profiles can be submitted for review"

    def test_reject_draft_is_400(self, client, builder, admin_headers):
        res = client.post(f"/v1/builders/{builder.id}/reject", json={"notes": "No"}, headers=admin_headers)
        assert res.status_code == 400
        assert res.json()["message"] == "Only submitted profiles can be rejected"

    def test_submit_then_reject(self, client, builder, builder_headers, admin, admin_headers):
        client.post(f"/v1/builders/{builder.id}/submit", headers=builder_headers)
        res = client.post(
            f"/v1/builders/{builder.id}/reject", json={"notes": "Missing RERA id"}, headers=admin_headers
        )
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "rejected"
        assert body["admin_decision"]["status"] == "rejected"
        assert body["admin_decision"]["notes"] == "Missing RERA id"
        assert body["admin_decision"]["reviewed_by"] == admin.id

    def test_approve_without_body(self, client, builder, builder_headers, admin_headers):
        client.post(f"/v1/builders/{builder.id}/submit", headers=builder_headers)
        res = client.post(f"/v1/builders/{builder.id}/approve", headers=admin_headers)
        assert res.status_code == 200
        assert res.json()["status"] == "approved"

    def test_builder_cannot_approve_itself(self, client, builder, builder_headers):
        client.post(f"/v1/builders/{builder.id}/submit", headers=builder_headers)
        res = client.post(f"/v1/builders/{builder.id}/approve", headers=builder_headers)
        assert res.status_code == 403

    def test_resubmit_after_rejection(self, client, builder, builder_headers, admin_headers):
        client.post(f"/v1/builders/{builder.id}/submit", headers=builder_headers)
        client.post(f"/v1/builders/{builder.id}/reject", json={"notes": "Fix logo"}, headers=admin_headers)

        res = client.post(f"/v1/builders/{builder.id}/reset-to-draft", headers=builder_headers)
        assert res.status_code == 200
        assert res.json()["admin_decision"] is None

        res = client.post(f"/v1/builders/{builder.id}/submit", headers=builder_headers)
        assert res.json()["status"] == "submitted"


# ===================================================================
# Team members
# ===================================================================

class TestTeamMembers:
    """Builder-managed sub-accounts."""

    def test_add_and_list(self, client, builder_headers):
        res = client.post("/v1/builders/me/team-members", headers=builder_headers, json={
            "name": "Ravi", "email": "Ravi@Example.com", "password": "member123",
            "navigation_permissions": {"analytics": False},
        })
        assert res.status_code == 201
        body = res.json()
        assert body["email"] == "ravi@example.com"
        assert body["navigation_permissions"]["analytics"] is False
        assert body["navigation_permissions"]["dashboard"] is True

        res = client.get("/v1/builders/me/team-members", headers=builder_headers)
        assert [m["email"] for m in res.json()] == ["ravi@example.com"]

    def test_duplicate_email(self, client, builder_headers):
        payload = {"name": "Ravi", "email": "ravi@example.com", "password": "member123"}
        client.post("/v1/builders/me/team-members", headers=builder_headers, json=payload)
        res = client.post("/v1/builders/me/team-members", headers=builder_headers, json=payload)
        assert res.status_code == 400
        assert res.json()["message"] == "Team member email already taken"

    def test_same_email_under_two_builders(self, client, make_builder, auth_header, builder_headers):
        other = make_builder(email="other@example.com")
        payload = {"name": "Ravi", "email": "ravi@example.com", "password": "member123"}
        assert client.post("/v1/builders/me/team-members", headers=builder_headers, json=payload).status_code == 201
        res = client.post("/v1/builders/me/team-members", headers=auth_header("builder", other), json=payload)
        assert res.status_code == 201

    def test_team_member_login_acts_for_builder(self, client, db_session, builder):
        db_session.add(BuilderTeamMember(
            builder_id=builder.id, name="Ravi", email="ravi@example.com", password_hash=hash_password("member123"),
        ))
        db_session.commit()

        res = client.post("/v1/builders/team-members/login", json={
            "builderId": builder.id, "email": "ravi@example.com", "password": "member123",
        })
        assert res.status_code == 200
        token = res.json()["tokens"]["access"]["token"]

        me = client.get("/v1/builders/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["id"] == builder.id

    def test_team_member_wrong_password(self, client, db_session, builder):
        db_session.add(BuilderTeamMember(
            builder_id=builder.id, name="Ravi", email="ravi@example.com", password_hash=hash_password("member123"),
        ))
        db_session.commit()
        res = client.post("/v1/builders/team-members/login", json={
            "builder_id": builder.id, "email": "ravi@example.com", "password": PASSWORD,
        })
        assert res.status_code == 401

    def test_member_without_users_permission_cannot_manage_team(self, client, db_session, builder, auth_header):
        member = BuilderTeamMember(
            builder_id=builder.id, name="Ravi", email="ravi@example.com",
            password_hash=hash_password("member123"), perm_users=False,
        )
        db_session.add(member)
        db_session.commit()

        headers = auth_header("builder", builder, team_member=member)
        res = client.post("/v1/builders/me/team-members", headers=headers, json={
            "name": "Asha", "email": "asha@example.com", "password": "member123",
        })
        assert res.status_code == 403

    def test_removed_member_token_stops_working(self, client, db_session, builder, auth_header, builder_headers):
        member = BuilderTeamMember(
            builder_id=builder.id, name="Ravi", email="ravi@example.com", password_hash=hash_password("member123"),
        )
        db_session.add(member)
        db_session.commit()
        headers = auth_header("builder", builder, team_member=member)

        res = client.delete(f"/v1/builders/me/team-members/{member.id}", headers=builder_headers)
        assert res.status_code == 204
        assert client.get("/v1/builders/me", headers=headers).status_code == 401


# ===================================================================

class TestDocuments:
    """Licence and registration files kept in storage."""

    def test_upload_list_remove(self, client, builder, builder_headers, tmp_path, monkeypatch):
        monkeypatch.setenv("STORAGE_TYPE", "local")
        monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
        res = client.post(
            "/v1/builders/me/documents",
            files={"file": ("RERA Licence.pdf", b"%PDF-1.4 test", "application/pdf")},
            data={"document_type": "license"},
            headers=builder_headers,
        )
        assert res.status_code == 201
        doc = res.json()
        assert doc["document_type"] == "license"
        assert doc["size"] == len(b"%PDF-1.4 test")
        assert doc["url_key"].startswith(f"{builder.public_id}/documents/")
        assert (tmp_path / doc["url_key"]).exists()

        listed = client.get("/v1/builders/me/documents", headers=builder_headers).json()
        assert [d["id"] for d in listed] == [doc["id"]]

        res = client.delete(f"/v1/builders/me/documents/{doc['id']}", headers=builder_headers)
        assert res.status_code == 204
        assert not (tmp_path / doc["url_key"]).exists()
        assert client.get("/v1/builders/me/documents", headers=builder_headers).json() == []

    def test_rejects_executables(self, client, builder_headers, tmp_path, monkeypatch):
        monkeypatch.setenv("STORAGE_TYPE", "local")
        monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
        res = client.post(
            "/v1/builders/me/documents",
            files={"file": ("setup.exe", b"MZ", "application/x-msdownload")},
            headers=builder_headers,
        )
        assert res.status_code == 400
