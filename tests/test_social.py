"""
Likes and comments on properties.
"""
from model.property.property import Property
from model.social.models import Comment


def _comment(client, headers, property_id, text="Nice place", parent=None):
    body = {"text": text}
    if parent is not None:
        body["parent_comment_id"] = parent
    return client.post(f"/v1/properties/{property_id}/comments", json=body, headers=headers)


class TestLikes:
    """A like is a toggle; the property keeps a denormalized count."""

    def test_toggle_twice_restores_count(self, client, db_session, user_headers, listing):
        res = client.post(f"/v1/properties/{listing.id}/like", headers=user_headers)
        assert res.status_code == 200
        assert res.json() == {"liked": True, "message": "Property liked", "likeCount": 1}

        res = client.post(f"/v1/properties/{listing.id}/like", headers=user_headers)
        assert res.json() == {"liked": False, "message": "Property unliked", "likeCount": 0}

        db_session.expire_all()
        assert db_session.get(Property, listing.id).likes_count == 0

    def test_two_users_count_separately(self, client, make_user, auth_header, user_headers, listing):
        other = make_user(email="other@example.com")
        client.post(f"/v1/properties/{listing.id}/like", headers=user_headers)
        res = client.post(f"/v1/properties/{listing.id}/like", headers=auth_header("user", other))
        assert res.json()["likeCount"] == 2

        page = client.get(f"/v1/properties/{listing.id}/likes").json()
        assert page["totalResults"] == 2

    def test_like_status(self, client, user_headers, listing):
        url = f"/v1/properties/{listing.id}/like/status"
        assert client.get(url, headers=user_headers).json()["liked"] is False
        client.post(f"/v1/properties/{listing.id}/like", headers=user_headers)
        body = client.get(url, headers=user_headers).json()
        assert body["liked"] is True
        assert body["likeCount"] == 1

    def test_unknown_property(self, client, user_headers):
        res = client.post("/v1/properties/999/like", headers=user_headers)
        assert res.status_code == 404

    def test_builders_cannot_like(self, client, builder_headers, listing):
        res = client.post(f"/v1/properties/{listing.id}/like", headers=builder_headers)
        assert res.status_code == 403

    def test_requires_auth(self, client, listing):
        res = client.post(f"/v1/properties/{listing.id}/like")
        assert res.status_code == 401


class TestComments:
    """Threads, ownership and soft delete."""

    def test_create_and_list(self, client, user, user_headers, listing):
        res = _comment(client, user_headers, listing.id)
        assert res.status_code == 201
        body = res.json()
        assert body["text"] == "Nice place"
        assert body["user"]["id"] == user.id
        assert body["status"] == "active"

        page = client.get(f"/v1/properties/{listing.id}/comments").json()
        assert page["totalResults"] == 1

    def test_replies_are_threaded(self, client, user_headers, listing):
        parent = _comment(client, user_headers, listing.id).json()["id"]
        reply = _comment(client, user_headers, listing.id, text="Agreed", parent=parent)
        assert reply.status_code == 201

        # top-level listing skips replies
        page = client.get(f"/v1/properties/{listing.id}/comments").json()
        assert [c["id"] for c in page["results"]] == [parent]
        assert page["results"][0]["reply_count"] == 1

        replies = client.get(f"/v1/comments/{parent}/replies").json()
        assert [c["text"] for c in replies["results"]] == ["Agreed"]

    def test_reply_to_other_property_comment(self, client, user_headers, make_property, builder, listing):
        other = make_property(builder, name="Lakeview")
        parent = _comment(client, user_headers, other.id).json()["id"]
        res = _comment(client, user_headers, listing.id, parent=parent)
        assert res.status_code == 404
        assert res.json()["message"] == "Parent comment not found"

    def test_edit_own_comment(self, client, user_headers, listing):
        cid = _comment(client, user_headers, listing.id).json()["id"]
        res = client.patch(f"/v1/comments/{cid}", json={"text": "Very nice place"}, headers=user_headers)
        assert res.status_code == 200
        assert res.json()["is_edited"] is True
        assert res.json()["edited_at"] is not None

    def test_cannot_edit_others_comment(self, client, make_user, auth_header, user_headers, listing):
        cid = _comment(client, user_headers, listing.id).json()["id"]
        other = make_user(email="other@example.com")
        res = client.patch(f"/v1/comments/{cid}", json={"text": "Mine now"}, headers=auth_header("user", other))
        assert res.status_code == 403
        assert res.json()["message"] == "You can only update your own comments"

    def test_cannot_delete_others_comment(self, client, make_user, auth_header, user_headers, listing):
        cid = _comment(client, user_headers, listing.id).json()["id"]
        other = make_user(email="other@example.com")
        res = client.delete(f"/v1/comments/{cid}", headers=auth_header("user", other))
        assert res.status_code == 403
        assert res.json()["message"] == "You can only delete your own comments"

    def test_delete_is_soft(self, client, db_session, user_headers, listing):
        cid = _comment(client, user_headers, listing.id).json()["id"]
        assert client.delete(f"/v1/comments/{cid}", headers=user_headers).status_code == 204

        assert client.get(f"/v1/comments/{cid}").status_code == 404
        assert client.get(f"/v1/properties/{listing.id}/comments").json()["totalResults"] == 0

        db_session.expire_all()
        assert db_session.get(Comment, cid).status == "deleted"

    def test_deleting_reply_decrements_parent(self, client, user_headers, listing):
        parent = _comment(client, user_headers, listing.id).json()["id"]
        reply = _comment(client, user_headers, listing.id, parent=parent).json()["id"]
        client.delete(f"/v1/comments/{reply}", headers=user_headers)

        assert client.get(f"/v1/comments/{parent}").json()["reply_count"] == 0

    def test_cannot_reply_to_deleted_comment(self, client, user_headers, listing):
        parent = _comment(client, user_headers, listing.id).json()["id"]
        client.delete(f"/v1/comments/{parent}", headers=user_headers)
        assert _comment(client, user_headers, listing.id, parent=parent).status_code == 404

    def test_builder_sees_comments_on_own_listings(self, client, make_builder, make_property, auth_header,
                                                    user_headers, builder_headers, listing):
        other_builder = make_builder(email="other@example.com")
        other_listing = make_property(other_builder, name="Elsewhere")
        _comment(client, user_headers, listing.id)
        _comment(client, user_headers, other_listing.id)

        page = client.get("/v1/builder/comments", headers=builder_headers).json()
        assert page["totalResults"] == 1
        assert page["results"][0]["property_id"] == listing.id
