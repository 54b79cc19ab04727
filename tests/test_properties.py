"""
Property listings: creation rights, public search, moderation, media and
the user shortlist.
"""
import pytest

from model.notification import Notification

NEW_LISTING = {
    "name": "Sunrise Towers",
    "type": "apartment",
    "bhk": "2 BHK",
    "area_value": 1150,
    "price_value": 85,
    "city": "Pune",
    "locality": "Baner",
}


class TestCreate:
    """Only builders (or admins acting for one) create listings."""

    def test_builder_creates_draft(self, client, builder, builder_headers):
        res = client.post("/v1/properties/", json=NEW_LISTING, headers=builder_headers)
        assert res.status_code == 201
        body = res.json()
        assert body["builder_id"] == builder.id
        assert body["status"] == "draft"
        assert body["admin_approved"] is False
        assert body["slug"] == "sunrise-towers"
        assert body["public_id"].startswith("PRP-")

    def test_user_cannot_create(self, client, user_headers):
        res = client.post("/v1/properties/", json=NEW_LISTING, headers=user_headers)
        assert res.status_code == 403
        assert res.json()["message"] == "Only builders can create properties"

    def test_admin_must_name_builder(self, client, builder, admin_headers):
        res = client.post("/v1/properties/", json=NEW_LISTING, headers=admin_headers)
        assert res.status_code == 400

        res = client.post("/v1/properties/", json={**NEW_LISTING, "builder_id": builder.id}, headers=admin_headers)
        assert res.status_code == 201
        assert res.json()["builder_id"] == builder.id

    def test_duplicate_names_get_unique_slugs(self, client, builder_headers):
        first = client.post("/v1/properties/", json=NEW_LISTING, headers=builder_headers).json()
        second = client.post("/v1/properties/", json=NEW_LISTING, headers=builder_headers).json()
        assert first["slug"] != second["slug"]

    @pytest.mark.parametrize("bhk", ["2", "two BHK", ""])
    def test_bad_bhk(self, client, builder_headers, bhk):
        res = client.post("/v1/properties/", json={**NEW_LISTING, "bhk": bhk}, headers=builder_headers)
        assert res.status_code == 400

    def test_only_one_primary_media_on_create(self, client, builder_headers):
        media = [
            {"type": "image", "url": "https://cdn.example.com/a.jpg", "is_primary": True},
            {"type": "image", "url": "https://cdn.example.com/b.jpg", "is_primary": True},
        ]
        body = client.post("/v1/properties/", json={**NEW_LISTING, "media": media}, headers=builder_headers).json()
        assert [m["is_primary"] for m in body["media"]] == [True, False]


class TestSearch:
    """Public search only returns active, approved listings."""

    @pytest.fixture
    def catalogue(self, make_property, builder):
        return {
            "cheap": make_property(builder, name="Budget Homes", price_value=40, bhk="1 BHK"),
            "pricey": make_property(builder, name="Skyline Villas", type="villa", price_value=250, bhk="4 BHK",
                                    city="Mumbai", locality="Powai"),
            "draft": make_property(builder, name="Hidden Draft", status="draft"),
            "unapproved": make_property(builder, name="Awaiting Review", admin_approved=False),
        }

    def _names(self, res):
        return {p["name"] for p in res.json()["results"]}

    def test_hides_non_public(self, client, catalogue):
        res = client.get("/v1/properties/search")
        assert self._names(res) == {"Budget Homes", "Skyline Villas"}

    def test_filters(self, client, catalogue):
        assert self._names(client.get("/v1/properties/search", params={"city": "mumbai"})) == {"Skyline Villas"}
        assert self._names(client.get("/v1/properties/search", params={"maxPrice": 100})) == {"Budget Homes"}
        assert self._names(client.get("/v1/properties/search", params={"type": "villa"})) == {"Skyline Villas"}
        assert self._names(client.get("/v1/properties/search", params={"q": "budget"})) == {"Budget Homes"}

    def test_sort_and_paginate(self, client, catalogue):
        res = client.get("/v1/properties/search", params={"sortBy": "price_desc", "limit": 1})
        body = res.json()
        assert body["totalResults"] == 2
        assert body["totalPages"] == 2
        assert body["results"][0]["name"] == "Skyline Villas"

    def test_featured_uses_flags(self, client, db_session, catalogue):
        catalogue["cheap"].add_flag("featured")
        catalogue["draft"].add_flag("featured")
        db_session.commit()

        names = [p["name"] for p in client.get("/v1/properties/featured").json()]
        assert names == ["Budget Homes"]


class TestOwnership:

    def test_other_builder_cannot_edit(self, client, make_builder, auth_header, listing):
        other = make_builder(email="other@example.com")
        res = client.patch(f"/v1/properties/{listing.id}", json={"name": "Mine"}, headers=auth_header("builder", other))
        assert res.status_code == 403
        assert res.json()["message"] == "You can only modify your own properties"

    def test_owner_edits(self, client, builder_headers, listing):
        res = client.patch(f"/v1/properties/{listing.id}", json={"price_value": 90}, headers=builder_headers)
        assert res.status_code == 200
        assert res.json()["price_value"] == 90

    def test_owner_deletes(self, client, builder_headers, listing):
        assert client.delete(f"/v1/properties/{listing.id}", headers=builder_headers).status_code == 204
        assert client.get(f"/v1/properties/{listing.id}").status_code == 404


class TestModeration:
    """Admins approve or reject; the builder is notified either way."""

    def test_approve(self, client, db_session, make_property, builder, admin, admin_headers):
        prop = make_property(builder, admin_approved=False)
        res = client.post(f"/v1/properties/{prop.id}/approve", headers=admin_headers)
        assert res.status_code == 200
        assert res.json()["admin_approved"] is True
        assert res.json()["approved_by"] == admin.id

        note = db_session.query(Notification).filter_by(notification_type="property_approved").one()
        assert note.recipient_id == builder.id

    def test_reject(self, client, admin_headers, listing):
        res = client.post(f"/v1/properties/{listing.id}/reject", json={"reason": "Blurry photos"},
                          headers=admin_headers)
        body = res.json()
        assert body["status"] == "inactive"
        assert body["admin_approved"] is False
        assert body["rejection_reason"] == "Blurry photos"

    def test_builder_cannot_approve(self, client, builder_headers, listing):
        assert client.post(f"/v1/properties/{listing.id}/approve", headers=builder_headers).status_code == 403


class TestMedia:

    def test_new_primary_replaces_old(self, client, builder_headers, listing):
        url = f"/v1/properties/{listing.id}/media"
        first = client.post(url, json={"type": "image", "url": "https://cdn.example.com/a.jpg", "is_primary": True},
                            headers=builder_headers)
        assert first.status_code == 201
        client.post(url, json={"type": "image", "url": "https://cdn.example.com/b.jpg", "is_primary": True},
                    headers=builder_headers)

        media = client.get(f"/v1/properties/{listing.id}").json()["media"]
        assert [m["url"] for m in media if m["is_primary"]] == ["https://cdn.example.com/b.jpg"]

    def test_remove_media(self, client, builder_headers, listing):
        media_id = client.post(
            f"/v1/properties/{listing.id}/media",
            json={"type": "floor_plan", "url": "https://cdn.example.com/plan.pdf"},
            headers=builder_headers,
        ).json()["id"]
        res = client.delete(f"/v1/properties/{listing.id}/media/{media_id}", headers=builder_headers)
        assert res.status_code == 204
        assert client.get(f"/v1/properties/{listing.id}").json()["media"] == []

    def test_upload_to_local_storage(self, client, builder_headers, listing, tmp_path, monkeypatch):
        monkeypatch.setenv("STORAGE_TYPE", "local")
        monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
        res = client.post(
            f"/v1/properties/{listing.id}/media/upload",
            files={"file": ("Front View.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")},
            data={"media_type": "image", "is_primary": "true"},
            headers=builder_headers,
        )
        assert res.status_code == 201
        body = res.json()
        assert body["is_primary"] is True
        assert body["url_key"].startswith(f"{listing.public_id}/images/")
        assert body["url_key"].endswith("_Front_View.jpg")
        assert (tmp_path / body["url_key"]).read_bytes() == b"\xff\xd8\xff fake jpeg"

    def test_upload_rejects_wrong_mime(self, client, builder_headers, listing, tmp_path, monkeypatch):
        monkeypatch.setenv("STORAGE_TYPE", "local")
        monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
        res = client.post(
            f"/v1/properties/{listing.id}/media/upload",
            files={"file": ("clip.mp4", b"0000", "video/mp4")},
            data={"media_type": "image"},
            headers=builder_headers,
        )
        assert res.status_code == 400
        assert res.json()["message"].startswith("Invalid file type for image")
        assert not any(tmp_path.iterdir())


class TestCounters:

    def test_views_increment(self, client, listing):
        client.post(f"/v1/properties/{listing.id}/views")
        res = client.post(f"/v1/properties/{listing.id}/views")
        assert res.json() == {"id": listing.id, "views": 2}


class TestShortlist:
    """Per-user saved listings."""

    def test_add_check_remove(self, client, user_headers, listing):
        res = client.post("/v1/users/me/shortlist", json={"property_id": listing.id}, headers=user_headers)
        assert res.status_code == 201
        assert res.json()["is_shortlisted"] is True

        check = client.get(f"/v1/users/me/shortlist/{listing.id}/check", headers=user_headers)
        assert check.json()["is_shortlisted"] is True

        page = client.get("/v1/users/me/shortlist", headers=user_headers).json()
        assert [p["id"] for p in page["results"]] == [listing.id]

        assert client.delete(f"/v1/users/me/shortlist/{listing.id}", headers=user_headers).status_code == 204
        res = client.delete(f"/v1/users/me/shortlist/{listing.id}", headers=user_headers)
        assert res.status_code == 404
        assert res.json()["message"] == "Property is not in shortlist"

    def test_duplicate_is_409(self, client, user_headers, listing):
        client.post("/v1/users/me/shortlist", json={"property_id": listing.id}, headers=user_headers)
        res = client.post("/v1/users/me/shortlist", json={"property_id": listing.id}, headers=user_headers)
        assert res.status_code == 409
        assert res.json()["message"] == "Property is already in shortlist"

    def test_unknown_property(self, client, user_headers):
        res = client.post("/v1/users/me/shortlist", json={"property_id": 999}, headers=user_headers)
        assert res.status_code == 404
