"""
Property view history and the city catalogue.
"""
from model.city import City


def _view(client, headers, property_id):
    return client.post("/v1/property-views/", json={"propertyId": property_id}, headers=headers)


class TestPropertyViews:

    def test_record_view(self, client, user, user_headers, listing):
        res = _view(client, user_headers, listing.id)
        assert res.status_code == 201
        body = res.json()
        assert body["user_id"] == user.id
        assert body["property"]["id"] == listing.id

    def test_unknown_property(self, client, user_headers):
        res = _view(client, user_headers, 999)
        assert res.status_code == 404
        assert res.json()["message"] == "Property not found"

    def test_stats(self, client, user_headers, make_property, builder, listing):
        other = make_property(builder, name="Lakeview")
        _view(client, user_headers, listing.id)
        _view(client, user_headers, listing.id)
        _view(client, user_headers, other.id)

        stats = client.get("/v1/property-views/my-stats", headers=user_headers).json()
        assert stats["total_views"] == 3
        assert stats["unique_properties"] == 2
        assert stats["first_viewed_at"] <= stats["last_viewed_at"]

    def test_empty_stats(self, client, user_headers):
        stats = client.get("/v1/property-views/my-stats", headers=user_headers).json()
        assert stats["total_views"] == 0
        assert stats["last_viewed_at"] is None

    def test_most_viewed(self, client, user_headers, make_property, builder, listing):
        other = make_property(builder, name="Lakeview")
        _view(client, user_headers, other.id)
        for _ in range(3):
            _view(client, user_headers, listing.id)

        rows = client.get("/v1/property-views/my-most-viewed", headers=user_headers).json()
        assert [(r["property"]["id"], r["view_count"]) for r in rows] == [(listing.id, 3), (other.id, 1)]

    def test_history_is_private(self, client, user, make_user, auth_header, user_headers, admin_headers, listing):
        _view(client, user_headers, listing.id)
        other = make_user(email="other@example.com")

        assert client.get(f"/v1/property-views/user/{user.id}", headers=user_headers).status_code == 200
        assert client.get(f"/v1/property-views/user/{user.id}", headers=auth_header("user", other)).status_code == 403

        page = client.get(f"/v1/property-views/user/{user.id}", headers=admin_headers).json()
        assert page["totalResults"] == 1

    def test_builders_do_not_record_views(self, client, builder_headers, listing):
        assert _view(client, builder_headers, listing.id).status_code == 403


class TestCities:

    def test_admin_creates_city(self, client, admin_headers):
        res = client.post("/v1/cities/", json={"name": "Pune", "state": "Maharashtra"}, headers=admin_headers)
        assert res.status_code == 201
        assert res.json()["country"] == "India"

    def test_duplicate_name_ignores_case(self, client, admin_headers):
        client.post("/v1/cities/", json={"name": "Pune", "state": "Maharashtra"}, headers=admin_headers)
        res = client.post("/v1/cities/", json={"name": "pune", "state": "Maharashtra"}, headers=admin_headers)
        assert res.status_code == 409
        assert res.json()["message"] == "City already exists"

    def test_users_cannot_create(self, client, user_headers):
        res = client.post("/v1/cities/", json={"name": "Pune", "state": "Maharashtra"}, headers=user_headers)
        assert res.status_code == 403

    def test_public_listing_hides_inactive(self, client, db_session):
        db_session.add_all([
            City(name="Pune", state="Maharashtra"),
            City(name="Nagpur", state="Maharashtra", is_active=False),
        ])
        db_session.commit()

        assert [c["name"] for c in client.get("/v1/cities/").json()] == ["Pune"]
        names = [c["name"] for c in client.get("/v1/cities/", params={"include_inactive": True}).json()]
        assert names == ["Nagpur", "Pune"]

    def test_search(self, client, db_session):
        db_session.add_all([City(name="Pune", state="Maharashtra"), City(name="Mumbai", state="Maharashtra")])
        db_session.commit()
        assert [c["name"] for c in client.get("/v1/cities/search", params={"q": "mum"}).json()] == ["Mumbai"]

    def test_update_and_delete(self, client, db_session, admin_headers):
        city = City(name="Bombay", state="Maharashtra")
        db_session.add(city)
        db_session.commit()

        res = client.put(f"/v1/cities/{city.id}", json={"name": "Mumbai"}, headers=admin_headers)
        assert res.json()["name"] == "Mumbai"
        res = client.patch(f"/v1/cities/{city.id}", json={"is_active": False}, headers=admin_headers)
        assert res.json()["is_active"] is False

        assert client.delete(f"/v1/cities/{city.id}", headers=admin_headers).status_code == 204
        assert client.get(f"/v1/cities/{city.id}").status_code == 404
