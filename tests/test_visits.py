"""
Visit booking: slot availability, double-booking protection and the
status lifecycle.
"""
from datetime import date, timedelta

import pytest

from model.notification import Notification
from model.visit import Visit
from src.visit_service import TIME_SLOTS, normalize_time, time_sort_key

FUTURE = (date.today() + timedelta(days=7)).isoformat()
LATER = (date.today() + timedelta(days=14)).isoformat()
PAST = (date.today() - timedelta(days=1)).isoformat()


def _book(client, headers, property_id, day=FUTURE, time="10:00 AM", **extra):
    return client.post(
        "/v1/visits/schedule",
        json={"property_id": property_id, "date": day, "time": time, **extra},
        headers=headers,
    )


# ===================================================================
# Model
# ===================================================================

class TestVisitModel:

    def test_is_active_is_a_property(self):
        assert isinstance(Visit.__dict__["is_active"], property)

    @pytest.mark.parametrize("status,active", [
        ("scheduled", True),
        ("confirmed", True),
        ("rescheduled", True),
        ("cancelled", False),
        ("completed", False),
    ])
    def test_is_active(self, status, active):
        assert Visit(status=status).is_active is active

    def test_slot_key_cleared_when_inactive(self):
        visit = Visit(property_id=1, date=date.today(), time="10:00 AM", status="scheduled")
        visit.sync_slot_key()
        assert visit.slot_key is not None
        visit.status = "cancelled"
        visit.sync_slot_key()
        assert visit.slot_key is None


# ===================================================================
# Time helpers
# ===================================================================

class TestTimeFormat:

    @pytest.mark.parametrize("raw,expected", [
        ("10:00 AM", "10:00 AM"),
        ("9:30pm", "09:30 PM"),
        (" 12:00 pm ", "12:00 PM"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_time(raw) == expected

    @pytest.mark.parametrize("raw", ["10:00", "25:00 AM", "13:00 PM", "10:61 AM", ""])
    def test_rejects_bad_times(self, raw):
        with pytest.raises(ValueError):
            normalize_time(raw)

    def test_sort_key_orders_noon_and_midnight(self):
        assert time_sort_key("12:00 AM") < time_sort_key("09:00 AM") < time_sort_key("12:00 PM")

    def test_slot_grid(self):
        assert TIME_SLOTS[0] == "09:00 AM"
        assert TIME_SLOTS[-1] == "10:00 PM"
        assert "12:30 PM" in TIME_SLOTS


# ===================================================================
# Booking
# ===================================================================

class TestBooking:
    """Scheduling and slot conflicts."""

    def test_user_books_visit(self, client, db_session, user, user_headers, listing):
        res = _book(client, user_headers, listing.id, time="10:00am")
        assert res.status_code == 201
        body = res.json()
        assert body["status"] == "scheduled"
        assert body["time"] == "10:00 AM"
        assert body["user_id"] == user.id
        assert body["property"]["id"] == listing.id

        types = {n.notification_type for n in db_session.query(Notification).all()}
        assert types == {"visit_scheduled", "visit_request"}

    def test_double_booking_is_409(self, client, make_user, auth_header, user_headers, listing):
        assert _book(client, user_headers, listing.id).status_code == 201

        other = make_user(email="other@example.com")
        res = _book(client, auth_header("user", other), listing.id, time="10:00 am")
        assert res.status_code == 409
        assert res.json()["message"] == "Time slot is not available"

    def test_same_slot_other_property_is_fine(self, client, user_headers, make_property, builder, listing):
        other = make_property(builder, name="Lakeview")
        assert _book(client, user_headers, listing.id).status_code == 201
        assert _book(client, user_headers, other.id).status_code == 201

    def test_past_date_is_400(self, client, user_headers, listing):
        res = _book(client, user_headers, listing.id, day=PAST)
        assert res.status_code == 400
        assert res.json()["message"] == "Visit date cannot be in the past"

    def test_bad_time_is_400(self, client, user_headers, listing):
        res = _book(client, user_headers, listing.id, time="25:99")
        assert res.status_code == 400

    def test_unknown_property_is_404(self, client, user_headers):
        res = _book(client, user_headers, 999)
        assert res.status_code == 404
        assert res.json()["message"] == "Property not found"

    def test_builder_cannot_book(self, client, builder_headers, listing):
        assert _book(client, builder_headers, listing.id).status_code == 403

    def test_admin_books_for_user(self, client, user, admin_headers, listing):
        res = _book(client, admin_headers, listing.id, user_id=user.id)
        assert res.status_code == 201
        assert res.json()["user_id"] == user.id

    def test_admin_must_name_user(self, client, admin_headers, listing):
        assert _book(client, admin_headers, listing.id).status_code == 403

    def test_cancel_frees_slot(self, client, make_user, auth_header, user_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        res = client.patch(f"/v1/visits/{visit_id}/cancel", headers=user_headers)
        assert res.status_code == 200
        assert res.json()["status"] == "cancelled"

        other = make_user(email="other@example.com")
        assert _book(client, auth_header("user", other), listing.id).status_code == 201


class TestSlots:
    """Public slot queries."""

    def test_booked_and_available(self, client, user_headers, listing):
        _book(client, user_headers, listing.id, time="11:00 AM")

        booked = client.get(f"/v1/visits/properties/{listing.id}/booked-slots", params={"date": FUTURE})
        assert booked.json()["slots"] == ["11:00 AM"]

        available = client.get(f"/v1/visits/properties/{listing.id}/available-slots", params={"date": FUTURE})
        slots = available.json()["slots"]
        assert "11:00 AM" not in slots
        assert len(slots) == len(TIME_SLOTS) - 1

    def test_check_availability(self, client, user_headers, listing):
        _book(client, user_headers, listing.id, time="11:00 AM")
        url = f"/v1/visits/properties/{listing.id}/check-availability"

        res = client.get(url, params={"date": FUTURE, "time": "11:00 am"})
        assert res.json()["available"] is False
        res = client.get(url, params={"date": FUTURE, "time": "11:30 AM"})
        assert res.json()["available"] is True

    def test_check_availability_bad_time(self, client, listing):
        res = client.get(
            f"/v1/visits/properties/{listing.id}/check-availability", params={"date": FUTURE, "time": "noon"}
        )
        assert res.status_code == 400


# ===================================================================
# Lifecycle
# ===================================================================

class TestLifecycle:
    """scheduled -> confirmed -> completed, plus cancel and reschedule."""

    def test_builder_confirms_and_completes(self, client, user_headers, builder_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]

        res = client.patch(f"/v1/visits/{visit_id}/confirm", headers=builder_headers)
        assert res.status_code == 200
        assert res.json()["status"] == "confirmed"
        assert res.json()["confirmed_at"] is not None

        res = client.patch(f"/v1/visits/{visit_id}/complete", headers=builder_headers)
        assert res.json()["status"] == "completed"

    def test_user_cannot_confirm(self, client, user_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        assert client.patch(f"/v1/visits/{visit_id}/confirm", headers=user_headers).status_code == 403

    def test_other_builder_cannot_confirm(self, client, make_builder, auth_header, user_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        other = make_builder(email="other@example.com")
        res = client.patch(f"/v1/visits/{visit_id}/confirm", headers=auth_header("builder", other))
        assert res.status_code == 403

    def test_complete_requires_confirmed(self, client, user_headers, builder_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        res = client.patch(f"/v1/visits/{visit_id}/complete", headers=builder_headers)
        assert res.status_code == 400
        assert res.json()["message"] == "Only confirmed visits can be marked as completed"

    def test_cancel_twice_is_400(self, client, user_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        client.patch(f"/v1/visits/{visit_id}/cancel", headers=user_headers)
        res = client.patch(f"/v1/visits/{visit_id}/cancel", headers=user_headers)
        assert res.status_code == 400

    def test_user_cancel_notifies_builder(self, client, db_session, user_headers, builder, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        client.patch(f"/v1/visits/{visit_id}/cancel", headers=user_headers)

        note = (
            db_session.query(Notification)
            .filter_by(notification_type="visit_cancelled_by_user")
            .one()
        )
        assert note.recipient_type == "builder"
        assert note.recipient_id == builder.id

    def test_reschedule(self, client, user, user_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        res = client.patch(
            f"/v1/visits/{visit_id}/reschedule", json={"date": LATER, "time": "04:00 PM"}, headers=user_headers
        )
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "rescheduled"
        assert body["date"] == LATER
        assert body["rescheduled_by"] == user.id

        # the original slot is free again
        check = client.get(
            f"/v1/visits/properties/{listing.id}/check-availability", params={"date": FUTURE, "time": "10:00 AM"}
        )
        assert check.json()["available"] is True

    def test_reschedule_into_taken_slot(self, client, make_user, auth_header, user_headers, listing):
        _book(client, user_headers, listing.id, time="04:00 PM")
        other = make_user(email="other@example.com")
        other_headers = auth_header("user", other)
        visit_id = _book(client, other_headers, listing.id).json()["id"]

        res = client.patch(
            f"/v1/visits/{visit_id}/reschedule", json={"date": FUTURE, "time": "04:00 PM"}, headers=other_headers
        )
        assert res.status_code == 409

    def test_patch_cannot_change_status(self, client, user_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        res = client.patch(
            f"/v1/visits/{visit_id}", json={"status": "completed", "time": "11:00 AM"}, headers=user_headers
        )
        assert res.status_code == 200
        assert res.json()["status"] == "scheduled"
        assert res.json()["time"] == "11:00 AM"

    def test_put_confirms_scheduled_visit(self, client, user_headers, builder_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        res = client.put(f"/v1/visits/{visit_id}", json={"status": "confirmed"}, headers=builder_headers)
        assert res.status_code == 200
        assert res.json()["status"] == "confirmed"
        assert res.json()["confirmed_at"] is not None

    def test_put_cannot_skip_confirmation(self, client, user_headers, builder_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        res = client.put(f"/v1/visits/{visit_id}", json={"status": "completed"}, headers=builder_headers)
        assert res.status_code == 400
        assert res.json()["message"] == "Only confirmed visits can be marked as completed"

    def test_put_cannot_reopen_completed_visit(self, client, user_headers, builder_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        client.patch(f"/v1/visits/{visit_id}/confirm", headers=builder_headers)
        client.patch(f"/v1/visits/{visit_id}/complete", headers=builder_headers)

        res = client.put(f"/v1/visits/{visit_id}", json={"status": "scheduled"}, headers=builder_headers)
        assert res.status_code == 400
        assert res.json()["message"] == "Visit is already cancelled or completed"
        assert client.get(f"/v1/visits/{visit_id}", headers=builder_headers).json()["status"] == "completed"

    def test_slot_key_tracks_status(self, client, db_session, user_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        client.patch(f"/v1/visits/{visit_id}/cancel", headers=user_headers)

        db_session.expire_all()
        assert db_session.get(Visit, visit_id).slot_key is None


# ===================================================================
# Listings / stats
# ===================================================================

class TestListings:

    def test_my_visits_and_stats(self, client, user_headers, listing):
        first = _book(client, user_headers, listing.id).json()["id"]
        _book(client, user_headers, listing.id, time="11:00 AM")
        client.patch(f"/v1/visits/{first}/cancel", headers=user_headers)

        page = client.get("/v1/visits/my-visits", headers=user_headers).json()
        assert page["totalResults"] == 2

        page = client.get("/v1/visits/my-visits", params={"status": "cancelled"}, headers=user_headers).json()
        assert [v["id"] for v in page["results"]] == [first]

        stats = client.get("/v1/visits/stats", headers=user_headers).json()
        assert stats["scheduled"] == 1
        assert stats["cancelled"] == 1
        assert stats["total"] == 2

    def test_upcoming_is_sorted(self, client, user_headers, listing):
        _book(client, user_headers, listing.id, time="04:00 PM")
        _book(client, user_headers, listing.id, time="09:30 AM")
        times = [v["time"] for v in client.get("/v1/visits/upcoming", headers=user_headers).json()]
        assert times == ["09:30 AM", "04:00 PM"]

    def test_scheduled_properties_groups_by_property(self, client, user_headers, listing):
        _book(client, user_headers, listing.id)
        _book(client, user_headers, listing.id, time="11:00 AM")
        groups = client.get("/v1/visits/scheduled-properties", headers=user_headers).json()
        assert len(groups) == 1
        assert groups[0]["property"]["id"] == listing.id
        assert len(groups[0]["visits"]) == 2

    def test_property_visits_for_owner_only(self, client, make_builder, auth_header, user_headers,
                                            builder_headers, listing):
        _book(client, user_headers, listing.id)
        res = client.get(f"/v1/visits/properties/{listing.id}", headers=builder_headers)
        assert res.status_code == 200
        assert res.json()["totalResults"] == 1

        other = make_builder(email="other@example.com")
        res = client.get(f"/v1/visits/properties/{listing.id}", headers=auth_header("builder", other))
        assert res.status_code == 403

    def test_all_visits_is_admin_only(self, client, user_headers, admin_headers, listing):
        _book(client, user_headers, listing.id)
        assert client.get("/v1/visits/", headers=user_headers).status_code == 403
        assert client.get("/v1/visits/", headers=admin_headers).json()["totalResults"] == 1

    def test_other_user_cannot_read_visit(self, client, make_user, auth_header, user_headers, listing):
        visit_id = _book(client, user_headers, listing.id).json()["id"]
        other = make_user(email="other@example.com")
        assert client.get(f"/v1/visits/{visit_id}", headers=auth_header("user", other)).status_code == 403
