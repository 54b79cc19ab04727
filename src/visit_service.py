# src/visit_service.py
"""
Visit scheduling.

A slot is (property, date, time). At most one visit in an active status
(scheduled, confirmed, rescheduled) may hold a slot. The check below runs
before every write; the unique `visits.slot_key` column backs it up when two
bookings race.
"""
import logging
import re
from datetime import date as date_type, datetime
from typing import Optional, List, Dict, Any

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from model.property.property import Property
from model.user import User
from model.visit import Visit, VISIT_STATUSES, ACTIVE_VISIT_STATUSES
from src.notification_service import notify_visit_event
from src.route_helpers import commit_or_409, get_or_404

logger = logging.getLogger(__name__)

SLOT_TAKEN = "Time slot is not available"

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$")


class VisitStateError(Exception):
    """Raised when a visit cannot move to the requested status."""
    pass


def normalize_time(value: str) -> str:
    """'9:30pm' / '09:30 PM' -> '09:30 PM'. Raises ValueError on anything else."""
    m = _TIME_RE.match(value or "")
    if not m:
        raise ValueError("Time must be in format HH:MM AM/PM")
    hour, minute, meridiem = int(m.group(1)), int(m.group(2)), m.group(3).upper()
    if not 1 <= hour <= 12 or not 0 <= minute <= 59:
        raise ValueError("Time must be in format HH:MM AM/PM")
    return f"{hour:02d}:{minute:02d} {meridiem}"


def time_sort_key(value: str) -> int:
    """Minutes since midnight for a normalized time."""
    hour, rest = value.split(":")
    minute, meridiem = rest.split(" ")
    hour = int(hour) % 12 + (12 if meridiem == "PM" else 0)
    return hour * 60 + int(minute)


def _build_time_slots(start_minutes: int = 9 * 60, end_minutes: int = 22 * 60, step: int = 30) -> List[str]:
    slots = []
    for minutes in range(start_minutes, end_minutes + 1, step):
        hour, minute = divmod(minutes, 60)
        meridiem = "AM" if hour < 12 else "PM"
        slots.append(f"{(hour % 12) or 12:02d}:{minute:02d} {meridiem}")
    return slots


# 09:00 AM ... 10:00 PM
TIME_SLOTS = _build_time_slots()


def _check_not_past(visit_date: date_type) -> None:
    if visit_date < date_type.today():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Visit date cannot be in the past")


# ---------------------------------------------------------------------------
# Slot queries
# ---------------------------------------------------------------------------
def is_time_slot_available(
    db: Session,
    property_id: int,
    visit_date: date_type,
    visit_time: str,
    exclude_visit_id: Optional[int] = None,
) -> bool:
    q = db.query(Visit.id).filter(
        Visit.property_id == property_id,
        Visit.date == visit_date,
        Visit.time == normalize_time(visit_time),
        Visit.status.in_(ACTIVE_VISIT_STATUSES),
    )
    if exclude_visit_id is not None:
        q = q.filter(Visit.id != exclude_visit_id)
    return q.first() is None


def booked_slots(db: Session, property_id: int, visit_date: date_type) -> List[str]:
    rows = (
        db.query(Visit.time)
        .filter(
            Visit.property_id == property_id,
            Visit.date == visit_date,
            Visit.status.in_(ACTIVE_VISIT_STATUSES),
        )
        .all()
    )
    return sorted({t for (t,) in rows}, key=time_sort_key)


def available_slots(db: Session, property_id: int, visit_date: date_type) -> List[str]:
    taken = set(booked_slots(db, property_id, visit_date))
    return [s for s in TIME_SLOTS if s not in taken]


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
def _ensure_slot(db: Session, property_id: int, visit_date: date_type, visit_time: str,
                 exclude_visit_id: Optional[int] = None) -> None:
    if not is_time_slot_available(db, property_id, visit_date, visit_time, exclude_visit_id):
        logger.info("Slot conflict for property %s on %s at %s", property_id, visit_date, visit_time)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=SLOT_TAKEN)


def _check_status_change(from_status: str, to_status: str) -> None:
    """Same rules as the confirm/complete/cancel/reschedule operations."""
    if to_status not in VISIT_STATUSES:
        raise VisitStateError(f"Invalid visit status: {to_status}")
    if from_status in ("cancelled", "completed"):
        raise VisitStateError("Visit is already cancelled or completed")
    if to_status == "confirmed" and from_status != "scheduled":
        raise VisitStateError("Only scheduled visits can be confirmed")
    if to_status == "completed" and from_status != "confirmed":
        raise VisitStateError("Only confirmed visits can be marked as completed")


def create_visit(db: Session, user_id: int, property_id: int, visit_date: date_type, visit_time: str) -> Visit:
    prop = get_or_404(db, Property, property_id, "Property not found")
    get_or_404(db, User, user_id, "User not found")

    visit_time = normalize_time(visit_time)
    _check_not_past(visit_date)
    _ensure_slot(db, property_id, visit_date, visit_time)

    visit = Visit(user_id=user_id, property_id=property_id, date=visit_date, time=visit_time, status="scheduled")
    visit.sync_slot_key()
    db.add(visit)
    commit_or_409(db, SLOT_TAKEN)
    db.refresh(visit)
    logger.info("Visit %s booked: property %s %s %s", visit.id, property_id, visit_date, visit_time)

    notify_visit_event(db, visit, prop, "visit_scheduled")
    notify_visit_event(db, visit, prop, "visit_request")
    return visit


def update_visit(db: Session, visit: Visit, data: Dict[str, Any]) -> Visit:
    new_date = data.get("date") or visit.date
    new_time = normalize_time(data["time"]) if data.get("time") else visit.time

    if (new_date, new_time) != (visit.date, visit.time):
        _check_not_past(new_date)
        if visit.is_active:
            _ensure_slot(db, visit.property_id, new_date, new_time, exclude_visit_id=visit.id)
        visit.date = new_date
        visit.time = new_time

    if data.get("status") and data["status"] != visit.status:
        _check_status_change(visit.status, data["status"])
        visit.status = data["status"]
        if visit.status == "confirmed":
            visit.confirmed_at = datetime.utcnow()
        elif visit.status == "completed":
            visit.completed_at = datetime.utcnow()
        elif visit.status == "cancelled":
            visit.cancelled_at = datetime.utcnow()

    visit.sync_slot_key()
    commit_or_409(db, SLOT_TAKEN)
    db.refresh(visit)
    return visit


def confirm_visit(db: Session, visit: Visit) -> Visit:
    if visit.status != "scheduled":
        raise VisitStateError("Only scheduled visits can be confirmed")
    visit.status = "confirmed"
    visit.confirmed_at = datetime.utcnow()
    visit.sync_slot_key()
    db.commit()
    db.refresh(visit)
    notify_visit_event(db, visit, visit.property, "visit_confirmed")
    return visit


def cancel_visit(db: Session, visit: Visit, cancelled_by: Optional[int], by_user: bool = False) -> Visit:
    if visit.status in ("cancelled", "completed"):
        raise VisitStateError("Visit is already cancelled or completed")
    visit.status = "cancelled"
    visit.cancelled_at = datetime.utcnow()
    visit.cancelled_by = cancelled_by
    visit.sync_slot_key()
    db.commit()
    db.refresh(visit)
    if by_user:
        notify_visit_event(db, visit, visit.property, "visit_cancelled_by_user")
    else:
        notify_visit_event(db, visit, visit.property, "visit_cancelled")
    return visit


def reschedule_visit(db: Session, visit: Visit, visit_date: date_type, visit_time: str,
                     rescheduled_by: Optional[int]) -> Visit:
    if visit.status in ("cancelled", "completed"):
        raise VisitStateError("Visit is already cancelled or completed")
    visit_time = normalize_time(visit_time)
    _check_not_past(visit_date)
    _ensure_slot(db, visit.property_id, visit_date, visit_time, exclude_visit_id=visit.id)

    visit.date = visit_date
    visit.time = visit_time
    visit.status = "rescheduled"
    visit.rescheduled_at = datetime.utcnow()
    visit.rescheduled_by = rescheduled_by
    visit.sync_slot_key()
    commit_or_409(db, SLOT_TAKEN)
    db.refresh(visit)
    return visit


def complete_visit(db: Session, visit: Visit) -> Visit:
    if visit.status != "confirmed":
        raise VisitStateError("Only confirmed visits can be marked as completed")
    visit.status = "completed"
    visit.completed_at = datetime.utcnow()
    visit.sync_slot_key()
    db.commit()
    db.refresh(visit)
    return visit


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------
def upcoming_visits(db: Session, user_id: int) -> List[Visit]:
    rows = (
        db.query(Visit)
        .filter(
            Visit.user_id == user_id,
            Visit.status.in_(ACTIVE_VISIT_STATUSES),
            Visit.date >= date_type.today(),
        )
        .all()
    )
    return sorted(rows, key=lambda v: (v.date, time_sort_key(v.time)))


def visit_stats(db: Session, user_id: Optional[int] = None, property_id: Optional[int] = None) -> Dict[str, int]:
    q = db.query(Visit.status, func.count(Visit.id))
    if user_id is not None:
        q = q.filter(Visit.user_id == user_id)
    if property_id is not None:
        q = q.filter(Visit.property_id == property_id)
    counts = dict(q.group_by(Visit.status).all())
    stats = {s: int(counts.get(s, 0)) for s in VISIT_STATUSES}
    stats["total"] = sum(stats.values())
    return stats


def scheduled_properties(db: Session, user_id: int) -> List[Dict[str, Any]]:
    """Unique properties the user has active visits for, each with its visits."""
    rows = (
        db.query(Visit)
        .filter(Visit.user_id == user_id, Visit.status.in_(ACTIVE_VISIT_STATUSES))
        .all()
    )
    grouped: Dict[int, Dict[str, Any]] = {}
    for v in sorted(rows, key=lambda v: (v.date, time_sort_key(v.time))):
        entry = grouped.setdefault(v.property_id, {"property": v.property, "visits": []})
        entry["visits"].append(v)
    return list(grouped.values())


__all__ = [
    "VisitStateError",
    "SLOT_TAKEN",
    "TIME_SLOTS",
    "normalize_time",
    "time_sort_key",
    "is_time_slot_available",
    "booked_slots",
    "available_slots",
    "create_visit",
    "update_visit",
    "confirm_visit",
    "cancel_visit",
    "reschedule_visit",
    "complete_visit",
    "upcoming_visits",
    "visit_stats",
    "scheduled_properties",
]
