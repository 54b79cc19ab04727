# routes/visit.py
import logging
from datetime import date as date_type
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import get_principal, require_user, require_admin
from config.security import Principal
from model.profiles.admin import Admin
from model.property.property import Property
from model.user import User
from model.visit import Visit
from schema.common import Page
from schema.visit import (
    VisitCreate, VisitUpdate, RescheduleIn, VisitOut,
    AvailabilityOut, SlotsOut, ScheduledPropertyOut, VisitStatsOut,
)
from src import visit_service
from src.route_helpers import get_or_404, paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/visits", tags=["Visits"])


def _visit_query(db: Session):
    return db.query(Visit).order_by(Visit.date.desc(), Visit.created_at.desc(), Visit.id.desc())


def _get_visit(db: Session, visit_id: int, principal: Principal, manage: bool = False) -> Visit:
    """
    The visit, if the caller may see it. With `manage`, only the property's
    builder or an admin qualifies; otherwise the visiting user does too.
    """
    visit = get_or_404(db, Visit, visit_id, "Visit not found")
    if principal.is_admin:
        return visit
    if principal.account_type == "builder" and visit.property.builder_id == principal.id:
        return visit
    if not manage and principal.owns("user", visit.user_id):
        return visit
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


# ----------------------------------------------------------------------------
# Slots (public)
# ----------------------------------------------------------------------------
@router.get("/time-slots", response_model=List[str])
def time_slots():
    return visit_service.TIME_SLOTS


@router.get("/properties/{property_id}/booked-slots", response_model=SlotsOut)
def booked_slots(property_id: int, date: date_type, db: Session = Depends(get_db)):
    get_or_404(db, Property, property_id, "Property not found")
    return SlotsOut(property_id=property_id, date=date, slots=visit_service.booked_slots(db, property_id, date))


@router.get("/properties/{property_id}/available-slots", response_model=SlotsOut)
def available_slots(property_id: int, date: date_type, db: Session = Depends(get_db)):
    get_or_404(db, Property, property_id, "Property not found")
    return SlotsOut(property_id=property_id, date=date, slots=visit_service.available_slots(db, property_id, date))


@router.get("/properties/{property_id}/check-availability", response_model=AvailabilityOut)
def check_availability(property_id: int, date: date_type, time: str, db: Session = Depends(get_db)):
    get_or_404(db, Property, property_id, "Property not found")
    try:
        time = visit_service.normalize_time(time)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    available = visit_service.is_time_slot_available(db, property_id, date, time)
    return AvailabilityOut(property_id=property_id, date=date, time=time, available=available)


# ----------------------------------------------------------------------------
# Booking
# ----------------------------------------------------------------------------
@router.post(
    "/schedule",
    response_model=VisitOut,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Visit date cannot be in the past"},
        404: {"description": "Property not found / User not found"},
        409: {"description": visit_service.SLOT_TAKEN},
    },
)
def schedule_visit(body: VisitCreate, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    if principal.account_type == "user":
        user_id = principal.id
    elif principal.is_admin and body.user_id is not None:
        user_id = body.user_id
    else:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return visit_service.create_visit(db, user_id, body.property_id, body.date, body.time)


@router.get("/my-visits", response_model=Page[VisitOut])
def my_visits(
    status_: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    q = _visit_query(db).filter(Visit.user_id == user.id)
    if status_:
        q = q.filter(Visit.status == status_)
    return paginate(q, page, limit)


@router.get("/upcoming", response_model=List[VisitOut])
def upcoming(db: Session = Depends(get_db), user: User = Depends(require_user)):
    return visit_service.upcoming_visits(db, user.id)


@router.get("/stats", response_model=VisitStatsOut)
def stats(db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    """Own stats for users; platform-wide for admins."""
    if principal.is_admin:
        return visit_service.visit_stats(db)
    if principal.account_type == "user":
        return visit_service.visit_stats(db, user_id=principal.id)
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


@router.get("/scheduled-properties", response_model=List[ScheduledPropertyOut])
def scheduled_properties(db: Session = Depends(get_db), user: User = Depends(require_user)):
    return visit_service.scheduled_properties(db, user.id)


# ----------------------------------------------------------------------------
# Management listings
# ----------------------------------------------------------------------------
@router.get("/", response_model=Page[VisitOut])
def list_visits(
    status_: Optional[str] = Query(None, alias="status"),
    property_id: Optional[int] = None,
    user_id: Optional[int] = None,
    date: Optional[date_type] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _: Admin = Depends(require_admin),
):
    q = _visit_query(db)
    if status_:
        q = q.filter(Visit.status == status_)
    if property_id is not None:
        q = q.filter(Visit.property_id == property_id)
    if user_id is not None:
        q = q.filter(Visit.user_id == user_id)
    if date is not None:
        q = q.filter(Visit.date == date)
    return paginate(q, page, limit)


@router.get("/users/{user_id}", response_model=Page[VisitOut])
def user_visits(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    if not (principal.is_admin or principal.owns("user", user_id)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return paginate(_visit_query(db).filter(Visit.user_id == user_id), page, limit)


@router.get("/properties/{property_id}", response_model=Page[VisitOut])
def property_visits(
    property_id: int,
    status_: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    prop = get_or_404(db, Property, property_id, "Property not found")
    if not (principal.is_admin or principal.owns("builder", prop.builder_id)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    q = _visit_query(db).filter(Visit.property_id == property_id)
    if status_:
        q = q.filter(Visit.status == status_)
    return paginate(q, page, limit)


# ----------------------------------------------------------------------------
# Single visit
# ----------------------------------------------------------------------------
@router.get("/{visit_id}", response_model=VisitOut)
def get_visit(visit_id: int, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _get_visit(db, visit_id, principal)


@router.patch("/{visit_id}", response_model=VisitOut)
def update_my_visit(
    visit_id: int,
    body: VisitUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Move a visit to another date or time. Status changes go through the dedicated endpoints."""
    visit = _get_visit(db, visit_id, principal)
    return visit_service.update_visit(db, visit, body.model_dump(exclude_unset=True, exclude={"status"}))


@router.put("/{visit_id}", response_model=VisitOut)
def update_visit(
    visit_id: int,
    body: VisitUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    visit = _get_visit(db, visit_id, principal, manage=True)
    return visit_service.update_visit(db, visit, body.model_dump(exclude_unset=True))


@router.patch("/{visit_id}/cancel", response_model=VisitOut)
def cancel_visit(visit_id: int, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    visit = _get_visit(db, visit_id, principal)
    by_user = principal.account_type == "user"
    return visit_service.cancel_visit(db, visit, cancelled_by=principal.id, by_user=by_user)


@router.patch("/{visit_id}/reschedule", response_model=VisitOut)
def reschedule_visit(
    visit_id: int,
    body: RescheduleIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    visit = _get_visit(db, visit_id, principal)
    return visit_service.reschedule_visit(db, visit, body.date, body.time, rescheduled_by=principal.id)


@router.patch("/{visit_id}/confirm", response_model=VisitOut)
def confirm_visit(visit_id: int, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    visit = _get_visit(db, visit_id, principal, manage=True)
    return visit_service.confirm_visit(db, visit)


@router.patch("/{visit_id}/complete", response_model=VisitOut)
def complete_visit(visit_id: int, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    visit = _get_visit(db, visit_id, principal, manage=True)
    return visit_service.complete_visit(db, visit)


@router.delete("/{visit_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_visit(visit_id: int, db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    visit = get_or_404(db, Visit, visit_id, "Visit not found")
    db.delete(visit)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
