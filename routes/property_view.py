# routes/property_view.py
"""
Property view history: one row per time a user opens a property page.
"""
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user, require_rights
from config.security import Principal
from model.property.property import Property
from model.property_view import PropertyView
from model.user import User
from schema.common import Page
from schema.property import PropertySummary
from schema.property_view import PropertyViewIn, PropertyViewOut, ViewStatsOut, MostViewedOut
from src.route_helpers import get_or_404, paginate

router = APIRouter(prefix="/v1/property-views", tags=["Property Views"])


def _views(db: Session, user_id: int):
    return (
        db.query(PropertyView)
        .filter(PropertyView.user_id == user_id)
        .order_by(PropertyView.viewed_at.desc(), PropertyView.id.desc())
    )


@router.post("/", response_model=PropertyViewOut, status_code=status.HTTP_201_CREATED)
def record_view(body: PropertyViewIn, db: Session = Depends(get_db), user: User = Depends(require_user)):
    get_or_404(db, Property, body.property_id, "Property not found")
    view = PropertyView(user_id=user.id, property_id=body.property_id)
    db.add(view)
    db.commit()
    db.refresh(view)
    return view


@router.get("/my-views", response_model=Page[PropertyViewOut])
def my_views(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    return paginate(_views(db, user.id), page, limit)


@router.get("/my-stats", response_model=ViewStatsOut)
def my_stats(db: Session = Depends(get_db), user: User = Depends(require_user)):
    total, unique, first, last = (
        db.query(
            func.count(PropertyView.id),
            func.count(func.distinct(PropertyView.property_id)),
            func.min(PropertyView.viewed_at),
            func.max(PropertyView.viewed_at),
        )
        .filter(PropertyView.user_id == user.id)
        .one()
    )
    return ViewStatsOut(total_views=total, unique_properties=unique, first_viewed_at=first, last_viewed_at=last)


@router.get("/my-most-viewed", response_model=List[MostViewedOut])
def my_most_viewed(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    count = func.count(PropertyView.id).label("view_count")
    rows = (
        db.query(
            PropertyView.property_id,
            count,
            func.min(PropertyView.viewed_at),
            func.max(PropertyView.viewed_at),
        )
        .filter(PropertyView.user_id == user.id)
        .group_by(PropertyView.property_id)
        .order_by(count.desc(), func.max(PropertyView.viewed_at).desc())
        .limit(limit)
        .all()
    )
    props = {p.id: p for p in db.query(Property).filter(Property.id.in_([r[0] for r in rows])).all()} if rows else {}
    return [
        MostViewedOut(property=PropertySummary.model_validate(props[pid]), view_count=n, first_viewed_at=first, last_viewed_at=last)
        for pid, n, first, last in rows
        if pid in props
    ]


@router.get("/user/{user_id}", response_model=Page[PropertyViewOut])
def user_views(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_rights("getUsers")),
):
    get_or_404(db, User, user_id, "User not found")
    return paginate(_views(db, user_id), page, limit)
