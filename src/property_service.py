# src/property_service.py
"""
Property catalog queries and writes.

Public listings only ever show properties that are `active` and approved by
an admin; builders and admins see every status of the listings they manage.
"""
import logging
import math
from datetime import datetime
from typing import Optional, Dict, Any, List, Iterable

from fastapi import HTTPException, status
from sqlalchemy import or_, func
from sqlalchemy.orm import Session, Query

from model.property.property import Property, PropertyMedia, PropertyAmenity, PropertyFlag, slugify
from src.id_generator import generate_public_id
from src.notification_service import notify_property_event
from src.route_helpers import commit_or_409

logger = logging.getLogger(__name__)

KM_PER_DEGREE = 111.0

SORT_COLUMNS = {
    "price_asc": Property.price_value.asc(),
    "price_desc": Property.price_value.desc(),
    "area_asc": Property.area_value.asc(),
    "area_desc": Property.area_value.desc(),
    "views_desc": Property.views.desc(),
    "created_desc": Property.created_at.desc(),
}

# JSON columns written from pydantic sub-models
_JSON_FIELDS = ("availability", "contact")


def _csv(value: Optional[str]) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def public_listings(db: Session) -> Query:
    return db.query(Property).filter(Property.status == "active", Property.admin_approved.is_(True))


def apply_filters(
    query: Query,
    *,
    q: Optional[str] = None,
    city: Optional[str] = None,
    locality: Optional[str] = None,
    type: Optional[str] = None,
    bhk: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    min_area: Optional[float] = None,
    max_area: Optional[float] = None,
    amenities: Optional[str] = None,
    flags: Optional[str] = None,
    builder_id: Optional[int] = None,
    status_: Optional[str] = None,
    admin_approved: Optional[bool] = None,
) -> Query:
    if q:
        like = f"%{q}%"
        query = query.filter(or_(
            Property.name.ilike(like),
            Property.description.ilike(like),
            Property.city.ilike(like),
            Property.locality.ilike(like),
        ))
    if city:
        query = query.filter(Property.city.ilike(f"%{city}%"))
    if locality:
        query = query.filter(Property.locality.ilike(f"%{locality}%"))
    if type:
        query = query.filter(Property.type == type)
    if bhk:
        query = query.filter(Property.bhk.ilike(f"%{bhk}%"))
    if min_price is not None:
        query = query.filter(Property.price_value >= min_price)
    if max_price is not None:
        query = query.filter(Property.price_value <= max_price)
    if min_area is not None:
        query = query.filter(Property.area_value >= min_area)
    if max_area is not None:
        query = query.filter(Property.area_value <= max_area)
    amenity_names = _csv(amenities)
    if amenity_names:
        query = query.filter(Property.amenities.any(PropertyAmenity.name.in_(amenity_names)))
    flag_names = _csv(flags)
    if flag_names:
        query = query.filter(Property.flag_rows.any(PropertyFlag.flag.in_(flag_names)))
    if builder_id is not None:
        query = query.filter(Property.builder_id == builder_id)
    if status_:
        query = query.filter(Property.status == status_)
    if admin_approved is not None:
        query = query.filter(Property.admin_approved.is_(admin_approved))
    return query


def apply_sort(query: Query, sort_by: Optional[str]) -> Query:
    return query.order_by(SORT_COLUMNS.get(sort_by or "created_desc", SORT_COLUMNS["created_desc"]), Property.id.desc())


def with_flag(db: Session, flag: str, limit: int = 10, order=None) -> List[Property]:
    query = public_listings(db).filter(Property.flag_rows.any(PropertyFlag.flag == flag))
    return query.order_by(order if order is not None else Property.created_at.desc(), Property.id.desc()).limit(limit).all()


def nearby(db: Session, prop: Property, radius_km: float = 5, limit: int = 10) -> List[Property]:
    """Active approved listings inside a radius/111 km bounding box around `prop`."""
    if prop.latitude is None or prop.longitude is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Property location not available")
    dlat = radius_km / KM_PER_DEGREE
    cos_lat = math.cos(math.radians(prop.latitude)) or 1e-9
    dlng = radius_km / (KM_PER_DEGREE * abs(cos_lat))
    return (
        public_listings(db)
        .filter(
            Property.id != prop.id,
            Property.latitude.between(prop.latitude - dlat, prop.latitude + dlat),
            Property.longitude.between(prop.longitude - dlng, prop.longitude + dlng),
        )
        .order_by(Property.created_at.desc(), Property.id.desc())
        .limit(limit)
        .all()
    )


def builder_stats(db: Session, builder_id: int) -> Dict[str, int]:
    base = db.query(Property).filter(Property.builder_id == builder_id)
    totals = (
        db.query(func.coalesce(func.sum(Property.views), 0), func.coalesce(func.sum(Property.inquiries), 0))
        .filter(Property.builder_id == builder_id)
        .one()
    )
    return {
        "total": base.count(),
        "active": base.filter(Property.status == "active").count(),
        "draft": base.filter(Property.status == "draft").count(),
        "sold": base.filter(Property.status == "sold").count(),
        "approved": base.filter(Property.admin_approved.is_(True)).count(),
        "total_views": int(totals[0]),
        "total_inquiries": int(totals[1]),
    }


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def unique_slug(db: Session, base: str, exclude_id: Optional[int] = None) -> str:
    base = slugify(base)
    candidate, n = base, 2
    while True:
        q = db.query(Property.id).filter(Property.slug == candidate)
        if exclude_id is not None:
            q = q.filter(Property.id != exclude_id)
        if q.first() is None:
            return candidate
        candidate = f"{base}-{n}"
        n += 1


def _set_amenities(prop: Property, amenities: Iterable[Dict[str, Any]]) -> None:
    prop.amenities = [PropertyAmenity(**a) for a in amenities]


def _set_flags(prop: Property, flags: Iterable[str]) -> None:
    # keep surviving rows so the (property, flag) unique key never sees a delete+insert pair
    wanted = list(dict.fromkeys(flags))
    prop.flag_rows = [f for f in prop.flag_rows if f.flag in wanted]
    for flag in wanted:
        prop.add_flag(flag)


def create_property(db: Session, builder_id: int, data: Dict[str, Any]) -> Property:
    """`data` is a PropertyCreate dump in JSON mode."""
    amenities = data.pop("amenities", None) or []
    media = data.pop("media", None) or []
    flags = data.pop("flags", None) or []
    data.pop("builder_id", None)
    slug = data.pop("slug", None)

    prop = Property(public_id=generate_public_id("property"), builder_id=builder_id, **data)
    prop.slug = unique_slug(db, slug or prop.name)
    _set_amenities(prop, amenities)
    _set_flags(prop, flags)

    primary_seen = False
    for item in media:
        is_primary = bool(item.get("is_primary")) and not primary_seen
        primary_seen = primary_seen or is_primary
        prop.media.append(PropertyMedia(**{**item, "is_primary": is_primary}))

    db.add(prop)
    commit_or_409(db, "Slug already in use")
    db.refresh(prop)
    logger.info("Builder %s created property %s", builder_id, prop.id)
    return prop


def update_property(db: Session, prop: Property, data: Dict[str, Any]) -> Property:
    """`data` is a PropertyUpdate dump (exclude_unset) in JSON mode."""
    if "amenities" in data:
        _set_amenities(prop, data.pop("amenities") or [])
    if "flags" in data:
        _set_flags(prop, data.pop("flags") or [])
    name_changed = "name" in data and data["name"] != prop.name

    for key, value in data.items():
        setattr(prop, key, value)
    if name_changed:
        prop.slug = unique_slug(db, prop.name, exclude_id=prop.id)

    commit_or_409(db, "Slug already in use")
    db.refresh(prop)
    return prop


def approve_property(db: Session, prop: Property, admin_id: int) -> Property:
    prop.admin_approved = True
    prop.approved_by = admin_id
    prop.approved_at = datetime.utcnow()
    prop.rejection_reason = None
    prop.rejected_by = None
    prop.rejected_at = None
    db.commit()
    db.refresh(prop)
    logger.info("Admin %s approved property %s", admin_id, prop.id)
    notify_property_event(db, prop, "property_approved", sender_type="admin", sender_id=admin_id)
    return prop


def reject_property(db: Session, prop: Property, admin_id: int, reason: str) -> Property:
    prop.status = "inactive"
    prop.admin_approved = False
    prop.rejection_reason = reason
    prop.rejected_by = admin_id
    prop.rejected_at = datetime.utcnow()
    db.commit()
    db.refresh(prop)
    logger.info("Admin %s rejected property %s", admin_id, prop.id)
    notify_property_event(db, prop, "property_rejected", reason=reason, sender_type="admin", sender_id=admin_id)
    return prop


def increment_counter(db: Session, prop: Property, column: str) -> int:
    """Atomic +1 on views or inquiries; returns the new value."""
    db.query(Property).filter(Property.id == prop.id).update(
        {column: getattr(Property, column) + 1}, synchronize_session=False
    )
    db.commit()
    db.refresh(prop)
    return getattr(prop, column)


__all__ = [
    "SORT_COLUMNS",
    "public_listings",
    "apply_filters",
    "apply_sort",
    "with_flag",
    "nearby",
    "builder_stats",
    "unique_slug",
    "create_property",
    "update_property",
    "approve_property",
    "reject_property",
    "increment_counter",
]
