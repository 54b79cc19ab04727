import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import get_principal, get_principal_optional, require_admin
from config.security import Principal

# Schemas (Pydantic)
from schema.common import Page
from schema.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyOut,
    PropertySummary,
    PropertyType,
    MediaIn,
    MediaUpdate,
    MediaOut,
    MediaType,
    FlagIn,
    PropertyFlagName,
    RejectIn,
    BuilderPropertyStats,
    SortBy,
)

# Models (SQLAlchemy)
from model.profiles.admin import Admin
from model.profiles.builder import Builder
from model.property.property import Property, PropertyMedia
from src import property_service
from src.notification_service import notify_property_event
from src.route_helpers import get_or_404, paginate
from src.storage import UploadRejected, check_media_upload, safe_filename, get_storage_backend

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/properties", tags=["Properties"])


def _get_property(db: Session, property_id: int) -> Property:
    return get_or_404(db, Property, property_id, "Property not found")


def _get_managed_property(db: Session, property_id: int, principal: Principal) -> Property:
    """The property, if the caller is its builder or an admin."""
    prop = _get_property(db, property_id)
    if principal.is_admin:
        return prop
    if principal.account_type == "builder" and prop.builder_id == principal.id:
        return prop
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only modify your own properties")


def _can_manage_builder(principal: Optional[Principal], builder_id: int) -> bool:
    return principal is not None and (principal.is_admin or principal.owns("builder", builder_id))


# ----------------------------------------------------------------------------
# Create
# ----------------------------------------------------------------------------
@router.post("/", response_model=PropertyOut, status_code=status.HTTP_201_CREATED)
def create_property(
    payload: PropertyCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Create a listing owned by the calling builder (admins pass `builder_id`)."""
    if principal.account_type == "builder":
        builder_id = principal.id
    elif principal.is_admin:
        if payload.builder_id is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="builder_id is required")
        builder_id = get_or_404(db, Builder, payload.builder_id, "Builder not found").id
    else:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only builders can create properties")

    return property_service.create_property(db, builder_id, payload.model_dump(mode="json"))


# ----------------------------------------------------------------------------
# Read (list with filters)
# ----------------------------------------------------------------------------
@router.get("/", response_model=Page[PropertySummary])
def list_properties(
    builder_id: Optional[int] = None,
    type: Optional[PropertyType] = None,
    city: Optional[str] = None,
    locality: Optional[str] = None,
    bhk: Optional[str] = None,
    status_: Optional[str] = Query(None, alias="status"),
    admin_approved: Optional[bool] = Query(None, alias="adminApproved"),
    flags: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    min_area: Optional[float] = Query(None, alias="minArea"),
    max_area: Optional[float] = Query(None, alias="maxArea"),
    sort_by: Optional[SortBy] = Query(None, alias="sortBy"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = property_service.apply_filters(
        db.query(Property),
        builder_id=builder_id, type=type, city=city, locality=locality, bhk=bhk,
        status_=status_, admin_approved=admin_approved, flags=flags,
        min_price=min_price, max_price=max_price, min_area=min_area, max_area=max_area,
    )
    return paginate(property_service.apply_sort(query, sort_by), page, limit)


@router.get("/search", response_model=Page[PropertySummary], openapi_extra={"security": []})
def search_properties(
    q: Optional[str] = None,
    city: Optional[str] = None,
    locality: Optional[str] = None,
    type: Optional[PropertyType] = None,
    bhk: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    min_area: Optional[float] = Query(None, alias="minArea"),
    max_area: Optional[float] = Query(None, alias="maxArea"),
    amenities: Optional[str] = Query(None, description="Comma-separated amenity names"),
    flags: Optional[str] = Query(None, description="Comma-separated flags"),
    sort_by: Optional[SortBy] = Query(None, alias="sortBy"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Search active, admin-approved listings."""
    query = property_service.apply_filters(
        property_service.public_listings(db),
        q=q, city=city, locality=locality, type=type, bhk=bhk,
        min_price=min_price, max_price=max_price, min_area=min_area, max_area=max_area,
        amenities=amenities, flags=flags,
    )
    return paginate(property_service.apply_sort(query, sort_by), page, limit)


@router.get("/featured", response_model=List[PropertySummary])
def featured_properties(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return property_service.with_flag(db, "featured", limit)


@router.get("/trending", response_model=List[PropertySummary])
def trending_properties(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return property_service.with_flag(db, "trending", limit, order=Property.views.desc())


@router.get("/new-launch", response_model=List[PropertySummary])
def new_launch_properties(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return property_service.with_flag(db, "new_launch", limit)


@router.get("/type/{property_type}", response_model=Page[PropertySummary])
def properties_by_type(
    property_type: PropertyType,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = property_service.public_listings(db).filter(Property.type == property_type)
    return paginate(property_service.apply_sort(query, None), page, limit)


@router.get("/city/{city}", response_model=Page[PropertySummary])
def properties_by_city(
    city: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = property_service.public_listings(db).filter(Property.city.ilike(city))
    return paginate(property_service.apply_sort(query, None), page, limit)


@router.get("/slug/{slug}", response_model=PropertyOut)
def property_by_slug(slug: str, db: Session = Depends(get_db)):
    prop = db.query(Property).filter(Property.slug == slug).first()
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


@router.get("/builder/{builder_id}", response_model=Page[PropertySummary])
def properties_by_builder(
    builder_id: int,
    status_: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_principal_optional),
):
    """Everything for the builder itself and admins; public listings for anyone else."""
    if _can_manage_builder(principal, builder_id):
        query = db.query(Property).filter(Property.builder_id == builder_id)
        if status_:
            query = query.filter(Property.status == status_)
    else:
        query = property_service.public_listings(db).filter(Property.builder_id == builder_id)
    return paginate(property_service.apply_sort(query, None), page, limit)


@router.get("/builder/{builder_id}/stats", response_model=BuilderPropertyStats)
def builder_property_stats(builder_id: int, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    if not _can_manage_builder(principal, builder_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return property_service.builder_stats(db, builder_id)


# ----------------------------------------------------------------------------
# Read (by id)
# ----------------------------------------------------------------------------
@router.get("/{property_id}/nearby", response_model=List[PropertySummary])
def nearby_properties(
    property_id: int,
    radius: float = Query(5, gt=0, le=100, description="Radius in km"),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return property_service.nearby(db, _get_property(db, property_id), radius, limit)


@router.get("/{property_id}", response_model=PropertyOut)
def get_property(property_id: int, db: Session = Depends(get_db)):
    return _get_property(db, property_id)


# ----------------------------------------------------------------------------
# Update / delete
# ----------------------------------------------------------------------------
@router.patch("/{property_id}", response_model=PropertyOut)
def update_property(
    property_id: int,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    prop = _get_managed_property(db, property_id, principal)
    data = payload.model_dump(mode="json", exclude_unset=True)
    if not principal.is_admin:
        # moderation fields stay with admins
        data.pop("quality_score", None)
    return property_service.update_property(db, prop, data)


@router.delete("/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_property(property_id: int, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    prop = _get_managed_property(db, property_id, principal)
    db.delete(prop)
    db.commit()
    logger.info("Property %s deleted by %s %s", property_id, principal.account_type, principal.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----------------------------------------------------------------------------
# Media
# ----------------------------------------------------------------------------
def _get_media(prop: Property, media_id: int) -> PropertyMedia:
    media = next((m for m in prop.media if m.id == media_id), None)
    if media is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Media not found")
    return media


def _attach_media(db: Session, prop: Property, media: PropertyMedia) -> PropertyMedia:
    prop.media.append(media)
    db.flush()
    if media.is_primary:
        prop.set_primary_media(media.id)
    db.commit()
    db.refresh(media)
    return media


@router.post("/{property_id}/media", response_model=MediaOut, status_code=status.HTTP_201_CREATED)
def add_media(
    property_id: int,
    payload: MediaIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    prop = _get_managed_property(db, property_id, principal)
    return _attach_media(db, prop, PropertyMedia(**payload.model_dump()))


@router.post(
    "/{property_id}/media/upload",
    response_model=MediaOut,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid file type or file too large"}},
)
async def upload_media(
    property_id: int,
    file: UploadFile = File(...),
    media_type: MediaType = Form("image"),
    caption: Optional[str] = Form(None),
    is_primary: bool = Form(False),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    prop = _get_managed_property(db, property_id, principal)
    content = await file.read()
    try:
        check_media_upload(media_type, file.content_type, len(content))
    except UploadRejected as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await file.seek(0)
    path, url = await get_storage_backend().save(
        file.file,
        safe_filename(prop.public_id, file.filename),
        file.content_type,
        owner_id=prop.public_id,
        entity_field=media_type,
    )
    media = PropertyMedia(type=media_type, url=url, url_key=path, caption=caption, is_primary=is_primary)
    return _attach_media(db, prop, media)


@router.patch("/{property_id}/media/{media_id}", response_model=MediaOut)
def update_media(
    property_id: int,
    media_id: int,
    payload: MediaUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    prop = _get_managed_property(db, property_id, principal)
    media = _get_media(prop, media_id)
    data = payload.model_dump(exclude_unset=True)
    if data.pop("is_primary", None):
        prop.set_primary_media(media.id)
    elif payload.is_primary is False:
        media.is_primary = False
    for key, value in data.items():
        setattr(media, key, value)
    db.commit()
    db.refresh(media)
    return media


@router.delete("/{property_id}/media/{media_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_media(
    property_id: int,
    media_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    prop = _get_managed_property(db, property_id, principal)
    media = _get_media(prop, media_id)
    if media.url_key:
        await get_storage_backend().delete(media.url_key)
    prop.media.remove(media)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----------------------------------------------------------------------------
# Flags
# ----------------------------------------------------------------------------
@router.post("/{property_id}/flags", response_model=PropertyOut)
def add_flag(property_id: int, payload: FlagIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    prop = _get_managed_property(db, property_id, principal)
    prop.add_flag(payload.flag)
    db.commit()
    db.refresh(prop)
    return prop


@router.delete("/{property_id}/flags/{flag}", response_model=PropertyOut)
def remove_flag(
    property_id: int,
    flag: PropertyFlagName,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    prop = _get_managed_property(db, property_id, principal)
    prop.remove_flag(flag)
    db.commit()
    db.refresh(prop)
    return prop


# ----------------------------------------------------------------------------
# Counters
# ----------------------------------------------------------------------------
@router.post("/{property_id}/views")
def increment_views(property_id: int, db: Session = Depends(get_db)):
    prop = _get_property(db, property_id)
    return {"id": prop.id, "views": property_service.increment_counter(db, prop, "views")}


@router.post("/{property_id}/inquiries")
def increment_inquiries(
    property_id: int,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_principal_optional),
):
    prop = _get_property(db, property_id)
    count = property_service.increment_counter(db, prop, "inquiries")
    sender_type, sender_id = ("user", principal.id) if principal and principal.account_type == "user" else ("system", None)
    notify_property_event(db, prop, "user_inquiry", sender_type=sender_type, sender_id=sender_id)
    return {"id": prop.id, "inquiries": count}


# ----------------------------------------------------------------------------
# Moderation
# ----------------------------------------------------------------------------
@router.post("/{property_id}/approve", response_model=PropertyOut)
def approve_property(property_id: int, db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    return property_service.approve_property(db, _get_property(db, property_id), admin.id)


@router.post("/{property_id}/reject", response_model=PropertyOut)
def reject_property(
    property_id: int,
    payload: RejectIn,
    db: Session = Depends(get_db),
    admin: Admin = Depends(require_admin),
):
    return property_service.reject_property(db, _get_property(db, property_id), admin.id, payload.reason)
