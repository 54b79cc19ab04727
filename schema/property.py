from __future__ import annotations

from datetime import datetime, date
from typing import List, Optional, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field, EmailStr, confloat, constr, field_validator

from model.property.property import BHK_PATTERN

PropertyType = Literal["apartment", "villa", "plot", "commercial", "office", "shop", "warehouse", "other"]
PropertyStatus = Literal["draft", "active", "sold", "rented", "inactive", "archived"]
AreaUnit = Literal["sqft", "sqm", "acre", "hectare"]
PriceUnit = Literal["lakh", "crore", "rupees"]
MediaType = Literal["image", "video", "document", "floor_plan", "brochure"]
AmenityCategory = Literal["basic", "lifestyle", "security", "parking", "maintenance", "other"]
PropertyFlagName = Literal["featured", "new_launch", "premium", "best_seller", "limited_offer", "verified", "trending"]
SortBy = Literal["price_asc", "price_desc", "area_asc", "area_desc", "views_desc", "created_desc"]

ContactPhone = constr(strip_whitespace=True, pattern=r"^[0-9+\-\s()]+$")


# ---------------------------------------------------------------------------
# Children
# ---------------------------------------------------------------------------
class AmenityIn(BaseModel):
    category: AmenityCategory = "other"
    name: constr(strip_whitespace=True, min_length=1, max_length=100)
    description: Optional[constr(strip_whitespace=True, max_length=200)] = None


class AmenityOut(AmenityIn):
    id: int

    model_config = ConfigDict(from_attributes=True)


class MediaIn(BaseModel):
    type: MediaType
    url: constr(strip_whitespace=True, min_length=1, max_length=1024)
    caption: Optional[constr(strip_whitespace=True, max_length=200)] = None
    is_primary: bool = False


class MediaUpdate(BaseModel):
    type: Optional[MediaType] = None
    caption: Optional[constr(strip_whitespace=True, max_length=200)] = None
    is_primary: Optional[bool] = None


class MediaOut(BaseModel):
    id: int
    type: str
    url: str
    url_key: Optional[str] = None
    caption: Optional[str] = None
    is_primary: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Availability(BaseModel):
    is_available: bool = True
    available_from: Optional[date] = None
    possession_date: Optional[date] = None


class Contact(BaseModel):
    phone: Optional[ContactPhone] = None
    email: Optional[EmailStr] = None
    whatsapp: Optional[ContactPhone] = None


# ---------------------------------------------------------------------------
# Property
# ---------------------------------------------------------------------------
class _BhkMixin(BaseModel):
    @field_validator("bhk", check_fields=False)
    @classmethod
    def _bhk(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not BHK_PATTERN.match(v.strip()):
            raise ValueError("bhk must look like '2 BHK', '1 RK' or '1 Studio'")
        return v.strip() if v is not None else v


class PropertyCreate(_BhkMixin):
    name: constr(strip_whitespace=True, min_length=1, max_length=200)
    type: PropertyType
    bhk: str
    area_value: confloat(ge=0)
    area_unit: AreaUnit = "sqft"
    price_value: confloat(ge=0)
    price_unit: PriceUnit = "lakh"

    city: constr(strip_whitespace=True, min_length=1, max_length=100)
    locality: constr(strip_whitespace=True, min_length=1, max_length=200)
    latitude: Optional[confloat(ge=-90, le=90)] = None
    longitude: Optional[confloat(ge=-180, le=180)] = None
    address: Optional[constr(strip_whitespace=True, max_length=500)] = None

    description: Optional[constr(strip_whitespace=True, max_length=2000)] = None
    specifications: Optional[Dict[str, str]] = None
    availability: Optional[Availability] = None
    contact: Optional[Contact] = None

    seo_title: Optional[constr(strip_whitespace=True, max_length=60)] = None
    seo_description: Optional[constr(strip_whitespace=True, max_length=160)] = None
    seo_keywords: Optional[List[str]] = None
    slug: Optional[constr(strip_whitespace=True, max_length=255)] = None

    status: PropertyStatus = "draft"
    amenities: List[AmenityIn] = Field(default_factory=list)
    media: List[MediaIn] = Field(default_factory=list)
    flags: List[PropertyFlagName] = Field(default_factory=list)

    # admins create on behalf of a builder
    builder_id: Optional[int] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Sunrise Towers",
            "type": "apartment",
            "bhk": "2 BHK",
            "area_value": 1150,
            "area_unit": "sqft",
            "price_value": 85,
            "price_unit": "lakh",
            "city": "Pune",
            "locality": "Baner",
        }
    })


class PropertyUpdate(_BhkMixin):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=200)] = None
    type: Optional[PropertyType] = None
    bhk: Optional[str] = None
    area_value: Optional[confloat(ge=0)] = None
    area_unit: Optional[AreaUnit] = None
    price_value: Optional[confloat(ge=0)] = None
    price_unit: Optional[PriceUnit] = None
    city: Optional[constr(strip_whitespace=True, min_length=1, max_length=100)] = None
    locality: Optional[constr(strip_whitespace=True, min_length=1, max_length=200)] = None
    latitude: Optional[confloat(ge=-90, le=90)] = None
    longitude: Optional[confloat(ge=-180, le=180)] = None
    address: Optional[constr(strip_whitespace=True, max_length=500)] = None
    description: Optional[constr(strip_whitespace=True, max_length=2000)] = None
    specifications: Optional[Dict[str, str]] = None
    availability: Optional[Availability] = None
    contact: Optional[Contact] = None
    seo_title: Optional[constr(strip_whitespace=True, max_length=60)] = None
    seo_description: Optional[constr(strip_whitespace=True, max_length=160)] = None
    seo_keywords: Optional[List[str]] = None
    status: Optional[PropertyStatus] = None
    quality_score: Optional[int] = Field(None, ge=0, le=100)
    amenities: Optional[List[AmenityIn]] = None
    flags: Optional[List[PropertyFlagName]] = None


class PropertySummary(BaseModel):
    id: int
    public_id: str
    name: str
    type: str
    bhk: str
    city: str
    locality: str
    price_value: float
    price_unit: str
    slug: Optional[str] = None
    status: str

    model_config = ConfigDict(from_attributes=True)


class PropertyOut(PropertySummary):
    builder_id: int
    area_value: float
    area_unit: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None
    description: Optional[str] = None
    specifications: Optional[Dict[str, str]] = None
    availability: Optional[Availability] = None
    contact: Optional[Contact] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: Optional[List[str]] = None
    admin_approved: bool = False
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    quality_score: int = 0
    views: int = 0
    inquiries: int = 0
    likes_count: int = 0
    media: List[MediaOut] = Field(default_factory=list)
    amenities: List[AmenityOut] = Field(default_factory=list)
    flags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RejectIn(BaseModel):
    reason: constr(strip_whitespace=True, min_length=1, max_length=1000)


class FlagIn(BaseModel):
    flag: PropertyFlagName


class BuilderPropertyStats(BaseModel):
    total: int
    active: int
    draft: int
    sold: int
    approved: int
    total_views: int
    total_inquiries: int


__all__ = [
    "AmenityIn",
    "AmenityOut",
    "MediaIn",
    "MediaUpdate",
    "MediaOut",
    "Availability",
    "Contact",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertySummary",
    "PropertyOut",
    "RejectIn",
    "FlagIn",
    "BuilderPropertyStats",
    "SortBy",
]
