# model/property/property.py
import re
from datetime import datetime
from sqlalchemy import (
    Column, String, Integer, Float, Text, JSON, ForeignKey, Boolean, DateTime, Index, UniqueConstraint
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship, validates

from model.base import Base
from model.custom_types import MyBIGINT


PROPERTY_TYPES = ("apartment", "villa", "plot", "commercial", "office", "shop", "warehouse", "other")
PROPERTY_STATUSES = ("draft", "active", "sold", "rented", "inactive", "archived")
AREA_UNITS = ("sqft", "sqm", "acre", "hectare")
PRICE_UNITS = ("lakh", "crore", "rupees")
MEDIA_TYPES = ("image", "video", "document", "floor_plan", "brochure")
AMENITY_CATEGORIES = ("basic", "lifestyle", "security", "parking", "maintenance", "other")
PROPERTY_FLAGS = ("featured", "new_launch", "premium", "best_seller", "limited_offer", "verified", "trending")

BHK_PATTERN = re.compile(r"^\d+\.?\d*\s*(BHK|RK|Studio)$", re.IGNORECASE)


def slugify(name: str) -> str:
    """'Sunrise Towers, Phase 2' -> 'sunrise-towers-phase-2'"""
    slug = re.sub(r"[^a-z0-9\s-]", "", (name or "").lower())
    slug = re.sub(r"[\s-]+", "-", slug).strip("-")
    return slug or "property"


class Property(Base):
    """A listing owned by exactly one builder."""

    __tablename__ = "properties"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    public_id = Column(String(50), unique=True, nullable=False, index=True)

    # Ownership
    builder_id = Column(MyBIGINT(unsigned=True), ForeignKey("builders.id", ondelete="CASCADE"), nullable=False, index=True)

    # Core details
    name = Column(String(200), nullable=False)
    type = Column(SAEnum(*PROPERTY_TYPES, name="property_type"), nullable=False)
    bhk = Column(String(32), nullable=False)
    area_value = Column(Float, nullable=False)
    area_unit = Column(SAEnum(*AREA_UNITS, name="property_area_unit"), nullable=False, default="sqft")
    price_value = Column(Float, nullable=False)
    price_unit = Column(SAEnum(*PRICE_UNITS, name="property_price_unit"), nullable=False, default="lakh")

    # Location
    city = Column(String(100), nullable=False)
    locality = Column(String(200), nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)
    address = Column(String(500))

    description = Column(Text)
    specifications = Column(JSON)
    availability = Column(JSON)
    contact = Column(JSON)

    # SEO
    seo_title = Column(String(60))
    seo_description = Column(String(160))
    seo_keywords = Column(JSON)
    slug = Column(String(255), unique=True, index=True)

    # Listing state / moderation
    status = Column(SAEnum(*PROPERTY_STATUSES, name="property_status"), nullable=False, default="draft")
    admin_approved = Column(Boolean, nullable=False, default=False)
    approved_by = Column(MyBIGINT(unsigned=True), ForeignKey("admins.id", ondelete="SET NULL"))
    approved_at = Column(DateTime)
    rejection_reason = Column(Text)
    rejected_by = Column(MyBIGINT(unsigned=True), ForeignKey("admins.id", ondelete="SET NULL"))
    rejected_at = Column(DateTime)
    quality_score = Column(Integer, nullable=False, default=0)

    # Counters
    views = Column(Integer, nullable=False, default=0)
    inquiries = Column(Integer, nullable=False, default=0)
    likes_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_properties_search", "status", "admin_approved", "city"),
        Index("ix_properties_geo", "latitude", "longitude"),
    )

    # Relationships
    builder = relationship("Builder", back_populates="properties")
    media = relationship("PropertyMedia", back_populates="property", cascade="all, delete-orphan", order_by="PropertyMedia.id")
    amenities = relationship("PropertyAmenity", back_populates="property", cascade="all, delete-orphan", order_by="PropertyAmenity.id")
    flag_rows = relationship("PropertyFlag", back_populates="property", cascade="all, delete-orphan", order_by="PropertyFlag.id")

    @validates("bhk")
    def _validate_bhk(self, key, value):
        if value is None or not BHK_PATTERN.match(value.strip()):
            raise ValueError("bhk must look like '2 BHK', '1 RK' or '1 Studio'")
        return value.strip()

    @validates("quality_score")
    def _validate_quality_score(self, key, value):
        if value is not None and not 0 <= value <= 100:
            raise ValueError("quality_score must be between 0 and 100")
        return value

    @property
    def flags(self) -> list:
        return [f.flag for f in self.flag_rows]

    def has_flag(self, flag: str) -> bool:
        return flag in self.flags

    def add_flag(self, flag: str) -> None:
        if not self.has_flag(flag):
            self.flag_rows.append(PropertyFlag(flag=flag))

    def remove_flag(self, flag: str) -> None:
        self.flag_rows = [f for f in self.flag_rows if f.flag != flag]

    @property
    def primary_image(self):
        return next((m for m in self.media if m.is_primary and m.type == "image"), None)

    def set_primary_media(self, media_id: int) -> None:
        for m in self.media:
            m.is_primary = m.id == media_id


class PropertyMedia(Base):
    __tablename__ = "property_media"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    property_id = Column(MyBIGINT(unsigned=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(SAEnum(*MEDIA_TYPES, name="property_media_type"), nullable=False)
    url = Column(String(1024), nullable=False)
    url_key = Column(String(512))
    caption = Column(String(200))
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    property = relationship("Property", back_populates="media")


class PropertyAmenity(Base):
    __tablename__ = "property_amenities"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    property_id = Column(MyBIGINT(unsigned=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(SAEnum(*AMENITY_CATEGORIES, name="property_amenity_category"), nullable=False, default="other")
    name = Column(String(100), nullable=False)
    description = Column(String(200))

    property = relationship("Property", back_populates="amenities")


class PropertyFlag(Base):
    __tablename__ = "property_flags"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    property_id = Column(MyBIGINT(unsigned=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    flag = Column(SAEnum(*PROPERTY_FLAGS, name="property_flag"), nullable=False)

    __table_args__ = (
        UniqueConstraint("property_id", "flag", name="uq_property_flag"),
        Index("ix_property_flags_flag", "flag"),
    )

    property = relationship("Property", back_populates="flag_rows")
