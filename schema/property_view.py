from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, AliasChoices

from schema.property import PropertySummary


class PropertyViewIn(BaseModel):
    property_id: int = Field(..., ge=1, validation_alias=AliasChoices("property_id", "propertyId", "property"))

    model_config = ConfigDict(populate_by_name=True)


class PropertyViewOut(BaseModel):
    id: int
    user_id: int
    property_id: int
    viewed_at: datetime
    property: Optional[PropertySummary] = None

    model_config = ConfigDict(from_attributes=True)


class ViewStatsOut(BaseModel):
    total_views: int
    unique_properties: int
    first_viewed_at: Optional[datetime] = None
    last_viewed_at: Optional[datetime] = None


class MostViewedOut(BaseModel):
    property: PropertySummary
    view_count: int
    first_viewed_at: datetime
    last_viewed_at: datetime


__all__ = ["PropertyViewIn", "PropertyViewOut", "ViewStatsOut", "MostViewedOut"]
