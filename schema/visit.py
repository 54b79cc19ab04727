from __future__ import annotations

from datetime import date as date_type, datetime
from typing import Optional, List, Literal

from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator

from schema.property import PropertySummary
from src.visit_service import normalize_time

VisitStatus = Literal["scheduled", "confirmed", "completed", "cancelled", "rescheduled"]


class _TimeMixin(BaseModel):
    @field_validator("time", check_fields=False)
    @classmethod
    def _time(cls, v: Optional[str]) -> Optional[str]:
        return normalize_time(v) if v is not None else v


class VisitCreate(_TimeMixin):
    property_id: int = Field(..., ge=1, validation_alias=AliasChoices("property_id", "propertyId"))
    date: date_type
    time: str = Field(..., description="HH:MM AM/PM")
    # admins may book on behalf of a user
    user_id: Optional[int] = Field(None, validation_alias=AliasChoices("user_id", "userId"))

    model_config = ConfigDict(populate_by_name=True, json_schema_extra={
        "example": {"property_id": 1, "date": "2030-01-10", "time": "10:00 AM"}
    })


class VisitUpdate(_TimeMixin):
    date: Optional[date_type] = None
    time: Optional[str] = None
    status: Optional[VisitStatus] = None


class RescheduleIn(_TimeMixin):
    date: date_type
    time: str


class VisitOut(BaseModel):
    id: int
    user_id: int
    property_id: int
    date: date_type
    time: str
    status: VisitStatus
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    rescheduled_at: Optional[datetime] = None
    rescheduled_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    property: Optional[PropertySummary] = None

    model_config = ConfigDict(from_attributes=True)


class AvailabilityOut(BaseModel):
    property_id: int
    date: date_type
    time: str
    available: bool


class SlotsOut(BaseModel):
    property_id: int
    date: date_type
    slots: List[str]


class ScheduledPropertyOut(BaseModel):
    property: PropertySummary
    visits: List[VisitOut]


class VisitStatsOut(BaseModel):
    scheduled: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0
    rescheduled: int = 0
    total: int = 0


__all__ = [
    "VisitCreate",
    "VisitUpdate",
    "RescheduleIn",
    "VisitOut",
    "AvailabilityOut",
    "SlotsOut",
    "ScheduledPropertyOut",
    "VisitStatsOut",
]
