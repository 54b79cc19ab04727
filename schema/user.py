from datetime import datetime
from typing import Optional, Dict, Any, List, Literal
from pydantic import BaseModel, EmailStr, ConfigDict, Field, AliasChoices, field_validator

from schema.common import AuthTokens
from src.utils import check_password_strength, check_phone


class UserPermissions(BaseModel):
    new_properties: bool = True
    visit_confirmation: bool = True
    visit_reminder: bool = True
    release_messages: bool = True


class UserOut(BaseModel):
    id: int
    public_id: str
    name: Optional[str] = None
    email: str
    contact_number: Optional[str] = None
    city_of_interest: Optional[str] = None
    image: Optional[str] = None
    role: str
    account_type: str
    is_email_verified: bool = False
    is_phone_verified: bool = False
    is_otp_verified: bool = False
    registration_status: str
    preferences: Optional[Dict[str, Any]] = None
    permissions: UserPermissions
    rera_number: Optional[str] = None
    state: Optional[str] = None
    agency_name: Optional[str] = None
    years_of_experience: Optional[int] = None
    is_active: bool = True
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserAuthOut(BaseModel):
    user: UserOut
    tokens: AuthTokens


class _PhoneMixin(BaseModel):
    @field_validator("contact_number", check_fields=False)
    @classmethod
    def _phone(cls, v: Optional[str]) -> Optional[str]:
        return check_phone(v)


class UserCreate(_PhoneMixin):
    """Admin-side create."""
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    password: str
    role: Literal["user", "agent"] = "user"
    contact_number: Optional[str] = None
    city_of_interest: Optional[str] = None

    @field_validator("password")
    @classmethod
    def _strong(cls, v: str) -> str:
        return check_password_strength(v)


class UserUpdate(_PhoneMixin):
    """Admin-side update. Every field optional."""
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    email: Optional[EmailStr] = None
    role: Optional[Literal["user", "agent", "guest"]] = None
    contact_number: Optional[str] = None
    city_of_interest: Optional[str] = None
    image: Optional[str] = None
    is_active: Optional[bool] = None
    is_email_verified: Optional[bool] = None
    rera_number: Optional[str] = None
    state: Optional[str] = None
    agency_name: Optional[str] = None
    years_of_experience: Optional[int] = Field(None, ge=0, le=80)


class ProfileUpdate(_PhoneMixin):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    contact_number: Optional[str] = Field(None, validation_alias=AliasChoices("contact_number", "contactNumber"))
    city_of_interest: Optional[str] = Field(None, validation_alias=AliasChoices("city_of_interest", "cityOfInterest"))
    image: Optional[str] = None
    rera_number: Optional[str] = None
    state: Optional[str] = None
    agency_name: Optional[str] = None
    years_of_experience: Optional[int] = Field(None, ge=0, le=80)

    model_config = ConfigDict(populate_by_name=True)


class PreferencesIn(BaseModel):
    preferences: Optional[Dict[str, Any]] = None
    permissions: Optional[UserPermissions] = None


class PreferencesOut(BaseModel):
    preferences: Optional[Dict[str, Any]] = None
    permissions: UserPermissions


class UserStatsOut(BaseModel):
    total: int
    active: int
    inactive: int
    guests: int
    agents: int
    verified: int
    completed_registrations: int


# ---------------------------------------------------------------------------
# Shortlist
# ---------------------------------------------------------------------------
class ShortlistIn(BaseModel):
    property_id: int = Field(..., ge=1, validation_alias=AliasChoices("property_id", "propertyId"))

    model_config = ConfigDict(populate_by_name=True)


class ShortlistCheckOut(BaseModel):
    property_id: int
    is_shortlisted: bool


__all__ = [
    "UserPermissions",
    "UserOut",
    "UserAuthOut",
    "UserCreate",
    "UserUpdate",
    "ProfileUpdate",
    "PreferencesIn",
    "PreferencesOut",
    "UserStatsOut",
    "ShortlistIn",
    "ShortlistCheckOut",
]
