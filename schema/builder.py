from __future__ import annotations

from datetime import datetime
from typing import Optional, List, Dict, Literal, Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, AliasChoices, constr, field_validator

from schema.common import AuthTokens
from src.utils import check_password_strength, check_phone

BuilderStatus = Literal["draft", "submitted", "approved", "rejected"]
DocumentType = Literal["document", "license", "certificate", "registration"]


class AdminDecision(BaseModel):
    status: str
    notes: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None


class TeamMemberPermissions(BaseModel):
    dashboard: bool = True
    my_properties: bool = True
    analytics: bool = True
    messages: bool = True
    my_profile: bool = True
    users: bool = True


class TeamMemberOut(BaseModel):
    id: int
    builder_id: int
    name: str
    email: str
    role: str
    navigation_permissions: TeamMemberPermissions
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DocumentOut(BaseModel):
    id: int
    document_type: str
    url: str
    url_key: Optional[str] = None
    file_name: Optional[str] = None
    content_type: Optional[str] = None
    size: Optional[int] = None
    uploaded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BuilderOut(BaseModel):
    id: int
    public_id: str
    name: Optional[str] = None
    email: str
    contact_info: Optional[str] = None
    address: Optional[str] = None
    company: Optional[str] = None
    city: Optional[str] = None
    logo: Optional[str] = None
    rera_registration_id: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    status: BuilderStatus
    admin_decision: Optional[AdminDecision] = None
    is_otp_verified: bool = False
    is_active: bool = True
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BuilderAuthOut(BaseModel):
    builder: BuilderOut
    tokens: AuthTokens


class TeamMemberAuthOut(BaseModel):
    team_member: TeamMemberOut
    builder: BuilderOut
    tokens: AuthTokens


class _ProfileFields(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    contact_info: Optional[str] = None
    address: Optional[str] = None
    company: Optional[constr(strip_whitespace=True, max_length=255)] = None
    city: Optional[constr(strip_whitespace=True, max_length=120)] = None
    logo: Optional[str] = None
    rera_registration_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("rera_registration_id", "reraRegistrationId")
    )
    contact_person: Optional[str] = Field(None, validation_alias=AliasChoices("contact_person", "contactPerson"))
    phone: Optional[str] = None
    website: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: Optional[str]) -> Optional[str]:
        return check_phone(v)


class BuilderRegisterIn(_ProfileFields):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def _strong(cls, v: str) -> str:
        return check_password_strength(v)


class BuilderCreate(BuilderRegisterIn):
    """Admin-side create."""
    status: BuilderStatus = "draft"


class BuilderProfileUpdate(_ProfileFields):
    pass


class BuilderUpdate(_ProfileFields):
    """Admin-side update; status is moved only through the review endpoints."""
    email: Optional[EmailStr] = None
    is_active: Optional[bool] = None


class BuilderCreatePasswordIn(BaseModel):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def _strong(cls, v: str) -> str:
        return check_password_strength(v)


class BuilderCompleteRegistrationIn(_ProfileFields):
    builder_id: int = Field(..., validation_alias=AliasChoices("builder_id", "builderId"))
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    company: constr(strip_whitespace=True, min_length=1, max_length=255)


class DecisionIn(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)


class BuilderStatsOut(BaseModel):
    total: int
    active: int
    inactive: int
    by_status: Dict[str, int]


# ---------------------------------------------------------------------------
# Team members
# ---------------------------------------------------------------------------
class TeamMemberCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    email: EmailStr
    password: str
    role: constr(strip_whitespace=True, min_length=1, max_length=64) = "team_member"
    navigation_permissions: Optional[Dict[str, Any]] = None

    @field_validator("password")
    @classmethod
    def _strong(cls, v: str) -> str:
        return check_password_strength(v)


class TeamMemberUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: Optional[constr(strip_whitespace=True, min_length=1, max_length=64)] = None
    navigation_permissions: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None

    @field_validator("password")
    @classmethod
    def _strong(cls, v: Optional[str]) -> Optional[str]:
        return check_password_strength(v) if v is not None else v


class TeamMemberLoginIn(BaseModel):
    builder_id: int = Field(..., validation_alias=AliasChoices("builder_id", "builderId"))
    email: EmailStr
    password: str

    model_config = ConfigDict(populate_by_name=True)


__all__ = [
    "AdminDecision",
    "TeamMemberPermissions",
    "TeamMemberOut",
    "DocumentOut",
    "BuilderOut",
    "BuilderAuthOut",
    "TeamMemberAuthOut",
    "BuilderRegisterIn",
    "BuilderCreate",
    "BuilderProfileUpdate",
    "BuilderUpdate",
    "BuilderCreatePasswordIn",
    "BuilderCompleteRegistrationIn",
    "DecisionIn",
    "BuilderStatsOut",
    "TeamMemberCreate",
    "TeamMemberUpdate",
    "TeamMemberLoginIn",
]
