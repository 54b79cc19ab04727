from datetime import datetime
from typing import Optional, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from schema.common import AuthTokens
from src.utils import check_password_strength

AdminRole = Literal["admin", "super_admin"]


class AdminOut(BaseModel):
    id: int
    public_id: str
    email: str
    name: str
    role_name: AdminRole
    navigation_permissions: Dict[str, bool]
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AdminAuthOut(BaseModel):
    admin: AdminOut
    tokens: AuthTokens


class AdminLoginIn(BaseModel):
    email: EmailStr
    password: str


class AdminCreate(BaseModel):
    email: EmailStr
    password: str
    name: str = Field(..., min_length=1, max_length=255)
    role_name: AdminRole = "admin"
    navigation_permissions: Optional[Dict[str, bool]] = None

    @field_validator("password")
    @classmethod
    def _strong(cls, v: str) -> str:
        return check_password_strength(v)


class AdminUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    role_name: Optional[AdminRole] = None
    password: Optional[str] = None
    is_active: Optional[bool] = None
    navigation_permissions: Optional[Dict[str, bool]] = None

    @field_validator("password")
    @classmethod
    def _strong(cls, v: Optional[str]) -> Optional[str]:
        return check_password_strength(v) if v is not None else v


class AdminProfileUpdate(BaseModel):
    """Self-service update. password, permissions and is_active are dropped."""
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)

    model_config = ConfigDict(extra="ignore")


class NavigationPermissionsIn(BaseModel):
    # unknown keys and non-boolean values are ignored by the model
    permissions: Dict[str, object]


class PermissionCheckOut(BaseModel):
    permission: str
    has_permission: bool


class EnabledPermissionsOut(BaseModel):
    permissions: List[str]


class AdminStatsOut(BaseModel):
    total: int
    active: int
    inactive: int
    super_admins: int
    regular_admins: int
    recent_logins: int


__all__ = [
    "AdminOut",
    "AdminAuthOut",
    "AdminLoginIn",
    "AdminCreate",
    "AdminUpdate",
    "AdminProfileUpdate",
    "NavigationPermissionsIn",
    "PermissionCheckOut",
    "EnabledPermissionsOut",
    "AdminStatsOut",
]
