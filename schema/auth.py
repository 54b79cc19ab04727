# schema/auth.py
from __future__ import annotations
from typing import Optional, Literal, Dict, Any, Annotated
from pydantic import BaseModel, Field, EmailStr, AliasChoices, field_validator
from pydantic.config import ConfigDict

from src.utils import check_password_strength, check_phone

OtpCode = Annotated[str, Field(pattern=r"^\d{6}$", description="6-digit one-time code")]


class EmailIn(BaseModel):
    email: EmailStr


class CheckEmailOut(BaseModel):
    exists: bool
    message: str


class SendOtpIn(BaseModel):
    email: EmailStr
    # checked by the route so unknown types get 400 "Invalid OTP type"
    type: str = "email_verification"

    model_config = ConfigDict(json_schema_extra={
        "example": {"email": "jane@example.com", "type": "registration"}
    })


class VerifyOtpIn(BaseModel):
    email: EmailStr
    otp: OtpCode
    type: str = "email_verification"


class EmailOtpIn(BaseModel):
    email: EmailStr
    otp: OtpCode


class PasswordIn(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def _strong(cls, v: str) -> str:
        return check_password_strength(v)


class LoginIn(BaseModel):
    email: EmailStr
    password: str

    model_config = ConfigDict(json_schema_extra={
        "example": {"email": "jane@example.com", "password": "secret123"}
    })


class RegisterIn(PasswordIn):
    email: EmailStr
    role: Literal["user", "agent"] = "user"
    name: Optional[str] = Field(None, max_length=120)


class CreatePasswordIn(PasswordIn):
    email: EmailStr
    role: Literal["user", "agent"] = "user"


class CompleteRegistrationIn(BaseModel):
    user_id: int = Field(..., validation_alias=AliasChoices("user_id", "userId"))
    name: str = Field(..., min_length=1, max_length=120)
    contact_number: str = Field(..., validation_alias=AliasChoices("contact_number", "contactNumber"))
    city_of_interest: str = Field(..., validation_alias=AliasChoices("city_of_interest", "cityOfInterest"))
    image: Optional[str] = None
    preferences: Optional[Dict[str, Any]] = None

    # agent details
    rera_number: Optional[str] = Field(None, validation_alias=AliasChoices("rera_number", "reraNumber"))
    state: Optional[str] = None
    agency_name: Optional[str] = Field(None, validation_alias=AliasChoices("agency_name", "agencyName"))
    years_of_experience: Optional[int] = Field(
        None, ge=0, le=80, validation_alias=AliasChoices("years_of_experience", "yearsOfExperience")
    )

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("contact_number")
    @classmethod
    def _phone(cls, v: str) -> str:
        return check_phone(v)


class ResetPasswordIn(BaseModel):
    email: EmailStr
    otp: OtpCode
    new_password: str = Field(..., validation_alias=AliasChoices("new_password", "newPassword"))

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("new_password")
    @classmethod
    def _strong(cls, v: str) -> str:
        return check_password_strength(v)


class ChangePasswordIn(BaseModel):
    current_password: str = Field(..., validation_alias=AliasChoices("current_password", "currentPassword"))
    new_password: str = Field(..., validation_alias=AliasChoices("new_password", "newPassword"))

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("new_password")
    @classmethod
    def _strong(cls, v: str) -> str:
        return check_password_strength(v)


class RefreshIn(BaseModel):
    refresh_token: str = Field(..., validation_alias=AliasChoices("refresh_token", "refreshToken"))

    model_config = ConfigDict(populate_by_name=True)


class OtpSentOut(BaseModel):
    message: str
    email: str
    user_id: Optional[int] = None
    role: Optional[str] = None


class OtpVerifiedOut(BaseModel):
    message: str
    email: str
    verified: bool = True
    user_id: Optional[int] = None


__all__ = [
    "EmailIn",
    "CheckEmailOut",
    "SendOtpIn",
    "VerifyOtpIn",
    "EmailOtpIn",
    "LoginIn",
    "RegisterIn",
    "CreatePasswordIn",
    "CompleteRegistrationIn",
    "ResetPasswordIn",
    "ChangePasswordIn",
    "RefreshIn",
    "OtpSentOut",
    "OtpVerifiedOut",
]
