# routes/auth/registration.py
"""
User registration: email check, one-time codes, password and profile steps.
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from config.db import get_db
from schema.auth import (
    EmailIn, CheckEmailOut, SendOtpIn, VerifyOtpIn, EmailOtpIn,
    RegisterIn, CreatePasswordIn, CompleteRegistrationIn,
    OtpSentOut, OtpVerifiedOut,
)
from schema.user import UserOut, UserAuthOut
from src import auth_flows
from src.token_service import generate_auth_tokens


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/check-email", response_model=CheckEmailOut, openapi_extra={"security": []})
def check_email(body: EmailIn, db: Session = Depends(get_db)):
    return auth_flows.check_email(db, "user", body.email)


@router.post(
    "/send-otp",
    response_model=OtpSentOut,
    responses={
        400: {"description": "Invalid OTP type"},
        404: {"description": "User not found"},
        409: {"description": "User already exists with this email"},
        429: {"description": "Too many OTP requests"},
    },
    openapi_extra={"security": []},
)
def send_otp(body: SendOtpIn, db: Session = Depends(get_db)):
    user = auth_flows.send_otp(db, "user", body.email, body.type)
    return OtpSentOut(message="OTP sent to your email", email=user.email, user_id=user.id)


@router.post("/resend-otp", response_model=OtpSentOut, openapi_extra={"security": []})
def resend_otp(body: SendOtpIn, db: Session = Depends(get_db)):
    # registration resends go to the partial account that already exists
    otp_type = "email_verification" if body.type == "registration" else body.type
    user = auth_flows.send_otp(db, "user", body.email, otp_type)
    return OtpSentOut(message="OTP resent to your email", email=user.email, user_id=user.id)


@router.post("/verify-otp", response_model=OtpVerifiedOut, openapi_extra={"security": []})
def verify_otp(body: VerifyOtpIn, db: Session = Depends(get_db)):
    user = auth_flows.verify_otp_code(db, "user", body.email, body.otp, body.type)
    return OtpVerifiedOut(message="OTP verified successfully", email=user.email, user_id=user.id)


@router.post(
    "/register-with-otp",
    response_model=OtpSentOut,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Email already taken"}},
    openapi_extra={"security": []},
)
def register_with_otp(body: RegisterIn, db: Session = Depends(get_db)):
    user = auth_flows.register_with_otp(db, "user", body.email, body.password, role=body.role, name=body.name)
    logger.info("User %s registered, OTP sent", user.id)
    return OtpSentOut(
        message="Registration successful. Please verify the OTP sent to your email",
        email=user.email,
        user_id=user.id,
        role=user.role,
    )


@router.post("/verify-registration-otp", response_model=UserOut, openapi_extra={"security": []})
def verify_registration_otp(body: EmailOtpIn, db: Session = Depends(get_db)):
    return auth_flows.verify_registration_otp(db, "user", body.email, body.otp)


@router.post(
    "/create-password",
    response_model=UserOut,
    responses={
        400: {"description": "Please verify OTP first"},
        404: {"description": "User not found"},
        409: {"description": "Registration already completed"},
    },
    openapi_extra={"security": []},
)
def create_password(body: CreatePasswordIn, db: Session = Depends(get_db)):
    return auth_flows.create_password(db, "user", body.email, body.password, role=body.role)


@router.post("/complete-registration", response_model=UserAuthOut, openapi_extra={"security": []})
def complete_registration(body: CompleteRegistrationIn, db: Session = Depends(get_db)):
    profile = body.model_dump(exclude={"user_id"}, exclude_none=True)
    user = auth_flows.complete_registration(db, "user", body.user_id, profile)
    return {"user": user, "tokens": generate_auth_tokens(db, "user", user)}
