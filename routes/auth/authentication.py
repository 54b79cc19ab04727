# routes/auth/authentication.py
"""
User login, password reset and session endpoints.
"""
import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from config.db import get_db
from schema.auth import EmailIn, LoginIn, EmailOtpIn, ResetPasswordIn, RefreshIn, OtpSentOut, OtpVerifiedOut
from schema.common import AuthTokens, MessageOut
from schema.user import UserAuthOut
from src import auth_flows
from src.token_service import generate_auth_tokens, refresh_auth, logout as revoke_refresh_token


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/login",
    response_model=UserAuthOut,
    responses={401: {"description": "Incorrect email or password / Account is deactivated"}},
    openapi_extra={"security": []},
)
def login(body: LoginIn, db: Session = Depends(get_db)):
    user = auth_flows.login_with_password(db, "user", body.email, body.password)
    return {"user": user, "tokens": generate_auth_tokens(db, "user", user)}


@router.post("/login-with-otp", response_model=OtpSentOut, openapi_extra={"security": []})
def login_with_otp(body: LoginIn, db: Session = Depends(get_db)):
    user = auth_flows.start_otp_login(db, "user", body.email, body.password)
    return OtpSentOut(message="OTP sent to your email", email=user.email, user_id=user.id)


@router.post("/complete-login-otp", response_model=UserAuthOut, openapi_extra={"security": []})
def complete_login_otp(body: EmailOtpIn, db: Session = Depends(get_db)):
    user = auth_flows.complete_otp_login(db, "user", body.email, body.otp)
    return {"user": user, "tokens": generate_auth_tokens(db, "user", user)}


@router.post("/guest-login", response_model=UserAuthOut, openapi_extra={"security": []})
def guest_login(db: Session = Depends(get_db)):
    guest = auth_flows.create_guest(db)
    logger.info("Guest account %s created", guest.id)
    return {"user": guest, "tokens": generate_auth_tokens(db, "user", guest)}


# ----------------------------------------------------------------------------
# Password reset
# ----------------------------------------------------------------------------
@router.post("/forgot-password", response_model=OtpSentOut, openapi_extra={"security": []})
def forgot_password(body: EmailIn, db: Session = Depends(get_db)):
    user = auth_flows.forgot_password(db, "user", body.email)
    return OtpSentOut(message="Password reset OTP sent to your email", email=user.email)


@router.post("/verify-forgot-password-otp", response_model=OtpVerifiedOut, openapi_extra={"security": []})
def verify_forgot_password_otp(body: EmailOtpIn, db: Session = Depends(get_db)):
    user = auth_flows.verify_forgot_password_otp(db, "user", body.email, body.otp)
    return OtpVerifiedOut(message="OTP verified. You can now reset your password", email=user.email)


@router.post("/reset-password", response_model=MessageOut, openapi_extra={"security": []})
def reset_password(body: ResetPasswordIn, db: Session = Depends(get_db)):
    auth_flows.reset_password(db, "user", body.email, body.otp, body.new_password)
    return MessageOut(message="Password reset successfully")


# ----------------------------------------------------------------------------
# Sessions
# ----------------------------------------------------------------------------
@router.post(
    "/refresh-tokens",
    response_model=AuthTokens,
    responses={401: {"description": "Please authenticate"}},
    openapi_extra={"security": []},
)
def refresh_tokens(body: RefreshIn, db: Session = Depends(get_db)):
    return refresh_auth(db, body.refresh_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, openapi_extra={"security": []})
def logout(body: RefreshIn, db: Session = Depends(get_db)):
    revoke_refresh_token(db, body.refresh_token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
