# src/otp_service.py
"""
One-time codes for email verification, login and password reset.

A code is a 6-digit number embedded in a short-lived JWT that is stored in
`tokens`. Request rate (per hour) and failed verification attempts are kept
in the database (`otp_requests`, `otp_attempts`), not in process memory.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

import jwt
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.settings import (
    OTP_TTL_MIN,
    OTP_MAX_REQUESTS_PER_HOUR,
    OTP_MAX_ATTEMPTS,
    OTP_ATTEMPT_WINDOW_MIN,
)
from model.token import Token, TokenType, OtpRequest, OtpAttempt
from src.email_service import get_email_service
from src.token_service import ACCOUNT_MODELS
from src.utils import gen_otp_code, make_otp_token, decode_token

logger = logging.getLogger(__name__)

OTP_TYPES = {
    "email_verification": TokenType.EMAIL_OTP,
    "password_reset": TokenType.PASSWORD_RESET_OTP,
}

TOO_MANY_REQUESTS = "Too many OTP requests. Please try again later."
TOO_MANY_ATTEMPTS = "Too many OTP verification attempts. Please try again later."


def otp_token_type(otp_type: str) -> str:
    try:
        return OTP_TYPES[otp_type]
    except KeyError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OTP type")


# ---------------------------------------------------------------------------
# Rate limit / attempt counters
# ---------------------------------------------------------------------------
def check_rate_limit(db: Session, account_type: str, email: str) -> None:
    window_start = datetime.utcnow() - timedelta(hours=1)
    sent = (
        db.query(OtpRequest)
        .filter(
            OtpRequest.account_type == account_type,
            OtpRequest.email == email,
            OtpRequest.requested_at >= window_start,
        )
        .count()
    )
    if sent >= OTP_MAX_REQUESTS_PER_HOUR:
        logger.info("OTP rate limit hit for %s:%s", account_type, email)
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=TOO_MANY_REQUESTS)


def _attempt_row(db: Session, account_type: str, email: str, otp_type: str) -> Optional[OtpAttempt]:
    row = (
        db.query(OtpAttempt)
        .filter(
            OtpAttempt.account_type == account_type,
            OtpAttempt.email == email,
            OtpAttempt.otp_type == otp_type,
        )
        .first()
    )
    if row is not None and row.last_attempt_at < datetime.utcnow() - timedelta(minutes=OTP_ATTEMPT_WINDOW_MIN):
        db.delete(row)
        db.commit()
        return None
    return row


def attempts_exceeded(db: Session, account_type: str, email: str, otp_type: str) -> bool:
    row = _attempt_row(db, account_type, email, otp_type)
    return row is not None and row.attempts >= OTP_MAX_ATTEMPTS


def record_failed_attempt(db: Session, account_type: str, email: str, otp_type: str) -> int:
    row = _attempt_row(db, account_type, email, otp_type)
    if row is None:
        row = OtpAttempt(account_type=account_type, email=email, otp_type=otp_type, attempts=0)
        db.add(row)
    row.attempts += 1
    row.last_attempt_at = datetime.utcnow()
    try:
        db.commit()
    except IntegrityError:
        # a concurrent request created the row first
        db.rollback()
        row = _attempt_row(db, account_type, email, otp_type)
        row.attempts += 1
        row.last_attempt_at = datetime.utcnow()
        db.commit()
    return row.attempts


def clear_attempts(db: Session, account_type: str, email: str, otp_type: str) -> None:
    (
        db.query(OtpAttempt)
        .filter(
            OtpAttempt.account_type == account_type,
            OtpAttempt.email == email,
            OtpAttempt.otp_type == otp_type,
        )
        .delete(synchronize_session=False)
    )


# ---------------------------------------------------------------------------
# Issue / verify
# ---------------------------------------------------------------------------
def issue_otp(db: Session, account_type: str, account, otp_type: str) -> Token:
    """Generate, store and email a code for `account`."""
    token_type = otp_token_type(otp_type)
    email = account.email.lower()

    check_rate_limit(db, account_type, email)
    if attempts_exceeded(db, account_type, email, otp_type):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=TOO_MANY_ATTEMPTS)

    otp = gen_otp_code()
    token, expires = make_otp_token(account_type, account.id, email, otp, token_type, OTP_TTL_MIN)
    row = Token(
        token=token,
        account_type=account_type,
        account_id=account.id,
        type=token_type,
        expires=expires,
    )
    db.add(row)
    db.add(OtpRequest(account_type=account_type, email=email))
    db.commit()
    db.refresh(row)

    email_service = get_email_service()
    name = getattr(account, "name", None)
    if token_type == TokenType.PASSWORD_RESET_OTP:
        email_service.send_password_reset_otp_email(email, otp, name)
    else:
        email_service.send_otp_email(email, otp, name)

    logger.info("OTP (%s) issued for %s:%s", otp_type, account_type, account.id)
    return row


def verify_otp(
    db: Session,
    account_type: str,
    email: str,
    otp: str,
    otp_type: str,
    blacklist: bool = True,
):
    """
    Check a code and return the account it belongs to.

    Failures count toward the attempt limit. With blacklist=False the token
    stays usable for a later step (forgot-password verify, then reset).
    """
    token_type = otp_token_type(otp_type)
    email = email.lower()
    model = ACCOUNT_MODELS[account_type]

    account = db.query(model).filter(model.email == email).first()
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No {account_type} found with this email",
        )

    if attempts_exceeded(db, account_type, email, otp_type):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=TOO_MANY_ATTEMPTS)

    row = (
        db.query(Token)
        .filter(
            Token.account_type == account_type,
            Token.account_id == account.id,
            Token.type == token_type,
            Token.blacklisted.is_(False),
            Token.expires > datetime.utcnow(),
        )
        .order_by(Token.created_at.desc(), Token.id.desc())
        .first()
    )
    if row is None:
        record_failed_attempt(db, account_type, email, otp_type)
        logger.info("OTP verification failed for %s:%s (no live token)", account_type, account.id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="OTP expired or not found")

    try:
        payload = decode_token(row.token, audience=account_type)
    except jwt.PyJWTError:
        payload = None

    if payload is None or payload.get("otp") != str(otp) or payload.get("type") != token_type:
        attempts = record_failed_attempt(db, account_type, email, otp_type)
        logger.info("OTP verification failed for %s:%s (attempt %s)", account_type, account.id, attempts)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid OTP")

    clear_attempts(db, account_type, email, otp_type)
    if blacklist:
        row.blacklisted = True
    db.commit()
    logger.info("OTP (%s) verified for %s:%s", otp_type, account_type, account.id)
    return account


__all__ = [
    "OTP_TYPES",
    "otp_token_type",
    "check_rate_limit",
    "attempts_exceeded",
    "record_failed_attempt",
    "clear_attempts",
    "issue_otp",
    "verify_otp",
]
