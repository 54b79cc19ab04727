# src/auth_flows.py
"""
Password + one-time-code flows shared by users and builders.

Every function takes `account_type` ("user" or "builder"); the two account
kinds go through the same steps and differ only in which table they hit and
in a handful of user-only registration fields.
"""
import logging
from datetime import datetime
from typing import Optional, Dict, Any

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from model.token import TokenType
from model.user import User
from model.profiles.builder import Builder
from src.email_service import get_email_service
from src.id_generator import generate_public_id
from src.notification_service import notify_welcome
from src.otp_service import issue_otp, verify_otp
from src.route_helpers import commit_or_409
from src.token_service import ACCOUNT_MODELS, revoke_tokens
from src.utils import hash_password, verify_password, gen_temp_password

logger = logging.getLogger(__name__)

NOT_FOUND = {
    "user": "User not found",
    "builder": "Builder not found",
}


def _normalize(email: str) -> str:
    return (email or "").strip().lower()


def get_account_by_email(db: Session, account_type: str, email: str):
    model = ACCOUNT_MODELS[account_type]
    return db.query(model).filter(model.email == _normalize(email)).first()


def _get_or_404(db: Session, account_type: str, email: str):
    account = get_account_by_email(db, account_type, email)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND[account_type])
    return account


def new_account(kind: str, email: str, password: Optional[str] = None, **fields):
    """Build (not persist) a user or builder with a fresh public id."""
    if kind == "user":
        obj = User(public_id=generate_public_id("user"), email=_normalize(email), **fields)
    else:
        obj = Builder(public_id=generate_public_id("builder"), email=_normalize(email), **fields)
    obj.password_hash = hash_password(password or gen_temp_password())
    return obj


def _mark_otp_verified(account) -> None:
    account.is_otp_verified = True
    if isinstance(account, User):
        account.is_email_verified = True
        account.refresh_registration_status()


def _registration_completed(account) -> bool:
    if isinstance(account, User):
        return account.registration_status == "completed"
    return bool(account.is_otp_verified and account.name and account.company)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------
def check_email(db: Session, account_type: str, email: str) -> Dict[str, Any]:
    if get_account_by_email(db, account_type, email):
        return {"exists": True, "message": "Account already exists. Please login with your password."}
    return {"exists": False, "message": "New account. Please proceed with registration."}


def register(db: Session, account_type: str, email: str, password: str, **fields):
    """Create an account with a password. 400 if the email is taken."""
    if get_account_by_email(db, account_type, email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already taken")
    account = new_account(account_type, email, password, **fields)
    db.add(account)
    commit_or_409(db, "Email already taken")
    db.refresh(account)
    logger.info("Registered %s %s", account_type, account.id)
    return account


def register_with_otp(db: Session, account_type: str, email: str, password: str, **fields):
    account = register(db, account_type, email, password, **fields)
    issue_otp(db, account_type, account, "email_verification")
    return account


def send_registration_otp(db: Session, account_type: str, email: str):
    """Create a partial account with a temporary password and send it a code."""
    if get_account_by_email(db, account_type, email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists with this email")
    account = new_account(account_type, email)
    db.add(account)
    commit_or_409(db, "User already exists with this email")
    db.refresh(account)
    issue_otp(db, account_type, account, "email_verification")
    return account


def verify_registration_otp(db: Session, account_type: str, email: str, otp: str):
    account = verify_otp(db, account_type, email, otp, "email_verification")
    _mark_otp_verified(account)
    db.commit()
    db.refresh(account)
    return account


def create_password(db: Session, account_type: str, email: str, password: str, role: Optional[str] = None):
    account = _get_or_404(db, account_type, email)
    if _registration_completed(account):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Registration already completed")
    if not account.is_otp_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please verify OTP first")

    account.password_hash = hash_password(password)
    if isinstance(account, User):
        account.role = role or "user"
        account.registration_status = "otp_verified"
    db.commit()
    db.refresh(account)
    return account


def complete_registration(db: Session, account_type: str, account_id: int, profile: Dict[str, Any]):
    model = ACCOUNT_MODELS[account_type]
    account = db.get(model, account_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND[account_type])
    if not account.is_otp_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please verify OTP first")

    for key, value in profile.items():
        if value is not None and hasattr(account, key):
            setattr(account, key, value)
    if isinstance(account, User):
        account.is_email_verified = True
        account.refresh_registration_status()
    account.last_login_at = datetime.utcnow()
    db.commit()
    db.refresh(account)

    notify_welcome(db, account_type, account.id, account.name)
    return account


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------
def login_with_password(db: Session, account_type: str, email: str, password: str):
    account = get_account_by_email(db, account_type, email)
    if account is None or not verify_password(password, account.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")
    if not account.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")
    account.last_login_at = datetime.utcnow()
    db.commit()
    logger.info("%s %s logged in", account_type.capitalize(), account.id)
    return account


def start_otp_login(db: Session, account_type: str, email: str, password: str):
    account = login_with_password(db, account_type, email, password)
    issue_otp(db, account_type, account, "email_verification")
    return account


def complete_otp_login(db: Session, account_type: str, email: str, otp: str):
    account = verify_otp(db, account_type, email, otp, "email_verification")
    if not account.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")
    account.last_login_at = datetime.utcnow()
    db.commit()
    db.refresh(account)
    logger.info("%s %s logged in with OTP", account_type.capitalize(), account.id)
    return account


def create_guest(db: Session) -> User:
    guest = new_account(
        "user",
        f"guest_{generate_public_id('user').lower()}@guest.zuhaush.in",
        name="Guest User",
        role="guest",
        account_type="guest",
    )
    db.add(guest)
    db.commit()
    db.refresh(guest)
    return guest


# ---------------------------------------------------------------------------
# OTP dispatch
# ---------------------------------------------------------------------------
def send_otp(db: Session, account_type: str, email: str, otp_type: str):
    if otp_type == "registration":
        return send_registration_otp(db, account_type, email)
    if otp_type not in ("email_verification", "password_reset"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OTP type")
    account = _get_or_404(db, account_type, email)
    issue_otp(db, account_type, account, otp_type)
    return account


def verify_otp_code(db: Session, account_type: str, email: str, otp: str, otp_type: str):
    if otp_type == "registration":
        return verify_registration_otp(db, account_type, email, otp)
    return verify_otp(db, account_type, email, otp, otp_type)


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------
def forgot_password(db: Session, account_type: str, email: str):
    account = _get_or_404(db, account_type, email)
    issue_otp(db, account_type, account, "password_reset")
    return account


def verify_forgot_password_otp(db: Session, account_type: str, email: str, otp: str):
    return verify_otp(db, account_type, email, otp, "password_reset", blacklist=False)


def reset_password(db: Session, account_type: str, email: str, otp: str, new_password: str):
    account = verify_otp(db, account_type, email, otp, "password_reset")
    account.password_hash = hash_password(new_password)
    db.commit()
    revoke_tokens(db, account_type, account.id, TokenType.PASSWORD_RESET_OTP)
    get_email_service().send_password_changed_notification(account.email, getattr(account, "name", None))
    logger.info("Password reset for %s %s", account_type, account.id)
    return account


def change_password(db: Session, account, current_password: str, new_password: str):
    if not verify_password(current_password, account.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")
    account.password_hash = hash_password(new_password)
    db.commit()
    get_email_service().send_password_changed_notification(account.email, getattr(account, "name", None))
    return account


__all__ = [
    "NOT_FOUND",
    "get_account_by_email",
    "new_account",
    "check_email",
    "register",
    "register_with_otp",
    "send_registration_otp",
    "verify_registration_otp",
    "create_password",
    "complete_registration",
    "login_with_password",
    "start_otp_login",
    "complete_otp_login",
    "create_guest",
    "send_otp",
    "verify_otp_code",
    "forgot_password",
    "verify_forgot_password_otp",
    "reset_password",
    "change_password",
]
