# src/utils.py
import logging
import re
import secrets, string
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from passlib.context import CryptContext
import jwt
from config.settings import JWT_SECRET, JWT_ALG, JWT_ISS, ACCESS_TTL_MIN, REFRESH_TTL_DAYS

logger = logging.getLogger(__name__)

# Centralized password hashing policy (allows painless future upgrades)
PWD_CONTEXT = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
)

SAFE_ALPHABET = string.ascii_letters + string.digits

PASSWORD_LETTER = re.compile(r"[A-Za-z]")
PASSWORD_DIGIT = re.compile(r"\d")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)

def gen_token_urlsafe(n_bytes: int = 32) -> str:
    """High-entropy, URL-safe token (good for jti, nonces, etc.)."""
    return secrets.token_urlsafe(n_bytes)

def gen_temp_password(n: int = 24) -> str:
    """Random placeholder password for accounts that have not set one yet."""
    return "".join(secrets.choice(SAFE_ALPHABET) for _ in range(n)) + "1a"

def gen_otp_code() -> str:
    """6-digit numeric code, 100000-999999."""
    return str(100000 + secrets.randbelow(900000))

def check_password_strength(pw: str) -> str:
    """Raise ValueError unless the password has 8+ chars with a letter and a digit."""
    if not pw or len(pw) < 8:
        raise ValueError("password must be at least 8 characters")
    if not PASSWORD_LETTER.search(pw) or not PASSWORD_DIGIT.search(pw):
        raise ValueError("password must contain at least 1 letter and 1 number")
    return pw

def check_phone(phone: Optional[str]) -> Optional[str]:
    if phone is None:
        return phone
    if not PHONE_PATTERN.match(phone):
        raise ValueError("Invalid phone number format")
    return phone

def hash_password(pw: str) -> str:
    if not pw:
        raise ValueError("Password must not be empty")
    return PWD_CONTEXT.hash(pw)

def verify_password(pw: str, hashed: str) -> bool:
    if not hashed or not pw:
        return False
    try:
        return PWD_CONTEXT.verify(pw, hashed)
    except (ValueError, TypeError):
        logger.warning("Password verification failed due to malformed hash", exc_info=True)
        return False


# ---------------------------------------------------------------------------
# JWT minting. `aud` names the account table the token authenticates against
# (user | builder | admin); `typ` separates access from refresh tokens.
# ---------------------------------------------------------------------------
def _encode(payload: Dict[str, Any]) -> str:
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)

def make_access_token(
    audience: str,
    public_id: str,
    account_id: int,
    email: str,
    role: str,
    extra: Optional[Dict[str, Any]] = None,
) -> tuple[str, datetime]:
    """Issue a short-lived access token. Returns (token, expires_at)."""
    if not public_id or not email:
        raise ValueError("public_id and email are required")
    issued_at = _now_utc()
    expires = issued_at + timedelta(minutes=ACCESS_TTL_MIN)
    payload: Dict[str, Any] = {
        "sub": public_id,
        "uid": account_id,
        "email": email,
        "role": role,
        "aud": audience,
        "typ": "access",
        "iss": JWT_ISS,
        "iat": int(issued_at.timestamp()),
        "nbf": int(issued_at.timestamp()),
        "exp": int(expires.timestamp()),
        "jti": gen_token_urlsafe(18),
    }
    if extra:
        payload.update(extra)
    return _encode(payload), expires.replace(tzinfo=None)

def make_refresh_token(
    audience: str,
    public_id: str,
    account_id: int,
    extra: Optional[Dict[str, Any]] = None,
) -> tuple[str, datetime]:
    issued_at = _now_utc()
    expires = issued_at + timedelta(days=REFRESH_TTL_DAYS)
    payload = {
        "sub": public_id,
        "uid": account_id,
        "aud": audience,
        "typ": "refresh",
        "iss": JWT_ISS,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires.timestamp()),
        "jti": gen_token_urlsafe(18),
    }
    if extra:
        payload.update(extra)
    return _encode(payload), expires.replace(tzinfo=None)

def make_otp_token(audience: str, account_id: int, email: str, otp: str, otp_token_type: str, ttl_minutes: int) -> tuple[str, datetime]:
    issued_at = _now_utc()
    expires = issued_at + timedelta(minutes=ttl_minutes)
    payload = {
        "sub": str(account_id),
        "otp": otp,
        "type": otp_token_type,
        "email": email,
        "aud": audience,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires.timestamp()),
        "jti": gen_token_urlsafe(12),
    }
    return _encode(payload), expires.replace(tzinfo=None)

def decode_token(token: str, audience: Optional[str] = None) -> Dict[str, Any]:
    """Decode & verify signature/expiry (and audience when given). Raises jwt exceptions on failure."""
    options = {"require": ["exp", "iat", "sub"], "verify_aud": audience is not None}
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG], audience=audience, options=options)
