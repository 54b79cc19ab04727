# config/dependencies.py

from typing import Optional, Callable
from fastapi import Depends, HTTPException, Request, status
from jose import jwt
from jose.exceptions import JWTError, ExpiredSignatureError
from sqlalchemy.orm import Session

from config.db import get_db
from config.security import Principal
from config.settings import JWT_SECRET, JWT_ALG, JWT_ISS
from model.user import User
from model.profiles.builder import Builder, BuilderTeamMember
from model.profiles.admin import Admin
from src.id_generator import validate_public_id
from src.token_service import ACCOUNT_MODELS, account_role

_LEEWAY = 10  # seconds of clock-skew tolerance


def _unauthorized(detail: str = "Please authenticate") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _get_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or request.headers.get("Authorization")
    if not auth or not auth.lower().startswith("bearer "):
        return None
    return auth.split(" ", 1)[1].strip() or None


def _decode_access_token(token: str) -> dict:
    try:
        # aud is checked below against the known account tables
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALG],
            issuer=JWT_ISS if JWT_ISS else None,
            options={"verify_aud": False, "leeway": _LEEWAY},
        )
    except ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except JWTError:
        raise _unauthorized()

    if payload.get("typ") != "access":
        raise _unauthorized()
    if payload.get("aud") not in ACCOUNT_MODELS:
        raise _unauthorized()
    return payload


def _load_principal(payload: dict, db: Session) -> Principal:
    audience = payload["aud"]
    model = ACCOUNT_MODELS[audience]
    public_id = payload.get("sub")
    uid = payload.get("uid")

    if not validate_public_id(public_id, audience) or uid is None:
        raise _unauthorized()

    account = db.get(model, uid)
    if account is None or account.public_id != public_id or not account.is_active:
        raise _unauthorized()

    team_member = None
    if audience == "builder" and payload.get("tm") is not None:
        team_member = db.get(BuilderTeamMember, payload["tm"])
        if team_member is None or team_member.builder_id != account.id or not team_member.is_active:
            raise _unauthorized()

    return Principal(
        account_type=audience,
        account=account,
        role=account_role(audience, account),
        team_member=team_member,
    )


def get_principal(request: Request, db: Session = Depends(get_db)) -> Principal:
    """Any authenticated account, whatever its audience."""
    token = _get_bearer_token(request)
    if not token:
        raise _unauthorized()
    return _load_principal(_decode_access_token(token), db)


def get_principal_optional(request: Request, db: Session = Depends(get_db)) -> Optional[Principal]:
    try:
        return get_principal(request, db)
    except HTTPException:
        return None


def require_user(principal: Principal = Depends(get_principal)) -> User:
    if principal.account_type != "user":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return principal.account


def require_registered_user(user: User = Depends(require_user)) -> User:
    if user.account_type != "registered":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return user


def require_builder(principal: Principal = Depends(get_principal)) -> Builder:
    if principal.account_type != "builder":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return principal.account


def require_admin(principal: Principal = Depends(get_principal)) -> Admin:
    if principal.account_type != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin required")
    return principal.account


def require_super_admin(admin: Admin = Depends(require_admin)) -> Admin:
    if admin.role_name != "super_admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Super admin required")
    return admin


def require_rights(*rights: str) -> Callable:
    """
    Factory that returns a dependency enforcing the given rights.

    A principal lacking them may still act on its own resource: a user on a
    path carrying its own `user_id`, a builder on its own `builder_id`.
    """
    def _dep(request: Request, principal: Principal = Depends(get_principal)) -> Principal:
        if principal.has_rights(*rights):
            return principal
        params = request.path_params
        if "user_id" in params and principal.owns("user", params["user_id"]):
            return principal
        if "builder_id" in params and principal.owns("builder", params["builder_id"]):
            return principal
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return _dep
