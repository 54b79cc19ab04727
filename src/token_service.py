# src/token_service.py
import logging
from datetime import datetime
from typing import Optional, Dict, Any

import jwt
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from model.token import Token, TokenType
from model.user import User
from model.profiles.builder import Builder, BuilderTeamMember
from model.profiles.admin import Admin
from src.utils import make_access_token, make_refresh_token, decode_token

logger = logging.getLogger(__name__)

# audience -> account table
ACCOUNT_MODELS = {
    "user": User,
    "builder": Builder,
    "admin": Admin,
}


def account_role(account_type: str, account) -> str:
    if account_type == "user":
        return account.role
    if account_type == "admin":
        return account.role_name
    return "builder"


def generate_auth_tokens(
    db: Session,
    account_type: str,
    account,
    team_member: Optional[BuilderTeamMember] = None,
) -> Dict[str, Any]:
    """Mint an access/refresh pair and persist the refresh token."""
    extra = {"tm": team_member.id} if team_member is not None else None
    email = team_member.email if team_member is not None else account.email

    access, access_exp = make_access_token(
        audience=account_type,
        public_id=account.public_id,
        account_id=account.id,
        email=email,
        role=account_role(account_type, account),
        extra=extra,
    )
    refresh, refresh_exp = make_refresh_token(account_type, account.public_id, account.id, extra=extra)

    db.add(Token(
        token=refresh,
        account_type=account_type,
        account_id=account.id,
        type=TokenType.REFRESH,
        expires=refresh_exp,
    ))
    db.commit()

    return {
        "access": {"token": access, "expires": access_exp},
        "refresh": {"token": refresh, "expires": refresh_exp},
    }


def _find_refresh_token(db: Session, refresh_token: str) -> Optional[Token]:
    return (
        db.query(Token)
        .filter(
            Token.token == refresh_token,
            Token.type == TokenType.REFRESH,
            Token.blacklisted.is_(False),
        )
        .first()
    )


def refresh_auth(db: Session, refresh_token: str) -> Dict[str, Any]:
    """Rotate a refresh token. Any failure is reported as 401 "Please authenticate"."""
    unauthorized = HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Please authenticate")
    try:
        payload = decode_token(refresh_token)
    except jwt.PyJWTError:
        raise unauthorized
    if payload.get("typ") != "refresh":
        raise unauthorized

    row = _find_refresh_token(db, refresh_token)
    if row is None or row.expires <= datetime.utcnow():
        raise unauthorized

    model = ACCOUNT_MODELS.get(row.account_type)
    account = db.get(model, row.account_id) if model else None
    if account is None or not account.is_active:
        raise unauthorized

    team_member = None
    if payload.get("tm") is not None:
        team_member = db.get(BuilderTeamMember, payload["tm"])
        if team_member is None or not team_member.is_active or team_member.builder_id != account.id:
            raise unauthorized

    account_type = row.account_type
    db.delete(row)
    db.commit()
    return generate_auth_tokens(db, account_type, account, team_member=team_member)


def logout(db: Session, refresh_token: str) -> None:
    row = _find_refresh_token(db, refresh_token)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    logger.info("Logging out %s:%s", row.account_type, row.account_id)
    db.delete(row)
    db.commit()


def revoke_tokens(db: Session, account_type: str, account_id: int, token_type: str) -> int:
    count = (
        db.query(Token)
        .filter(Token.account_type == account_type, Token.account_id == account_id, Token.type == token_type)
        .delete(synchronize_session=False)
    )
    db.commit()
    return count


__all__ = [
    "ACCOUNT_MODELS",
    "account_role",
    "generate_auth_tokens",
    "refresh_auth",
    "logout",
    "revoke_tokens",
]
