# model/token.py
"""
Server-side token storage.

Refresh tokens and OTP tokens live in `tokens`; OTP rate-limit and attempt
counters live in `otp_requests` / `otp_attempts` so every API process sees
the same state.
"""
from datetime import datetime
from sqlalchemy import Column, String, Text, Boolean, Integer, DateTime, Index, UniqueConstraint
from sqlalchemy import Enum as SAEnum

from model.base import Base
from model.custom_types import MyBIGINT


ACCOUNT_TYPES = ("user", "builder", "admin")


class TokenType:
    ACCESS = "access"
    REFRESH = "refresh"
    EMAIL_OTP = "emailOtp"
    PASSWORD_RESET_OTP = "passwordResetOtp"


class Token(Base):
    """Refresh and OTP tokens (JWT strings)."""

    __tablename__ = "tokens"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    token = Column(Text, nullable=False)
    account_type = Column(SAEnum(*ACCOUNT_TYPES, name="token_account_type"), nullable=False)
    account_id = Column(MyBIGINT(unsigned=True), nullable=False)
    type = Column(
        SAEnum(TokenType.REFRESH, TokenType.EMAIL_OTP, TokenType.PASSWORD_RESET_OTP, name="token_type"),
        nullable=False,
    )
    expires = Column(DateTime, nullable=False)
    blacklisted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_tokens_account", "account_type", "account_id", "type"),
    )

    def __repr__(self):
        return f"<Token(id={self.id}, {self.account_type}:{self.account_id}, type={self.type}, blacklisted={self.blacklisted})>"

    def is_valid(self) -> bool:
        return not self.blacklisted and self.expires > datetime.utcnow()


class OtpRequest(Base):
    """One row per OTP sent; used as a sliding-window rate-limit log."""

    __tablename__ = "otp_requests"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    account_type = Column(String(16), nullable=False)
    email = Column(String(255), nullable=False)
    requested_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_otp_requests_email_time", "account_type", "email", "requested_at"),
    )


class OtpAttempt(Base):
    """Failed verification counter per (account type, email, otp type)."""

    __tablename__ = "otp_attempts"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    account_type = Column(String(16), nullable=False)
    email = Column(String(255), nullable=False)
    otp_type = Column(String(32), nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    last_attempt_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("account_type", "email", "otp_type", name="uq_otp_attempts_key"),
    )
