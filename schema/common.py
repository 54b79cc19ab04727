from __future__ import annotations

from datetime import datetime
from typing import Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """List envelope returned by every paginated endpoint."""
    results: List[T]
    page: int
    limit: int
    totalPages: int
    totalResults: int


class MessageOut(BaseModel):
    message: str


class TokenOut(BaseModel):
    token: str
    expires: datetime


class AuthTokens(BaseModel):
    access: TokenOut
    refresh: TokenOut


__all__ = ["Page", "MessageOut", "TokenOut", "AuthTokens"]
