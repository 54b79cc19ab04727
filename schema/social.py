from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, conint


# ------------------------------------------------------------
# Likes
# ------------------------------------------------------------
class LikeToggleOut(BaseModel):
    liked: bool
    message: str
    likeCount: int


class LikeStatusOut(BaseModel):
    property_id: int
    liked: bool
    likeCount: int


class LikeOut(BaseModel):
    id: int
    property_id: int
    user_id: int
    type: str
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ------------------------------------------------------------
# Comments
# ------------------------------------------------------------
class CommentCreate(BaseModel):
    text: str = Field(min_length=1, max_length=1000)
    parent_comment_id: Optional[conint(ge=1)] = None


class CommentUpdate(BaseModel):
    text: str = Field(min_length=1, max_length=1000)


class CommentAuthor(BaseModel):
    id: int
    name: Optional[str] = None
    image: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CommentOut(BaseModel):
    id: int
    property_id: int
    user_id: int
    parent_comment_id: Optional[int] = None
    text: str
    status: str
    reply_count: int = 0
    like_count: int = 0
    dislike_count: int = 0
    is_edited: bool = False
    edited_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    user: Optional[CommentAuthor] = None

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "LikeToggleOut",
    "LikeStatusOut",
    "LikeOut",
    "CommentCreate",
    "CommentUpdate",
    "CommentAuthor",
    "CommentOut",
]
