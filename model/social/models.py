# social/models.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column,
    String,
    Text,
    Boolean,
    Integer,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from model.base import Base
from model.custom_types import MyBIGINT
from model.social.enum import LikeType, LikeStatus, CommentStatus


# ---------------------------------------------------------------------------
# Likes: user → property
# Unique pair prevents duplicates; the property keeps a denormalised counter.
# ---------------------------------------------------------------------------
class Like(Base):
    __tablename__ = "property_likes"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    property_id = Column(MyBIGINT(unsigned=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(MyBIGINT(unsigned=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(SAEnum(*[t.value for t in LikeType], name="like_type"), nullable=False, default=LikeType.like.value)
    status = Column(SAEnum(*[s.value for s in LikeStatus], name="like_status"), nullable=False, default=LikeStatus.active.value)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("property_id", "user_id", name="uq_property_likes_pair"),
        Index("idx_likes_user", "user_id", "created_at"),
    )

    user = relationship("User")
    property = relationship("Property")


# ---------------------------------------------------------------------------
# Comments: threaded discussion on a property
# Soft-deletion keeps threads coherent; parent_comment_id allows replies.
# ---------------------------------------------------------------------------
class Comment(Base):
    __tablename__ = "property_comments"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    property_id = Column(MyBIGINT(unsigned=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(MyBIGINT(unsigned=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    parent_comment_id = Column(MyBIGINT(unsigned=True), ForeignKey("property_comments.id", ondelete="CASCADE"), nullable=True)
    text = Column(Text, nullable=False)
    status = Column(
        SAEnum(*[s.value for s in CommentStatus], name="comment_status"),
        nullable=False,
        default=CommentStatus.active.value,
    )
    flagged = Column(Boolean, nullable=False, default=False)
    flag_reason = Column(String(255))
    reply_count = Column(Integer, nullable=False, default=0)
    like_count = Column(Integer, nullable=False, default=0)
    dislike_count = Column(Integer, nullable=False, default=0)

    # request metadata
    ip_address = Column(String(45))
    user_agent = Column(String(255))
    is_edited = Column(Boolean, nullable=False, default=False)
    edited_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("idx_comments_property", "property_id", "status", "created_at"),
        Index("idx_comments_user", "user_id", "created_at"),
        Index("idx_comments_parent", "parent_comment_id"),
    )

    user = relationship("User")
    property = relationship("Property")
