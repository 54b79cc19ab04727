# model/chat.py
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from model.base import Base
from model.custom_types import MyBIGINT


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    user_id = Column(MyBIGINT(unsigned=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    builder_id = Column(MyBIGINT(unsigned=True), ForeignKey("builders.id", ondelete="CASCADE"), nullable=False)
    message = Column(String(1000), nullable=False)
    sender_type = Column(SAEnum("User", "Builder", name="chat_sender_type"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_chat_conversation", "user_id", "builder_id", "created_at"),
        Index("ix_chat_builder", "builder_id", "created_at"),
    )

    user = relationship("User")
    builder = relationship("Builder")
