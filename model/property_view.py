# model/property_view.py
from datetime import datetime
from sqlalchemy import Column, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from model.base import Base
from model.custom_types import MyBIGINT


class PropertyView(Base):
    __tablename__ = "property_views"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    user_id = Column(MyBIGINT(unsigned=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    property_id = Column(MyBIGINT(unsigned=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    viewed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_property_views_user_time", "user_id", "viewed_at"),
        Index("ix_property_views_property", "property_id"),
    )

    user = relationship("User")
    property = relationship("Property")
