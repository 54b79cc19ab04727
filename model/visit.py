# model/visit.py
from datetime import datetime
from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Index
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from model.base import Base
from model.custom_types import MyBIGINT


VISIT_STATUSES = ("scheduled", "confirmed", "completed", "cancelled", "rescheduled")
# Statuses that hold a (property, date, time) slot
ACTIVE_VISIT_STATUSES = ("scheduled", "confirmed", "rescheduled")


def make_slot_key(property_id, visit_date, visit_time: str) -> str:
    return f"{property_id}|{visit_date.isoformat()}|{visit_time}"


class Visit(Base):
    __tablename__ = "visits"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    user_id = Column(MyBIGINT(unsigned=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    property_id = Column(MyBIGINT(unsigned=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(8), nullable=False)  # "10:30 AM"
    status = Column(SAEnum(*VISIT_STATUSES, name="visit_status"), nullable=False, default="scheduled")

    # Set while the visit holds its slot, NULL otherwise. Unique so the
    # database rejects a double booking even if two requests race.
    slot_key = Column(String(96), unique=True)

    confirmed_at = Column(DateTime)
    completed_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    cancelled_by = Column(MyBIGINT(unsigned=True))
    rescheduled_at = Column(DateTime)
    rescheduled_by = Column(MyBIGINT(unsigned=True))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_visits_property_date", "property_id", "date", "time"),
        Index("ix_visits_user_date", "user_id", "date"),
        Index("ix_visits_status", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_VISIT_STATUSES

    # declared after is_active: the relationship name shadows the builtin in the class body
    user = relationship("User")
    property = relationship("Property")

    def __repr__(self):
        return f"<Visit(id={self.id}, property={self.property_id}, {self.date} {self.time}, status={self.status})>"

    def sync_slot_key(self) -> None:
        self.slot_key = make_slot_key(self.property_id, self.date, self.time) if self.is_active else None
