# model/notification.py
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, JSON, Index
from sqlalchemy import Enum as SAEnum

from model.base import Base
from model.custom_types import MyBIGINT


NOTIFICATION_TYPES = (
    # user notifications
    "property_shortlisted",
    "property_viewed",
    "visit_scheduled",
    "visit_reminder",
    "visit_confirmed",
    "visit_cancelled",
    "new_property_match",
    "price_drop",
    "property_sold",
    "builder_message",
    "system_announcement",
    # builder notifications
    "property_approved",
    "property_rejected",
    "property_published",
    "visit_request",
    "visit_confirmed_by_user",
    "visit_cancelled_by_user",
    "user_inquiry",
    "user_shortlist",
    "user_view",
    "profile_approved",
    "profile_rejected",
    "team_member_added",
    "team_member_removed",
    # general
    "welcome",
    "email_verification",
    "password_reset",
    "account_suspended",
    "account_reactivated",
)
RECIPIENT_TYPES = ("user", "builder")
PRIORITIES = ("low", "medium", "high", "urgent")
ACTION_TYPES = ("visit_property", "view_profile", "reply_message", "view_document", "none")
SENDER_TYPES = ("system", "user", "builder", "admin")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=False)

    recipient_type = Column(SAEnum(*RECIPIENT_TYPES, name="notification_recipient_type"), nullable=False)
    recipient_id = Column(MyBIGINT(unsigned=True), nullable=False)

    notification_type = Column(SAEnum(*NOTIFICATION_TYPES, name="notification_type"), nullable=False)
    priority = Column(SAEnum(*PRIORITIES, name="notification_priority"), nullable=False, default="medium")

    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime)

    action_type = Column(SAEnum(*ACTION_TYPES, name="notification_action_type"), nullable=False, default="none")
    action_url = Column(String(1024))
    action_metadata = Column(JSON)

    sender_type = Column(SAEnum(*SENDER_TYPES, name="notification_sender_type"), nullable=False, default="system")
    sender_id = Column(MyBIGINT(unsigned=True))

    delivery_channels = Column(JSON)
    expires_at = Column(DateTime)
    meta = Column("metadata", JSON)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_notifications_recipient", "recipient_type", "recipient_id", "is_read", "created_at"),
        Index("ix_notifications_expires", "expires_at"),
    )

    def __repr__(self):
        return f"<Notification(id={self.id}, to={self.recipient_type}:{self.recipient_id}, type={self.notification_type})>"

    def mark_as_read(self) -> None:
        if not self.is_read:
            self.is_read = True
            self.read_at = datetime.utcnow()

    @property
    def action_data(self) -> dict:
        return {"type": self.action_type, "url": self.action_url, "metadata": self.action_metadata}
