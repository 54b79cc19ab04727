# model/user.py
from datetime import datetime
from sqlalchemy import (
    Column, String, Boolean, Integer, JSON,
    ForeignKey, Index, UniqueConstraint, DateTime as SADateTime
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Enum as SAEnum

from model.base import Base
from model.custom_types import MyBIGINT


class User(Base):
    __tablename__ = "users"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    public_id: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(120))
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    contact_number = Column(String(32))
    city_of_interest = Column(String(120))
    image = Column(String(1024))
    role = Column(SAEnum("user", "agent", "guest", name="user_role"), nullable=False, default="user")
    account_type = Column(SAEnum("registered", "guest", name="user_account_type"), nullable=False, default="registered")

    is_email_verified = Column(Boolean, default=False, nullable=False)
    is_phone_verified = Column(Boolean, default=False, nullable=False)
    is_otp_verified = Column(Boolean, default=False, nullable=False)
    registration_status = Column(
        SAEnum("partial", "otp_verified", "completed", name="user_registration_status"),
        nullable=False,
        default="partial",
    )
    preferences = Column(JSON)

    # notification permissions
    perm_new_properties = Column(Boolean, default=True, nullable=False)
    perm_visit_confirmation = Column(Boolean, default=True, nullable=False)
    perm_visit_reminder = Column(Boolean, default=True, nullable=False)
    perm_release_messages = Column(Boolean, default=True, nullable=False)

    # agent details
    rera_number = Column(String(64))
    state = Column(String(120))
    agency_name = Column(String(200))
    years_of_experience = Column(Integer)

    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(SADateTime)
    created_at = Column(SADateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(SADateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_users_role_active", "role", "is_active"),
    )

    shortlist = relationship(
        "UserShortlist",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="UserShortlist.created_at.desc()",
    )

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, status={self.registration_status})>"

    @property
    def permissions(self) -> dict:
        return {
            "new_properties": self.perm_new_properties,
            "visit_confirmation": self.perm_visit_confirmation,
            "visit_reminder": self.perm_visit_reminder,
            "release_messages": self.perm_release_messages,
        }

    def compute_registration_status(self) -> str:
        """completed needs the OTP step plus name, contact number and city of interest."""
        if self.is_otp_verified and self.name and self.contact_number and self.city_of_interest:
            return "completed"
        if self.is_otp_verified:
            return "otp_verified"
        return "partial"

    def refresh_registration_status(self) -> None:
        self.registration_status = self.compute_registration_status()

    def is_property_shortlisted(self, property_id: int) -> bool:
        return any(s.property_id == property_id for s in self.shortlist)


class UserShortlist(Base):
    __tablename__ = "user_shortlist"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    user_id = Column(MyBIGINT(unsigned=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    property_id = Column(MyBIGINT(unsigned=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(SADateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="uq_user_shortlist"),
    )

    user = relationship("User", back_populates="shortlist")
    property = relationship("Property")
