# model/profiles/builder.py
from datetime import datetime
from sqlalchemy import (
    Column,
    String, Integer, Text, Boolean, DateTime, ForeignKey, Index, UniqueConstraint
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from model.base import Base
from model.custom_types import MyBIGINT


BUILDER_STATUSES = ("draft", "submitted", "approved", "rejected")

TEAM_MEMBER_PERMISSIONS = ("dashboard", "my_properties", "analytics", "messages", "my_profile", "users")


class Builder(Base):
    """
    A property developer account. Owns properties, manages team members and
    moves through the review workflow draft -> submitted -> approved/rejected.
    """
    __tablename__ = "builders"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    # Builder ID for API (e.g., BLD-1699564234-X3P8Q1)
    public_id = Column(String(50), unique=True, nullable=False, index=True)

    name = Column(String(255))
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    # Business details
    contact_info = Column(String(255))
    address = Column(Text)
    company = Column(String(255))
    city = Column(String(120))
    logo = Column(String(1024))
    rera_registration_id = Column(String(120))
    contact_person = Column(String(255))
    phone = Column(String(32))
    website = Column(String(1024))

    # Review workflow
    status = Column(SAEnum(*BUILDER_STATUSES, name="builder_status"), nullable=False, default="draft")
    admin_decision_status = Column(SAEnum("approved", "rejected", name="builder_admin_decision"))
    admin_decision_notes = Column(Text)
    reviewed_by = Column(MyBIGINT(unsigned=True), ForeignKey("admins.id", ondelete="SET NULL"))
    reviewed_at = Column(DateTime)

    is_otp_verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_builders_status_active", "status", "is_active"),
    )

    team_members = relationship(
        "BuilderTeamMember",
        back_populates="builder",
        cascade="all, delete-orphan",
        order_by="BuilderTeamMember.id",
    )
    documents = relationship(
        "BuilderDocument",
        back_populates="builder",
        cascade="all, delete-orphan",
        order_by="BuilderDocument.id",
    )
    properties = relationship("Property", back_populates="builder", passive_deletes=True)

    def __repr__(self):
        return f"<Builder(id={self.id}, email={self.email}, status={self.status})>"

    @property
    def admin_decision(self):
        if not self.admin_decision_status:
            return None
        return {
            "status": self.admin_decision_status,
            "notes": self.admin_decision_notes,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at,
        }

    def clear_admin_decision(self) -> None:
        self.admin_decision_status = None
        self.admin_decision_notes = None
        self.reviewed_by = None
        self.reviewed_at = None

    def find_team_member_by_email(self, email: str):
        email = email.lower()
        return next((m for m in self.team_members if m.email == email), None)

    def is_team_member_email_taken(self, email: str, exclude_member_id=None) -> bool:
        email = email.lower()
        return any(m.email == email and m.id != exclude_member_id for m in self.team_members)


class BuilderTeamMember(Base):
    __tablename__ = "builder_team_members"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    builder_id = Column(MyBIGINT(unsigned=True), ForeignKey("builders.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(64), nullable=False, default="team_member")

    # navigation permissions
    perm_dashboard = Column(Boolean, default=True, nullable=False)
    perm_my_properties = Column(Boolean, default=True, nullable=False)
    perm_analytics = Column(Boolean, default=True, nullable=False)
    perm_messages = Column(Boolean, default=True, nullable=False)
    perm_my_profile = Column(Boolean, default=True, nullable=False)
    perm_users = Column(Boolean, default=True, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("builder_id", "email", name="uq_builder_team_member_email"),
    )

    builder = relationship("Builder", back_populates="team_members")

    @property
    def navigation_permissions(self) -> dict:
        return {p: getattr(self, f"perm_{p}") for p in TEAM_MEMBER_PERMISSIONS}

    def set_navigation_permissions(self, perms: dict) -> None:
        for key, value in (perms or {}).items():
            if key in TEAM_MEMBER_PERMISSIONS and isinstance(value, bool):
                setattr(self, f"perm_{key}", value)


class BuilderDocument(Base):
    __tablename__ = "builder_documents"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    builder_id = Column(MyBIGINT(unsigned=True), ForeignKey("builders.id", ondelete="CASCADE"), nullable=False, index=True)
    document_type = Column(
        SAEnum("document", "license", "certificate", "registration", name="builder_document_type"),
        nullable=False,
        default="document",
    )
    url = Column(String(1024), nullable=False)
    url_key = Column(String(512))
    file_name = Column(String(255))
    content_type = Column(String(120))
    size = Column(Integer)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    builder = relationship("Builder", back_populates="documents")
