# model/profiles/admin.py
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy import Enum as SAEnum

from model.base import Base
from model.custom_types import MyBIGINT


# name -> default
NAVIGATION_PERMISSIONS = {
    "dashboard": True,
    "builders": True,
    "users": True,
    "properties": True,
    "analytics": True,
    "messages": True,
    "appointments": True,
    "comments": True,
    "settings": True,
    "user_management": False,
    "reports": False,
    "system_settings": False,
}


class Admin(Base):
    __tablename__ = "admins"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    public_id = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role_name = Column(SAEnum("admin", "super_admin", name="admin_role"), nullable=False, default="admin")

    perm_dashboard = Column(Boolean, default=True, nullable=False)
    perm_builders = Column(Boolean, default=True, nullable=False)
    perm_users = Column(Boolean, default=True, nullable=False)
    perm_properties = Column(Boolean, default=True, nullable=False)
    perm_analytics = Column(Boolean, default=True, nullable=False)
    perm_messages = Column(Boolean, default=True, nullable=False)
    perm_appointments = Column(Boolean, default=True, nullable=False)
    perm_comments = Column(Boolean, default=True, nullable=False)
    perm_settings = Column(Boolean, default=True, nullable=False)
    perm_user_management = Column(Boolean, default=False, nullable=False)
    perm_reports = Column(Boolean, default=False, nullable=False)
    perm_system_settings = Column(Boolean, default=False, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Admin(id={self.id}, email={self.email}, role={self.role_name})>"

    @property
    def navigation_permissions(self) -> dict:
        return {p: bool(getattr(self, f"perm_{p}")) for p in NAVIGATION_PERMISSIONS}

    def has_permission(self, permission: str) -> bool:
        if permission not in NAVIGATION_PERMISSIONS:
            return False
        return bool(getattr(self, f"perm_{permission}"))

    def get_enabled_permissions(self) -> list:
        return [p for p, enabled in self.navigation_permissions.items() if enabled]

    def update_navigation_permissions(self, perms: dict) -> None:
        """Unknown keys and non-boolean values are ignored."""
        for key, value in (perms or {}).items():
            if key in NAVIGATION_PERMISSIONS and isinstance(value, bool):
                setattr(self, f"perm_{key}", value)
