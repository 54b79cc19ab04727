# src/admin_service.py
import logging
from datetime import datetime, timedelta
from typing import Optional, Dict

from sqlalchemy.orm import Session

from config.settings import DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD, DEFAULT_ADMIN_NAME
from model.profiles.admin import Admin, NAVIGATION_PERMISSIONS
from src.id_generator import generate_public_id
from src.utils import hash_password

logger = logging.getLogger(__name__)


def new_admin(email: str, password: str, name: str, role_name: str = "admin",
              navigation_permissions: Optional[Dict[str, bool]] = None) -> Admin:
    """Build (not persist) an admin. Super admins get every navigation permission."""
    admin = Admin(
        public_id=generate_public_id("admin"),
        email=email.strip().lower(),
        password_hash=hash_password(password),
        name=name,
        role_name=role_name,
    )
    if role_name == "super_admin":
        admin.update_navigation_permissions({p: True for p in NAVIGATION_PERMISSIONS})
    else:
        admin.update_navigation_permissions(NAVIGATION_PERMISSIONS)
    admin.update_navigation_permissions(navigation_permissions)
    return admin


def create_default_super_admin(db: Session) -> Optional[Admin]:
    """Seed one super admin when the admins table is empty. Returns it, or None if admins exist."""
    if db.query(Admin.id).first() is not None:
        return None
    admin = new_admin(DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD, DEFAULT_ADMIN_NAME, role_name="super_admin")
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.warning("Created default super admin %s; change its password", admin.email)
    return admin


def admin_stats(db: Session) -> Dict[str, int]:
    total = db.query(Admin).count()
    active = db.query(Admin).filter(Admin.is_active.is_(True)).count()
    since = datetime.utcnow() - timedelta(days=7)
    return {
        "total": total,
        "active": active,
        "inactive": total - active,
        "super_admins": db.query(Admin).filter(Admin.role_name == "super_admin").count(),
        "regular_admins": db.query(Admin).filter(Admin.role_name == "admin").count(),
        "recent_logins": db.query(Admin).filter(Admin.last_login_at >= since).count(),
    }


__all__ = ["new_admin", "create_default_super_admin", "admin_stats"]
