# routes/admin/management.py
"""
Admin account management. Reads are open to any admin; changes to other
admin accounts need a super admin.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_admin, require_super_admin
from model.profiles.admin import Admin
from schema.admin import AdminOut, AdminCreate, AdminUpdate, AdminStatsOut, NavigationPermissionsIn
from schema.common import Page
from src.admin_service import new_admin, admin_stats
from src.route_helpers import get_or_404, paginate, commit_or_409, apply_updates
from src.utils import hash_password

logger = logging.getLogger(__name__)

router = APIRouter()

EMAIL_TAKEN = "Email already taken"


@router.get("/stats", response_model=AdminStatsOut)
def stats(db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    return admin_stats(db)


@router.get("/", response_model=Page[AdminOut])
def list_admins(
    q: Optional[str] = None,
    role_name: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _: Admin = Depends(require_admin),
):
    query = db.query(Admin)
    if q:
        query = query.filter(or_(Admin.name.ilike(f"%{q}%"), Admin.email.ilike(f"%{q}%")))
    if role_name:
        query = query.filter(Admin.role_name == role_name)
    if is_active is not None:
        query = query.filter(Admin.is_active == is_active)
    return paginate(query.order_by(Admin.created_at.desc(), Admin.id.desc()), page, limit)


@router.post(
    "/",
    response_model=AdminOut,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": EMAIL_TAKEN}},
)
def create_admin(body: AdminCreate, db: Session = Depends(get_db), creator: Admin = Depends(require_super_admin)):
    if db.query(Admin.id).filter(Admin.email == body.email.lower()).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=EMAIL_TAKEN)
    admin = new_admin(body.email, body.password, body.name, body.role_name, body.navigation_permissions)
    db.add(admin)
    commit_or_409(db, EMAIL_TAKEN)
    db.refresh(admin)
    logger.info("Admin %s created admin %s (%s)", creator.id, admin.id, admin.role_name)
    return admin


@router.get("/{admin_id}", response_model=AdminOut)
def get_admin(admin_id: int, db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    return get_or_404(db, Admin, admin_id, "Admin not found")


@router.patch("/{admin_id}", response_model=AdminOut)
def update_admin(
    admin_id: int,
    body: AdminUpdate,
    db: Session = Depends(get_db),
    _: Admin = Depends(require_super_admin),
):
    admin = get_or_404(db, Admin, admin_id, "Admin not found")
    data = body.model_dump(exclude_unset=True)

    if data.get("email"):
        data["email"] = data["email"].lower()
        if db.query(Admin.id).filter(Admin.email == data["email"], Admin.id != admin.id).first():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=EMAIL_TAKEN)
    if data.get("password"):
        admin.password_hash = hash_password(data.pop("password"))
    if "navigation_permissions" in data:
        admin.update_navigation_permissions(data.pop("navigation_permissions"))

    apply_updates(admin, data, exclude=("password",))
    commit_or_409(db, EMAIL_TAKEN)
    db.refresh(admin)
    return admin


@router.delete("/{admin_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_admin(admin_id: int, db: Session = Depends(get_db), current: Admin = Depends(require_super_admin)):
    admin = get_or_404(db, Admin, admin_id, "Admin not found")
    if admin.id == current.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")
    db.delete(admin)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{admin_id}/navigation-permissions", response_model=AdminOut)
def update_navigation_permissions(
    admin_id: int,
    body: NavigationPermissionsIn,
    db: Session = Depends(get_db),
    _: Admin = Depends(require_super_admin),
):
    admin = get_or_404(db, Admin, admin_id, "Admin not found")
    admin.update_navigation_permissions(body.permissions)
    db.commit()
    db.refresh(admin)
    return admin


def _set_active(db: Session, admin_id: int, active: bool) -> Admin:
    admin = get_or_404(db, Admin, admin_id, "Admin not found")
    admin.is_active = active
    db.commit()
    db.refresh(admin)
    return admin


@router.patch("/{admin_id}/activate", response_model=AdminOut)
def activate_admin(admin_id: int, db: Session = Depends(get_db), _: Admin = Depends(require_super_admin)):
    return _set_active(db, admin_id, True)


@router.patch("/{admin_id}/deactivate", response_model=AdminOut)
def deactivate_admin(admin_id: int, db: Session = Depends(get_db), current: Admin = Depends(require_super_admin)):
    if admin_id == current.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account")
    return _set_active(db, admin_id, False)
