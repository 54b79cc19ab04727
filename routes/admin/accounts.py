# routes/admin/accounts.py
"""
Admin login and the signed-in admin's own profile.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_admin
from model.profiles.admin import Admin
from schema.admin import AdminOut, AdminAuthOut, AdminLoginIn, AdminProfileUpdate, PermissionCheckOut, EnabledPermissionsOut
from schema.auth import ChangePasswordIn
from schema.common import MessageOut
from src import auth_flows
from src.route_helpers import commit_or_409, apply_updates
from src.token_service import generate_auth_tokens

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/login",
    response_model=AdminAuthOut,
    responses={401: {"description": "Incorrect email or password / Account is deactivated"}},
    openapi_extra={"security": []},
)
def login(body: AdminLoginIn, db: Session = Depends(get_db)):
    admin = auth_flows.login_with_password(db, "admin", body.email, body.password)
    return {"admin": admin, "tokens": generate_auth_tokens(db, "admin", admin)}


@router.get("/profile", response_model=AdminOut)
def get_profile(admin: Admin = Depends(require_admin)):
    return admin


@router.patch("/profile", response_model=AdminOut)
def update_profile(body: AdminProfileUpdate, db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    data = body.model_dump(exclude_unset=True)
    if data.get("email"):
        data["email"] = data["email"].lower()
        taken = db.query(Admin.id).filter(Admin.email == data["email"], Admin.id != admin.id).first()
        if taken:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already taken")
    apply_updates(admin, data)
    commit_or_409(db, "Email already taken")
    db.refresh(admin)
    return admin


@router.post("/profile/change-password", response_model=MessageOut)
def change_password(body: ChangePasswordIn, db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    auth_flows.change_password(db, admin, body.current_password, body.new_password)
    return MessageOut(message="Password changed successfully")


@router.get("/profile/permissions", response_model=EnabledPermissionsOut)
def enabled_permissions(admin: Admin = Depends(require_admin)):
    return EnabledPermissionsOut(permissions=admin.get_enabled_permissions())


@router.get("/check-permission/{permission}", response_model=PermissionCheckOut)
def check_permission(permission: str, admin: Admin = Depends(require_admin)):
    return PermissionCheckOut(permission=permission, has_permission=admin.has_permission(permission))
