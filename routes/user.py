# routes/user.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user, require_rights
from config.security import Principal
from model.user import User, UserShortlist
from model.property.property import Property
from schema.auth import ChangePasswordIn
from schema.common import Page, MessageOut
from schema.property import PropertySummary
from schema.user import (
    UserOut, UserCreate, UserUpdate, ProfileUpdate,
    PreferencesIn, PreferencesOut, UserStatsOut,
    ShortlistIn, ShortlistCheckOut,
)
from src import auth_flows
from src.notification_service import notify_property_event
from src.route_helpers import get_or_404, paginate, commit_or_409, apply_updates


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/users", tags=["Users"])

ALREADY_SHORTLISTED = "Property is already in shortlist"
ADMIN_ONLY_FIELDS = ("role", "is_active", "is_email_verified")


# ----------------------------------------------------------------------------
# Own profile
# ----------------------------------------------------------------------------
@router.get("/me", response_model=UserOut)
def get_profile(user: User = Depends(require_user)):
    return user


@router.patch("/me", response_model=UserOut)
def update_profile(body: ProfileUpdate, db: Session = Depends(get_db), user: User = Depends(require_user)):
    apply_updates(user, body.model_dump(exclude_unset=True))
    user.refresh_registration_status()
    db.commit()
    db.refresh(user)
    return user


@router.get("/me/preferences", response_model=PreferencesOut)
def get_preferences(user: User = Depends(require_user)):
    return PreferencesOut(preferences=user.preferences, permissions=user.permissions)


@router.patch("/me/preferences", response_model=PreferencesOut)
def update_preferences(body: PreferencesIn, db: Session = Depends(get_db), user: User = Depends(require_user)):
    if body.preferences is not None:
        user.preferences = {**(user.preferences or {}), **body.preferences}
    if body.permissions is not None:
        for key, value in body.permissions.model_dump().items():
            setattr(user, f"perm_{key}", value)
    db.commit()
    db.refresh(user)
    return PreferencesOut(preferences=user.preferences, permissions=user.permissions)


@router.post(
    "/me/change-password",
    response_model=MessageOut,
    responses={401: {"description": "Current password is incorrect"}},
)
def change_password(body: ChangePasswordIn, db: Session = Depends(get_db), user: User = Depends(require_user)):
    auth_flows.change_password(db, user, body.current_password, body.new_password)
    return MessageOut(message="Password changed successfully")


# ----------------------------------------------------------------------------
# Shortlist
# ----------------------------------------------------------------------------
@router.get("/me/shortlist", response_model=Page[PropertySummary])
def list_shortlist(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    q = (
        db.query(Property)
        .join(UserShortlist, UserShortlist.property_id == Property.id)
        .filter(UserShortlist.user_id == user.id)
        .order_by(UserShortlist.created_at.desc(), UserShortlist.id.desc())
    )
    return paginate(q, page, limit)


@router.post(
    "/me/shortlist",
    response_model=ShortlistCheckOut,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Property not found"}, 409: {"description": ALREADY_SHORTLISTED}},
)
def add_to_shortlist(body: ShortlistIn, db: Session = Depends(get_db), user: User = Depends(require_user)):
    prop = get_or_404(db, Property, body.property_id, "Property not found")
    if user.is_property_shortlisted(prop.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_SHORTLISTED)

    db.add(UserShortlist(user_id=user.id, property_id=prop.id))
    commit_or_409(db, ALREADY_SHORTLISTED)

    notify_property_event(db, prop, "user_shortlist", sender_type="user", sender_id=user.id)
    return ShortlistCheckOut(property_id=prop.id, is_shortlisted=True)


@router.delete(
    "/me/shortlist/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Property is not in shortlist"}},
)
def remove_from_shortlist(property_id: int, db: Session = Depends(get_db), user: User = Depends(require_user)):
    row = (
        db.query(UserShortlist)
        .filter(UserShortlist.user_id == user.id, UserShortlist.property_id == property_id)
        .first()
    )
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property is not in shortlist")
    db.delete(row)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me/shortlist/{property_id}/check", response_model=ShortlistCheckOut)
def check_shortlist(property_id: int, db: Session = Depends(get_db), user: User = Depends(require_user)):
    exists = (
        db.query(UserShortlist.id)
        .filter(UserShortlist.user_id == user.id, UserShortlist.property_id == property_id)
        .first()
        is not None
    )
    return ShortlistCheckOut(property_id=property_id, is_shortlisted=exists)


# ----------------------------------------------------------------------------
# Admin management
# ----------------------------------------------------------------------------
@router.get("/", response_model=Page[UserOut])
def list_users(
    q: Optional[str] = None,
    role: Optional[str] = None,
    account_type: Optional[str] = None,
    registration_status: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_rights("getUsers")),
):
    query = db.query(User)
    if q:
        like = f"%{q}%"
        query = query.filter(or_(User.name.ilike(like), User.email.ilike(like), User.contact_number.ilike(like)))
    if role:
        query = query.filter(User.role == role)
    if account_type:
        query = query.filter(User.account_type == account_type)
    if registration_status:
        query = query.filter(User.registration_status == registration_status)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    return paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, limit)


@router.post(
    "/",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Email already taken"}},
)
def create_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_rights("manageUsers")),
):
    fields = body.model_dump(exclude={"email", "password"})
    user = auth_flows.register(db, "user", body.email, body.password, **fields)
    return user


@router.get("/stats", response_model=UserStatsOut)
def user_stats(db: Session = Depends(get_db), _: Principal = Depends(require_rights("getUsers"))):
    base = db.query(User)
    return UserStatsOut(
        total=base.count(),
        active=base.filter(User.is_active.is_(True)).count(),
        inactive=base.filter(User.is_active.is_(False)).count(),
        guests=base.filter(User.account_type == "guest").count(),
        agents=base.filter(User.role == "agent").count(),
        verified=base.filter(User.is_email_verified.is_(True)).count(),
        completed_registrations=base.filter(User.registration_status == "completed").count(),
    )


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), _: Principal = Depends(require_rights("getUsers"))):
    return get_or_404(db, User, user_id, "User not found")


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    body: UserUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_rights("manageUsers")),
):
    user = get_or_404(db, User, user_id, "User not found")
    data = body.model_dump(exclude_unset=True)
    if not principal.is_admin:
        # self-service callers cannot change their own standing
        for key in ADMIN_ONLY_FIELDS:
            data.pop(key, None)
    if data.get("email"):
        data["email"] = data["email"].lower()
        taken = db.query(User.id).filter(User.email == data["email"], User.id != user.id).first()
        if taken:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already taken")
    apply_updates(user, data)
    user.refresh_registration_status()
    commit_or_409(db, "Email already taken")
    db.refresh(user)
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, db: Session = Depends(get_db), _: Principal = Depends(require_rights("manageUsers"))):
    user = get_or_404(db, User, user_id, "User not found")
    db.delete(user)
    db.commit()
    logger.info("Deleted user %s", user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _set_active(db: Session, user_id: int, active: bool) -> User:
    user = get_or_404(db, User, user_id, "User not found")
    user.is_active = active
    db.commit()
    db.refresh(user)
    return user


@router.patch("/{user_id}/activate", response_model=UserOut)
def activate_user(user_id: int, db: Session = Depends(get_db), _: Principal = Depends(require_rights("manageUsers"))):
    return _set_active(db, user_id, True)


@router.patch("/{user_id}/deactivate", response_model=UserOut)
def deactivate_user(user_id: int, db: Session = Depends(get_db), _: Principal = Depends(require_rights("manageUsers"))):
    return _set_active(db, user_id, False)
