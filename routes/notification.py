# routes/notification.py
"""
In-app notifications.

Users and builders read and manage their own inbox; admins can post a
notification to any recipient, inspect inboxes and purge expired rows.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import get_principal, require_admin
from config.security import Principal
from model.notification import Notification
from model.profiles.admin import Admin
from model.profiles.builder import Builder
from model.user import User
from schema.common import Page
from schema.notification import (
    NotificationOut, NotificationCreate, UnreadCountOut, CountOut, NotificationStatsOut, RecipientType,
)
from src.notification_service import create_notification, purge_expired
from src.route_helpers import get_or_404, paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/notifications", tags=["Notifications"])

_RECIPIENT_MODELS = {"user": User, "builder": Builder}


def _recipient(principal: Principal = Depends(get_principal)) -> Tuple[str, int]:
    if principal.account_type not in _RECIPIENT_MODELS:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return principal.account_type, principal.id


def _inbox(db: Session, recipient_type: str, recipient_id: int, include_expired: bool = False):
    q = db.query(Notification).filter(
        Notification.recipient_type == recipient_type,
        Notification.recipient_id == recipient_id,
    )
    if not include_expired:
        q = q.filter(or_(Notification.expires_at.is_(None), Notification.expires_at > datetime.utcnow()))
    return q


def _filtered(q, is_read: Optional[bool], type_: Optional[str], priority: Optional[str]):
    if is_read is not None:
        q = q.filter(Notification.is_read.is_(is_read))
    if type_:
        q = q.filter(Notification.notification_type == type_)
    if priority:
        q = q.filter(Notification.priority == priority)
    return q.order_by(Notification.created_at.desc(), Notification.id.desc())


def _own_notification(db: Session, notification_id: int, recipient: Tuple[str, int]) -> Notification:
    row = get_or_404(db, Notification, notification_id, "Notification not found")
    if (row.recipient_type, row.recipient_id) != recipient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return row


# ----------------------------------------------------------------------------
# Admin
# ----------------------------------------------------------------------------
@router.post(
    "/admin/create",
    response_model=NotificationOut,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Recipient not found"}},
)
def admin_create(body: NotificationCreate, db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    get_or_404(db, _RECIPIENT_MODELS[body.recipient_type], body.recipient_id, "Recipient not found")
    try:
        row = create_notification(
            db,
            **body.model_dump(),
            sender_type="admin",
            sender_id=admin.id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.info("Admin %s notified %s:%s", admin.id, row.recipient_type, row.recipient_id)
    return row


@router.get("/admin/user/{recipient_type}/{recipient_id}", response_model=Page[NotificationOut])
def admin_list_for_recipient(
    recipient_type: RecipientType,
    recipient_id: int,
    is_read: Optional[bool] = None,
    type_: Optional[str] = Query(None, alias="type"),
    priority: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _: Admin = Depends(require_admin),
):
    q = _inbox(db, recipient_type, recipient_id, include_expired=True)
    return paginate(_filtered(q, is_read, type_, priority), page, limit)


@router.get("/admin/stats", response_model=NotificationStatsOut)
def admin_stats(db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    by_type = dict(
        db.query(Notification.notification_type, func.count(Notification.id))
        .group_by(Notification.notification_type)
        .all()
    )
    by_priority = dict(
        db.query(Notification.priority, func.count(Notification.id))
        .group_by(Notification.priority)
        .all()
    )
    return NotificationStatsOut(
        total=db.query(Notification).count(),
        unread=db.query(Notification).filter(Notification.is_read.is_(False)).count(),
        by_type=by_type,
        by_priority=by_priority,
    )


@router.delete("/admin/purge-expired", response_model=CountOut)
def admin_purge_expired(db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    count = purge_expired(db)
    return CountOut(message="Expired notifications purged", count=count)


# ----------------------------------------------------------------------------
# Recipient inbox
# ----------------------------------------------------------------------------
@router.get("/", response_model=Page[NotificationOut])
def list_notifications(
    is_read: Optional[bool] = None,
    type_: Optional[str] = Query(None, alias="type"),
    priority: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    recipient: Tuple[str, int] = Depends(_recipient),
):
    return paginate(_filtered(_inbox(db, *recipient), is_read, type_, priority), page, limit)


@router.get("/unread-count", response_model=UnreadCountOut)
def unread_count(db: Session = Depends(get_db), recipient: Tuple[str, int] = Depends(_recipient)):
    count = _inbox(db, *recipient).filter(Notification.is_read.is_(False)).count()
    return UnreadCountOut(unread_count=count)


@router.patch("/mark-all-read", response_model=CountOut)
def mark_all_read(db: Session = Depends(get_db), recipient: Tuple[str, int] = Depends(_recipient)):
    count = (
        _inbox(db, *recipient, include_expired=True)
        .filter(Notification.is_read.is_(False))
        .update({"is_read": True, "read_at": datetime.utcnow()}, synchronize_session=False)
    )
    db.commit()
    return CountOut(message="All notifications marked as read", count=count)


@router.delete("/delete-all", response_model=CountOut)
def delete_all(db: Session = Depends(get_db), recipient: Tuple[str, int] = Depends(_recipient)):
    count = _inbox(db, *recipient, include_expired=True).delete(synchronize_session=False)
    db.commit()
    return CountOut(message="All notifications deleted", count=count)


@router.get("/{notification_id}", response_model=NotificationOut)
def get_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    recipient: Tuple[str, int] = Depends(_recipient),
):
    return _own_notification(db, notification_id, recipient)


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    recipient: Tuple[str, int] = Depends(_recipient),
):
    row = _own_notification(db, notification_id, recipient)
    row.mark_as_read()
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    recipient: Tuple[str, int] = Depends(_recipient),
):
    row = _own_notification(db, notification_id, recipient)
    db.delete(row)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
