# src/notification_service.py
"""
In-app notifications.

`create_notification` persists one row and raises on failure. Every `notify_*`
helper is best-effort: it commits on its own, and on any error it rolls back,
logs and returns None (or []). Call the helpers only after the primary
operation has been committed, so a failed notification never undoes it.
"""
import logging
from datetime import datetime
from typing import Optional, List, Iterable, Dict, Any

from sqlalchemy.orm import Session

from model.notification import Notification, NOTIFICATION_TYPES, RECIPIENT_TYPES

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    *,
    recipient_type: str,
    recipient_id: int,
    notification_type: str,
    title: str,
    description: str,
    priority: str = "medium",
    action_type: str = "none",
    action_url: Optional[str] = None,
    action_metadata: Optional[Dict[str, Any]] = None,
    sender_type: str = "system",
    sender_id: Optional[int] = None,
    delivery_channels: Optional[List[str]] = None,
    expires_at: Optional[datetime] = None,
    metadata: Optional[Dict[str, Any]] = None,
    commit: bool = True,
) -> Notification:
    if recipient_type not in RECIPIENT_TYPES:
        raise ValueError(f"Unknown recipient type: {recipient_type}")
    if notification_type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {notification_type}")

    row = Notification(
        recipient_type=recipient_type,
        recipient_id=recipient_id,
        notification_type=notification_type,
        title=title[:200],
        description=description[:1000],
        priority=priority,
        action_type=action_type,
        action_url=action_url,
        action_metadata=action_metadata,
        sender_type=sender_type,
        sender_id=sender_id,
        delivery_channels=delivery_channels or ["in_app"],
        expires_at=expires_at,
        meta=metadata,
    )
    db.add(row)
    if commit:
        db.commit()
        db.refresh(row)
    return row


def notify(db: Session, **kwargs) -> Optional[Notification]:
    """Best-effort wrapper around create_notification."""
    try:
        return create_notification(db, **kwargs)
    except Exception as e:
        db.rollback()
        logger.warning(
            "Failed to create %s notification for %s:%s: %s",
            kwargs.get("notification_type"), kwargs.get("recipient_type"), kwargs.get("recipient_id"), e,
        )
        return None


# ---------------------------------------------------------------------------
# Helper builders
# ---------------------------------------------------------------------------
_PROPERTY_MESSAGES = {
    "property_approved": ("Property approved", "Your property '{name}' has been approved and is now visible."),
    "property_rejected": ("Property rejected", "Your property '{name}' was rejected. Reason: {reason}"),
    "property_published": ("Property published", "Your property '{name}' is now published."),
    "user_shortlist": ("Property shortlisted", "A user added '{name}' to their shortlist."),
    "user_view": ("Property viewed", "A user viewed '{name}'."),
    "user_inquiry": ("New inquiry", "A user sent an inquiry about '{name}'."),
}


def notify_property_event(db: Session, prop, notification_type: str, reason: Optional[str] = None,
                          sender_type: str = "system", sender_id: Optional[int] = None) -> Optional[Notification]:
    """Builder-facing notification about one of their properties."""
    title, template = _PROPERTY_MESSAGES.get(
        notification_type, ("Property update", "There is an update on '{name}'.")
    )
    return notify(
        db,
        recipient_type="builder",
        recipient_id=prop.builder_id,
        notification_type=notification_type,
        title=title,
        description=template.format(name=prop.name, reason=reason or "not specified"),
        priority="high" if notification_type in ("property_approved", "property_rejected") else "medium",
        action_type="visit_property",
        action_url=f"/properties/{prop.id}",
        action_metadata={"property_id": prop.id},
        sender_type=sender_type,
        sender_id=sender_id,
    )


_VISIT_MESSAGES = {
    "visit_scheduled": ("user", "Visit scheduled", "Your visit to '{name}' is scheduled for {date} at {time}."),
    "visit_confirmed": ("user", "Visit confirmed", "Your visit to '{name}' on {date} at {time} is confirmed."),
    "visit_cancelled": ("user", "Visit cancelled", "Your visit to '{name}' on {date} at {time} was cancelled."),
    "visit_reminder": ("user", "Visit reminder", "Reminder: you are visiting '{name}' on {date} at {time}."),
    "visit_request": ("builder", "New visit request", "A visit to '{name}' was requested for {date} at {time}."),
    "visit_confirmed_by_user": ("builder", "Visit confirmed", "A visit to '{name}' on {date} at {time} was confirmed."),
    "visit_cancelled_by_user": ("builder", "Visit cancelled", "A visit to '{name}' on {date} at {time} was cancelled."),
}


def notify_visit_event(db: Session, visit, prop, notification_type: str) -> Optional[Notification]:
    recipient_type, title, template = _VISIT_MESSAGES[notification_type]
    recipient_id = visit.user_id if recipient_type == "user" else prop.builder_id
    return notify(
        db,
        recipient_type=recipient_type,
        recipient_id=recipient_id,
        notification_type=notification_type,
        title=title,
        description=template.format(name=prop.name, date=visit.date.isoformat(), time=visit.time),
        priority="high",
        action_type="visit_property",
        action_url=f"/visits/{visit.id}",
        action_metadata={"visit_id": visit.id, "property_id": prop.id},
    )


def notify_chat_message(db: Session, message) -> Optional[Notification]:
    """Tell the other side of a conversation about a new message."""
    if message.sender_type == "User":
        recipient_type, recipient_id, sender_type, sender_id = "builder", message.builder_id, "user", message.user_id
        notification_type = "user_inquiry"
    else:
        recipient_type, recipient_id, sender_type, sender_id = "user", message.user_id, "builder", message.builder_id
        notification_type = "builder_message"
    preview = message.message if len(message.message) <= 100 else message.message[:97] + "..."
    return notify(
        db,
        recipient_type=recipient_type,
        recipient_id=recipient_id,
        notification_type=notification_type,
        title="New message",
        description=preview,
        action_type="reply_message",
        action_url=f"/chat/{message.user_id}/{message.builder_id}",
        action_metadata={"message_id": message.id},
        sender_type=sender_type,
        sender_id=sender_id,
    )


def notify_system(db: Session, recipient_type: str, recipient_ids: Iterable[int], title: str, description: str,
                  priority: str = "medium") -> List[Notification]:
    """System announcement to many recipients. Returns the rows that were created."""
    created = []
    for rid in recipient_ids:
        row = notify(
            db,
            recipient_type=recipient_type,
            recipient_id=rid,
            notification_type="system_announcement",
            title=title,
            description=description,
            priority=priority,
        )
        if row is not None:
            created.append(row)
    return created


def notify_welcome(db: Session, recipient_type: str, recipient_id: int, name: Optional[str]) -> Optional[Notification]:
    return notify(
        db,
        recipient_type=recipient_type,
        recipient_id=recipient_id,
        notification_type="welcome",
        title="Welcome to Zuhaush",
        description=f"Hi {name or 'there'}, your account is ready.",
        priority="low",
        action_type="view_profile",
    )


def notify_profile_decision(db: Session, builder, admin_id: Optional[int]) -> Optional[Notification]:
    approved = builder.admin_decision_status == "approved"
    notes = builder.admin_decision_notes
    description = "Your builder profile has been approved." if approved else "Your builder profile was rejected."
    if notes:
        description += f" Notes: {notes}"
    return notify(
        db,
        recipient_type="builder",
        recipient_id=builder.id,
        notification_type="profile_approved" if approved else "profile_rejected",
        title="Profile approved" if approved else "Profile rejected",
        description=description,
        priority="high",
        action_type="view_profile",
        sender_type="admin",
        sender_id=admin_id,
    )


def notify_team_member_change(db: Session, builder_id: int, member_name: str, added: bool) -> Optional[Notification]:
    return notify(
        db,
        recipient_type="builder",
        recipient_id=builder_id,
        notification_type="team_member_added" if added else "team_member_removed",
        title="Team member added" if added else "Team member removed",
        description=f"{member_name} was {'added to' if added else 'removed from'} your team.",
        priority="low",
    )


def purge_expired(db: Session) -> int:
    now = datetime.utcnow()
    count = (
        db.query(Notification)
        .filter(Notification.expires_at.isnot(None), Notification.expires_at < now)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("Purged %s expired notifications", count)
    return count


__all__ = [
    "create_notification",
    "notify",
    "notify_property_event",
    "notify_visit_event",
    "notify_chat_message",
    "notify_system",
    "notify_welcome",
    "notify_profile_decision",
    "notify_team_member_change",
    "purge_expired",
]
