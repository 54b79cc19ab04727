from datetime import datetime
from typing import Optional, Dict, Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field

RecipientType = Literal["user", "builder"]
Priority = Literal["low", "medium", "high", "urgent"]
ActionType = Literal["visit_property", "view_profile", "reply_message", "view_document", "none"]


class ActionData(BaseModel):
    type: ActionType = "none"
    url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class NotificationOut(BaseModel):
    id: int
    title: str
    description: str
    recipient_type: RecipientType
    recipient_id: int
    notification_type: str
    priority: Priority
    is_read: bool
    read_at: Optional[datetime] = None
    action_data: ActionData
    sender_type: str
    sender_id: Optional[int] = None
    delivery_channels: Optional[List[str]] = None
    expires_at: Optional[datetime] = None
    meta: Optional[Dict[str, Any]] = Field(None, serialization_alias="metadata")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationCreate(BaseModel):
    """Admin-created notification."""
    recipient_type: RecipientType
    recipient_id: int = Field(..., ge=1)
    notification_type: str = "system_announcement"
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    priority: Priority = "medium"
    action_type: ActionType = "none"
    action_url: Optional[str] = Field(None, max_length=1024)
    action_metadata: Optional[Dict[str, Any]] = None
    expires_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None


class UnreadCountOut(BaseModel):
    unread_count: int


class CountOut(BaseModel):
    message: str
    count: int


class NotificationStatsOut(BaseModel):
    total: int
    unread: int
    by_type: Dict[str, int]
    by_priority: Dict[str, int]


__all__ = [
    "ActionData",
    "NotificationOut",
    "NotificationCreate",
    "UnreadCountOut",
    "CountOut",
    "NotificationStatsOut",
]
