# routes/chat.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import get_principal
from config.security import Principal
from model.chat import ChatMessage
from model.profiles.builder import Builder
from model.user import User
from schema.chat import ChatSendIn, ChatMessageOut
from schema.common import Page
from src.notification_service import notify_chat_message
from src.route_helpers import get_or_404, paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/chat", tags=["Chat"])


def _participant(principal: Principal) -> Principal:
    if principal.account_type not in ("user", "builder"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only users and builders can chat")
    return principal


@router.post(
    "/send",
    response_model=ChatMessageOut,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Recipient is required"}, 404: {"description": "Recipient not found"}},
)
def send_message(body: ChatSendIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    """
    Send a message to the other side of a user/builder conversation.

    The sender side comes from the token: a user names the `builder_id` to
    write to, a builder (or one of its team members) names the `user_id`.
    """
    _participant(principal)
    if principal.account_type == "user":
        if body.builder_id is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="builder_id is required")
        get_or_404(db, Builder, body.builder_id, "Recipient not found")
        user_id, builder_id, sender_type = principal.id, body.builder_id, "User"
    else:
        if body.user_id is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="user_id is required")
        get_or_404(db, User, body.user_id, "Recipient not found")
        user_id, builder_id, sender_type = body.user_id, principal.id, "Builder"

    message = ChatMessage(user_id=user_id, builder_id=builder_id, message=body.message, sender_type=sender_type)
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.debug("Chat message %s: user %s <-> builder %s", message.id, user_id, builder_id)

    notify_chat_message(db, message)
    return message


@router.get("/history", response_model=Page[ChatMessageOut])
def history(
    user_id: Optional[int] = None,
    builder_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Messages between one user and one builder, oldest first."""
    if principal.account_type == "user":
        user_id = user_id or principal.id
    elif principal.account_type == "builder":
        builder_id = builder_id or principal.id
    if user_id is None or builder_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="user_id and builder_id are required")
    if not (principal.is_admin or principal.owns("user", user_id) or principal.owns("builder", builder_id)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    q = (
        db.query(ChatMessage)
        .filter(ChatMessage.user_id == user_id, ChatMessage.builder_id == builder_id)
        .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
    )
    return paginate(q, page, limit)


@router.get("/messages", response_model=List[ChatMessageOut])
def conversations(db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    """The latest message of each conversation the caller takes part in."""
    _participant(principal)
    if principal.account_type == "user":
        own, other = ChatMessage.user_id, ChatMessage.builder_id
    else:
        own, other = ChatMessage.builder_id, ChatMessage.user_id

    latest = select(func.max(ChatMessage.id)).where(own == principal.id).group_by(other)
    return (
        db.query(ChatMessage)
        .filter(ChatMessage.id.in_(latest))
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .all()
    )
