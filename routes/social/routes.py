from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user, require_builder
from model.profiles.builder import Builder
from model.property.property import Property
from model.social.enum import LikeStatus, CommentStatus
from model.social.models import Like, Comment
from model.user import User
from schema.common import Page
from schema.social import LikeToggleOut, LikeStatusOut, LikeOut, CommentCreate, CommentUpdate, CommentOut
from src.route_helpers import get_or_404, paginate, commit_or_409

router = APIRouter(
    prefix="/v1",
    tags=["Social"],
)


def _bump(db: Session, model, row_id: int, column: str, delta: int) -> None:
    """Atomic counter change that never goes below zero."""
    col = getattr(model, column)
    q = db.query(model).filter(model.id == row_id)
    if delta < 0:
        q = q.filter(col > 0)
    q.update({column: col + delta}, synchronize_session=False)


# --------------------------
# Likes
# --------------------------

@router.post("/properties/{property_id}/like", response_model=LikeToggleOut)
def toggle_like(property_id: int, db: Session = Depends(get_db), user: User = Depends(require_user)):
    """Like the property, or remove the like if one already exists."""
    prop = get_or_404(db, Property, property_id, "Property not found")
    existing = db.query(Like).filter(Like.property_id == prop.id, Like.user_id == user.id).first()

    if existing:
        db.delete(existing)
        _bump(db, Property, prop.id, "likes_count", -1)
        db.commit()
        liked, message = False, "Property unliked"
    else:
        db.add(Like(property_id=prop.id, user_id=user.id))
        _bump(db, Property, prop.id, "likes_count", 1)
        commit_or_409(db, "Property already liked")
        liked, message = True, "Property liked"

    db.refresh(prop)
    return LikeToggleOut(liked=liked, message=message, likeCount=prop.likes_count)


@router.get("/properties/{property_id}/like/status", response_model=LikeStatusOut)
def like_status(property_id: int, db: Session = Depends(get_db), user: User = Depends(require_user)):
    prop = get_or_404(db, Property, property_id, "Property not found")
    liked = db.query(Like.id).filter(Like.property_id == prop.id, Like.user_id == user.id).first() is not None
    return LikeStatusOut(property_id=prop.id, liked=liked, likeCount=prop.likes_count)


@router.get("/properties/{property_id}/likes", response_model=Page[LikeOut])
def list_likes(
    property_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    get_or_404(db, Property, property_id, "Property not found")
    q = (
        db.query(Like)
        .filter(Like.property_id == property_id, Like.status == LikeStatus.active.value)
        .order_by(Like.created_at.desc(), Like.id.desc())
    )
    return paginate(q, page, limit)


# --------------------------
# Comments
# --------------------------

@router.post("/properties/{property_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
def create_comment(
    property_id: int,
    payload: CommentCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    """Comment on a property, or reply to one of its comments."""
    prop = get_or_404(db, Property, property_id, "Property not found")
    if payload.parent_comment_id is not None:
        parent = db.get(Comment, payload.parent_comment_id)
        if parent is None or parent.property_id != prop.id or parent.status == CommentStatus.deleted.value:
            raise HTTPException(status_code=404, detail="Parent comment not found")

    comment = Comment(
        property_id=prop.id,
        user_id=user.id,
        parent_comment_id=payload.parent_comment_id,
        text=payload.text,
        ip_address=request.client.host if request.client else None,
        user_agent=(request.headers.get("user-agent") or "")[:255] or None,
    )
    db.add(comment)
    if payload.parent_comment_id is not None:
        _bump(db, Comment, payload.parent_comment_id, "reply_count", 1)
    db.commit()
    db.refresh(comment)
    return comment


@router.get("/properties/{property_id}/comments", response_model=Page[CommentOut])
def list_comments(
    property_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Active top-level comments, newest first."""
    get_or_404(db, Property, property_id, "Property not found")
    q = (
        db.query(Comment)
        .filter(
            Comment.property_id == property_id,
            Comment.status == CommentStatus.active.value,
            Comment.parent_comment_id.is_(None),
        )
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    return paginate(q, page, limit)


@router.get("/comments/{comment_id}/replies", response_model=Page[CommentOut])
def list_replies(
    comment_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    get_or_404(db, Comment, comment_id, "Comment not found")
    q = (
        db.query(Comment)
        .filter(Comment.parent_comment_id == comment_id, Comment.status == CommentStatus.active.value)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    return paginate(q, page, limit)


@router.get("/comments/{comment_id}", response_model=CommentOut)
def get_comment(comment_id: int, db: Session = Depends(get_db)):
    comment = get_or_404(db, Comment, comment_id, "Comment not found")
    if comment.status == CommentStatus.deleted.value:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment


@router.patch("/comments/{comment_id}", response_model=CommentOut)
def update_comment(
    comment_id: int,
    payload: CommentUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    comment = get_or_404(db, Comment, comment_id, "Comment not found")
    if comment.user_id != user.id:
        raise HTTPException(status_code=403, detail="You can only update your own comments")
    if comment.status == CommentStatus.deleted.value:
        raise HTTPException(status_code=404, detail="Comment not found")
    comment.text = payload.text
    comment.is_edited = True
    comment.edited_at = datetime.utcnow()
    db.commit()
    db.refresh(comment)
    return comment


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(comment_id: int, db: Session = Depends(get_db), user: User = Depends(require_user)):
    """Soft delete; replies stay attached to the thread."""
    comment = get_or_404(db, Comment, comment_id, "Comment not found")
    if comment.user_id != user.id:
        raise HTTPException(status_code=403, detail="You can only delete your own comments")
    if comment.status != CommentStatus.deleted.value:
        comment.status = CommentStatus.deleted.value
        if comment.parent_comment_id is not None:
            _bump(db, Comment, comment.parent_comment_id, "reply_count", -1)
        db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/builder/comments", response_model=Page[CommentOut])
def builder_comments(
    property_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    builder: Builder = Depends(require_builder),
):
    """Active comments across the builder's own properties."""
    q = (
        db.query(Comment)
        .join(Property, Property.id == Comment.property_id)
        .filter(Property.builder_id == builder.id, Comment.status == CommentStatus.active.value)
    )
    if property_id is not None:
        q = q.filter(Comment.property_id == property_id)
    return paginate(q.order_by(Comment.created_at.desc(), Comment.id.desc()), page, limit)
