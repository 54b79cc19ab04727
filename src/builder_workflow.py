"""
Builder Review Workflow

draft -> submitted -> approved | rejected, with rejected -> draft for resubmission.
Approved is terminal. Every operation checks the current status first and
leaves the row untouched when the check fails.
"""
import logging
from datetime import datetime
from typing import Dict, Set, Optional

from sqlalchemy.orm import Session

from model.profiles.builder import Builder
from src.notification_service import notify_profile_decision

logger = logging.getLogger(__name__)


class InvalidStatusTransitionError(Exception):
    """Raised when an invalid status transition is attempted."""
    pass


class BuilderWorkflow:
    """Defines and validates builder review transitions."""

    TRANSITIONS: Dict[str, Set[str]] = {
        "draft": {"submitted"},
        "submitted": {"approved", "rejected"},
        "rejected": {"draft"},
        "approved": set(),  # Terminal state
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        return to_status in cls.TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate transition or raise InvalidStatusTransitionError."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidStatusTransitionError(
                f"Invalid builder status transition: {from_status} -> {to_status}"
            )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    @classmethod
    def _move(cls, builder: Builder, to_status: str, message: str) -> None:
        if not cls.can_transition(builder.status, to_status):
            raise InvalidStatusTransitionError(message)
        logger.info("Builder %s status %s -> %s", builder.id, builder.status, to_status)
        builder.status = to_status

    @classmethod
    def submit(cls, db: Session, builder: Builder) -> Builder:
        cls._move(builder, "submitted", "Only draft profiles can be submitted for review")
        db.commit()
        db.refresh(builder)
        return builder

    @classmethod
    def approve(cls, db: Session, builder: Builder, admin_id: Optional[int], notes: str = "") -> Builder:
        cls._move(builder, "approved", "Only submitted profiles can be approved")
        builder.admin_decision_status = "approved"
        builder.admin_decision_notes = notes or ""
        builder.reviewed_by = admin_id
        builder.reviewed_at = datetime.utcnow()
        db.commit()
        db.refresh(builder)
        notify_profile_decision(db, builder, admin_id)
        return builder

    @classmethod
    def reject(cls, db: Session, builder: Builder, admin_id: Optional[int], notes: Optional[str]) -> Builder:
        if builder.status != "submitted":
            raise InvalidStatusTransitionError("Only submitted profiles can be rejected")
        if not notes or not notes.strip():
            raise InvalidStatusTransitionError("Rejection notes are required")
        cls._move(builder, "rejected", "Only submitted profiles can be rejected")
        builder.admin_decision_status = "rejected"
        builder.admin_decision_notes = notes.strip()
        builder.reviewed_by = admin_id
        builder.reviewed_at = datetime.utcnow()
        db.commit()
        db.refresh(builder)
        notify_profile_decision(db, builder, admin_id)
        return builder

    @classmethod
    def reset_to_draft(cls, db: Session, builder: Builder) -> Builder:
        cls._move(builder, "draft", "Only rejected profiles can be reset to draft")
        builder.clear_admin_decision()
        db.commit()
        db.refresh(builder)
        return builder


__all__ = ["BuilderWorkflow", "InvalidStatusTransitionError"]
