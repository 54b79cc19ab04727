# src/route_helpers.py
"""
Helper utilities shared by the FastAPI routes.
Provides consistent lookup, pagination, and error handling across all routes.
"""

import math
import logging
from typing import Optional, Type, TypeVar, Callable, Any, Dict

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, Query


logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_PAGE_SIZE = 100


# =============================================================================
# Lookups
# =============================================================================

def get_or_404(db: Session, model: Type[T], pk: Any, detail: Optional[str] = None) -> T:
    """
    Get a row by primary key.

    Raises:
        HTTPException 404: row not found (detail defaults to "<Model> not found")
    """
    obj = db.get(model, pk)
    if obj is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail or f"{model.__name__} not found",
        )
    return obj


# =============================================================================
# Pagination
# =============================================================================

def paginate(
    query: Query,
    page: int = 1,
    limit: int = 10,
    serializer: Optional[Callable[[Any], Any]] = None,
) -> Dict[str, Any]:
    """
    Apply offset/limit to `query` and wrap the rows in the list envelope:

        {"results": [...], "page": 1, "limit": 10, "totalPages": 3, "totalResults": 27}
    """
    page = max(1, int(page or 1))
    limit = min(MAX_PAGE_SIZE, max(1, int(limit or 10)))

    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    results = [serializer(r) for r in rows] if serializer else rows

    return {
        "results": results,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if total else 0,
        "totalResults": total,
    }


# =============================================================================
# Writes
# =============================================================================

def commit_or_409(db: Session, detail: str) -> None:
    """
    Commit; a unique-constraint violation from a concurrent writer is rolled
    back and reported as 409 with the same message as the read-then-write check.
    """
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Unique constraint violation on commit: %s", detail)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


def apply_updates(obj: Any, data: Dict[str, Any], exclude: tuple = ()) -> Any:
    """setattr every key of `data` onto `obj`, skipping `exclude`."""
    for key, value in data.items():
        if key in exclude:
            continue
        setattr(obj, key, value)
    return obj


__all__ = [
    "get_or_404",
    "paginate",
    "commit_or_409",
    "apply_updates",
    "MAX_PAGE_SIZE",
]
