# social/enum.py
from enum import StrEnum


class LikeType(StrEnum):
    like = "like"
    dislike = "dislike"


class LikeStatus(StrEnum):
    active = "active"
    inactive = "inactive"
    flagged = "flagged"


class CommentStatus(StrEnum):
    active = "active"
    inactive = "inactive"
    flagged = "flagged"
    deleted = "deleted"
