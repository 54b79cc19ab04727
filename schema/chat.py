from datetime import datetime
from typing import Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, AliasChoices


class ChatSendIn(BaseModel):
    # the caller fills in its own side; only the counterpart id is needed
    user_id: Optional[int] = Field(None, ge=1, validation_alias=AliasChoices("user_id", "userId"))
    builder_id: Optional[int] = Field(None, ge=1, validation_alias=AliasChoices("builder_id", "builderId"))
    message: str = Field(..., min_length=1, max_length=1000)

    model_config = ConfigDict(populate_by_name=True)


class ChatMessageOut(BaseModel):
    id: int
    user_id: int
    builder_id: int
    message: str
    sender_type: Literal["User", "Builder"]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = ["ChatSendIn", "ChatMessageOut"]
