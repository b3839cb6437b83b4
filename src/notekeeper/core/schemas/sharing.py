"""
Note sharing schemas.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ShareRequest(BaseModel):
    """Grant another user access to a note."""

    note_id: uuid.UUID = Field(description="Note ID to share")
    username: str = Field(min_length=3, max_length=50, description="Recipient username")
    permission: Literal["read", "write"] = Field(default="read")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "note_id": "123e4567-e89b-12d3-a456-426614174000",
                "username": "colleague",
                "permission": "write",
            }
        }
    )


class ShareResponse(BaseModel):
    """Note sharing response schema."""

    id: uuid.UUID
    note_id: uuid.UUID
    note_title: str
    shared_with_user_id: uuid.UUID
    shared_with_username: str
    permission: str
    created_at: datetime


class NoteAccessResponse(BaseModel):
    note_id: uuid.UUID
    has_access: bool
    is_owner: bool
    permission: Optional[str] = None
    can_read: bool
    can_write: bool
