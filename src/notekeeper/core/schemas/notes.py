"""
Note schemas: create/update payloads, note views, version history and
the conflict resolution protocol.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.note_version import ResolutionStrategy
from .common import PaginationResponse

PREVIEW_LENGTH = 200


def content_preview(content: str) -> str:
    if len(content) <= PREVIEW_LENGTH:
        return content
    return content[:PREVIEW_LENGTH] + "..."


class NoteCreate(BaseModel):
    """Note creation request schema."""

    title: str = Field(min_length=1, max_length=200, description="Note title")
    content: str = Field(default="", description="Note content")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError("Title cannot be blank")
        return v

    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Groceries", "content": "milk, eggs"}}
    )


class NoteUpdate(BaseModel):
    """Update request carrying the version the client last saw.

    Omitted fields keep their current value.
    """

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None)
    version: int = Field(ge=1, description="Version the client last fetched")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Title cannot be blank")
        return v

    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Groceries", "content": "milk, eggs, bread", "version": 1}}
    )


class ResolveConflictRequest(BaseModel):
    """Client-resolved content, checked against the version the conflict reported."""

    title: str = Field(min_length=1, max_length=200)
    content: str = Field(default="")
    server_version: int = Field(ge=1, description="Server version from the conflict response")
    resolution_strategy: ResolutionStrategy = Field(description="How the client produced the resolved content")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError("Title cannot be blank")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Groceries",
                "content": "milk, eggs, bread, butter",
                "server_version": 2,
                "resolution_strategy": "merge",
            }
        }
    )


class NoteResponse(BaseModel):
    """Note response schema."""

    id: uuid.UUID
    title: str
    content: str
    version: int
    is_deleted: bool = False
    owner_id: uuid.UUID
    is_owned: bool = Field(description="Whether current user owns this note")
    can_edit: bool = Field(description="Whether current user can edit this note")
    created_at: datetime
    updated_at: datetime


class NoteListItem(BaseModel):
    """Simplified note schema for list views."""

    id: uuid.UUID
    title: str
    content_preview: str
    version: int
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class SharedNoteItem(NoteListItem):
    owner_username: Optional[str] = None
    permission: str
    can_edit: bool


NoteListResponse = PaginationResponse[NoteListItem]


class NoteVersionResponse(BaseModel):
    """One entry of a note's history."""

    id: uuid.UUID
    note_id: uuid.UUID
    version: int
    title: str
    content: str
    created_by: Optional[uuid.UUID] = None
    change_type: str
    reverted_from: Optional[int] = None
    resolution_strategy: Optional[str] = None
    resolved_from_version: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RevertResponse(BaseModel):
    message: str
    note: NoteResponse


class ResolveConflictResponse(BaseModel):
    message: str
    note: NoteResponse
    resolution_strategy: ResolutionStrategy


class NoteDeleteResponse(BaseModel):
    message: str
    note_id: uuid.UUID
    version: Optional[int] = Field(default=None, description="Version after a soft delete")
    versions_removed: Optional[int] = Field(default=None, description="History rows dropped by a permanent delete")


class NoteSearchResponse(BaseModel):
    query: str
    total: int
    results: List[NoteListItem]


class ServerData(BaseModel):
    title: str
    content: str
    updated_at: Optional[datetime] = None


class UpdateConflictResponse(BaseModel):
    """409 body for a stale update."""

    error: str
    code: str = "version_conflict"
    retryable: bool = False
    client_version: int
    server_version: int
    server_data: ServerData
    last_modified_by: Optional[uuid.UUID] = None
    resolution_endpoint: str


class DeleteConflictResponse(BaseModel):
    error: str
    code: str = "version_conflict"
    retryable: bool = False
    client_version: int
    server_version: int


class ResolutionConflictResponse(BaseModel):
    error: str
    code: str = "version_conflict"
    retryable: bool = False
    current_version: int
    attempted_resolution_version: int
