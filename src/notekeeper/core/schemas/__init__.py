"""
Pydantic schemas for API requests and responses.
"""

from .auth import LoginRequest, RefreshTokenRequest, RegisterRequest, TokenResponse, UserResponse
from .common import ErrorResponse, HealthCheckResponse, MessageResponse, PaginationResponse
from .notes import (
    DeleteConflictResponse,
    NoteCreate,
    NoteDeleteResponse,
    NoteListItem,
    NoteListResponse,
    NoteResponse,
    NoteSearchResponse,
    NoteUpdate,
    NoteVersionResponse,
    ResolutionConflictResponse,
    ResolveConflictRequest,
    ResolveConflictResponse,
    RevertResponse,
    SharedNoteItem,
    UpdateConflictResponse,
)
from .sharing import NoteAccessResponse, ShareRequest, ShareResponse
from .users import AccountDeleteResponse, PasswordChangeRequest, UserListResponse, UserUpdateRequest

__all__ = [
    # Auth schemas
    "LoginRequest",
    "RegisterRequest",
    "RefreshTokenRequest",
    "TokenResponse",
    "UserResponse",
    # Note schemas
    "NoteCreate",
    "NoteUpdate",
    "NoteResponse",
    "NoteListItem",
    "NoteListResponse",
    "SharedNoteItem",
    "NoteVersionResponse",
    "NoteDeleteResponse",
    "NoteSearchResponse",
    "RevertResponse",
    "ResolveConflictRequest",
    "ResolveConflictResponse",
    "UpdateConflictResponse",
    "DeleteConflictResponse",
    "ResolutionConflictResponse",
    # Sharing schemas
    "ShareRequest",
    "ShareResponse",
    "NoteAccessResponse",
    # User management schemas
    "UserUpdateRequest",
    "PasswordChangeRequest",
    "AccountDeleteResponse",
    "UserListResponse",
    # Common schemas
    "PaginationResponse",
    "ErrorResponse",
    "MessageResponse",
    "HealthCheckResponse",
]
