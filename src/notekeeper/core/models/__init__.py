"""
Database models for NoteKeeper.

Models included:
    - User: account with username/password authentication
    - Note: current state of a note, carrying its optimistic-lock version
    - NoteVersion: append-only history, one row per accepted mutation
    - Share: read/write grants on a note
    - RefreshToken: refresh token management
"""

from .base import BaseModel
from .note import Note
from .note_version import ChangeType, NoteVersion, ResolutionStrategy
from .refresh_token import RefreshToken
from .share import Share, SharePermission
from .user import User

__all__ = [
    "BaseModel",
    "User",
    "Note",
    "NoteVersion",
    "ChangeType",
    "ResolutionStrategy",
    "Share",
    "SharePermission",
    "RefreshToken",
]
