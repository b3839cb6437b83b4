"""Repository layer for data access."""

from .note_repository import NoteRepository
from .refresh_token_repository import RefreshTokenRepository
from .share_repository import ShareRepository
from .user_repository import UserRepository
from .version_repository import VersionRepository

__all__ = [
    "UserRepository",
    "NoteRepository",
    "VersionRepository",
    "ShareRepository",
    "RefreshTokenRepository",
]
