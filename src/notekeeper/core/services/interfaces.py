"""
Service interfaces for NoteKeeper.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from ..schemas.auth import LoginRequest, RefreshTokenRequest, RegisterRequest, TokenResponse, UserResponse
from ..schemas.common import HealthCheckResponse
from ..schemas.notes import (
    NoteCreate,
    NoteDeleteResponse,
    NoteListResponse,
    NoteResponse,
    NoteSearchResponse,
    NoteUpdate,
    NoteVersionResponse,
    ResolveConflictRequest,
    ResolveConflictResponse,
    RevertResponse,
    SharedNoteItem,
)
from ..schemas.sharing import NoteAccessResponse, ShareRequest, ShareResponse
from ..schemas.users import AccountDeleteResponse, PasswordChangeRequest, UserListResponse, UserUpdateRequest


class IAuthService(ABC):
    """Auth service for user management."""

    @abstractmethod
    async def register_user(self, request: RegisterRequest) -> UserResponse:
        pass

    @abstractmethod
    async def authenticate_user(self, request: LoginRequest) -> TokenResponse:
        pass

    @abstractmethod
    async def refresh_token(self, request: RefreshTokenRequest) -> TokenResponse:
        pass

    @abstractmethod
    async def get_current_user(self, user_id: UUID) -> UserResponse:
        pass

    @abstractmethod
    async def logout_user(self, user_id: UUID, access_token: Optional[str]) -> bool:
        pass


class IUserService(ABC):
    """Own-account management."""

    @abstractmethod
    async def list_users(self, page: int = 1, per_page: Optional[int] = None) -> UserListResponse:
        pass

    @abstractmethod
    async def get_user(self, user_id: UUID, caller_id: UUID) -> UserResponse:
        pass

    @abstractmethod
    async def update_user(self, user_id: UUID, caller_id: UUID, request: UserUpdateRequest) -> UserResponse:
        pass

    @abstractmethod
    async def change_password(self, user_id: UUID, caller_id: UUID, request: PasswordChangeRequest) -> bool:
        pass

    @abstractmethod
    async def delete_user(
        self, user_id: UUID, caller_id: UUID, access_token: Optional[str] = None
    ) -> AccountDeleteResponse:
        pass


class INoteService(ABC):
    """Note reads and version-checked note mutations."""

    @abstractmethod
    async def create_note(self, user_id: UUID, request: NoteCreate) -> NoteResponse:
        pass

    @abstractmethod
    async def get_note(self, note_id: UUID, user_id: UUID) -> NoteResponse:
        pass

    @abstractmethod
    async def list_user_notes(self, user_id: UUID, page: int = 1, per_page: int = 20) -> NoteListResponse:
        pass

    @abstractmethod
    async def list_shared_notes(self, user_id: UUID) -> List[SharedNoteItem]:
        pass

    @abstractmethod
    async def update_note(self, note_id: UUID, user_id: UUID, request: NoteUpdate) -> NoteResponse:
        pass

    @abstractmethod
    async def delete_note(self, note_id: UUID, user_id: UUID, version: int) -> NoteDeleteResponse:
        """Soft delete, guarded by the caller's expected version."""
        pass

    @abstractmethod
    async def permanently_delete_note(self, note_id: UUID, user_id: UUID) -> NoteDeleteResponse:
        pass

    @abstractmethod
    async def list_versions(self, note_id: UUID, user_id: UUID) -> List[NoteVersionResponse]:
        pass

    @abstractmethod
    async def revert_note(self, note_id: UUID, user_id: UUID, version: int) -> RevertResponse:
        pass

    @abstractmethod
    async def resolve_conflict(
        self, note_id: UUID, user_id: UUID, request: ResolveConflictRequest
    ) -> ResolveConflictResponse:
        pass


class ISearchService(ABC):
    @abstractmethod
    async def search_notes(self, user_id: UUID, query: str) -> NoteSearchResponse:
        pass


class ISharingService(ABC):
    """Read/write grants on notes."""

    @abstractmethod
    async def share_note(self, user_id: UUID, request: ShareRequest) -> ShareResponse:
        pass

    @abstractmethod
    async def list_note_shares(self, note_id: UUID, user_id: UUID) -> List[ShareResponse]:
        pass

    @abstractmethod
    async def revoke_share(self, share_id: UUID, user_id: UUID) -> bool:
        pass

    @abstractmethod
    async def check_note_access(self, note_id: UUID, user_id: UUID) -> NoteAccessResponse:
        pass


class IHealthService(ABC):
    @abstractmethod
    async def get_health_status(self) -> HealthCheckResponse:
        pass
