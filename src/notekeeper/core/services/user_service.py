"""User management: directory listing, own-profile updates and account removal."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ...security import blacklist_token, hash_password, verify_password
from ..cache import NoteCache, note_key, user_notes_key, versions_key
from ..exceptions import DuplicateResourceError, ForbiddenError, NotFoundError, ValidationError
from ..models.user import User
from ..repositories.note_repository import NoteRepository
from ..repositories.refresh_token_repository import RefreshTokenRepository
from ..repositories.share_repository import ShareRepository
from ..repositories.user_repository import UserRepository
from ..repositories.version_repository import VersionRepository
from ..schemas.auth import UserResponse
from ..schemas.users import AccountDeleteResponse, PasswordChangeRequest, UserListResponse, UserUpdateRequest
from .interfaces import IUserService
from .unit_of_work import atomic_write, storage_guard

logger = logging.getLogger(__name__)


class UserService(IUserService):
    """Account operations. A user may only read or change their own account."""

    def __init__(self, session: AsyncSession, cache: Optional[NoteCache] = None):
        self.session = session
        self.cache = cache
        self.settings = get_settings()
        self.user_repo = UserRepository(session)
        self.token_repo = RefreshTokenRepository(session)
        self.note_repo = NoteRepository(session)
        self.version_repo = VersionRepository(session)
        self.share_repo = ShareRepository(session)

    async def list_users(self, page: int = 1, per_page: Optional[int] = None) -> UserListResponse:
        per_page = min(per_page or self.settings.default_page_size, self.settings.max_page_size)
        users, total = await self.user_repo.list_users(page, per_page)
        return UserListResponse.create(
            items=[UserResponse.model_validate(u) for u in users],
            total=total,
            page=page,
            per_page=per_page,
        )

    async def get_user(self, user_id: UUID, caller_id: UUID) -> UserResponse:
        user = await self._own_account(user_id, caller_id, "access")
        return UserResponse.model_validate(user)

    async def update_user(self, user_id: UUID, caller_id: UUID, request: UserUpdateRequest) -> UserResponse:
        async with storage_guard(self.session):
            user = await self._own_account(user_id, caller_id, "update")

            if request.username and request.username != user.username:
                if await self.user_repo.is_username_taken(request.username):
                    raise DuplicateResourceError("Username already taken", {"field": "username"})

            async with atomic_write(self.session):
                if request.username:
                    user.username = request.username
                if request.full_name is not None:
                    user.full_name = request.full_name
                await self.session.flush()

        logger.info("User profile updated", extra={"user_id": str(user_id)})
        return UserResponse.model_validate(user)

    async def change_password(self, user_id: UUID, caller_id: UUID, request: PasswordChangeRequest) -> bool:
        """Replace the password and revoke every refresh token of the account."""
        async with storage_guard(self.session):
            user = await self._own_account(user_id, caller_id, "update")
            if not verify_password(request.current_password, user.password_hash):
                raise ValidationError("Current password is incorrect", field="current_password")

            async with atomic_write(self.session):
                user.password_hash = hash_password(request.new_password)
                await self.token_repo.delete_user_tokens(user_id)

        logger.info("Password changed", extra={"user_id": str(user_id)})
        return True

    async def delete_user(
        self, user_id: UUID, caller_id: UUID, access_token: Optional[str] = None
    ) -> AccountDeleteResponse:
        """Remove the account with its notes, their history and every share touching it.

        History rows the user wrote on other people's notes stay, with the
        author cleared.
        """
        async with storage_guard(self.session):
            user = await self._own_account(user_id, caller_id, "delete")

            async with atomic_write(self.session):
                note_ids = await self.note_repo.owned_note_ids(user_id)
                recipients = await self.share_repo.recipient_ids_for_notes(note_ids)

                versions_removed = await self.version_repo.delete_for_notes(note_ids)
                await self.share_repo.delete_involving_user(user_id, note_ids)
                notes_removed = await self.note_repo.delete_owned_by(user_id)
                await self.version_repo.detach_author(user_id)
                await self.token_repo.delete_user_tokens(user_id)
                await self.user_repo.delete(user)

        logger.info(
            "User account deleted",
            extra={"user_id": str(user_id), "notes_removed": notes_removed, "versions_removed": versions_removed},
        )
        if access_token and not await blacklist_token(access_token):
            logger.warning("Access token could not be blacklisted", extra={"user_id": str(user_id)})
        if self.cache is not None:
            await self._invalidate(user_id, note_ids, recipients)

        return AccountDeleteResponse(
            message="User account deleted successfully",
            notes_removed=notes_removed,
            versions_removed=versions_removed,
        )

    async def _own_account(self, user_id: UUID, caller_id: UUID, action: str) -> User:
        if user_id != caller_id:
            raise ForbiddenError(f"You can only {action} your own account")
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    async def _invalidate(self, user_id: UUID, note_ids, recipients) -> None:
        keys = [user_notes_key(user_id)]
        for note_id in note_ids:
            keys.extend((note_key(note_id), versions_key(note_id)))
        try:
            await self.cache.invalidate(*keys)
            await self.cache.invalidate_searches(user_id)
            await self.cache.invalidate_shared([user_id, *recipients])
        except Exception as e:
            logger.warning(f"Cache invalidation raised after account removal: {e}")
