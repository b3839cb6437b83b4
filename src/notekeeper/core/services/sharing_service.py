"""Sharing service implementation."""

import logging
from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import NoteCache
from ..exceptions import ForbiddenError, NotFoundError, ValidationError
from ..models.share import Share
from ..repositories.note_repository import NoteRepository
from ..repositories.share_repository import ShareRepository
from ..repositories.user_repository import UserRepository
from ..schemas.sharing import NoteAccessResponse, ShareRequest, ShareResponse
from .interfaces import ISharingService
from .unit_of_work import atomic_write, storage_guard

logger = logging.getLogger(__name__)


def share_to_response(share: Share) -> ShareResponse:
    return ShareResponse(
        id=share.id,
        note_id=share.note_id,
        note_title=share.note.title,
        shared_with_user_id=share.shared_with_user_id,
        shared_with_username=share.shared_with_user.username,
        permission=share.permission,
        created_at=share.created_at,
    )


class SharingService(ISharingService):
    """Sharing service implementation. Only a note's owner manages its grants."""

    def __init__(self, session: AsyncSession, cache: NoteCache = None):
        self.session = session
        self.cache = cache
        self.share_repo = ShareRepository(session)
        self.user_repo = UserRepository(session)
        self.note_repo = NoteRepository(session)

    async def share_note(self, user_id: UUID, request: ShareRequest) -> ShareResponse:
        """Grant access, or change the permission of an existing grant."""
        async with storage_guard(self.session):
            return await self._share_note(user_id, request)

    async def _share_note(self, user_id: UUID, request: ShareRequest) -> ShareResponse:
        await self._require_owned_note(request.note_id, user_id)

        recipient = await self.user_repo.get_by_username(request.username)
        if recipient is None:
            raise NotFoundError("user", message=f"User '{request.username}' not found")
        if recipient.id == user_id:
            raise ValidationError("Cannot share note with yourself", field="username")

        async with atomic_write(self.session):
            share = await self.share_repo.get_existing_share(request.note_id, recipient.id)
            if share is None:
                share = await self.share_repo.add(
                    Share(
                        note_id=request.note_id,
                        shared_by_user_id=user_id,
                        shared_with_user_id=recipient.id,
                        permission=request.permission,
                    )
                )
            else:
                share.permission = request.permission
            response = share_to_response(share)

        logger.info(
            "Note shared",
            extra={
                "note_id": str(request.note_id),
                "shared_with": str(recipient.id),
                "permission": request.permission,
            },
        )
        if self.cache:
            await self.cache.invalidate_shared([recipient.id])
        return response

    async def list_note_shares(self, note_id: UUID, user_id: UUID) -> List[ShareResponse]:
        await self._require_owned_note(note_id, user_id)
        return [share_to_response(s) for s in await self.share_repo.list_note_shares(note_id)]

    async def revoke_share(self, share_id: UUID, user_id: UUID) -> bool:
        async with storage_guard(self.session):
            share = await self.share_repo.get_by_id(share_id)
            if share is None or share.shared_by_user_id != user_id:
                raise NotFoundError("share", share_id)

            recipient_id = share.shared_with_user_id
            async with atomic_write(self.session):
                await self.share_repo.delete(share)

        logger.info("Share revoked", extra={"share_id": str(share_id)})
        if self.cache:
            await self.cache.invalidate_shared([recipient_id])
        return True

    async def check_note_access(self, note_id: UUID, user_id: UUID) -> NoteAccessResponse:
        access = await self.share_repo.check_note_access(note_id, user_id)
        return NoteAccessResponse(
            note_id=note_id,
            has_access=access["can_read"],
            is_owner=access["is_owner"],
            permission=access["permission"],
            can_read=access["can_read"],
            can_write=access["can_write"],
        )

    async def _require_owned_note(self, note_id: UUID, user_id: UUID) -> None:
        access = await self.share_repo.check_note_access(note_id, user_id)
        note = await self.note_repo.get_by_id(note_id)
        if note is None or not access["can_read"]:
            raise NotFoundError("note", note_id)
        if not access["is_owner"]:
            raise ForbiddenError("Only the owner can manage sharing for this note")
