"""Note service implementation."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ..cache import NoteCache
from ..exceptions import ForbiddenError, NotFoundError
from ..models.note import Note
from ..repositories.note_repository import NoteRepository
from ..repositories.share_repository import ShareRepository
from ..repositories.version_repository import VersionRepository
from ..schemas.common import PaginationResponse
from ..schemas.notes import (
    NoteCreate,
    NoteDeleteResponse,
    NoteListItem,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
    NoteVersionResponse,
    ResolveConflictRequest,
    ResolveConflictResponse,
    RevertResponse,
    SharedNoteItem,
    content_preview,
)
from .concurrency_controller import NoteConcurrencyController
from .interfaces import INoteService
from .unit_of_work import storage_guard


def list_item(note: Note) -> dict:
    """JSON-ready list entry for a note, as stored in collection caches."""
    return NoteListItem(
        id=note.id,
        title=note.title,
        content_preview=content_preview(note.content),
        version=note.version,
        owner_id=note.owner_id,
        created_at=note.created_at,
        updated_at=note.updated_at,
    ).model_dump(mode="json")


class NoteService(INoteService):
    """Permission checks and read-through caching around the concurrency controller.

    Access rules:
    - any share (or ownership) lets a user read a note and its history
    - update, revert and resolve need ownership or a write share
    - soft and permanent delete are owner only
    - a user with no visibility gets 404, a read-only user attempting a write gets 403
    """

    def __init__(self, session: AsyncSession, cache: Optional[NoteCache] = None):
        self.session = session
        self.cache = cache
        self.settings = get_settings()
        self.note_repo = NoteRepository(session)
        self.version_repo = VersionRepository(session)
        self.share_repo = ShareRepository(session)
        self.controller = NoteConcurrencyController(session, cache)

    async def create_note(self, user_id: UUID, request: NoteCreate) -> NoteResponse:
        async with storage_guard(self.session):
            note = await self.controller.create(user_id, request.title, request.content)
        return self._to_response(note.to_dict(), is_owner=True, can_edit=True)

    async def get_note(self, note_id: UUID, user_id: UUID) -> NoteResponse:
        access = await self._require_read(note_id, user_id)

        snapshot = await self.cache.get_note(note_id) if self.cache else None
        if snapshot is None:
            note = await self.note_repo.get_by_id(note_id)
            if note is None:
                raise NotFoundError("note", note_id)
            snapshot = note.to_dict()
            if self.cache:
                await self.cache.set_note(note_id, snapshot)

        if snapshot.get("is_deleted"):
            raise NotFoundError("note", note_id)
        return self._to_response(snapshot, access["is_owner"], access["can_write"])

    async def list_user_notes(
        self, user_id: UUID, page: int = 1, per_page: Optional[int] = None
    ) -> NoteListResponse:
        per_page = min(per_page or self.settings.default_page_size, self.settings.max_page_size)

        items = await self.cache.get_user_notes(user_id) if self.cache else None
        if items is None:
            notes, _ = await self.note_repo.list_user_notes(user_id, per_page=0)
            items = [list_item(note) for note in notes]
            if self.cache:
                await self.cache.set_user_notes(user_id, items)

        start = (page - 1) * per_page
        return PaginationResponse[NoteListItem].create(
            items=[NoteListItem.model_validate(item) for item in items[start:start + per_page]],
            total=len(items),
            page=page,
            per_page=per_page,
        )

    async def list_shared_notes(self, user_id: UUID) -> List[SharedNoteItem]:
        items = await self.cache.get_shared_notes(user_id) if self.cache else None
        if items is None:
            rows = await self.note_repo.list_shared_with(user_id)
            items = [
                {
                    **list_item(note),
                    "owner_username": owner_username,
                    "permission": permission,
                    "can_edit": permission == "write",
                }
                for note, permission, owner_username in rows
            ]
            if self.cache:
                await self.cache.set_shared_notes(user_id, items)
        return [SharedNoteItem.model_validate(item) for item in items]

    async def list_versions(self, note_id: UUID, user_id: UUID) -> List[NoteVersionResponse]:
        # history stays readable after a soft delete
        await self._require_read(note_id, user_id)

        versions = await self.cache.get_versions(note_id) if self.cache else None
        if versions is None:
            rows = await self.version_repo.list_versions(note_id)
            versions = [NoteVersionResponse.model_validate(row).model_dump(mode="json") for row in rows]
            if self.cache:
                await self.cache.set_versions(note_id, versions)
        return [NoteVersionResponse.model_validate(item) for item in versions]

    async def update_note(self, note_id: UUID, user_id: UUID, request: NoteUpdate) -> NoteResponse:
        async with storage_guard(self.session):
            access = await self._require_write(note_id, user_id)
            note = await self.controller.update(
                note_id, user_id, request.version, title=request.title, content=request.content
            )
        return self._to_response(note.to_dict(), access["is_owner"], True)

    async def delete_note(self, note_id: UUID, user_id: UUID, version: int) -> NoteDeleteResponse:
        async with storage_guard(self.session):
            await self._require_owner(note_id, user_id)
            note = await self.controller.soft_delete(note_id, user_id, version)
        return NoteDeleteResponse(
            message="Note deleted successfully", note_id=note_id, version=note.version
        )

    async def permanently_delete_note(self, note_id: UUID, user_id: UUID) -> NoteDeleteResponse:
        async with storage_guard(self.session):
            await self._require_owner(note_id, user_id)
            removed = await self.controller.hard_delete(note_id, user_id)
        return NoteDeleteResponse(
            message="Note permanently deleted", note_id=note_id, versions_removed=removed
        )

    async def revert_note(self, note_id: UUID, user_id: UUID, version: int) -> RevertResponse:
        async with storage_guard(self.session):
            access = await self._require_write(note_id, user_id)
            note = await self.controller.revert(note_id, user_id, version)
        return RevertResponse(
            message=f"Successfully reverted to version {version}",
            note=self._to_response(note.to_dict(), access["is_owner"], True),
        )

    async def resolve_conflict(
        self, note_id: UUID, user_id: UUID, request: ResolveConflictRequest
    ) -> ResolveConflictResponse:
        async with storage_guard(self.session):
            access = await self._require_write(note_id, user_id)
            note = await self.controller.resolve_conflict(
                note_id,
                user_id,
                request.server_version,
                request.title,
                request.content,
                request.resolution_strategy,
            )
        return ResolveConflictResponse(
            message="Conflict successfully resolved",
            note=self._to_response(note.to_dict(), access["is_owner"], True),
            resolution_strategy=request.resolution_strategy,
        )

    # permission helpers

    async def _require_read(self, note_id: UUID, user_id: UUID) -> dict:
        access = await self.share_repo.check_note_access(note_id, user_id)
        if not access["can_read"]:
            raise NotFoundError("note", note_id)
        return access

    async def _require_write(self, note_id: UUID, user_id: UUID) -> dict:
        access = await self._require_read(note_id, user_id)
        if not access["can_write"]:
            raise ForbiddenError("You only have read access to this note")
        return access

    async def _require_owner(self, note_id: UUID, user_id: UUID) -> dict:
        access = await self._require_read(note_id, user_id)
        if not access["is_owner"]:
            raise ForbiddenError("Only the owner can delete this note")
        return access

    @staticmethod
    def _to_response(snapshot: dict, is_owner: bool, can_edit: bool) -> NoteResponse:
        return NoteResponse.model_validate({**snapshot, "is_owned": is_owner, "can_edit": can_edit})
