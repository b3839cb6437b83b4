"""Optimistic concurrency control for note mutations.

Every mutation follows the same sequence inside one transaction::

    lock the note row -> compare versions -> compare-and-set the row
    -> append the matching NoteVersion -> commit

and then invalidates the affected cache entries before returning. The
row lock serializes writers on one note; the compare-and-set on
``version`` keeps the check correct on engines that ignore FOR UPDATE.
A version mismatch aborts the transaction and raises a
``VersionConflictError`` subclass carrying the state a client needs to
merge. Nothing is written in that case.
"""

import logging
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ..cache import NoteCache
from ..exceptions import (
    DeleteConflictError,
    NotFoundError,
    ResolutionConflictError,
    StorageFailureError,
    UpdateConflictError,
)
from ..models.note import Note
from ..models.note_version import ChangeType, ResolutionStrategy
from ..repositories.note_repository import NoteRepository
from ..repositories.share_repository import ShareRepository
from ..repositories.version_repository import VersionRepository
from .unit_of_work import atomic_write

logger = logging.getLogger(__name__)


class NoteConcurrencyController:
    """Version-checked create/update/delete/revert/resolve for notes.

    Callers are expected to have checked permissions already; the
    controller only checks existence, and does so under the row lock.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: Optional[NoteCache] = None,
        lock_timeout_ms: Optional[int] = None,
    ):
        self.session = session
        self.cache = cache
        self.lock_timeout_ms = (
            lock_timeout_ms if lock_timeout_ms is not None else get_settings().note_lock_timeout_ms
        )
        self.notes = NoteRepository(session)
        self.versions = VersionRepository(session)
        self.shares = ShareRepository(session)

    async def create(self, owner_id: UUID, title: str, content: str) -> Note:
        async with atomic_write(self.session, self.lock_timeout_ms):
            note = await self.notes.add(
                Note(owner_id=owner_id, title=title, content=content, version=1, is_deleted=False)
            )
            await self.versions.append(note, owner_id, ChangeType.CREATE.value)

        logger.info(
            "Note created",
            extra={"note_id": str(note.id), "owner_id": str(owner_id), "version": 1},
        )
        if self.cache is not None:
            await self._safely(self.cache.invalidate_collection(owner_id))
        return note

    async def update(
        self,
        note_id: UUID,
        caller_id: UUID,
        expected_version: int,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Note:
        """Apply an edit if ``expected_version`` is still current. None keeps a field as is."""
        async with atomic_write(self.session, self.lock_timeout_ms):
            note = await self._lock_live_note(note_id)
            if note.version != expected_version:
                raise await self._update_conflict(note, expected_version)

            values = {
                "title": note.title if title is None else title,
                "content": note.content if content is None else content,
            }
            if not await self._write(note, expected_version, **values):
                raise await self._update_conflict(note, expected_version)
            await self.versions.append(note, caller_id, ChangeType.UPDATE.value)
            recipients = await self.shares.recipient_ids(note_id)

        self._log_transition("Note updated", note, caller_id, expected_version)
        await self._invalidate(note, caller_id, recipients)
        return note

    async def soft_delete(self, note_id: UUID, caller_id: UUID, expected_version: int) -> Note:
        async with atomic_write(self.session, self.lock_timeout_ms):
            note = await self._lock_live_note(note_id)
            if note.version != expected_version:
                self._log_conflict(note, expected_version, "soft_delete")
                raise DeleteConflictError(expected_version, note.version)

            if not await self._write(
                note, expected_version, title=note.title, content=note.content, is_deleted=True
            ):
                raise DeleteConflictError(expected_version, await self._current_version(note_id))
            # history keeps the title/content the note had when it was deleted
            await self.versions.append(note, caller_id, ChangeType.SOFT_DELETE.value)
            recipients = await self.shares.recipient_ids(note_id)

        self._log_transition("Note soft deleted", note, caller_id, expected_version)
        await self._invalidate(note, caller_id, recipients)
        return note

    async def hard_delete(self, note_id: UUID, caller_id: UUID) -> int:
        """Remove a note, its history and its shares. Returns the number of versions dropped."""
        async with atomic_write(self.session, self.lock_timeout_ms):
            note = await self.notes.get_for_update(note_id)
            if note is None:
                raise NotFoundError("note", note_id)
            owner_id = note.owner_id
            recipients = await self.shares.recipient_ids(note_id)

            dropped = await self.versions.delete_for_note(note_id)
            await self.shares.delete_for_note(note_id)
            await self.notes.delete(note_id)

        logger.info(
            "Note permanently deleted",
            extra={"note_id": str(note_id), "caller_id": str(caller_id), "versions_removed": dropped},
        )
        if self.cache is not None:
            await self._safely(
                self.cache.invalidate_note(note_id, owner_id, caller_id, recipients)
            )
        return dropped

    async def revert(self, note_id: UUID, caller_id: UUID, target_version: int) -> Note:
        """Copy a historical snapshot into a new version.

        Reverting is server directed and takes no expected version: it
        always applies on top of whatever the current version is.
        """
        async with atomic_write(self.session, self.lock_timeout_ms):
            note = await self._lock_live_note(note_id)
            target = await self.versions.get_version(note_id, target_version)
            if target is None:
                raise NotFoundError(
                    "version", target_version, message=f"Version {target_version} not found"
                )

            previous = note.version
            if not await self._write(note, previous, title=target.title, content=target.content):
                raise StorageFailureError("Note changed concurrently, please retry the revert")
            await self.versions.append(
                note, caller_id, ChangeType.REVERT.value, reverted_from=target_version
            )
            recipients = await self.shares.recipient_ids(note_id)

        self._log_transition("Note reverted", note, caller_id, previous, reverted_from=target_version)
        await self._invalidate(note, caller_id, recipients)
        return note

    async def resolve_conflict(
        self,
        note_id: UUID,
        caller_id: UUID,
        server_version: int,
        title: str,
        content: str,
        strategy: ResolutionStrategy,
    ) -> Note:
        """Commit client-resolved content against the version the conflict reported.

        The server does not merge anything; ``strategy`` is recorded as
        provenance on the new history row.
        """
        async with atomic_write(self.session, self.lock_timeout_ms):
            note = await self._lock_live_note(note_id)
            if note.version != server_version:
                self._log_conflict(note, server_version, "resolve_conflict")
                raise ResolutionConflictError(note.version, server_version)

            if not await self._write(note, server_version, title=title, content=content):
                raise ResolutionConflictError(await self._current_version(note_id), server_version)
            await self.versions.append(
                note,
                caller_id,
                ChangeType.RESOLVE.value,
                resolution_strategy=ResolutionStrategy(strategy).value,
                resolved_from_version=server_version,
            )
            recipients = await self.shares.recipient_ids(note_id)

        self._log_transition(
            "Conflict resolved", note, caller_id, server_version, strategy=ResolutionStrategy(strategy).value
        )
        await self._invalidate(note, caller_id, recipients)
        return note

    # internals

    async def _lock_live_note(self, note_id: UUID) -> Note:
        note = await self.notes.get_for_update(note_id)
        if note is None or note.is_deleted:
            raise NotFoundError("note", note_id)
        return note

    async def _write(self, note: Note, expected_version: int, **values) -> bool:
        if not await self.notes.compare_and_set(note.id, expected_version, **values):
            return False
        await self.session.refresh(note)
        return True

    async def _current_version(self, note_id: UUID) -> int:
        current = await self.notes.get_for_update(note_id)
        if current is None:
            raise NotFoundError("note", note_id)
        return current.version

    async def _update_conflict(self, note: Note, client_version: int) -> UpdateConflictError:
        await self.session.refresh(note)
        self._log_conflict(note, client_version, "update")
        last = await self.versions.get_version(note.id, note.version)
        return UpdateConflictError(
            note_id=note.id,
            client_version=client_version,
            server_version=note.version,
            server_title=note.title,
            server_content=note.content,
            server_updated_at=note.updated_at,
            last_modified_by=last.created_by if last is not None else None,
        )

    async def _invalidate(self, note: Note, caller_id: UUID, recipients: Iterable[UUID]) -> None:
        if self.cache is None:
            return
        await self._safely(
            self.cache.invalidate_note(note.id, note.owner_id, caller_id, recipients)
        )

    async def _safely(self, invalidation) -> None:
        # The mutation is already committed here; cache trouble must not undo or fail it
        try:
            await invalidation
        except Exception as e:
            logger.warning(f"Cache invalidation raised after commit: {e}")

    def _log_transition(self, message: str, note: Note, caller_id: UUID, from_version: int, **extra) -> None:
        logger.info(
            message,
            extra={
                "note_id": str(note.id),
                "caller_id": str(caller_id),
                "from_version": from_version,
                "to_version": note.version,
                **extra,
            },
        )

    def _log_conflict(self, note: Note, client_version: int, operation: str) -> None:
        logger.info(
            "Version conflict",
            extra={
                "note_id": str(note.id),
                "operation": operation,
                "client_version": client_version,
                "server_version": note.version,
            },
        )
