"""Append-only access to note version history."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, delete, desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.note import Note
from ..models.note_version import NoteVersion


class VersionRepository:
    """Repository for note history rows.

    Snapshots are never rewritten; the only update clears the author link
    when that account is removed.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, note: Note, created_by: Optional[UUID], change_type: str, **provenance) -> NoteVersion:
        """Snapshot the note's current title/content/version as a new history row."""
        row = NoteVersion(
            note_id=note.id,
            version=note.version,
            title=note.title,
            content=note.content,
            created_by=created_by,
            change_type=change_type,
            **provenance,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_version(self, note_id: UUID, version: int) -> Optional[NoteVersion]:
        stmt = select(NoteVersion).where(
            and_(NoteVersion.note_id == note_id, NoteVersion.version == version)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_versions(self, note_id: UUID) -> List[NoteVersion]:
        """Full history, newest first."""
        stmt = (
            select(NoteVersion)
            .where(NoteVersion.note_id == note_id)
            .order_by(desc(NoteVersion.version))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def version_numbers(self, note_id: UUID) -> List[int]:
        stmt = (
            select(NoteVersion.version)
            .where(NoteVersion.note_id == note_id)
            .order_by(NoteVersion.version)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def delete_for_note(self, note_id: UUID) -> int:
        result = await self.session.execute(
            delete(NoteVersion).where(NoteVersion.note_id == note_id)
        )
        return result.rowcount

    async def delete_for_notes(self, note_ids: List[UUID]) -> int:
        if not note_ids:
            return 0
        result = await self.session.execute(
            delete(NoteVersion).where(NoteVersion.note_id.in_(note_ids))
        )
        return result.rowcount

    async def detach_author(self, user_id: UUID) -> int:
        result = await self.session.execute(
            update(NoteVersion)
            .where(NoteVersion.created_by == user_id)
            .values(created_by=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
