"""Note repository: current-state rows and the version-checked write."""

from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, delete, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.note import Note
from ..models.share import Share
from ..models.user import User


class NoteRepository:
    """Repository for note database operations.

    Methods never commit; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, note: Note) -> Note:
        self.session.add(note)
        await self.session.flush()
        return note

    async def get_by_id(self, note_id: UUID, include_deleted: bool = False) -> Optional[Note]:
        stmt = select(Note).where(Note.id == note_id)
        if not include_deleted:
            stmt = stmt.where(Note.is_deleted.is_(False))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_update(self, note_id: UUID) -> Optional[Note]:
        """Load a note with an exclusive row lock held until the transaction ends.

        ``populate_existing`` overwrites any copy already in the identity map,
        so the version compared afterwards is the locked one.
        """
        stmt = (
            select(Note)
            .where(Note.id == note_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def compare_and_set(
        self,
        note_id: UUID,
        expected_version: int,
        *,
        title: str,
        content: str,
        is_deleted: bool = False,
    ) -> bool:
        """Write new state and bump the version only if it still equals ``expected_version``.

        Returns False when no row matched, meaning another writer got there first.
        """
        stmt = (
            update(Note)
            .where(and_(Note.id == note_id, Note.version == expected_version))
            .values(
                title=title,
                content=content,
                is_deleted=is_deleted,
                version=expected_version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def delete(self, note_id: UUID) -> int:
        result = await self.session.execute(delete(Note).where(Note.id == note_id))
        return result.rowcount

    async def owned_note_ids(self, owner_id: UUID) -> List[UUID]:
        """Every note of an owner, soft deleted ones included."""
        result = await self.session.execute(select(Note.id).where(Note.owner_id == owner_id))
        return list(result.scalars())

    async def delete_owned_by(self, owner_id: UUID) -> int:
        result = await self.session.execute(delete(Note).where(Note.owner_id == owner_id))
        return result.rowcount

    async def list_user_notes(
        self, user_id: UUID, page: int = 1, per_page: int = 20
    ) -> Tuple[List[Note], int]:
        """Owned, non-deleted notes, most recently updated first."""
        offset = (page - 1) * per_page
        criteria = and_(Note.owner_id == user_id, Note.is_deleted.is_(False))

        total = await self.session.scalar(select(func.count(Note.id)).where(criteria))

        stmt = select(Note).where(criteria).order_by(desc(Note.updated_at), desc(Note.id))
        if per_page:
            stmt = stmt.offset(offset).limit(per_page)
        result = await self.session.execute(stmt)
        return list(result.scalars()), total or 0

    async def list_shared_with(self, user_id: UUID) -> List[Tuple[Note, str, str]]:
        """Notes shared with a user as (note, permission, owner username)."""
        stmt = (
            select(Note, Share.permission, User.username)
            .join(Share, Share.note_id == Note.id)
            .join(User, User.id == Note.owner_id)
            .where(and_(Share.shared_with_user_id == user_id, Note.is_deleted.is_(False)))
            .order_by(desc(Note.updated_at))
        )
        result = await self.session.execute(stmt)
        return [(note, permission, username) for note, permission, username in result.all()]

    async def search_notes(self, owner_id: UUID, query: str) -> List[Note]:
        """Case-insensitive substring match on title or content of owned, live notes."""
        pattern = f"%{query}%"
        stmt = (
            select(Note)
            .where(
                and_(
                    Note.owner_id == owner_id,
                    Note.is_deleted.is_(False),
                    or_(Note.title.ilike(pattern), Note.content.ilike(pattern)),
                )
            )
            .order_by(desc(Note.updated_at))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())
