"""Share repository for database operations."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, delete, desc, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.note import Note
from ..models.share import Share, SharePermission


class ShareRepository:
    """Repository for share database operations. Never commits."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, share: Share) -> Share:
        self.session.add(share)
        await self.session.flush()
        await self.session.refresh(share, ["note", "shared_by_user", "shared_with_user"])
        return share

    async def get_by_id(self, share_id: UUID) -> Optional[Share]:
        result = await self.session.execute(select(Share).where(Share.id == share_id))
        return result.scalar_one_or_none()

    async def get_existing_share(self, note_id: UUID, shared_with_user_id: UUID) -> Optional[Share]:
        stmt = select(Share).where(
            and_(Share.note_id == note_id, Share.shared_with_user_id == shared_with_user_id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_note_shares(self, note_id: UUID) -> List[Share]:
        stmt = select(Share).where(Share.note_id == note_id).order_by(desc(Share.created_at))
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def recipient_ids(self, note_id: UUID) -> List[UUID]:
        """Users a note is shared with, used for cache fan-out."""
        stmt = select(Share.shared_with_user_id).where(Share.note_id == note_id)
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def delete(self, share: Share) -> None:
        await self.session.delete(share)
        await self.session.flush()

    async def delete_for_note(self, note_id: UUID) -> int:
        result = await self.session.execute(delete(Share).where(Share.note_id == note_id))
        return result.rowcount

    async def recipient_ids_for_notes(self, note_ids: List[UUID]) -> List[UUID]:
        if not note_ids:
            return []
        stmt = select(Share.shared_with_user_id).where(Share.note_id.in_(note_ids)).distinct()
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def delete_involving_user(self, user_id: UUID, note_ids: List[UUID]) -> int:
        """Drop grants on the given notes and every grant the user gave or received."""
        criteria = or_(Share.shared_by_user_id == user_id, Share.shared_with_user_id == user_id)
        if note_ids:
            criteria = or_(criteria, Share.note_id.in_(note_ids))
        result = await self.session.execute(delete(Share).where(criteria))
        return result.rowcount

    async def check_note_access(self, note_id: UUID, user_id: UUID) -> dict:
        """Check a user's access to a note, deleted notes included."""
        owner_id = await self.session.scalar(select(Note.owner_id).where(Note.id == note_id))
        if owner_id is None:
            return {
                "exists": False,
                "is_owner": False,
                "permission": None,
                "can_read": False,
                "can_write": False,
            }

        is_owner = owner_id == user_id
        permission = "owner" if is_owner else None
        if not is_owner:
            share = await self.get_existing_share(note_id, user_id)
            if share is not None:
                permission = share.permission

        return {
            "exists": True,
            "is_owner": is_owner,
            "permission": permission,
            "can_read": permission is not None,
            "can_write": is_owner or permission == SharePermission.WRITE.value,
        }
