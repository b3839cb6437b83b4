"""User repository for database operations."""

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, user: User) -> User:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[User]:
        """Get user by username."""
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def is_username_taken(self, username: str) -> bool:
        """Check if username exists."""
        return await self.get_by_username(username) is not None

    async def list_users(self, page: int = 1, per_page: int = 20) -> Tuple[List[User], int]:
        """Users ordered by username, with the total count."""
        total = await self.session.scalar(select(func.count(User.id)))

        stmt = select(User).order_by(User.username).offset((page - 1) * per_page).limit(per_page)
        result = await self.session.execute(stmt)
        return list(result.scalars()), total or 0

    async def delete(self, user: User) -> None:
        await self.session.delete(user)
        await self.session.flush()
