"""
User model for authentication.
"""

from sqlalchemy import Boolean, CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class User(BaseModel):
    """User account model with username/password auth."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    full_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("length(username) <= 50", name="ck_users_username_len"),
        CheckConstraint(
            "full_name IS NULL OR length(full_name) <= 100", name="ck_users_full_name_len"
        ),
        Index("idx_users_username", "username"),
    )

    def __repr__(self) -> str:
        return f"<User(username='{self.username}')>"

    @property
    def display_name(self) -> str:
        return self.full_name if self.full_name else self.username

    def can_login(self) -> bool:
        return self.is_active
