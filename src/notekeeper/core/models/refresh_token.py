# Opaque refresh tokens issued alongside JWT access tokens
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel
from .types import GUID


class RefreshToken(BaseModel):
    """Refresh token for JWT auth."""

    __tablename__ = "refresh_tokens"

    token: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_refresh_tokens_user_active", "user_id", "is_active"),
    )

    def __repr__(self) -> str:
        token_preview = f"{self.token[:8]}..." if self.token else "None"
        return f"<RefreshToken(user_id={self.user_id}, token={token_preview}, active={self.is_active})>"

    @classmethod
    def create_for_user(cls, user_id: uuid.UUID, expires_days: int = 7) -> "RefreshToken":
        return cls(
            token=secrets.token_urlsafe(24),
            user_id=user_id,
            expires_at=datetime.now(timezone.utc) + timedelta(days=expires_days),
        )

    @property
    def is_expired(self) -> bool:
        expires_at = self.expires_at
        if expires_at is None:
            return True
        # SQLite drops tzinfo
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) > expires_at

    @property
    def is_valid(self) -> bool:
        return self.is_active and not self.is_expired

    def revoke(self) -> None:
        self.is_active = False
        self.revoked_at = datetime.now(timezone.utc)
