# Note sharing between users
import uuid
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel
from .types import GUID

if TYPE_CHECKING:
    from .note import Note
    from .user import User


class SharePermission(str, Enum):
    READ = "read"
    WRITE = "write"


class Share(BaseModel):
    """Grant of read or write access on a note to another user."""

    __tablename__ = "shares"

    note_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    shared_by_user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    shared_with_user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    permission: Mapped[str] = mapped_column(
        String(20), default=SharePermission.READ.value, nullable=False
    )

    note: Mapped["Note"] = relationship("Note", lazy="selectin")
    shared_by_user: Mapped["User"] = relationship(
        "User", foreign_keys=[shared_by_user_id], lazy="selectin"
    )
    shared_with_user: Mapped["User"] = relationship(
        "User", foreign_keys=[shared_with_user_id], lazy="selectin"
    )

    __table_args__ = (
        UniqueConstraint("note_id", "shared_with_user_id", name="uq_shares_note_recipient"),
        CheckConstraint("permission IN ('read', 'write')", name="ck_shares_permission"),
        Index("idx_shares_note_id", "note_id"),
        Index("idx_shares_shared_with", "shared_with_user_id"),
    )

    def __repr__(self) -> str:
        return f"<Share(note_id={self.note_id}, shared_with={self.shared_with_user_id}, permission={self.permission})>"

    @property
    def can_write(self) -> bool:
        return self.permission == SharePermission.WRITE.value
