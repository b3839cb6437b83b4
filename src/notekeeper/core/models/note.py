# Note model: current state of a note
import uuid

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel
from .types import GUID


class Note(BaseModel):
    """Current title/content of a note plus its optimistic-lock version.

    ``version`` starts at 1 and moves by exactly one on every accepted
    mutation. Soft deleted notes keep their row and history.
    """

    __tablename__ = "notes"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        CheckConstraint("version >= 1", name="ck_notes_version_positive"),
        CheckConstraint("length(title) <= 200", name="ck_notes_title_len"),
        Index("idx_notes_owner_id", "owner_id"),
        Index("idx_notes_owner_deleted_updated", "owner_id", "is_deleted", "updated_at"),
    )

    def __repr__(self) -> str:
        truncated = self.title if len(self.title) <= 30 else (self.title[:30] + "...")
        return f"<Note(title='{truncated}', version={self.version}, owner_id={self.owner_id})>"

    def is_owned_by(self, user_id: uuid.UUID) -> bool:
        return self.owner_id == user_id
