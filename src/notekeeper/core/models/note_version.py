# Append-only history of note states
import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel
from .types import GUID


class ChangeType(str, Enum):
    """What kind of mutation produced a version row."""

    CREATE = "create"
    UPDATE = "update"
    SOFT_DELETE = "soft_delete"
    REVERT = "revert"
    RESOLVE = "resolve"


class ResolutionStrategy(str, Enum):
    CLIENT_WINS = "client-wins"
    SERVER_WINS = "server-wins"
    MERGE = "merge"


class NoteVersion(BaseModel):
    """Frozen snapshot of a note at a given version.

    Rows are only ever inserted, and only removed together with their note.
    For each note the stored versions are exactly 1..note.version.
    """

    __tablename__ = "note_versions"

    note_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    change_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ChangeType.UPDATE.value
    )

    # provenance
    reverted_from: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    resolution_strategy: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    resolved_from_version: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("note_id", "version", name="uq_note_versions_note_version"),
        CheckConstraint("version >= 1", name="ck_note_versions_version_positive"),
        Index("idx_note_versions_note_id", "note_id"),
    )

    def __repr__(self) -> str:
        return f"<NoteVersion(note_id={self.note_id}, version={self.version}, change={self.change_type})>"
