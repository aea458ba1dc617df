"""
Notes Keyset API — Note SQLAlchemy Model
=========================================

What:  ORM model representing the `notes` table.
Why:   Maps Python objects to database rows for type-safe database operations.
How:   Inherits from SQLAlchemy's DeclarativeBase; Alembic reads this for migrations.
Who:   Used by NoteService and the keyset planner.

Table Design Rationale:
    - UUID primary key: globally unique, so (created_at, id) is a total order
    - user_id: owner of the note; indexed for the `user_id` list filter
    - created_at: UTC, set once on insert and never updated (it is the
      primary sort key; changing it would move a row between pages)
    - updated_at: bumped on every edit; not part of the sort key

    Composite index (created_at DESC, id ASC):
        Matches the list ordering column-for-column, so the seek predicate
        `created_at < t0 OR (created_at = t0 AND id > id0)` plus
        `ORDER BY created_at DESC, id ASC LIMIT n + 1` is served by one index
        range scan at any page depth.

Portability:
    Generic `Uuid` and `DateTime(timezone=True)` types render as native
    UUID / TIMESTAMPTZ on PostgreSQL and as text on SQLite (test suite).
    Both backends order UUIDs the same way Python's `uuid.UUID` does.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Note(Base):
    """
    A single user note.

    Query Patterns:
        - List page: WHERE <seek predicate> ORDER BY created_at DESC, id ASC
          LIMIT :limit + 1  → idx_notes_created_at_id
        - Get single note: WHERE id = :uuid → primary key
        - Filter by owner: WHERE user_id = :uuid → idx_notes_user_id
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier, tiebreak column of the list ordering",
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        comment="Owner of the note",
    )

    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When this note was created (UTC), primary column of the list ordering",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When this note was last edited (UTC)",
    )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, user_id={self.user_id}, "
            f"created_at='{self.created_at}')>"
        )


# ── Indexes ───────────────────────────────────────────────────────────────
# Column order and directions must match KeysetPlanner's ORDER BY exactly
Index("idx_notes_created_at_id", Note.created_at.desc(), Note.id)
Index("idx_notes_user_id", Note.user_id)
