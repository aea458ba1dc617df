"""
Notes Keyset API — User SQLAlchemy Model
=========================================

What:  ORM model representing the `users` table.
Who:   Read by NoteService to show the owner's username next to each note.

Table Design Rationale:
    - username: unique, shown in note responses
    - No foreign key from notes.user_id: a note may name an owner that has
      no row here yet; such notes are shown with the username "Unknown"
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.note import utcnow


class User(Base):
    """
    A note owner.

    Query Patterns:
        - Username lookup for one page: WHERE id IN (:ids) → primary key
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    email: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
