"""Create notes table

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Creates the `notes` table and the composite index that keyset
       pagination depends on.
Why:   Without idx_notes_created_at_id, every page is a full scan + sort and
       the listing loses its O(log n + limit) cost at depth.

Rollback: downgrade() drops the table entirely (destructive — all data lost).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the notes table, then its indexes. See app/models/note.py."""
    op.create_table(
        "notes",
        sa.Column(
            "id",
            sa.Uuid(as_uuid=True),
            nullable=False,
            comment="Unique identifier, tiebreak column of the list ordering",
        ),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            nullable=False,
            comment="Owner of the note",
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this note was created (UTC), primary column of the list ordering",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this note was last edited (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # Same column order and directions as ORDER BY created_at DESC, id ASC
    op.create_index(
        "idx_notes_created_at_id",
        "notes",
        [sa.text("created_at DESC"), "id"],
    )
    op.create_index("idx_notes_user_id", "notes", ["user_id"])


def downgrade() -> None:
    """Drop the notes table entirely (destructive)."""
    op.drop_index("idx_notes_user_id", table_name="notes")
    op.drop_index("idx_notes_created_at_id", table_name="notes")
    op.drop_table("notes")
