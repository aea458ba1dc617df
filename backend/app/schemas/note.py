"""
Notes Keyset API — Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the API contract.
Why:   Strict input validation, automatic serialization, and OpenAPI doc generation.
How:   FastAPI uses these models to validate request bodies, serialize responses,
       and generate OpenAPI documentation automatically.

Design Decision:
    Schemas are separate from SQLAlchemy models because:
    1. API contracts change independently of database schema
    2. We control exactly what data is exposed
    3. Validation rules differ from DB constraints
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

# Shown for notes whose owner has no row in `users`
UNKNOWN_USER = "Unknown"


def time_ago(moment: datetime, now: Optional[datetime] = None) -> str:
    """
    Human-readable age of a timestamp ("just now", "3 hours ago", ...).

    Thresholds: >365 days → years, >30 days → months, >1 day → days,
    >1 hour → hours, >1 minute → minutes.
    """
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    seconds = (now - moment).total_seconds()
    days = seconds / 86400
    hours = seconds / 3600
    minutes = seconds / 60

    def plural(n: int, unit: str) -> str:
        return f"{n} {unit}{'' if n == 1 else 's'} ago"

    if days > 365:
        return plural(int(days / 365), "year")
    if days > 30:
        return plural(int(days / 30), "month")
    if days > 1:
        return plural(int(days), "day")
    if hours > 1:
        return plural(int(hours), "hour")
    if minutes > 1:
        return plural(int(minutes), "minute")
    return "just now"


# ══════════════════════════════════════════════════════════════════════════
# Request Models: what the client sends in bodies
# ══════════════════════════════════════════════════════════════════════════


class NoteCreate(BaseModel):
    """
    What:  Body of POST /api/notes.
    Why:   id and timestamps are server-assigned so that (created_at, id)
           always reflects real insertion order and cannot be forged into
           the middle of an ongoing pagination walk.
    """
    user_id: uuid.UUID = Field(description="Owner of the note")
    title: str = Field(min_length=1, max_length=200, description="Note title")
    content: str = Field(default="", max_length=10_000, description="Note body")

    model_config = {"extra": "forbid"}


class NoteUpdate(BaseModel):
    """
    What:  Body of PUT /api/notes/{id}.
    Why:   Only title and content are editable. created_at is the primary
           sort key; editing it would move the note between pages.
    """
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(default="", max_length=10_000)

    model_config = {"extra": "forbid"}


# ══════════════════════════════════════════════════════════════════════════
# Response Models: what the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class NoteResponse(BaseModel):
    """
    What:  Full representation of a note.
    Who:   Items of GET /api/notes, and GET/POST/PUT on a single note.
    """
    id: uuid.UUID = Field(description="Unique note identifier (UUID)")
    user_id: uuid.UUID = Field(description="Owner of the note")
    user_name: str = Field(
        default=UNKNOWN_USER,
        description='Username of the owner, "Unknown" when the owner has no user record',
    )
    title: str
    content: str
    created_at: datetime = Field(description="When the note was created (UTC ISO 8601)")
    updated_at: datetime = Field(description="When the note was last edited (UTC ISO 8601)")
    created_time_ago: Optional[str] = Field(
        default=None,
        description='Relative age of the note, e.g. "3 hours ago"',
    )

    model_config = {"from_attributes": True}

    @classmethod
    def from_note(
        cls,
        note,
        now: Optional[datetime] = None,
        user_name: Optional[str] = None,
    ) -> "NoteResponse":
        return cls(
            id=note.id,
            user_id=note.user_id,
            user_name=user_name or UNKNOWN_USER,
            title=note.title,
            content=note.content,
            created_at=note.created_at,
            updated_at=note.updated_at,
            created_time_ago=time_ago(note.created_at, now),
        )


class NoteListResponse(BaseModel):
    """
    What:  Keyset-paginated response of GET /api/notes.

    How the cursor works:
        - next_cursor: opaque token naming the last item of this page.
          null (never "") when there is no further page.
        - Client sends it back unchanged as `?cursor=` for the next page,
          keeping the same filters and limit.
        - has_more: true iff the server saw at least one row past this page.
    """
    items: List[NoteResponse] = Field(description="Notes on this page, newest first")
    next_cursor: Optional[str] = Field(
        default=None,
        description="Opaque cursor for the next page. Null if no more pages.",
    )
    has_more: bool = Field(description="Whether more pages are available")


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Response Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "invalid_cursor",
            "message": "Invalid cursor. Restart pagination without a cursor.",
            "details": {"field": "cursor"},
            "request_id": "1f0c9a2b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and database status.
    Who:   Returned by GET /health for load balancer probes.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
