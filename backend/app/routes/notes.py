"""
Notes Keyset API — Notes Route Handlers
========================================

What:  Handles the /api/notes collection and single-note endpoints.
How:   Extracts query parameters and bodies, delegates to NoteService, returns JSON.

Caching Strategy:
    - GET /api/notes: no-store; pages change as notes are created and deleted
    - GET /api/notes/{id}: private, short cache; notes are editable
"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.note import (
    ErrorResponse,
    NoteCreate,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
)
from app.services.note_service import note_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api", tags=["Notes"])


@router.get(
    "/notes",
    response_model=NoteListResponse,
    responses={
        200: {"description": "One page of notes", "model": NoteListResponse},
        400: {"description": "Invalid cursor or page size", "model": ErrorResponse},
        503: {"description": "Database unavailable, retry", "model": ErrorResponse},
    },
    summary="List notes with cursor pagination",
    description=(
        "Returns notes newest first (created_at DESC, id ASC). Pass the previous "
        "response's next_cursor as `cursor` to continue; keep limit and filters "
        "unchanged between pages."
    ),
)
async def list_notes(
    response: Response,
    cursor: str | None = Query(
        default=None,
        description="Opaque next_cursor from the previous page. Omit for the first page.",
    ),
    limit: int | None = Query(
        default=None,
        description="Items per page (1-100, default 20). Out-of-range values are rejected.",
    ),
    user_id: UUID | None = Query(default=None, description="Only notes owned by this user"),
    search: str | None = Query(
        default=None,
        max_length=200,
        description="Case-insensitive substring match on title or content",
    ),
    start_date: datetime | None = Query(
        default=None,
        description="Only notes created at or after this instant (ISO 8601)",
    ),
    end_date: datetime | None = Query(
        default=None,
        description="Only notes created at or before this instant (ISO 8601)",
    ),
    db: AsyncSession = Depends(get_db_session),
) -> NoteListResponse:
    """
    List notes with keyset pagination.

    Example client usage (infinite scroll):
        Page 1: GET /api/notes?limit=20
        Page 2: GET /api/notes?limit=20&cursor=<next_cursor of page 1>
        ... until has_more is false (next_cursor is then null)
    """
    result = await note_service.list_notes(
        db=db,
        cursor=cursor,
        limit=limit,
        user_id=user_id,
        search=search,
        start_date=start_date,
        end_date=end_date,
    )
    response.headers["Cache-Control"] = "no-store"
    return result


@router.post(
    "/notes",
    status_code=201,
    response_model=NoteResponse,
    responses={
        201: {"description": "Note created", "model": NoteResponse},
        503: {"description": "Database unavailable, retry", "model": ErrorResponse},
    },
    summary="Create a note",
)
async def create_note(
    payload: NoteCreate,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    result = await note_service.create_note(db=db, payload=payload)
    response.headers["Location"] = f"/api/notes/{result.id}"
    return result


@router.get(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses={
        200: {"description": "Full note details", "model": NoteResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
        503: {"description": "Database unavailable, retry", "model": ErrorResponse},
    },
    summary="Get a single note by ID",
)
async def get_note(
    note_id: UUID,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    """
    Get full details of a single note.

    Args:
        note_id: UUID path parameter — validated by FastAPI automatically.
                 Invalid UUIDs return 422 Unprocessable Entity (FastAPI default).
    """
    result = await note_service.get_note(db=db, note_id=note_id)
    response.headers["Cache-Control"] = "private, max-age=60"
    return result


@router.put(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses={
        200: {"description": "Note updated", "model": NoteResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
        503: {"description": "Database unavailable, retry", "model": ErrorResponse},
    },
    summary="Update a note's title and content",
)
async def update_note(
    note_id: UUID,
    payload: NoteUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.update_note(db=db, note_id=note_id, payload=payload)


@router.delete(
    "/notes/{note_id}",
    status_code=204,
    responses={
        404: {"description": "Note not found", "model": ErrorResponse},
        503: {"description": "Database unavailable, retry", "model": ErrorResponse},
    },
    summary="Delete a note",
)
async def delete_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await note_service.delete_note(db=db, note_id=note_id)
    return Response(status_code=204)
