"""
Notes Keyset API — Note Service (Business Logic)
=================================================

What:  Note listing with keyset pagination, plus single-note CRUD.
Why:   Encapsulates all business logic in one place, independent of HTTP concerns.
How:   Builds SQLAlchemy statements, delegates pagination to KeysetPlanner,
       and translates database failures into application exceptions.
Who:   Called by route handlers.

List flow (GET /api/notes):
    ┌───────────┐   ┌───────────┐   ┌─────────────┐   ┌───────────┐   ┌──────────┐
    │ validate  │──▶│  decode   │──▶│ seek query  │──▶│  execute  │──▶│ assemble │
    │  limit    │   │  cursor   │   │ LIMIT n + 1 │   │ (1 SELECT)│   │  page    │
    └───────────┘   └───────────┘   └─────────────┘   └───────────┘   └──────────┘
         400             400                               503

    Client errors are raised before any statement is executed. Owner
    usernames for the page come from one extra `users WHERE id IN (...)` query.

Design Decision:
    NoteService is stateless — it receives the db session for each call.
    No pagination state survives a request; the cursor token is the only
    thing that crosses requests, and it lives with the client.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import Select, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import NotFoundError, StorageUnavailableError
from app.models.note import Note
from app.models.user import User
from app.schemas.note import (
    NoteCreate,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
)
from app.services.keyset_planner import KeysetPlanner

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # Naive filter bounds are read as UTC, matching how timestamps are stored
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _storage_error(operation: str, exc: Exception, **context) -> StorageUnavailableError:
    logger.error("Database error during %s: %s", operation, exc, exc_info=True)
    context.update(operation=operation, error_type=type(exc).__name__)
    return StorageUnavailableError(
        retry_after=settings.storage_retry_after,
        context=context,
    )


class NoteService:
    """
    Business logic layer for note operations.

    Responsibilities:
        - list_notes(): keyset-paginated listing with optional filters
        - get_note() / create_note() / update_note() / delete_note()

    Error Handling Strategy:
        SQLAlchemyError from any statement becomes StorageUnavailableError
        (503, safe to retry). Application exceptions propagate unchanged.
    """

    def __init__(self, planner: Optional[KeysetPlanner] = None):
        self.planner = planner or KeysetPlanner(Note.created_at, Note.id)

    # ── Listing ───────────────────────────────────────────────────────────

    @staticmethod
    def _filtered_select(
        user_id: Optional[UUID],
        search: Optional[str],
        start_date: Optional[datetime],
        end_date: Optional[datetime],
    ) -> Select:
        """
        Base SELECT with the optional filters applied.

        Filters only narrow the row set; they never change the ordering, so
        the seek predicate stays valid as long as the client repeats the same
        filters on every page.
        """
        query = select(Note)
        if user_id is not None:
            query = query.where(Note.user_id == user_id)
        if search:
            # autoescape: '%' and '_' in the term match literally
            query = query.where(
                or_(
                    Note.title.icontains(search, autoescape=True),
                    Note.content.icontains(search, autoescape=True),
                )
            )
        if start_date is not None:
            query = query.where(Note.created_at >= _as_utc(start_date))
        if end_date is not None:
            query = query.where(Note.created_at <= _as_utc(end_date))
        return query

    async def list_notes(
        self,
        db: AsyncSession,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        user_id: Optional[UUID] = None,
        search: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> NoteListResponse:
        """
        Return one page of notes, newest first.

        Query plan (no filters, with cursor):
            SELECT * FROM notes
            WHERE created_at < :t0 OR (created_at = :t0 AND id > :id0)
            ORDER BY created_at DESC, id ASC
            LIMIT :limit + 1
            → one range scan on idx_notes_created_at_id

        Args:
            db: Async database session
            cursor: next_cursor from the previous page; None/blank for page one
            limit: page size; None uses settings.default_page_size
            user_id / search / start_date / end_date: optional filters

        Returns:
            NoteListResponse(items, next_cursor, has_more)

        Raises:
            InvalidPageSizeError: limit outside [1, max_page_size] (→ 400)
            InvalidCursorError: cursor does not decode (→ 400)
            StorageUnavailableError: a SELECT failed (→ 503)
        """
        page_size = self.planner.validate_page_size(limit)
        position = self.planner.resolve_cursor(cursor)

        statement = self.planner.plan(
            self._filtered_select(user_id, search, start_date, end_date),
            position,
            page_size,
        )

        try:
            result = await db.execute(statement)
            rows: List[Note] = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise _storage_error("list_notes", e, page_size=page_size)

        page = self.planner.assemble(rows, page_size)
        logger.debug(
            "Listed %d notes (page_size=%d, has_more=%s, from_cursor=%s)",
            len(page.items),
            page_size,
            page.has_more,
            position is not None,
        )

        names = await self._user_names(db, (note.user_id for note in page.items), "list_notes")
        now = datetime.now(timezone.utc)
        return NoteListResponse(
            items=[
                NoteResponse.from_note(note, now, names.get(note.user_id))
                for note in page.items
            ],
            next_cursor=self.planner.encode_next(page),
            has_more=page.has_more,
        )

    # ── Owner usernames ───────────────────────────────────────────────────

    @staticmethod
    async def _user_names(
        db: AsyncSession, user_ids: Iterable[UUID], operation: str
    ) -> Dict[UUID, str]:
        """
        Maps owner ids to usernames with a single `WHERE id IN (...)` query.

        Ids with no user row are simply absent; callers fall back to
        "Unknown". No query is issued for an empty page.
        """
        ids = set(user_ids)
        if not ids:
            return {}
        try:
            result = await db.execute(select(User.id, User.username).where(User.id.in_(ids)))
            return {user_id: username for user_id, username in result.all()}
        except SQLAlchemyError as e:
            raise _storage_error(operation, e, user_count=len(ids))

    async def _respond(
        self, db: AsyncSession, note: Note, operation: str, now: Optional[datetime] = None
    ) -> NoteResponse:
        names = await self._user_names(db, [note.user_id], operation)
        return NoteResponse.from_note(note, now, names.get(note.user_id))

    # ── Single-note operations ────────────────────────────────────────────

    async def _load(self, db: AsyncSession, note_id: UUID, operation: str) -> Note:
        try:
            result = await db.execute(select(Note).where(Note.id == note_id))
            note = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise _storage_error(operation, e, note_id=str(note_id))

        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def get_note(self, db: AsyncSession, note_id: UUID) -> NoteResponse:
        """
        Retrieve a single note by ID.

        Raises:
            NotFoundError: Note with given ID does not exist (→ 404)
            StorageUnavailableError: Query execution failed (→ 503)
        """
        note = await self._load(db, note_id, "get_note")
        return await self._respond(db, note, "get_note")

    async def create_note(self, db: AsyncSession, payload: NoteCreate) -> NoteResponse:
        """
        Insert a note with server-assigned id and timestamps.

        created_at == updated_at on insert. A new note sorts before every
        existing cursor position, so walks already in progress never see it.
        """
        now = datetime.now(timezone.utc)
        note = Note(
            user_id=payload.user_id,
            title=payload.title,
            content=payload.content,
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(note)
            await db.flush()
        except SQLAlchemyError as e:
            raise _storage_error("create_note", e, user_id=str(payload.user_id))

        logger.info("Note created: %s (user=%s)", note.id, note.user_id)
        return await self._respond(db, note, "create_note", now)

    async def update_note(
        self, db: AsyncSession, note_id: UUID, payload: NoteUpdate
    ) -> NoteResponse:
        """
        Edit title/content and bump updated_at. created_at is left alone, so
        the note keeps its place in the listing.
        """
        note = await self._load(db, note_id, "update_note")
        note.title = payload.title
        note.content = payload.content
        note.updated_at = datetime.now(timezone.utc)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            raise _storage_error("update_note", e, note_id=str(note_id))

        logger.info("Note updated: %s", note_id)
        return await self._respond(db, note, "update_note")

    async def delete_note(self, db: AsyncSession, note_id: UUID) -> None:
        """
        Delete a note.

        Cursors that point at the deleted row stay valid: the seek predicate
        compares against the key values, not against the row's existence.
        """
        note = await self._load(db, note_id, "delete_note")
        try:
            await db.delete(note)
            await db.flush()
        except SQLAlchemyError as e:
            raise _storage_error("delete_note", e, note_id=str(note_id))

        logger.info("Note deleted: %s", note_id)


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService()
