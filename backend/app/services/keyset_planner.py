"""
Notes Keyset API — Keyset Query Planner
========================================

What:  Turns (optional cursor token, page size) into a seek query, and turns
       the fetched rows into a page with `has_more` and the next cursor.
Why:   OFFSET pagination rescans every skipped row and shifts under
       concurrent inserts/deletes (skipping or repeating rows). A seek on the
       sort key costs O(log n + limit) at any depth and is immune to
       mutations outside the range already returned.
How:
    1. validate_page_size()  strict bound check, no clamping
    2. resolve_cursor()      blank → first page, otherwise decode or fail
    3. plan()                WHERE <seek> ORDER BY primary DESC, tiebreak ASC
                             LIMIT page_size + 1
    4. assemble()            drop the probe row, derive the next cursor

Ordering and seek predicate:
    ORDER BY created_at DESC, id ASC

    A row comes after cursor (t0, id0) iff
        created_at < t0  OR  (created_at = t0 AND id > id0)

    The two columns sort in opposite directions, so a row-value comparison
    `(created_at, id) < (t0, id0)` would be wrong here. The decomposed form
    above is still a single range on the composite index
    (created_at DESC, id ASC); PostgreSQL turns it into one index scan.

Probe row:
    Fetching page_size + 1 rows answers "is there another page?" without a
    COUNT over an unbounded table. It is only reliable because all
    page_size + 1 rows come from one statement, hence one snapshot.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import Select, and_, or_
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.sql.elements import ColumnElement

from app.config import settings
from app.exceptions import InvalidPageSizeError
from app.services.cursor_codec import Cursor, CursorCodec, SortKey, cursor_codec

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One page of a keyset listing.

    Attributes:
        items:       at most page_size rows, in listing order
        next_cursor: position of the last item when has_more, else None
        has_more:    True iff the fetch returned more than page_size rows
    """

    items: List[T] = field(default_factory=list)
    next_cursor: Optional[Cursor] = None
    has_more: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.items


class KeysetPlanner:
    """
    Seek-pagination planner over a (primary DESC, tiebreak ASC) ordering.

    The planner only reads the two sort-key attributes of a row; everything
    else about the entity is opaque to it.

    Args:
        primary:  timestamp column sorted descending (e.g. Note.created_at)
        tiebreak: unique column sorted ascending on ties (e.g. Note.id)
        codec:    token codec shared by encode/decode
        max_page_size / default_page_size: page size policy
    """

    def __init__(
        self,
        primary: InstrumentedAttribute,
        tiebreak: InstrumentedAttribute,
        codec: CursorCodec = cursor_codec,
        max_page_size: int = settings.max_page_size,
        default_page_size: int = settings.default_page_size,
    ):
        self.primary = primary
        self.tiebreak = tiebreak
        self.codec = codec
        self.max_page_size = max_page_size
        self.default_page_size = default_page_size

    # ── Request side ──────────────────────────────────────────────────────

    def validate_page_size(self, limit: Optional[int]) -> int:
        """
        Returns the effective page size.

        None means "not supplied" and yields the default. Anything outside
        [1, max_page_size] is a client error; values are never clamped.
        """
        if limit is None:
            return self.default_page_size
        if limit < 1 or limit > self.max_page_size:
            raise InvalidPageSizeError(limit=limit, max_page_size=self.max_page_size)
        return limit

    def resolve_cursor(self, token: Optional[str]) -> Optional[Cursor]:
        """
        Maps the raw `cursor` query value to a Cursor.

        Absent, empty, or whitespace-only → None (first page).
        Anything else must decode; InvalidCursorError propagates otherwise.
        """
        if token is None or not token.strip():
            return None
        return self.codec.decode_cursor(token)

    def seek_predicate(self, cursor: Cursor) -> ColumnElement[bool]:
        t0 = cursor.key.created_at
        id0 = cursor.key.id
        return or_(
            self.primary < t0,
            and_(self.primary == t0, self.tiebreak > id0),
        )

    def order_by(self) -> Tuple[ColumnElement, ColumnElement]:
        return self.primary.desc(), self.tiebreak.asc()

    def plan(self, statement: Select, cursor: Optional[Cursor], page_size: int) -> Select:
        """
        Adds the seek predicate, the listing order, and the probe limit to a
        base SELECT (which may already carry filters).
        """
        if cursor is not None:
            statement = statement.where(self.seek_predicate(cursor))
        return statement.order_by(*self.order_by()).limit(page_size + 1)

    # ── Response side ─────────────────────────────────────────────────────

    def key_of(self, row: object) -> SortKey:
        return SortKey.from_values(
            getattr(row, self.primary.key),
            getattr(row, self.tiebreak.key),
        )

    def assemble(
        self,
        rows: Sequence[T],
        page_size: int,
        key_of: Optional[Callable[[T], SortKey]] = None,
    ) -> Page[T]:
        """
        Classifies a fetch of up to page_size + 1 rows.

            len(rows) >  page_size → has_more, probe dropped, cursor = new last row
            len(rows) <= page_size → final page, next_cursor None
        """
        key_of = key_of or self.key_of
        items = list(rows)
        has_more = len(items) > page_size
        if not has_more:
            return Page(items=items, next_cursor=None, has_more=False)

        items = items[:page_size]
        next_cursor = Cursor(key=key_of(items[-1]))
        return Page(items=items, next_cursor=next_cursor, has_more=True)

    def encode_next(self, page: Page) -> Optional[str]:
        if page.next_cursor is None:
            return None
        return self.codec.encode_cursor(page.next_cursor)
