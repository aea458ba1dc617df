"""
Notes Keyset API — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (mocked DB, in-memory SQLite,
       API client, note factories).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session (no database at all)
    ├── db_engine: in-memory SQLite engine with the schema created
    ├── db_session: AsyncSession bound to db_engine
    ├── note_factory: inserts notes with chosen (created_at, id) keys
    ├── user_factory: inserts note owners
    └── test_client: HTTPX AsyncClient whose requests use db_engine
"""

import os

# Override settings BEFORE any app import: app.config builds its singleton
# at import time and app.database creates its engine from it
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["CURSOR_SIGNING_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import uuid  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import AsyncGenerator, Callable, Optional  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db_session  # noqa: E402
from app.models.note import Note  # noqa: E402
from app.models.user import User  # noqa: E402

BASE_TIME = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def at(seconds: int) -> datetime:
    """Timestamp `seconds` after BASE_TIME. Larger means newer."""
    return BASE_TIME + timedelta(seconds=seconds)


def uid(n: int) -> uuid.UUID:
    """Deterministic UUID whose ordering follows n."""
    return uuid.UUID(int=n)


# ══════════════════════════════════════════════════════════════════════════
# Mock Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_note(mock_db_session):
            mock_db_session.execute.return_value.scalar_one_or_none.return_value = note
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def sample_note_data():
    """Dictionary matching the Note model fields."""
    created = datetime.now(timezone.utc) - timedelta(hours=3)
    return {
        "id": uuid.uuid4(),
        "user_id": uuid.uuid4(),
        "title": "Groceries",
        "content": "Milk, eggs, coffee",
        "created_at": created,
        "updated_at": created,
    }


# ══════════════════════════════════════════════════════════════════════════
# In-Memory Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite engine with all tables created.

    StaticPool keeps the single in-memory database alive across sessions.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def note_factory(session_factory) -> Callable:
    """
    Inserts one note per call and commits it.

    Usage:
        note = await note_factory(at(5), uid(5))
    """

    async def create(
        created_at: datetime,
        note_id: Optional[uuid.UUID] = None,
        user_id: Optional[uuid.UUID] = None,
        title: str = "note",
        content: str = "",
    ) -> Note:
        note = Note(
            id=note_id or uuid.uuid4(),
            user_id=user_id or uid(999),
            title=title,
            content=content,
            created_at=created_at,
            updated_at=created_at,
        )
        async with session_factory() as session:
            session.add(note)
            await session.commit()
        return note

    return create


@pytest.fixture
def user_factory(session_factory) -> Callable:
    """
    Inserts one user per call and commits it.

    Usage:
        alice = await user_factory("alice", uid(1001))
    """

    async def create(username: str, user_id: Optional[uuid.UUID] = None) -> User:
        user = User(id=user_id or uuid.uuid4(), username=username, email=f"{username}@example.com")
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return create


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to a fresh app over ASGITransport.

    get_db_session is overridden so every request gets a session on the
    in-memory test database, with the same commit/rollback behavior.
    """
    from app.main import create_app

    app = create_app()

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
