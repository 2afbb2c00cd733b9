"""
TreeSpotter Backend - Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Repository and service tests run against an in-memory SQLite database
       (aiosqlite) created fresh for every test; endpoint tests drive the app
       through httpx's ASGITransport with the session dependency overridden.

Fixture Hierarchy:
    Function-scoped:
    ├── db_engine:          in-memory engine with all tables created
    ├── db_session:         AsyncSession on that engine
    ├── upload_dir:         temporary directory for image files
    ├── files:              FileService writing into upload_dir
    ├── sample_image_bytes: minimal JPEG header bytes
    ├── user / other_user:  two registered owners
    ├── locked_meadow_reads: meadow SELECTs issued with FOR UPDATE
    └── test_client:        httpx AsyncClient bound to the app
"""

import os
import tempfile

# Settings are read at import time; point them at test values first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-not-for-production-use-only"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="treespotter_test_")
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Iterator, List
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import Select
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base
from app.models.user import User
from app.services.file_service import FileService


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite engine shared by every connection of one test.

    StaticPool keeps the single connection alive, so the schema created here
    is the one the sessions see.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


async def _create_user(session: AsyncSession, username: str) -> int:
    user = User(username=username, password="not-a-real-hash", email=f"{username}@example.com")
    session.add(user)
    await session.flush()
    return user.id


@pytest_asyncio.fixture
async def user(db_session) -> int:
    """ID of the owner most tests act as."""
    return await _create_user(db_session, "alice")


@pytest_asyncio.fixture
async def other_user(db_session) -> int:
    """ID of a second owner, for isolation checks."""
    return await _create_user(db_session, "bob")


@pytest.fixture
def locked_meadow_reads(db_session) -> Iterator[List[str]]:
    """
    PostgreSQL rendering of every meadow SELECT ... FOR UPDATE the session runs.

    SQLite drops the locking clause when it executes, so the statement is
    compiled against the production dialect instead.
    """
    locked: List[str] = []
    execute = db_session.execute

    async def recording_execute(statement, *args, **kwargs):
        if isinstance(statement, Select):
            sql = str(statement.compile(dialect=postgresql.dialect()))
            if "FROM meadows" in sql and "FOR UPDATE" in sql:
                locked.append(sql)
        return await execute(statement, *args, **kwargs)

    with patch.object(db_session, "execute", recording_execute):
        yield locked


# ══════════════════════════════════════════════════════════════════════════
# File Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def upload_dir(tmp_path):
    directory = tmp_path / "uploads"
    directory.mkdir()
    return str(directory)


@pytest.fixture
def files(upload_dir) -> FileService:
    return FileService(upload_dir=upload_dir)


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG: SOI marker + JFIF header + EOI marker.

    Not a decodable photograph, but libmagic reports image/jpeg for it.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(db_engine) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the app in-process.

    Each request gets its own session on the test engine and the same
    commit/rollback handling as get_db_session. ASGITransport does not run
    the lifespan, so the connection manager is never used.
    """
    from app.database import commit_session, get_db_session
    from app.main import app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            try:
                yield session
                await commit_session(session)
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
