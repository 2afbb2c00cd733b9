"""
TreeSpotter Backend - Connection Manager and Session Management
================================================================

What:  Owns the async SQLAlchemy engine, its session factory, and the FastAPI
       session dependency.
How:   DatabaseManager.connect() builds the engine and probes it with retries
       (tenacity, fixed delay); sessions are created per request and committed
       on success, rolled back on error.
Who:   The app lifespan connects/disconnects; routes receive sessions through
       get_db_session; repositories receive the session explicitly.
When:  connect() once at startup, disconnect() once at shutdown.

Connection Pooling:
    The pool is the only shared mutable resource in the process. SQLAlchemy's
    AsyncAdaptedQueuePool is safe for concurrent use by every request task, so
    repositories never lock anything themselves.

Timeouts:
    pool_timeout bounds how long a request waits for a pooled connection.
    For asyncpg, command_timeout bounds every single statement.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Session
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    stop_after_attempt,
    wait_fixed,
)

from app.config import Settings, settings
from app.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every model registers with this metadata, which Alembic and the test
    suite use to create the schema.
    """
    pass


class DatabaseManager:
    """
    Connection manager for the relational store.

    Lifecycle:
        1. connect(): create engine, probe with SELECT 1, retry on failure
        2. session(): hand out AsyncSession instances bound to the engine
        3. disconnect(): dispose the engine, releasing every pooled connection

    Using the manager before connect() succeeded raises StoreUnavailableError.
    """

    def __init__(self, config: Settings):
        self.config = config
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StoreUnavailableError(
                message="Database connection has not been established",
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise StoreUnavailableError(
                message="Database connection has not been established",
            )
        return self._session_factory

    def _engine_options(self, url: str) -> Dict[str, Any]:
        """Pool and timeout options; SQLite URLs get the driver defaults."""
        if url.startswith("sqlite"):
            return {"echo": self.config.log_level == "DEBUG"}

        options: Dict[str, Any] = {
            "pool_size": self.config.db_pool_size,
            "max_overflow": self.config.db_max_overflow,
            "pool_pre_ping": self.config.db_pool_pre_ping,
            "pool_timeout": self.config.db_pool_timeout,
            "pool_recycle": 3600,
            "echo": self.config.log_level == "DEBUG",
        }
        if "asyncpg" in url:
            options["connect_args"] = {"command_timeout": self.config.db_command_timeout}
        return options

    async def _ping(self, engine: AsyncEngine) -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def connect(self) -> None:
        """
        Establish the pooled connection, retrying while the store comes up.

        Tries db_connect_attempts times (default 30) with a fixed
        db_connect_wait delay (default 2s), logging every failed attempt.

        Raises:
            StoreUnavailableError: every attempt failed
        """
        if self._engine is not None:
            return

        url = self.config.sqlalchemy_url
        engine = create_async_engine(url, **self._engine_options(url))

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.config.db_connect_attempts),
                wait=wait_fixed(self.config.db_connect_wait),
                before_sleep=before_sleep_log(logger, logging.WARNING),
            ):
                with attempt:
                    await self._ping(engine)
        except RetryError as e:
            await engine.dispose()
            last = e.last_attempt.exception()
            logger.error(
                "Could not connect to the database after %d attempts: %s",
                self.config.db_connect_attempts,
                last,
            )
            raise StoreUnavailableError(
                message="Database is unavailable",
                context={
                    "attempts": self.config.db_connect_attempts,
                    "last_error": str(last),
                },
            ) from last

        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Connected to database")

    async def disconnect(self) -> None:
        """
        Release all pooled connections.

        A failure here is logged at CRITICAL and re-raised; there is nothing
        left to recover during shutdown.
        """
        if self._engine is None:
            return
        try:
            await self._engine.dispose()
        except Exception:
            logger.critical("Error closing database connection", exc_info=True)
            raise
        finally:
            self._engine = None
            self._session_factory = None
        logger.info("Database connection closed.")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_factory() as session:
            yield session


db_manager = DatabaseManager(settings)


# ══════════════════════════════════════════════════════════════════════════
# After-commit Callbacks
# ══════════════════════════════════════════════════════════════════════════
#
# Side effects outside the database (removing image files) must only happen
# once the rows that referenced them are really gone. Services queue them on
# the session; commit_session() runs them after a successful commit and any
# rollback throws them away.

_AFTER_COMMIT_KEY = "after_commit_callbacks"


def call_after_commit(session: AsyncSession, callback: Callable[[], Awaitable[None]]) -> None:
    """Queue an async callback to run once the session's transaction commits."""
    session.info.setdefault(_AFTER_COMMIT_KEY, []).append(callback)


async def commit_session(session: AsyncSession) -> None:
    """Commit, then run the callbacks queued for the committed transaction."""
    await session.commit()
    for callback in session.info.pop(_AFTER_COMMIT_KEY, []):
        await callback()


@event.listens_for(Session, "after_soft_rollback")
def _discard_after_commit_callbacks(session: Session, previous_transaction) -> None:
    dropped = session.info.pop(_AFTER_COMMIT_KEY, None)
    if dropped:
        logger.info("Rollback discarded %d after-commit callback(s)", len(dropped))


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Opens a session from the connection manager
        2. Yields it to the route handler
        3. On success: commits (every write of the request lands together),
           then runs the queued after-commit callbacks
        4. On error: rolls back, so a failed multi-step operation such as a
           meadow cascade leaves no partial writes and touches no files
        5. Always: closes the session (returns connection to pool)

    Raises:
        StoreUnavailableError when the manager never connected.
    """
    async with db_manager.session() as session:
        try:
            yield session
            await commit_session(session)
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
