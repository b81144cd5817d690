"""Async database engine and session management.

Provides async SQLite connections via SQLModel and aiosqlite.
Includes connection pool instrumentation for diagnostics.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession

from cardloom.config import get_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine
    from sqlalchemy.pool import _ConnectionRecord

logger = logging.getLogger(__name__)
_pool_logger = logging.getLogger(f"{__name__}.pool")


def _pool_status(pool: object) -> str:
    """Format current pool status for logging."""

    # QueuePool exposes these as methods; StaticPool does not have them
    def _get(name: str) -> object:
        attr = getattr(pool, name, None)
        if attr is None:
            return "?"
        return attr() if callable(attr) else attr

    return f"size={_get('size')} checked_out={_get('checkedout')}"


def _install_listeners(engine: AsyncEngine) -> None:
    """Enable SQLite foreign keys per connection and log pool activity."""
    pool = engine.sync_engine.pool

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_conn: object, _rec: _ConnectionRecord) -> None:
        if engine.dialect.name != "sqlite":
            return
        cursor = dbapi_conn.cursor()  # type: ignore[attr-defined]
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(pool, "checkout")
    def _on_checkout(
        _dbapi_conn: object, _rec: _ConnectionRecord, _proxy: object
    ) -> None:
        _pool_logger.debug("CHECKOUT %s", _pool_status(pool))

    @event.listens_for(pool, "checkin")
    def _on_checkin(_dbapi_conn: object, _rec: _ConnectionRecord) -> None:
        _pool_logger.debug("CHECKIN  %s", _pool_status(pool))

    @event.listens_for(pool, "invalidate")
    def _on_invalidate(
        _dbapi_conn: object,
        _rec: _ConnectionRecord,
        exception: BaseException | None,
        _soft: bool,
    ) -> None:
        _pool_logger.warning(
            "INVALIDATE soft=%s exception=%s %s",
            _soft,
            type(exception).__name__ if exception else None,
            _pool_status(pool),
        )


@dataclass
class _DatabaseState:
    """Internal state holder for database engine and session factory."""

    engine: AsyncEngine | None = field(default=None)
    session_factory: async_sessionmaker[AsyncSession] | None = field(default=None)


# Module-level state (initialized on startup)
_state = _DatabaseState()


def get_database_url() -> str:
    """Get database URL from Settings."""
    return get_settings().database.url


def _ensure_sqlite_dir(url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    database = parsed.database
    if database and database != ":memory:":
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def get_engine() -> AsyncEngine | None:
    """Get the database engine for direct access.

    Primarily for schema bootstrap and test fixtures.

    Returns:
        The async engine if initialized, None otherwise.
    """
    return _state.engine


async def init_db(url: str | None = None) -> None:
    """Initialize database engine and session factory.

    Call this on application startup (e.g., NiceGUI @app.on_startup).

    Args:
        url: Override for ``DATABASE__URL`` (used by tests and the CLI).
    """
    url = url or get_database_url()
    _ensure_sqlite_dir(url)
    _state.engine = create_async_engine(
        url,
        echo=get_settings().dev.database_echo,
        pool_pre_ping=True,
    )
    _install_listeners(_state.engine)

    _state.session_factory = async_sessionmaker(
        _state.engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    logger.info("Database engine initialised (%s)", make_url(url).get_backend_name())


async def close_db() -> None:
    """Close database connections.

    Call this on application shutdown (e.g., NiceGUI @app.on_shutdown).
    Disposes of the engine and clears module state.
    """
    if _state.engine:
        await _state.engine.dispose()
        _state.engine = None
        _state.session_factory = None


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Get an async database session.

    Yields a session that auto-commits on success and rolls back on error.
    Exceptions are logged before re-raising.

    Lazily initializes the database engine on first use if not already
    initialized.

    Usage:
        async with get_session() as session:
            board = await session.get(KanbanBoard, board_id)
    """
    if _state.session_factory is None:
        await init_db()

    session_factory = _state.session_factory
    assert session_factory is not None  # For type narrowing

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            logger.exception("Database session error, rolling back transaction")
            await session.rollback()
            raise
