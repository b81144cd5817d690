"""Database bootstrap and schema management for cardloom.

Provides unified schema setup for the app, the CLI and tests.

Key principles:
- All models must be imported before schema operations
- Fail fast if schema is invalid
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import inspect
from sqlmodel import SQLModel

from cardloom.config import get_settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


def get_expected_tables() -> set[str]:
    """Get the set of table names expected from SQLModel metadata.

    This imports all models to ensure they're registered with SQLModel.metadata.
    """
    import cardloom.db.models  # noqa: F401, PLC0415

    return set(SQLModel.metadata.tables.keys())


async def create_schema(engine: AsyncEngine | None) -> None:
    """Create any missing tables. Existing tables are left untouched."""
    if engine is None:
        raise RuntimeError("Database engine is not initialized")
    get_expected_tables()
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)


async def drop_schema(engine: AsyncEngine) -> None:
    """Drop every cardloom table. Test use only."""
    get_expected_tables()
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.drop_all)


async def verify_schema(engine: AsyncEngine | None) -> None:
    """Verify all expected SQLModel tables exist in the database.

    This is called at app startup to fail fast if schema is invalid.

    Raises:
        RuntimeError: If engine is None or tables are missing.
    """
    if engine is None:
        raise RuntimeError("Database engine is not initialized")

    expected_tables = get_expected_tables()
    if not expected_tables:
        raise RuntimeError("No SQLModel tables registered; cannot verify schema")

    async with engine.begin() as connection:
        existing_tables = await connection.run_sync(
            lambda sync_conn: set(inspect(sync_conn).get_table_names())
        )

    missing_tables = expected_tables - existing_tables
    if missing_tables:
        missing = ", ".join(sorted(missing_tables))
        raise RuntimeError(
            f"Database schema is missing required tables: {missing}. "
            f"DATABASE__URL={_mask_password(get_settings().database.url)}. "
            "Start the app or run 'seed-data' to create them."
        )


def _mask_password(url: str) -> str:
    """Mask password in database URL for safe logging."""
    if "@" not in url or "://" not in url:
        return url

    protocol, rest = url.split("://", 1)
    creds, host_part = rest.rsplit("@", 1)
    if ":" in creds:
        user, _ = creds.split(":", 1)
        return f"{protocol}://{user}:***@{host_part}"
    return url
