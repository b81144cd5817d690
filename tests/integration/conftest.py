"""Integration test configuration.

Each test gets a fresh file-backed SQLite database under ``tmp_path``;
the engine is disposed afterwards so module state does not leak.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import pytest_asyncio

from cardloom.db.bootstrap import create_schema
from cardloom.db.engine import close_db, get_engine, init_db

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Mark everything under tests/integration as ``integration``."""
    for item in items:
        if "integration" in item.path.parts:
            item.add_marker(pytest.mark.integration)


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path) -> AsyncIterator[None]:
    """Initialise a throwaway database with the full schema."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'cardloom-test.db'}")
    await create_schema(get_engine())
    yield
    await close_db()


@pytest_asyncio.fixture
async def board_id(db_engine: None) -> str:
    """A board with columns ``todo``, ``doing`` and ``done``."""
    from cardloom import db

    board = await db.create_board("Integration", board_id="board-int")
    for index, (column_id, title) in enumerate(
        [("todo", "To-Do"), ("doing", "In Progress"), ("done", "Done")]
    ):
        await db.create_column(board.id, title, column_id=column_id, position=index)
    return board.id
