"""Shared pytest fixtures for Cardloom tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from dotenv import load_dotenv

from cardloom.board import BoardStore, MutationDispatcher
from cardloom.commands import InMemoryBoardCommands, clear_commands_cache
from cardloom.config import get_settings
from cardloom.models.board import Board, Card, Column
from cardloom.models.snapshot import BoardSnapshot

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator, Mapping, Sequence

load_dotenv()

BOARD_ID = "board-1"

# Column id -> card ids, both in display order.
type Layout = Mapping[str, Sequence[str]]

DEFAULT_LAYOUT: dict[str, list[str]] = {
    "A": ["a1", "a2", "a3"],
    "B": ["b1", "b2"],
    "C": [],
}


def make_snapshot(
    layout: Layout = DEFAULT_LAYOUT, board_id: str = BOARD_ID
) -> BoardSnapshot:
    """Build a dense snapshot; ids double as titles."""
    columns: list[Column] = []
    cards: list[Card] = []
    for column_index, (column_id, card_ids) in enumerate(layout.items()):
        columns.append(
            Column(
                id=column_id,
                board_id=board_id,
                title=column_id,
                position=column_index,
            )
        )
        cards.extend(
            Card(
                id=card_id,
                board_id=board_id,
                column_id=column_id,
                title=card_id,
                position=card_index,
            )
            for card_index, card_id in enumerate(card_ids)
        )
    return BoardSnapshot(board_id=board_id, columns=tuple(columns), cards=tuple(cards))


def layout_of(snapshot: BoardSnapshot) -> dict[str, list[str]]:
    """The inverse of ``make_snapshot``: column id -> ordered card ids."""
    return {
        column.id: [card.id for card in snapshot.cards_in(column.id)]
        for column in snapshot.ordered_columns()
    }


async def seed_commands(
    commands: InMemoryBoardCommands, snapshot: BoardSnapshot
) -> None:
    """Persist ``snapshot`` into an in-memory backend, then forget the calls."""
    await commands.create_board(Board(id=snapshot.board_id, title="Test board"))
    for column in snapshot.ordered_columns():
        await commands.create_column(column)
    for column in snapshot.ordered_columns():
        for card in snapshot.cards_in(column.id):
            await commands.create_card(card)
    for tag in snapshot.tags:
        await commands.create_tag(tag)
    for card in snapshot.cards:
        for subtask in snapshot.subtasks_of(card.id):
            await commands.create_subtask(subtask)
    commands.calls.clear()


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Reset cached settings and the in-memory backend around each test."""
    clear_commands_cache()
    yield
    clear_commands_cache()
    get_settings.cache_clear()


@pytest.fixture
def snapshot() -> BoardSnapshot:
    return make_snapshot()


@pytest_asyncio.fixture
async def commands(snapshot: BoardSnapshot) -> AsyncIterator[InMemoryBoardCommands]:
    """In-memory backend already holding ``snapshot``."""
    backend = InMemoryBoardCommands()
    await seed_commands(backend, snapshot)
    yield backend
    backend.resume()


@pytest_asyncio.fixture
async def dispatcher(
    snapshot: BoardSnapshot, commands: InMemoryBoardCommands
) -> MutationDispatcher:
    """Dispatcher over a store loaded with ``snapshot``; notifications recorded."""
    notifications: list[str] = []
    result = MutationDispatcher(
        BoardStore(snapshot), commands, notify=notifications.append, timeout=1.0
    )
    result.notifications = notifications  # type: ignore[attr-defined]
    return result
