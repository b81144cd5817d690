"""Demo board used by ``seed-data`` and ``DEV__SEED_DEMO``."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING

from cardloom.board import BoardStore, MutationDispatcher
from cardloom.board.catalog import create_board
from cardloom.models.board import Priority
from cardloom.models.snapshot import BoardSnapshot

if TYPE_CHECKING:
    from cardloom.commands.protocol import BoardCommandsProtocol

logger = logging.getLogger(__name__)

DEMO_BOARD_TITLE = "Demo board"

_TAGS = (("Bug", "#EF4444"), ("Feature", "#6366F1"), ("Docs", "#22C55E"))

# (column index, title, priority, due in days, tag labels)
_CARDS: tuple[tuple[int, str, Priority, int | None, tuple[str, ...]], ...] = (
    (0, "Write onboarding guide", Priority.LOW, 10, ("Docs",)),
    (0, "Dark mode", Priority.MEDIUM, None, ("Feature",)),
    (0, "Fix login redirect loop", Priority.HIGH, 1, ("Bug",)),
    (1, "Card due-date badges", Priority.MEDIUM, 3, ("Feature",)),
    (1, "Column WIP limits", Priority.HIGH, 0, ("Feature",)),
    (2, "Project scaffolding", Priority.LOW, -2, ()),
)

# Checklist on "Column WIP limits"; the first item is done.
_SUBTASKS = ("Badge colour when over limit", "Limit field in column dialog", "Tests")


async def seed_demo_board(commands: BoardCommandsProtocol) -> str:
    """Create the demo board unless one already exists.

    Returns:
        The demo board's id.
    """
    for board in await commands.load_boards():
        if board.title == DEMO_BOARD_TITLE:
            logger.info("Demo board exists: %s", board.id)
            return board.id

    board = await create_board(
        commands,
        DEMO_BOARD_TITLE,
        description="Drag cards between columns, or drag column headers.",
        icon="LayoutDashboard",
    )
    dispatcher = MutationDispatcher(BoardStore(BoardSnapshot(board.id)), commands)
    await dispatcher.load()
    columns = await dispatcher.seed_default_columns()
    tags = {
        label: await dispatcher.create_tag(label, color) for label, color in _TAGS
    }

    if not columns:
        return board.id
    today = date.today()
    cards = {}
    for index, title, priority, due_in, labels in _CARDS:
        cards[title] = await dispatcher.create_card(
            columns[min(index, len(columns) - 1)].id,
            title,
            priority=priority,
            due_date=today + timedelta(days=due_in) if due_in is not None else None,
            tag_ids=[tags[label].id for label in labels],
        )
    checklist = cards["Column WIP limits"]
    for title in _SUBTASKS:
        await dispatcher.create_subtask(checklist.id, title)
    first = dispatcher.store.snapshot.subtasks_of(checklist.id)[0]
    await dispatcher.update_subtask(first.id, is_completed=True)
    logger.info("Seeded demo board %s", board.id)
    return board.id
