"""Board-level operations: the list of boards rather than one board's contents.

These validate input and call the command backend directly; there is no
per-board cache to update optimistically.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from cardloom.board import inputs
from cardloom.board.positions import is_dense
from cardloom.models.board import Board, new_id

if TYPE_CHECKING:
    from cardloom.commands.protocol import BoardCommandsProtocol

logger = logging.getLogger(__name__)


async def create_board(
    commands: BoardCommandsProtocol, title: str, **fields: Any
) -> Board:
    """Validate and create an empty board.

    Raises:
        BoardValidationError: If the title, icon, emoji or colour is invalid.
    """
    data = inputs.validate(inputs.BoardInput, title=title, **fields)
    board = Board(
        id=new_id(),
        title=data.title,
        description=data.description,
        icon=data.icon,
        emoji=data.emoji,
        color=data.color,
        workspace_id=data.workspace_id,
    )
    await commands.create_board(board)
    logger.info("Created board %s (%s)", board.id, board.title)
    return board


async def rename_board(
    commands: BoardCommandsProtocol,
    board_id: str,
    title: str,
    description: str | None = None,
) -> None:
    data = inputs.validate(inputs.BoardRename, title=title, description=description)
    await commands.rename_board(board_id, data.title, data.description)


async def update_board_icon(
    commands: BoardCommandsProtocol, board_id: str, icon: str
) -> None:
    board = await commands.load_board(board_id)
    data = inputs.validate(inputs.BoardInput, title=board.title, icon=icon)
    await commands.update_board_icon(board_id, data.icon)


async def check_board(commands: BoardCommandsProtocol, board_id: str) -> list[str]:
    """Report every container on a board whose positions are not dense.

    Returns:
        One human-readable problem per offending container; empty if sound.
    """
    columns = await commands.load_columns(board_id)
    cards = await commands.load_cards(board_id)
    problems: list[str] = []
    if not is_dense(columns):
        positions = sorted(c.position for c in columns)
        problems.append(f"board {board_id}: column positions {positions}")
    for column in columns:
        siblings = [c for c in cards if c.column_id == column.id]
        if not is_dense(siblings):
            positions = sorted(c.position for c in siblings)
            problems.append(f"column {column.title!r}: card positions {positions}")
    return problems


async def delete_board(commands: BoardCommandsProtocol, board_id: str) -> None:
    """Delete a board with all of its columns, cards and tags."""
    await commands.delete_board(board_id)
    logger.info("Deleted board %s", board_id)
