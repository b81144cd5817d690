"""CRUD operations for KanbanBoard."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlmodel import col, select

from cardloom.board.errors import NotFoundError
from cardloom.db.activity import record_activity
from cardloom.db.engine import get_session
from cardloom.db.models import KanbanBoard
from cardloom.models.board import DEFAULT_BOARD_ICON

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession


async def create_board(
    title: str,
    *,
    board_id: str | None = None,
    description: str | None = None,
    icon: str = DEFAULT_BOARD_ICON,
    emoji: str | None = None,
    color: str | None = None,
    workspace_id: str | None = None,
) -> KanbanBoard:
    """Create a new board with no columns."""
    async with get_session() as session:
        board = KanbanBoard(
            title=title.strip(),
            description=description,
            icon=icon,
            emoji=emoji,
            color=color,
            workspace_id=workspace_id,
        )
        if board_id is not None:
            board.id = board_id
        session.add(board)
        await session.flush()
        record_activity(session, board.id, "created", detail={"title": board.title})
        await session.refresh(board)
        return board


async def get_board(board_id: str) -> KanbanBoard | None:
    async with get_session() as session:
        return await session.get(KanbanBoard, board_id)


async def list_boards() -> list[KanbanBoard]:
    """All boards, most recently updated first."""
    async with get_session() as session:
        result = await session.exec(
            select(KanbanBoard).order_by(col(KanbanBoard.updated_at).desc())
        )
        return list(result.all())


async def rename_board(
    board_id: str, title: str, description: str | None = None
) -> KanbanBoard:
    """Update a board's title and description.

    Raises:
        NotFoundError: If the board does not exist.
    """
    async with get_session() as session:
        board = await session.get(KanbanBoard, board_id)
        if board is None:
            raise NotFoundError("Board", board_id)
        board.title = title.strip()
        board.description = description
        board.updated_at = datetime.now(UTC)
        session.add(board)
        record_activity(session, board_id, "updated", detail={"title": board.title})
        await session.flush()
        await session.refresh(board)
        return board


async def update_board_icon(board_id: str, icon: str) -> KanbanBoard:
    """Set a board's icon.

    Raises:
        NotFoundError: If the board does not exist.
    """
    async with get_session() as session:
        board = await session.get(KanbanBoard, board_id)
        if board is None:
            raise NotFoundError("Board", board_id)
        board.icon = icon
        board.updated_at = datetime.now(UTC)
        session.add(board)
        await session.flush()
        await session.refresh(board)
        return board


async def touch_board(session: AsyncSession, board_id: str) -> None:
    """Bump a board's ``updated_at`` within the caller's session."""
    board = await session.get(KanbanBoard, board_id)
    if board is not None:
        board.updated_at = datetime.now(UTC)
        session.add(board)


async def delete_board(board_id: str) -> bool:
    """Delete a board; columns, cards, tags and activity cascade.

    Returns:
        True if a board was deleted, False if it did not exist.
    """
    async with get_session() as session:
        board = await session.get(KanbanBoard, board_id)
        if board is None:
            return False
        await session.delete(board)
        return True
