"""CRUD operations for KanbanSubtask.

Subtasks are renumbered per card, the same way cards are per column:
load the card's list ordered by ``(position, created_at)``, change it,
write back dense positions.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlmodel import col, select

from cardloom.board.errors import NotFoundError
from cardloom.board.positions import clamp_index, reorder
from cardloom.db.boards import touch_board
from cardloom.db.columns import assign_positions
from cardloom.db.engine import get_session
from cardloom.db.models import KanbanCard, KanbanSubtask

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlmodel.ext.asyncio.session import AsyncSession

UPDATABLE_FIELDS = frozenset({"title", "is_completed"})


async def ordered_subtasks(
    session: AsyncSession, card_id: str
) -> list[KanbanSubtask]:
    result = await session.exec(
        select(KanbanSubtask)
        .where(KanbanSubtask.card_id == card_id)
        .order_by(col(KanbanSubtask.position), col(KanbanSubtask.created_at))
    )
    return list(result.all())


async def _require_subtask(
    session: AsyncSession, board_id: str, subtask_id: str
) -> KanbanSubtask:
    subtask = await session.get(KanbanSubtask, subtask_id)
    if subtask is None or subtask.board_id != board_id:
        raise NotFoundError("Subtask", subtask_id)
    return subtask


async def list_subtasks(board_id: str) -> list[KanbanSubtask]:
    """All subtasks of a board, grouped by card, each card's in order."""
    async with get_session() as session:
        result = await session.exec(
            select(KanbanSubtask)
            .where(KanbanSubtask.board_id == board_id)
            .order_by(
                col(KanbanSubtask.card_id),
                col(KanbanSubtask.position),
                col(KanbanSubtask.created_at),
            )
        )
        return list(result.all())


async def create_subtask(
    board_id: str,
    card_id: str,
    title: str,
    *,
    subtask_id: str | None = None,
    position: int | None = None,
) -> KanbanSubtask:
    """Insert a subtask at ``position`` (clamped; default: end) of its card.

    Raises:
        NotFoundError: If the card is not on the board.
    """
    async with get_session() as session:
        card = await session.get(KanbanCard, card_id)
        if card is None or card.board_id != board_id:
            raise NotFoundError("Card", card_id)
        rows = await ordered_subtasks(session, card_id)
        subtask = KanbanSubtask(board_id=board_id, card_id=card_id, title=title.strip())
        if subtask_id is not None:
            subtask.id = subtask_id
        index = len(rows) if position is None else clamp_index(position, len(rows))
        rows.insert(index, subtask)
        subtask.position = index
        assign_positions(rows)
        session.add(subtask)
        await touch_board(session, board_id)
        await session.flush()
        await session.refresh(subtask)
        return subtask


async def update_subtask(
    board_id: str,
    subtask_id: str,
    changes: Mapping[str, Any],
    target_index: int | None = None,
) -> KanbanSubtask:
    """Update subtask fields and optionally move it within its card.

    ``target_index`` is the slot after removal and is clamped.

    Raises:
        NotFoundError: If the subtask is not on the board.
        ValueError: If ``changes`` names a field that cannot be updated.
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        msg = f"Cannot update subtask fields: {sorted(unknown)}"
        raise ValueError(msg)
    async with get_session() as session:
        subtask = await _require_subtask(session, board_id, subtask_id)
        for name, value in changes.items():
            if name == "title":
                value = value.strip()
            setattr(subtask, name, value)
        subtask.updated_at = datetime.now(UTC)
        session.add(subtask)
        if target_index is not None:
            rows = await ordered_subtasks(session, subtask.card_id)
            from_index = [row.id for row in rows].index(subtask_id)
            assign_positions(reorder(rows, from_index, target_index))
        await touch_board(session, board_id)
        await session.flush()
        await session.refresh(subtask)
        return subtask


async def delete_subtask(board_id: str, subtask_id: str) -> None:
    """Delete a subtask and renumber the rest of its card's list.

    Raises:
        NotFoundError: If the subtask is not on the board.
    """
    async with get_session() as session:
        subtask = await _require_subtask(session, board_id, subtask_id)
        siblings = [
            row
            for row in await ordered_subtasks(session, subtask.card_id)
            if row.id != subtask_id
        ]
        await session.delete(subtask)
        assign_positions(siblings)
        await touch_board(session, board_id)
