"""CRUD operations for KanbanColumn.

Every mutation loads the board's columns ordered by ``(position,
created_at)``, applies the change to that list and writes back dense
positions, all within one session.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func
from sqlmodel import col, select

from cardloom.board.errors import ColumnNotEmptyError, NotFoundError
from cardloom.board.positions import clamp_index
from cardloom.db.activity import record_activity
from cardloom.db.boards import touch_board
from cardloom.db.engine import get_session
from cardloom.db.models import KanbanBoard, KanbanCard, KanbanColumn, KanbanSubtask

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlmodel.ext.asyncio.session import AsyncSession

UPDATABLE_FIELDS = frozenset({"title", "wip_limit", "color", "icon", "is_enabled"})


async def ordered_columns(session: AsyncSession, board_id: str) -> list[KanbanColumn]:
    result = await session.exec(
        select(KanbanColumn)
        .where(KanbanColumn.board_id == board_id)
        .order_by(col(KanbanColumn.position), col(KanbanColumn.created_at))
    )
    return list(result.all())


def assign_positions(
    rows: Sequence[KanbanColumn | KanbanCard | KanbanSubtask],
) -> None:
    """Write ``position = index`` for rows whose position is off."""
    now = datetime.now(UTC)
    for index, row in enumerate(rows):
        if row.position != index:
            row.position = index
            row.updated_at = now


async def _require_column(
    session: AsyncSession, board_id: str, column_id: str
) -> KanbanColumn:
    column = await session.get(KanbanColumn, column_id)
    if column is None or column.board_id != board_id:
        raise NotFoundError("Column", column_id)
    return column


async def list_columns(board_id: str) -> list[KanbanColumn]:
    """All columns of a board, hidden ones included, by position."""
    async with get_session() as session:
        return await ordered_columns(session, board_id)


async def create_column(
    board_id: str,
    title: str,
    *,
    column_id: str | None = None,
    position: int | None = None,
    wip_limit: int | None = None,
    color: str | None = None,
    icon: str | None = None,
    is_enabled: bool = True,
) -> KanbanColumn:
    """Insert a column at ``position`` (clamped; default: end) and renumber.

    Raises:
        NotFoundError: If the board does not exist.
    """
    async with get_session() as session:
        if await session.get(KanbanBoard, board_id) is None:
            raise NotFoundError("Board", board_id)
        rows = await ordered_columns(session, board_id)
        column = KanbanColumn(
            board_id=board_id,
            title=title.strip(),
            wip_limit=wip_limit,
            color=color,
            icon=icon,
            is_enabled=is_enabled,
        )
        if column_id is not None:
            column.id = column_id
        index = len(rows) if position is None else clamp_index(position, len(rows))
        rows.insert(index, column)
        column.position = index
        assign_positions(rows)
        session.add(column)
        await session.flush()
        record_activity(
            session,
            board_id,
            "created",
            column_id=column.id,
            detail={"title": column.title},
        )
        await touch_board(session, board_id)
        await session.flush()
        await session.refresh(column)
        return column


async def update_column(
    board_id: str, column_id: str, changes: Mapping[str, Any]
) -> KanbanColumn:
    """Update column fields. Positions are never changed here.

    Raises:
        NotFoundError: If the column is not on the board.
        ValueError: If ``changes`` names a field that cannot be updated.
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        msg = f"Cannot update column fields: {sorted(unknown)}"
        raise ValueError(msg)
    async with get_session() as session:
        column = await _require_column(session, board_id, column_id)
        for name, value in changes.items():
            setattr(column, name, value)
        column.updated_at = datetime.now(UTC)
        session.add(column)
        record_activity(
            session,
            board_id,
            "updated",
            column_id=column_id,
            detail={"fields": sorted(changes)},
        )
        await touch_board(session, board_id)
        await session.flush()
        await session.refresh(column)
        return column


async def move_column(board_id: str, column_id: str, target_index: int) -> None:
    """Move a column to ``target_index`` (clamped) and renumber the board.

    Raises:
        NotFoundError: If the column is not on the board.
    """
    async with get_session() as session:
        rows = await ordered_columns(session, board_id)
        ids = [row.id for row in rows]
        if column_id not in ids:
            raise NotFoundError("Column", column_id)
        from_index = ids.index(column_id)
        column = rows.pop(from_index)
        target = clamp_index(target_index, len(rows))
        rows.insert(target, column)
        assign_positions(rows)
        if target != from_index:
            record_activity(
                session,
                board_id,
                "moved",
                column_id=column_id,
                detail={"from": from_index, "to": target},
            )
            await touch_board(session, board_id)


async def delete_column(board_id: str, column_id: str) -> None:
    """Delete a column and renumber the remaining ones.

    Only unarchived cards block the delete; archived ones cascade with
    the column.

    Raises:
        NotFoundError: If the column is not on the board.
        ColumnNotEmptyError: If the column still holds unarchived cards.
    """
    async with get_session() as session:
        column = await _require_column(session, board_id, column_id)
        result = await session.exec(
            select(func.count())
            .select_from(KanbanCard)
            .where(KanbanCard.column_id == column_id)
            .where(col(KanbanCard.archived_at).is_(None))
        )
        card_count = result.one()
        if card_count:
            raise ColumnNotEmptyError(column_id, card_count)
        rows = [
            row
            for row in await ordered_columns(session, board_id)
            if row.id != column_id
        ]
        await session.delete(column)
        assign_positions(rows)
        record_activity(session, board_id, "deleted", detail={"title": column.title})
        await touch_board(session, board_id)
