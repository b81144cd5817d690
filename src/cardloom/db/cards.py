"""CRUD operations for KanbanCard.

Cards are renumbered per column. A cross-column move renumbers both the
source and the destination column in the same session.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

from sqlmodel import col, select

from cardloom.board.errors import NotFoundError
from cardloom.board.positions import clamp_index
from cardloom.db.activity import record_activity
from cardloom.db.boards import touch_board
from cardloom.db.columns import assign_positions
from cardloom.db.engine import get_session
from cardloom.db.models import KanbanCard, KanbanColumn
from cardloom.db.tags import replace_card_tags, require_tags
from cardloom.models.board import Priority

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlmodel.ext.asyncio.session import AsyncSession

UPDATABLE_FIELDS = frozenset({"title", "description", "priority", "due_date"})


async def ordered_cards(session: AsyncSession, column_id: str) -> list[KanbanCard]:
    result = await session.exec(
        select(KanbanCard)
        .where(KanbanCard.column_id == column_id)
        .order_by(col(KanbanCard.position), col(KanbanCard.created_at))
    )
    return list(result.all())


async def _require_column(
    session: AsyncSession, board_id: str, column_id: str
) -> KanbanColumn:
    column = await session.get(KanbanColumn, column_id)
    if column is None or column.board_id != board_id:
        raise NotFoundError("Column", column_id)
    return column


async def _require_card(
    session: AsyncSession, board_id: str, card_id: str
) -> KanbanCard:
    card = await session.get(KanbanCard, card_id)
    if card is None or card.board_id != board_id:
        raise NotFoundError("Card", card_id)
    return card


async def list_cards(board_id: str) -> list[KanbanCard]:
    """All cards of a board, in column order then card order."""
    async with get_session() as session:
        result = await session.exec(
            select(KanbanCard)
            .join(KanbanColumn, col(KanbanColumn.id) == KanbanCard.column_id)
            .where(KanbanCard.board_id == board_id)
            .order_by(
                col(KanbanColumn.position),
                col(KanbanCard.position),
                col(KanbanCard.created_at),
            )
        )
        return list(result.all())


async def create_card(
    board_id: str,
    column_id: str,
    title: str,
    *,
    card_id: str | None = None,
    position: int | None = None,
    description: str | None = None,
    priority: Priority = Priority.MEDIUM,
    due_date: date | None = None,
    tag_ids: Sequence[str] = (),
) -> KanbanCard:
    """Insert a card at ``position`` (clamped; default: end) of its column.

    Raises:
        NotFoundError: If the column or any tag is not on the board.
    """
    async with get_session() as session:
        await _require_column(session, board_id, column_id)
        await require_tags(session, board_id, tag_ids)
        rows = await ordered_cards(session, column_id)
        card = KanbanCard(
            board_id=board_id,
            column_id=column_id,
            title=title.strip(),
            description=description,
            priority=Priority(priority).value,
            due_date=due_date,
        )
        if card_id is not None:
            card.id = card_id
        index = len(rows) if position is None else clamp_index(position, len(rows))
        rows.insert(index, card)
        card.position = index
        assign_positions(rows)
        session.add(card)
        await session.flush()
        await replace_card_tags(session, card.id, tag_ids)
        record_activity(
            session,
            board_id,
            "created",
            card_id=card.id,
            column_id=column_id,
            detail={"title": card.title},
        )
        await touch_board(session, board_id)
        await session.flush()
        await session.refresh(card)
        return card


async def update_card(
    board_id: str, card_id: str, changes: Mapping[str, Any]
) -> KanbanCard:
    """Update card fields. Positions and column are never changed here.

    Raises:
        NotFoundError: If the card is not on the board.
        ValueError: If ``changes`` names a field that cannot be updated.
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        msg = f"Cannot update card fields: {sorted(unknown)}"
        raise ValueError(msg)
    async with get_session() as session:
        card = await _require_card(session, board_id, card_id)
        for name, value in changes.items():
            if name == "priority":
                value = Priority(value).value
            setattr(card, name, value)
        card.updated_at = datetime.now(UTC)
        session.add(card)
        record_activity(
            session,
            board_id,
            "updated",
            card_id=card_id,
            column_id=card.column_id,
            detail={"fields": sorted(changes)},
        )
        await touch_board(session, board_id)
        await session.flush()
        await session.refresh(card)
        return card


async def move_card(
    board_id: str,
    card_id: str,
    from_column_id: str,
    to_column_id: str,
    target_index: int,
) -> None:
    """Move a card to ``target_index`` (clamped) in ``to_column_id``.

    ``target_index`` is the slot in the destination after the card has been
    removed from its source.

    Raises:
        NotFoundError: If the card or destination column is not on the board.
        ValueError: If the card is not in ``from_column_id``.
    """
    async with get_session() as session:
        card = await _require_card(session, board_id, card_id)
        if card.column_id != from_column_id:
            msg = f"Card {card_id} is not in column {from_column_id}"
            raise ValueError(msg)
        await _require_column(session, board_id, to_column_id)

        source = await ordered_cards(session, from_column_id)
        from_index = [row.id for row in source].index(card_id)
        source.pop(from_index)

        if to_column_id == from_column_id:
            target = clamp_index(target_index, len(source))
            source.insert(target, card)
            assign_positions(source)
            if target == from_index:
                return
        else:
            destination = await ordered_cards(session, to_column_id)
            target = clamp_index(target_index, len(destination))
            destination.insert(target, card)
            card.column_id = to_column_id
            assign_positions(source)
            assign_positions(destination)
            card.updated_at = datetime.now(UTC)

        record_activity(
            session,
            board_id,
            "moved",
            card_id=card_id,
            column_id=to_column_id,
            detail={
                "from_column": from_column_id,
                "to_column": to_column_id,
                "from": from_index,
                "to": target,
            },
        )
        await touch_board(session, board_id)


async def delete_card(board_id: str, card_id: str) -> None:
    """Delete a card and renumber its former siblings; its subtasks cascade.

    Raises:
        NotFoundError: If the card is not on the board.
    """
    async with get_session() as session:
        card = await _require_card(session, board_id, card_id)
        siblings = [
            row
            for row in await ordered_cards(session, card.column_id)
            if row.id != card_id
        ]
        await session.delete(card)
        assign_positions(siblings)
        record_activity(
            session,
            board_id,
            "deleted",
            column_id=card.column_id,
            detail={"title": card.title},
        )
        await touch_board(session, board_id)


async def set_card_archived(
    board_id: str, card_id: str, archived_at: datetime | None
) -> KanbanCard:
    """Archive a card, or restore it when ``archived_at`` is None.

    The card keeps its column and position either way.

    Raises:
        NotFoundError: If the card is not on the board.
    """
    async with get_session() as session:
        card = await _require_card(session, board_id, card_id)
        card.archived_at = archived_at
        card.updated_at = datetime.now(UTC)
        session.add(card)
        record_activity(
            session,
            board_id,
            "restored" if archived_at is None else "archived",
            card_id=card_id,
            column_id=card.column_id,
            detail={"title": card.title},
        )
        await touch_board(session, board_id)
        await session.flush()
        await session.refresh(card)
        return card
