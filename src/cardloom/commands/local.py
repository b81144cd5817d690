"""Command backend over the local SQLModel database.

Converts between ``cardloom.db`` rows and the frozen client models.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from cardloom import db
from cardloom.board.errors import NotFoundError
from cardloom.models.board import Board, Card, Column, Priority, Subtask, Tag

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from cardloom.db.models import (
        KanbanBoard,
        KanbanCard,
        KanbanColumn,
        KanbanSubtask,
        KanbanTag,
    )

logger = logging.getLogger(__name__)


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def board_from_row(row: KanbanBoard) -> Board:
    return Board(
        id=row.id,
        title=row.title,
        description=row.description,
        icon=row.icon,
        emoji=row.emoji,
        color=row.color,
        workspace_id=row.workspace_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def column_from_row(row: KanbanColumn) -> Column:
    return Column(
        id=row.id,
        board_id=row.board_id,
        title=row.title,
        position=row.position,
        wip_limit=row.wip_limit,
        color=row.color,
        icon=row.icon,
        is_enabled=row.is_enabled,
    )


def card_from_row(row: KanbanCard, tag_ids: Sequence[str] = ()) -> Card:
    return Card(
        id=row.id,
        board_id=row.board_id,
        column_id=row.column_id,
        title=row.title,
        position=row.position,
        description=row.description,
        priority=Priority(row.priority),
        due_date=row.due_date,
        tag_ids=tuple(tag_ids),
        archived_at=_as_utc(row.archived_at),
    )


def subtask_from_row(row: KanbanSubtask) -> Subtask:
    return Subtask(
        id=row.id,
        board_id=row.board_id,
        card_id=row.card_id,
        title=row.title,
        position=row.position,
        is_completed=row.is_completed,
    )


def tag_from_row(row: KanbanTag) -> Tag:
    return Tag(id=row.id, board_id=row.board_id, label=row.label, color=row.color)


class DbBoardCommands:
    """Implementation of BoardCommandsProtocol on ``cardloom.db``."""

    async def load_boards(self) -> list[Board]:
        return [board_from_row(row) for row in await db.list_boards()]

    async def load_board(self, board_id: str) -> Board:
        row = await db.get_board(board_id)
        if row is None:
            raise NotFoundError("Board", board_id)
        return board_from_row(row)

    async def load_columns(self, board_id: str) -> list[Column]:
        return [column_from_row(row) for row in await db.list_columns(board_id)]

    async def load_cards(self, board_id: str) -> list[Card]:
        tags = await db.card_tag_map(board_id)
        return [
            card_from_row(row, tags.get(row.id, ()))
            for row in await db.list_cards(board_id)
        ]

    async def load_tags(self, board_id: str) -> list[Tag]:
        return [tag_from_row(row) for row in await db.list_tags(board_id)]

    async def load_subtasks(self, board_id: str) -> list[Subtask]:
        return [subtask_from_row(row) for row in await db.list_subtasks(board_id)]

    async def create_board(self, board: Board) -> None:
        await db.create_board(
            board.title,
            board_id=board.id,
            description=board.description,
            icon=board.icon,
            emoji=board.emoji,
            color=board.color,
            workspace_id=board.workspace_id,
        )

    async def rename_board(
        self, board_id: str, title: str, description: str | None
    ) -> None:
        await db.rename_board(board_id, title, description)

    async def update_board_icon(self, board_id: str, icon: str) -> None:
        await db.update_board_icon(board_id, icon)

    async def delete_board(self, board_id: str) -> None:
        if not await db.delete_board(board_id):
            raise NotFoundError("Board", board_id)
        logger.info("Deleted board %s", board_id)

    async def create_column(self, column: Column) -> None:
        await db.create_column(
            column.board_id,
            column.title,
            column_id=column.id,
            position=column.position,
            wip_limit=column.wip_limit,
            color=column.color,
            icon=column.icon,
            is_enabled=column.is_enabled,
        )

    async def update_column(
        self, board_id: str, column_id: str, changes: Mapping[str, Any]
    ) -> None:
        await db.update_column(board_id, column_id, changes)

    async def move_column(
        self, board_id: str, column_id: str, target_index: int
    ) -> None:
        await db.move_column(board_id, column_id, target_index)

    async def delete_column(self, board_id: str, column_id: str) -> None:
        await db.delete_column(board_id, column_id)

    async def create_card(self, card: Card) -> None:
        await db.create_card(
            card.board_id,
            card.column_id,
            card.title,
            card_id=card.id,
            position=card.position,
            description=card.description,
            priority=card.priority,
            due_date=card.due_date,
            tag_ids=card.tag_ids,
        )

    async def update_card(
        self, board_id: str, card_id: str, changes: Mapping[str, Any]
    ) -> None:
        await db.update_card(board_id, card_id, changes)

    async def move_card(
        self,
        board_id: str,
        card_id: str,
        from_column_id: str,
        to_column_id: str,
        target_index: int,
    ) -> None:
        await db.move_card(
            board_id, card_id, from_column_id, to_column_id, target_index
        )

    async def delete_card(self, board_id: str, card_id: str) -> None:
        await db.delete_card(board_id, card_id)

    async def set_card_archived(
        self, board_id: str, card_id: str, archived_at: datetime | None
    ) -> None:
        await db.set_card_archived(board_id, card_id, archived_at)

    async def create_subtask(self, subtask: Subtask) -> None:
        await db.create_subtask(
            subtask.board_id,
            subtask.card_id,
            subtask.title,
            subtask_id=subtask.id,
            position=subtask.position,
        )

    async def update_subtask(
        self,
        board_id: str,
        subtask_id: str,
        changes: Mapping[str, Any],
        target_index: int | None = None,
    ) -> None:
        await db.update_subtask(board_id, subtask_id, changes, target_index)

    async def delete_subtask(self, board_id: str, subtask_id: str) -> None:
        await db.delete_subtask(board_id, subtask_id)

    async def create_tag(self, tag: Tag) -> None:
        await db.create_tag(tag.board_id, tag.label, tag_id=tag.id, color=tag.color)

    async def update_tag(
        self, board_id: str, tag_id: str, changes: Mapping[str, Any]
    ) -> None:
        await db.update_tag(board_id, tag_id, changes)

    async def delete_tag(self, board_id: str, tag_id: str) -> None:
        if not await db.delete_tag(board_id, tag_id):
            raise NotFoundError("Tag", tag_id)

    async def set_card_tags(
        self, board_id: str, card_id: str, tag_ids: Sequence[str]
    ) -> None:
        await db.set_card_tags(board_id, card_id, tag_ids)
