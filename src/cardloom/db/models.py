"""SQLModel database models for cardloom.

These models define the persisted schema for boards, columns, cards,
subtasks, tags and the per-board activity log. Client code never sees these rows; the
command layer converts them into ``cardloom.models`` dataclasses.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
)
from sqlmodel import Field, SQLModel

from cardloom.models.board import DEFAULT_BOARD_ICON, Priority, new_id

_ID_LENGTH = 64


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def _timestamp_column() -> Any:
    return Column(DateTime(timezone=True), nullable=False)


def _cascade_fk_column(target: str) -> Any:
    """Create a string foreign key column with CASCADE DELETE."""
    return Column(
        String(_ID_LENGTH), ForeignKey(target, ondelete="CASCADE"), nullable=False
    )


def _set_null_fk_column(target: str) -> Any:
    """Create a string foreign key column with SET NULL on delete."""
    return Column(
        String(_ID_LENGTH), ForeignKey(target, ondelete="SET NULL"), nullable=True
    )


class KanbanBoard(SQLModel, table=True):
    """A board: owns columns, cards, subtasks, tags and activity (all CASCADE)."""

    __tablename__ = "kanban_board"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=_ID_LENGTH)
    workspace_id: str | None = Field(default=None, max_length=_ID_LENGTH, index=True)
    title: str = Field(max_length=200)
    description: str | None = Field(
        default=None, sa_column=Column(sa.Text(), nullable=True)
    )
    icon: str = Field(default=DEFAULT_BOARD_ICON, max_length=50)
    emoji: str | None = Field(default=None, max_length=16)
    color: str | None = Field(default=None, max_length=7)
    created_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp_column())
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp_column())


class KanbanColumn(SQLModel, table=True):
    """A column. ``position`` is dense and zero-based per board.

    Attributes:
        id: Primary key.
        board_id: Foreign key to KanbanBoard (CASCADE DELETE).
        title: Display title.
        position: Display order within the board, hidden columns included.
        wip_limit: Optional soft cap on the number of cards.
        color: Optional ``#RRGGBB`` colour.
        icon: Optional icon name.
        is_enabled: False hides the column from the board view.
        created_at: Tie-breaker when renumbering.
    """

    __tablename__ = "kanban_column"
    __table_args__ = (
        Index("ix_kanban_column_board_position", "board_id", "position"),
        CheckConstraint("position >= 0", name="ck_kanban_column_position"),
        CheckConstraint(
            "wip_limit IS NULL OR wip_limit >= 1", name="ck_kanban_column_wip_limit"
        ),
    )

    id: str = Field(default_factory=new_id, primary_key=True, max_length=_ID_LENGTH)
    board_id: str = Field(sa_column=_cascade_fk_column("kanban_board.id"))
    title: str = Field(max_length=200)
    position: int = Field(default=0)
    wip_limit: int | None = Field(default=None)
    color: str | None = Field(default=None, max_length=7)
    icon: str | None = Field(default=None, max_length=50)
    is_enabled: bool = Field(
        default=True,
        sa_column=Column(sa.Boolean, nullable=False, server_default=sa.true()),
    )
    created_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp_column())
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp_column())


class KanbanCard(SQLModel, table=True):
    """A card. ``position`` is dense and zero-based per column.

    Archived cards (``archived_at`` set) keep their position.
    """

    __tablename__ = "kanban_card"
    __table_args__ = (
        Index("ix_kanban_card_column_position", "column_id", "position"),
        CheckConstraint("position >= 0", name="ck_kanban_card_position"),
        CheckConstraint(
            "priority IN ('low', 'medium', 'high')", name="ck_kanban_card_priority"
        ),
    )

    id: str = Field(default_factory=new_id, primary_key=True, max_length=_ID_LENGTH)
    board_id: str = Field(sa_column=_cascade_fk_column("kanban_board.id"))
    column_id: str = Field(sa_column=_cascade_fk_column("kanban_column.id"))
    title: str = Field(max_length=200)
    description: str | None = Field(
        default=None, sa_column=Column(sa.Text(), nullable=True)
    )
    position: int = Field(default=0)
    priority: str = Field(default=Priority.MEDIUM.value, max_length=10)
    due_date: date | None = Field(default=None)
    archived_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp_column())
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp_column())


class KanbanSubtask(SQLModel, table=True):
    """A checklist item on a card. ``position`` is dense and zero-based per card."""

    __tablename__ = "kanban_subtask"
    __table_args__ = (
        Index("ix_kanban_subtask_card_position", "card_id", "position"),
        CheckConstraint("position >= 0", name="ck_kanban_subtask_position"),
    )

    id: str = Field(default_factory=new_id, primary_key=True, max_length=_ID_LENGTH)
    board_id: str = Field(sa_column=_cascade_fk_column("kanban_board.id"))
    card_id: str = Field(sa_column=_cascade_fk_column("kanban_card.id"))
    title: str = Field(max_length=200)
    is_completed: bool = Field(
        default=False,
        sa_column=Column(sa.Boolean, nullable=False, server_default=sa.false()),
    )
    position: int = Field(default=0)
    created_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp_column())
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp_column())


class KanbanTag(SQLModel, table=True):
    """A board-scoped label."""

    __tablename__ = "kanban_tag"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=_ID_LENGTH)
    board_id: str = Field(sa_column=_cascade_fk_column("kanban_board.id"))
    label: str = Field(max_length=100)
    color: str | None = Field(default=None, max_length=7)
    created_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp_column())
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp_column())


class KanbanCardTag(SQLModel, table=True):
    """Card <-> tag association."""

    __tablename__ = "kanban_card_tag"

    card_id: str = Field(
        sa_column=Column(
            String(_ID_LENGTH),
            ForeignKey("kanban_card.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    tag_id: str = Field(
        sa_column=Column(
            String(_ID_LENGTH),
            ForeignKey("kanban_tag.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )


class KanbanActivity(SQLModel, table=True):
    """One entry in a board's activity log.

    ``action`` is one of ``created``, ``updated``, ``moved``, ``deleted``,
    ``archived`` or ``restored``.
    Card and column references survive deletion of the entity as NULL.
    """

    __tablename__ = "kanban_activity"
    __table_args__ = (
        Index("ix_kanban_activity_board_created", "board_id", "created_at"),
    )

    id: str = Field(default_factory=new_id, primary_key=True, max_length=_ID_LENGTH)
    board_id: str = Field(sa_column=_cascade_fk_column("kanban_board.id"))
    card_id: str | None = Field(
        default=None, sa_column=_set_null_fk_column("kanban_card.id")
    )
    column_id: str | None = Field(
        default=None, sa_column=_set_null_fk_column("kanban_column.id")
    )
    action: str = Field(max_length=20)
    detail: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(sa.JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp_column())
