"""Data models for cardloom boards and the client-side board snapshot."""

from cardloom.models.board import (
    BOARD_ICONS,
    COLUMN_ICONS,
    DEFAULT_BOARD_ICON,
    DEFAULT_COLUMN_ICON,
    FALLBACK_COLUMN_COLORS,
    Board,
    Card,
    Column,
    Priority,
    Subtask,
    Tag,
    new_id,
)
from cardloom.models.snapshot import BoardSnapshot, BoardView, ColumnView, build_view

__all__ = [
    "BOARD_ICONS",
    "COLUMN_ICONS",
    "DEFAULT_BOARD_ICON",
    "DEFAULT_COLUMN_ICON",
    "FALLBACK_COLUMN_COLORS",
    "Board",
    "BoardSnapshot",
    "BoardView",
    "Card",
    "Column",
    "ColumnView",
    "Priority",
    "Subtask",
    "Tag",
    "build_view",
    "new_id",
]
