"""Database module for cardloom.

Provides async SQLModel operations with SQLite (aiosqlite).
"""

from __future__ import annotations

from cardloom.db.activity import list_recent_activity, record_activity
from cardloom.db.bootstrap import create_schema, get_expected_tables, verify_schema
from cardloom.db.boards import (
    create_board,
    delete_board,
    get_board,
    list_boards,
    rename_board,
    update_board_icon,
)
from cardloom.db.cards import (
    create_card,
    delete_card,
    list_cards,
    move_card,
    set_card_archived,
    update_card,
)
from cardloom.db.columns import (
    create_column,
    delete_column,
    list_columns,
    move_column,
    update_column,
)
from cardloom.db.engine import close_db, get_engine, get_session, init_db
from cardloom.db.models import (
    KanbanActivity,
    KanbanBoard,
    KanbanCard,
    KanbanCardTag,
    KanbanColumn,
    KanbanSubtask,
    KanbanTag,
)
from cardloom.db.subtasks import (
    create_subtask,
    delete_subtask,
    list_subtasks,
    update_subtask,
)
from cardloom.db.tags import (
    card_tag_map,
    create_tag,
    delete_tag,
    list_tags,
    set_card_tags,
    update_tag,
)

__all__ = [
    "KanbanActivity",
    "KanbanBoard",
    "KanbanCard",
    "KanbanCardTag",
    "KanbanColumn",
    "KanbanSubtask",
    "KanbanTag",
    "card_tag_map",
    "close_db",
    "create_board",
    "create_card",
    "create_column",
    "create_schema",
    "create_subtask",
    "create_tag",
    "delete_board",
    "delete_card",
    "delete_column",
    "delete_subtask",
    "delete_tag",
    "get_board",
    "get_engine",
    "get_expected_tables",
    "get_session",
    "init_db",
    "list_boards",
    "list_cards",
    "list_columns",
    "list_recent_activity",
    "list_subtasks",
    "list_tags",
    "move_card",
    "move_column",
    "record_activity",
    "rename_board",
    "set_card_archived",
    "set_card_tags",
    "update_board_icon",
    "update_card",
    "update_column",
    "update_subtask",
    "update_tag",
    "verify_schema",
]
