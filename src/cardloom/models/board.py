"""Data models for boards, columns, cards, subtasks and tags.

These are frozen dataclasses for the client-held board snapshot. Two
snapshots holding equal entities compare equal, and an unchanged entity
can be shared between snapshots by reference. Database rows live in
``cardloom.db.models``; the command layer converts between the two.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from uuid import uuid4


class Priority(StrEnum):
    """Card priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


DEFAULT_BOARD_ICON = "Folder"

BOARD_ICONS: tuple[str, ...] = (
    "Folder",
    "LayoutDashboard",
    "Layers",
    "Briefcase",
    "ClipboardList",
    "CalendarDays",
    "BarChart3",
    "Target",
    "Users",
    "MessagesSquare",
    "LifeBuoy",
    "Lightbulb",
    "Rocket",
    "Package",
    "Palette",
    "PenTool",
)

DEFAULT_COLUMN_ICON = "Circle"

COLUMN_ICONS: tuple[str, ...] = (
    "Circle",
    "Play",
    "CheckCircle",
    "Loader",
    "AlarmClock",
    "Bolt",
    "Sparkles",
    "Target",
    "CalendarCheck",
    "ClipboardList",
    "Lightbulb",
    "Flag",
    "Timer",
    "Ship",
    "Kanban",
    "TrendingUp",
    "Zap",
    "Rocket",
    "BadgeCheck",
)

# Used for columns without an explicit colour, cycled by position.
FALLBACK_COLUMN_COLORS: tuple[str, ...] = (
    "#6366F1",
    "#F97316",
    "#0EA5E9",
    "#22C55E",
    "#EC4899",
    "#8B5CF6",
)


def new_id() -> str:
    """Return a fresh entity identifier."""
    return str(uuid4())


@dataclass(frozen=True)
class Board:
    """A kanban board: the top-level container of columns and cards.

    Attributes:
        id: Board identifier.
        title: Display title.
        description: Optional free-text description.
        icon: Icon name from ``BOARD_ICONS``.
        emoji: Optional single emoji shown instead of the icon.
        color: Optional accent colour.
        workspace_id: Owning workspace, if any.
        created_at: Creation timestamp (set by persistence).
        updated_at: Last modification timestamp (set by persistence).
    """

    id: str
    title: str
    description: str | None = None
    icon: str = DEFAULT_BOARD_ICON
    emoji: str | None = None
    color: str | None = None
    workspace_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Column:
    """A workflow stage within a board.

    ``position`` is dense and zero-based across *all* of the board's
    columns, hidden ones included.
    """

    id: str
    board_id: str
    title: str
    position: int = 0
    wip_limit: int | None = None
    color: str | None = None
    icon: str | None = None
    is_enabled: bool = True

    @property
    def display_color(self) -> str:
        """Explicit colour, or a palette colour picked by position."""
        if self.color:
            return self.color
        return FALLBACK_COLUMN_COLORS[self.position % len(FALLBACK_COLUMN_COLORS)]


@dataclass(frozen=True)
class Card:
    """A single unit of work; ``position`` is dense within its column.

    Archived cards keep their slot in the column's ordering but are left
    out of the board view and do not count towards a column's cards.
    """

    id: str
    board_id: str
    column_id: str
    title: str
    position: int = 0
    description: str | None = None
    priority: Priority = Priority.MEDIUM
    due_date: date | None = None
    tag_ids: tuple[str, ...] = ()
    archived_at: datetime | None = None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None


@dataclass(frozen=True)
class Subtask:
    """A checklist item on a card; ``position`` is dense within the card."""

    id: str
    board_id: str
    card_id: str
    title: str
    position: int = 0
    is_completed: bool = False


@dataclass(frozen=True)
class Tag:
    """A board-scoped label that can be attached to many cards."""

    id: str
    board_id: str
    label: str
    color: str | None = None
