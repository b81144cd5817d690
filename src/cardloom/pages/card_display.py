"""Display helpers for cards: due-date badges, priority styling, progress.

Pure functions so they can be tested without a browser.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import TYPE_CHECKING

from cardloom.models.board import Priority

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cardloom.models.board import Subtask

SOON_THRESHOLD_DAYS = 3


class DueStatus(StrEnum):
    OVERDUE = "overdue"
    TODAY = "today"
    SOON = "soon"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class DueBadge:
    status: DueStatus
    display: str
    formatted_date: str
    days_until: int


DUE_STATUS_CLASSES: dict[DueStatus, str] = {
    DueStatus.OVERDUE: "bg-rose-100 text-rose-700",
    DueStatus.TODAY: "bg-amber-100 text-amber-700",
    DueStatus.SOON: "bg-amber-100 text-amber-700",
    DueStatus.UPCOMING: "bg-grey-2 text-grey-8",
}

PRIORITY_LABELS: dict[Priority, str] = {
    Priority.LOW: "Low",
    Priority.MEDIUM: "Medium",
    Priority.HIGH: "High",
}

PRIORITY_CLASSES: dict[Priority, str] = {
    Priority.LOW: "bg-emerald-100 text-emerald-700",
    Priority.MEDIUM: "bg-amber-100 text-amber-700",
    Priority.HIGH: "bg-rose-100 text-rose-700",
}


def due_badge(due: date | None, today: date | None = None) -> DueBadge | None:
    """Describe a card's due date relative to ``today``.

    Overdue dates show the bare date; today, tomorrow and the next few
    days get relative wording; later dates read "Due Mon DD".
    """
    if due is None:
        return None
    today = today or date.today()
    days_until = (due - today).days
    formatted = due.strftime("%b %d")

    if days_until < 0:
        status, display = DueStatus.OVERDUE, formatted
    elif days_until == 0:
        status, display = DueStatus.TODAY, "Due today"
    elif days_until == 1:
        status, display = DueStatus.SOON, "Due tomorrow"
    elif days_until <= SOON_THRESHOLD_DAYS:
        status, display = DueStatus.SOON, f"Due in {days_until} days"
    else:
        status, display = DueStatus.UPCOMING, f"Due {formatted}"
    return DueBadge(status, display, formatted, days_until)


def wip_label(card_count: int, wip_limit: int | None) -> str:
    """Card count, with the limit when one is set (e.g. ``"4 / 3"``)."""
    if wip_limit is None:
        return str(card_count)
    return f"{card_count} / {wip_limit}"


def subtask_progress(subtasks: Sequence[Subtask]) -> str | None:
    """Completed over total subtasks (e.g. ``"1/3"``); None without any."""
    if not subtasks:
        return None
    done = sum(1 for subtask in subtasks if subtask.is_completed)
    return f"{done}/{len(subtasks)}"
