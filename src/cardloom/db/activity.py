"""Per-board activity log.

Mutating CRUD functions call ``record_activity`` inside their own session,
so the log entry commits or rolls back together with the change.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlmodel import col, select

from cardloom.db.engine import get_session
from cardloom.db.models import KanbanActivity

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

ACTIONS = frozenset(
    {"created", "updated", "moved", "deleted", "archived", "restored"}
)


def record_activity(
    session: AsyncSession,
    board_id: str,
    action: str,
    *,
    card_id: str | None = None,
    column_id: str | None = None,
    detail: dict[str, Any] | None = None,
) -> KanbanActivity:
    """Add an activity row to ``session`` (flushed with the caller's changes)."""
    if action not in ACTIONS:
        msg = f"Unknown activity action: {action}"
        raise ValueError(msg)
    entry = KanbanActivity(
        board_id=board_id,
        card_id=card_id,
        column_id=column_id,
        action=action,
        detail=detail or {},
    )
    session.add(entry)
    return entry


async def list_recent_activity(
    board_id: str, limit: int = 20
) -> list[KanbanActivity]:
    """Most recent activity on a board, newest first."""
    async with get_session() as session:
        result = await session.exec(
            select(KanbanActivity)
            .where(KanbanActivity.board_id == board_id)
            .order_by(col(KanbanActivity.created_at).desc())
            .limit(limit)
        )
        return list(result.all())
