"""Board snapshot (the client-side cache) and its read-only render view.

A ``BoardSnapshot`` is immutable: every mutation produces a new snapshot,
so the previous one can be kept around for rollback without copying.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cardloom.models.board import Card, Column, Subtask, Tag


@dataclass(frozen=True)
class BoardSnapshot:
    """Columns, cards, subtasks and tags of one board as last seen by the client.

    Entity tuples are unordered storage; use ``ordered_columns``,
    ``cards_in`` and ``subtasks_of`` to read them in display order.
    """

    board_id: str
    columns: tuple[Column, ...] = ()
    cards: tuple[Card, ...] = ()
    tags: tuple[Tag, ...] = ()
    subtasks: tuple[Subtask, ...] = ()

    def ordered_columns(self) -> list[Column]:
        """All columns of the board, hidden ones included, by position."""
        return sorted(self.columns, key=lambda c: c.position)

    def cards_in(self, column_id: str) -> list[Card]:
        """Cards of one column ordered by position, archived ones included."""
        return sorted(
            (c for c in self.cards if c.column_id == column_id),
            key=lambda c: c.position,
        )

    def active_cards_in(self, column_id: str) -> list[Card]:
        return [c for c in self.cards_in(column_id) if not c.is_archived]

    def subtasks_of(self, card_id: str) -> list[Subtask]:
        """Subtasks of one card ordered by position."""
        return sorted(
            (s for s in self.subtasks if s.card_id == card_id),
            key=lambda s: s.position,
        )

    def column(self, column_id: str) -> Column | None:
        return next((c for c in self.columns if c.id == column_id), None)

    def card(self, card_id: str) -> Card | None:
        return next((c for c in self.cards if c.id == card_id), None)

    def subtask(self, subtask_id: str) -> Subtask | None:
        return next((s for s in self.subtasks if s.id == subtask_id), None)

    def tag(self, tag_id: str) -> Tag | None:
        return next((t for t in self.tags if t.id == tag_id), None)


@dataclass(frozen=True)
class ColumnView:
    """One rendered column with its ordered, unarchived cards."""

    column: Column
    cards: tuple[Card, ...]

    @property
    def is_over_wip_limit(self) -> bool:
        limit = self.column.wip_limit
        return limit is not None and len(self.cards) > limit


@dataclass(frozen=True)
class BoardView:
    """Read-only projection of a snapshot handed to the renderer.

    Attributes:
        board_id: The board being shown.
        columns: Enabled columns in position order, each with its cards.
        hidden_columns: Disabled columns (kept for the column manager).
        tags: Board tags sorted by label.
        archived_cards: Archived cards, most recently archived first.
        subtasks: Card id -> that card's subtasks in order.
    """

    board_id: str
    columns: tuple[ColumnView, ...]
    hidden_columns: tuple[Column, ...] = ()
    tags: tuple[Tag, ...] = ()
    archived_cards: tuple[Card, ...] = ()
    subtasks: dict[str, tuple[Subtask, ...]] = field(default_factory=dict)

    def column_ids(self) -> list[str]:
        return [cv.column.id for cv in self.columns]

    def subtasks_of(self, card_id: str) -> tuple[Subtask, ...]:
        return self.subtasks.get(card_id, ())


def build_view(snapshot: BoardSnapshot) -> BoardView:
    """Project a snapshot into the ordered, enabled-only render view."""
    visible: list[ColumnView] = []
    hidden: list[Column] = []
    for column in snapshot.ordered_columns():
        if not column.is_enabled:
            hidden.append(column)
            continue
        visible.append(ColumnView(column, tuple(snapshot.active_cards_in(column.id))))
    archived = sorted(
        (c for c in snapshot.cards if c.archived_at is not None),
        key=lambda c: c.archived_at,  # type: ignore[arg-type, return-value]
        reverse=True,
    )
    subtasks: dict[str, list[Subtask]] = {}
    for subtask in sorted(snapshot.subtasks, key=lambda s: s.position):
        subtasks.setdefault(subtask.card_id, []).append(subtask)
    return BoardView(
        board_id=snapshot.board_id,
        columns=tuple(visible),
        hidden_columns=tuple(hidden),
        tags=tuple(sorted(snapshot.tags, key=lambda t: t.label.casefold())),
        archived_cards=tuple(archived),
        subtasks={card_id: tuple(items) for card_id, items in subtasks.items()},
    )
