"""Move planning: turn a drop or an edit into a set of snapshot changes.

A plan never touches the store. It lists the entities it replaces or
removes and the containers it renumbered; ``Plan.apply_to`` merges those
changes into whatever snapshot is current when the plan is applied.

Every container a plan touches is renumbered as a whole (never a partial
range), and density is checked before the plan is returned, so a plan
that would leave gaps or duplicates raises ``InvariantViolationError``
instead of reaching the cache.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from cardloom.board.errors import (
    ColumnNotEmptyError,
    InvariantViolationError,
    NotFoundError,
)
from cardloom.board.positions import clamp_index, is_dense, normalize, reorder
from cardloom.models.snapshot import BoardSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime

    from cardloom.models.board import Card, Column, Subtask, Tag

logger = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class Plan:
    """Entity replacements and removals produced by one mutation.

    Attributes:
        board_id: Board the plan belongs to.
        columns: Columns to insert or replace (matched by id).
        cards: Cards to insert or replace.
        tags: Tags to insert or replace.
        subtasks: Subtasks to insert or replace.
        removed_column_ids: Columns to drop from the snapshot.
        removed_card_ids: Cards to drop from the snapshot.
        removed_tag_ids: Tags to drop from the snapshot.
        removed_subtask_ids: Subtasks to drop from the snapshot.
        containers: Containers renumbered by this plan: the board id
            for the column list, column ids for card lists, card ids for
            subtask lists.
    """

    board_id: str
    columns: tuple[Column, ...] = ()
    cards: tuple[Card, ...] = ()
    tags: tuple[Tag, ...] = ()
    subtasks: tuple[Subtask, ...] = ()
    removed_column_ids: frozenset[str] = frozenset()
    removed_card_ids: frozenset[str] = frozenset()
    removed_tag_ids: frozenset[str] = frozenset()
    removed_subtask_ids: frozenset[str] = frozenset()
    containers: tuple[str, ...] = ()

    def apply_to(self, snapshot: BoardSnapshot) -> BoardSnapshot:
        """Return a new snapshot with this plan's changes merged in."""
        return BoardSnapshot(
            board_id=snapshot.board_id,
            columns=_merge(snapshot.columns, self.columns, self.removed_column_ids),
            cards=_merge(snapshot.cards, self.cards, self.removed_card_ids),
            tags=_merge(snapshot.tags, self.tags, self.removed_tag_ids),
            subtasks=_merge(
                snapshot.subtasks, self.subtasks, self.removed_subtask_ids
            ),
        )


@dataclass(frozen=True, kw_only=True)
class ColumnMovePlan(Plan):
    """Reorder of one column within its board."""

    column_id: str
    from_index: int
    target_index: int


@dataclass(frozen=True, kw_only=True)
class CardMovePlan(Plan):
    """Move of one card within its column or into another column."""

    card_id: str
    from_column_id: str
    to_column_id: str
    from_index: int
    target_index: int

    @property
    def same_column(self) -> bool:
        return self.from_column_id == self.to_column_id


def _merge[T](
    existing: Sequence[T], upserts: Iterable[T], removed: frozenset[str]
) -> tuple[T, ...]:
    """Replace entities by id, drop removed ones, append new ones in order."""
    replacements: dict[str, T] = {
        e.id: e  # type: ignore[attr-defined]
        for e in upserts
    }
    result: list[T] = []
    for entity in existing:
        entity_id = entity.id  # type: ignore[attr-defined]
        if entity_id in removed:
            continue
        result.append(replacements.pop(entity_id, entity))
    result.extend(replacements.values())
    return tuple(result)


def ensure_dense(container_id: str, items: Sequence[Any]) -> None:
    """Raise ``InvariantViolationError`` unless positions are ``0..n-1``."""
    if not is_dense(items):
        positions = [item.position for item in items]
        logger.error(
            "Density violation in %s: positions=%s", container_id, positions
        )
        raise InvariantViolationError(container_id, positions)


def check_containers(snapshot: BoardSnapshot, containers: Iterable[str]) -> None:
    """Verify density of the given containers in ``snapshot``."""
    for container_id in containers:
        if container_id == snapshot.board_id:
            ensure_dense(container_id, snapshot.columns)
        elif snapshot.card(container_id) is not None:
            ensure_dense(container_id, snapshot.subtasks_of(container_id))
        else:
            ensure_dense(container_id, snapshot.cards_in(container_id))


def _require_column(snapshot: BoardSnapshot, column_id: str) -> Column:
    column = snapshot.column(column_id)
    if column is None:
        raise NotFoundError("Column", column_id)
    return column


def _require_card(snapshot: BoardSnapshot, card_id: str) -> Card:
    card = snapshot.card(card_id)
    if card is None:
        raise NotFoundError("Card", card_id)
    return card


def _require_subtask(snapshot: BoardSnapshot, subtask_id: str) -> Subtask:
    subtask = snapshot.subtask(subtask_id)
    if subtask is None:
        raise NotFoundError("Subtask", subtask_id)
    return subtask


# ── Moves ────────────────────────────────────────────────────────────


def plan_column_move(
    snapshot: BoardSnapshot, column_id: str, target_index: int
) -> ColumnMovePlan | None:
    """Plan moving a column to ``target_index`` among the board's columns.

    Enabled and disabled columns share one position space. The target is
    clamped to ``[0, n - 1]`` (the slot after removal). Returns ``None``
    when the column is already at the target.

    Raises:
        NotFoundError: If the column is not on the board.
    """
    ordered = snapshot.ordered_columns()
    ids = [c.id for c in ordered]
    if column_id not in ids:
        raise NotFoundError("Column", column_id)
    from_index = ids.index(column_id)
    target = clamp_index(target_index, len(ordered) - 1)
    if target == from_index:
        return None

    renumbered = normalize(reorder(ordered, from_index, target))
    ensure_dense(snapshot.board_id, renumbered)
    return ColumnMovePlan(
        board_id=snapshot.board_id,
        columns=tuple(renumbered),
        containers=(snapshot.board_id,),
        column_id=column_id,
        from_index=from_index,
        target_index=target,
    )


def plan_card_move(
    snapshot: BoardSnapshot, card_id: str, to_column_id: str, target_index: int
) -> CardMovePlan | None:
    """Plan moving a card to ``target_index`` in ``to_column_id``.

    ``target_index`` is the slot in the destination after the card has been
    removed from its source, clamped to ``[0, len(destination)]``. Both the
    source and destination columns are renumbered. Returns ``None`` for a
    same-column move to the card's current index.

    Raises:
        NotFoundError: If the card or the destination column is unknown.
    """
    card = _require_card(snapshot, card_id)
    _require_column(snapshot, to_column_id)

    source = snapshot.cards_in(card.column_id)
    from_index = [c.id for c in source].index(card_id)
    remaining = [c for c in source if c.id != card_id]

    if to_column_id == card.column_id:
        target = clamp_index(target_index, len(remaining))
        if target == from_index:
            return None
        remaining.insert(target, card)
        source_after = normalize(remaining)
        ensure_dense(to_column_id, source_after)
        cards = tuple(source_after)
        containers: tuple[str, ...] = (to_column_id,)
    else:
        destination = snapshot.cards_in(to_column_id)
        target = clamp_index(target_index, len(destination))
        destination.insert(target, dataclasses.replace(card, column_id=to_column_id))
        source_after = normalize(remaining)
        destination_after = normalize(destination)
        ensure_dense(card.column_id, source_after)
        ensure_dense(to_column_id, destination_after)
        cards = (*source_after, *destination_after)
        containers = (card.column_id, to_column_id)

    return CardMovePlan(
        board_id=snapshot.board_id,
        cards=cards,
        containers=containers,
        card_id=card_id,
        from_column_id=card.column_id,
        to_column_id=to_column_id,
        from_index=from_index,
        target_index=target,
    )


# ── Creation and removal ─────────────────────────────────────────────


def plan_column_append(snapshot: BoardSnapshot, column: Column) -> Plan:
    """Plan inserting a new column at ``column.position`` (clamped).

    Callers normally pass the current column count, which appends.
    """
    ordered = snapshot.ordered_columns()
    ordered.insert(clamp_index(column.position, len(ordered)), column)
    renumbered = normalize(ordered)
    ensure_dense(snapshot.board_id, renumbered)
    return Plan(
        board_id=snapshot.board_id,
        columns=tuple(renumbered),
        containers=(snapshot.board_id,),
    )


def plan_card_append(snapshot: BoardSnapshot, card: Card) -> Plan:
    """Plan inserting a new card at ``card.position`` (clamped) in its column.

    Raises:
        NotFoundError: If the card's column is not on the board.
    """
    _require_column(snapshot, card.column_id)
    siblings = snapshot.cards_in(card.column_id)
    siblings.insert(clamp_index(card.position, len(siblings)), card)
    renumbered = normalize(siblings)
    ensure_dense(card.column_id, renumbered)
    return Plan(
        board_id=snapshot.board_id,
        cards=tuple(renumbered),
        containers=(card.column_id,),
    )


def plan_column_removal(snapshot: BoardSnapshot, column_id: str) -> Plan:
    """Plan deleting a column with no active cards and renumbering the rest.

    Archived cards in the column are deleted with it.

    Raises:
        NotFoundError: If the column is not on the board.
        ColumnNotEmptyError: If the column still holds unarchived cards.
    """
    _require_column(snapshot, column_id)
    card_count = len(snapshot.active_cards_in(column_id))
    if card_count:
        raise ColumnNotEmptyError(column_id, card_count)
    archived = {c.id for c in snapshot.cards_in(column_id)}
    remaining = normalize(c for c in snapshot.ordered_columns() if c.id != column_id)
    ensure_dense(snapshot.board_id, remaining)
    return Plan(
        board_id=snapshot.board_id,
        columns=tuple(remaining),
        removed_column_ids=frozenset({column_id}),
        removed_card_ids=frozenset(archived),
        removed_subtask_ids=frozenset(
            s.id for s in snapshot.subtasks if s.card_id in archived
        ),
        containers=(snapshot.board_id,),
    )


def plan_card_removal(snapshot: BoardSnapshot, card_id: str) -> Plan:
    """Plan deleting a card with its subtasks and renumbering its siblings."""
    card = _require_card(snapshot, card_id)
    remaining = normalize(
        c for c in snapshot.cards_in(card.column_id) if c.id != card_id
    )
    ensure_dense(card.column_id, remaining)
    return Plan(
        board_id=snapshot.board_id,
        cards=tuple(remaining),
        removed_card_ids=frozenset({card_id}),
        removed_subtask_ids=frozenset(s.id for s in snapshot.subtasks_of(card_id)),
        containers=(card.column_id,),
    )


# ── Field updates ────────────────────────────────────────────────────

_COLUMN_FIELDS = frozenset({"title", "color", "icon", "is_enabled", "wip_limit"})
_CARD_FIELDS = frozenset({"title", "description", "priority", "due_date"})


def plan_column_update(
    snapshot: BoardSnapshot, column_id: str, changes: dict[str, Any]
) -> Plan:
    """Plan a field update on a column. Positions are never changed here."""
    unknown = set(changes) - _COLUMN_FIELDS
    if unknown:
        msg = f"Cannot update column fields: {sorted(unknown)}"
        raise ValueError(msg)
    column = _require_column(snapshot, column_id)
    return Plan(
        board_id=snapshot.board_id,
        columns=(dataclasses.replace(column, **changes),),
    )


def plan_card_update(
    snapshot: BoardSnapshot, card_id: str, changes: dict[str, Any]
) -> Plan:
    """Plan a field update on a card. Positions are never changed here."""
    unknown = set(changes) - _CARD_FIELDS
    if unknown:
        msg = f"Cannot update card fields: {sorted(unknown)}"
        raise ValueError(msg)
    card = _require_card(snapshot, card_id)
    return Plan(
        board_id=snapshot.board_id,
        cards=(dataclasses.replace(card, **changes),),
    )


def plan_card_archive(
    snapshot: BoardSnapshot, card_id: str, archived_at: datetime | None
) -> Plan:
    """Plan archiving a card, or restoring it when ``archived_at`` is None.

    The card keeps its position, so no container is renumbered.
    """
    card = _require_card(snapshot, card_id)
    return Plan(
        board_id=snapshot.board_id,
        cards=(dataclasses.replace(card, archived_at=archived_at),),
    )


# ── Tags ─────────────────────────────────────────────────────────────


def plan_card_tags(
    snapshot: BoardSnapshot, card_id: str, tag_ids: Sequence[str]
) -> Plan:
    """Plan replacing a card's tag set.

    Duplicate ids are dropped, first occurrence wins.

    Raises:
        NotFoundError: If the card or any tag is not on the board.
    """
    card = _require_card(snapshot, card_id)
    for tag_id in tag_ids:
        if snapshot.tag(tag_id) is None:
            raise NotFoundError("Tag", tag_id)
    unique = tuple(dict.fromkeys(tag_ids))
    return Plan(
        board_id=snapshot.board_id,
        cards=(dataclasses.replace(card, tag_ids=unique),),
    )


def plan_tag_upsert(snapshot: BoardSnapshot, tag: Tag) -> Plan:
    """Plan adding a tag or replacing one with the same id."""
    return Plan(board_id=snapshot.board_id, tags=(tag,))


def plan_tag_removal(snapshot: BoardSnapshot, tag_id: str) -> Plan:
    """Plan deleting a tag and detaching it from every card."""
    if snapshot.tag(tag_id) is None:
        raise NotFoundError("Tag", tag_id)
    detached = tuple(
        dataclasses.replace(c, tag_ids=tuple(t for t in c.tag_ids if t != tag_id))
        for c in snapshot.cards
        if tag_id in c.tag_ids
    )
    return Plan(
        board_id=snapshot.board_id,
        cards=detached,
        removed_tag_ids=frozenset({tag_id}),
    )


# ── Subtasks ─────────────────────────────────────────────────────────

_SUBTASK_FIELDS = frozenset({"title", "is_completed"})


def plan_subtask_append(snapshot: BoardSnapshot, subtask: Subtask) -> Plan:
    """Plan inserting a subtask at ``subtask.position`` (clamped) on its card.

    Raises:
        NotFoundError: If the card is not on the board.
    """
    _require_card(snapshot, subtask.card_id)
    siblings = snapshot.subtasks_of(subtask.card_id)
    siblings.insert(clamp_index(subtask.position, len(siblings)), subtask)
    renumbered = normalize(siblings)
    ensure_dense(subtask.card_id, renumbered)
    return Plan(
        board_id=snapshot.board_id,
        subtasks=tuple(renumbered),
        containers=(subtask.card_id,),
    )


def plan_subtask_update(
    snapshot: BoardSnapshot,
    subtask_id: str,
    changes: dict[str, Any],
    target_index: int | None = None,
) -> Plan:
    """Plan a field update and/or reorder of one subtask within its card.

    ``target_index`` is the slot after removal, clamped. The card's whole
    subtask list is renumbered when it is given.

    Raises:
        NotFoundError: If the subtask is not on the board.
        ValueError: If ``changes`` names a field that cannot be updated.
    """
    unknown = set(changes) - _SUBTASK_FIELDS
    if unknown:
        msg = f"Cannot update subtask fields: {sorted(unknown)}"
        raise ValueError(msg)
    subtask = dataclasses.replace(
        _require_subtask(snapshot, subtask_id), **changes
    )
    if target_index is None:
        return Plan(board_id=snapshot.board_id, subtasks=(subtask,))

    siblings = snapshot.subtasks_of(subtask.card_id)
    from_index = [s.id for s in siblings].index(subtask_id)
    siblings[from_index] = subtask
    renumbered = normalize(reorder(siblings, from_index, target_index))
    ensure_dense(subtask.card_id, renumbered)
    return Plan(
        board_id=snapshot.board_id,
        subtasks=tuple(renumbered),
        containers=(subtask.card_id,),
    )


def plan_subtask_removal(snapshot: BoardSnapshot, subtask_id: str) -> Plan:
    """Plan deleting a subtask and renumbering the rest of its card's list."""
    subtask = _require_subtask(snapshot, subtask_id)
    remaining = normalize(
        s for s in snapshot.subtasks_of(subtask.card_id) if s.id != subtask_id
    )
    ensure_dense(subtask.card_id, remaining)
    return Plan(
        board_id=snapshot.board_id,
        subtasks=tuple(remaining),
        removed_subtask_ids=frozenset({subtask_id}),
        containers=(subtask.card_id,),
    )
