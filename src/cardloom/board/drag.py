"""Drag session state machine and drop-target resolution.

One ``DragSessionController`` exists per board view. It tracks a single
drag from press to release::

    IDLE -> DRAGGING -> DROPPED   -> IDLE
                     -> CANCELLED -> IDLE

A press only turns into a drag once the pointer has travelled further than
the activation distance, so plain clicks never start a drag. While
dragging, the hovered target is the candidate whose corners are nearest to
the dragged rectangle's corners. Releasing over a valid target emits a
``MoveRequest``; anything else ends the session without side effects.

Sources and targets are a tagged union (``ColumnRef``, ``CardRef``,
``ContainerSlot``), so no id-prefix parsing is ever needed.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from cardloom.models.snapshot import BoardSnapshot

logger = logging.getLogger(__name__)

DEFAULT_ACTIVATION_DISTANCE = 5.0


class DragPhase(StrEnum):
    IDLE = "idle"
    DRAGGING = "dragging"
    DROPPED = "dropped"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ColumnRef:
    """A column, as drag source or as target (its header)."""

    id: str


@dataclass(frozen=True)
class CardRef:
    """A card, as drag source or as target."""

    id: str


@dataclass(frozen=True)
class ContainerSlot:
    """The card area of a column; dropping here appends."""

    column_id: str


type DragSource = ColumnRef | CardRef
type DropTarget = ColumnRef | CardRef | ContainerSlot


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def distance_to(self, other: Point) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    def corners(self) -> tuple[Point, Point, Point, Point]:
        right = self.x + self.width
        bottom = self.y + self.height
        return (
            Point(self.x, self.y),
            Point(right, self.y),
            Point(self.x, bottom),
            Point(right, bottom),
        )

    def translated(self, dx: float, dy: float) -> Rect:
        return Rect(self.x + dx, self.y + dy, self.width, self.height)


@dataclass(frozen=True)
class DropCandidate:
    """A droppable region currently on screen."""

    target: DropTarget
    rect: Rect


@dataclass(frozen=True)
class MoveRequest:
    """A completed drop: move ``source`` to ``target_index`` in ``container_id``.

    ``container_id`` is the board id for column moves and the destination
    column id for card moves.
    """

    source: DragSource
    container_id: str
    target_index: int


def corner_distance(a: Rect, b: Rect) -> float:
    """Sum of distances between corresponding corners of two rectangles."""
    return sum(p.distance_to(q) for p, q in zip(a.corners(), b.corners(), strict=True))


def nearest_corners(
    active: Rect, candidates: Sequence[DropCandidate]
) -> DropCandidate | None:
    """Pick the candidate whose corners are closest to ``active``'s.

    Ties go to the candidate that comes first in ``candidates``.
    """
    best: DropCandidate | None = None
    best_distance = math.inf
    for candidate in candidates:
        distance = corner_distance(active, candidate.rect)
        if distance < best_distance:
            best, best_distance = candidate, distance
    return best


def resolve_drop(
    snapshot: BoardSnapshot, source: DragSource, target: DropTarget
) -> MoveRequest | None:
    """Translate a hovered target into a destination and index.

    - card over card: the hovered card's index in its column
    - card over a column's card area: the end of that column
    - column over column (header or card area): that column's index

    Returns None for anything else, or if the target has gone away.
    """
    match source, target:
        case (
            ColumnRef(),
            ColumnRef(id=column_id) | ContainerSlot(column_id=column_id),
        ):
            ids = [c.id for c in snapshot.ordered_columns()]
            if column_id not in ids:
                return None
            return MoveRequest(source, snapshot.board_id, ids.index(column_id))
        case CardRef(), CardRef(id=over_id):
            over = snapshot.card(over_id)
            if over is None:
                return None
            siblings = [c.id for c in snapshot.cards_in(over.column_id)]
            return MoveRequest(source, over.column_id, siblings.index(over_id))
        case CardRef(), ContainerSlot(column_id=column_id):
            if snapshot.column(column_id) is None:
                return None
            return MoveRequest(source, column_id, len(snapshot.cards_in(column_id)))
        case _:
            return None


class DragSessionController:
    """Tracks one drag at a time and emits a ``MoveRequest`` on drop."""

    def __init__(
        self,
        snapshot: Callable[[], BoardSnapshot],
        on_drop: Callable[[MoveRequest], object],
        *,
        activation_distance: float = DEFAULT_ACTIVATION_DISTANCE,
    ) -> None:
        self._snapshot = snapshot
        self._on_drop = on_drop
        self._activation_distance = activation_distance
        self._phase = DragPhase.IDLE
        self._source: DragSource | None = None
        self._origin: Point | None = None
        self._source_rect: Rect | None = None
        self._over: DropTarget | None = None

    @property
    def phase(self) -> DragPhase:
        return self._phase

    @property
    def source(self) -> DragSource | None:
        return self._source

    @property
    def over(self) -> DropTarget | None:
        return self._over

    @property
    def activation_distance(self) -> float:
        return self._activation_distance

    @property
    def is_dragging(self) -> bool:
        return self._phase is DragPhase.DRAGGING

    def press(self, source: DragSource, point: Point, rect: Rect | None = None) -> None:
        """Record a press on ``source``; the drag starts only after movement."""
        if self._phase is not DragPhase.IDLE:
            logger.debug("Press on %s ignored during %s", source, self._phase)
            return
        self._source = source
        self._origin = point
        self._source_rect = rect

    def pointer_move(
        self, point: Point, candidates: Sequence[DropCandidate] = ()
    ) -> DropTarget | None:
        """Track the pointer; returns the currently hovered target."""
        if self._source is None or self._origin is None:
            return self._over
        if self._phase is DragPhase.IDLE:
            if self._origin.distance_to(point) <= self._activation_distance:
                return None
            self._phase = DragPhase.DRAGGING
            logger.debug("Drag activated: %s", self._source)

        dx, dy = point.x - self._origin.x, point.y - self._origin.y
        if self._source_rect is not None:
            active = self._source_rect.translated(dx, dy)
        else:
            active = Rect(point.x, point.y, 0, 0)
        winner = nearest_corners(active, candidates)
        self._over = winner.target if winner is not None else None
        return self._over

    def release(
        self,
        point: Point | None = None,
        candidates: Sequence[DropCandidate] = (),
    ) -> MoveRequest | None:
        """End the drag. Emits and returns a request if over a valid target."""
        if self._source is None:
            return None
        if self._phase is DragPhase.IDLE:
            # Released before activation: a click, not a drag.
            self._reset()
            return None
        if point is not None:
            self.pointer_move(point, candidates)

        request = None
        if self._over is not None:
            request = resolve_drop(self._snapshot(), self._source, self._over)
        if request is None:
            self._finish(DragPhase.CANCELLED)
            return None

        self._phase = DragPhase.DROPPED
        logger.info(
            "Drop: %s -> %s[%d]",
            request.source,
            request.container_id,
            request.target_index,
        )
        try:
            self._on_drop(request)
        finally:
            self._finish(DragPhase.DROPPED)
        return request

    def cancel(self) -> None:
        """Abort the current drag (escape key, view unmount). Emits nothing."""
        if self._source is None:
            return
        if self._phase is DragPhase.IDLE:
            self._reset()
            return
        self._finish(DragPhase.CANCELLED)

    def _finish(self, outcome: DragPhase) -> None:
        self._phase = outcome
        logger.debug("Drag %s: %s", outcome, self._source)
        self._reset()

    def _reset(self) -> None:
        self._phase = DragPhase.IDLE
        self._source = None
        self._origin = None
        self._source_rect = None
        self._over = None
