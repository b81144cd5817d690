"""Pointer drag wiring for the board page.

Cards, column headers and column card areas are tagged with data
attributes. ``static/board-drag.js`` watches pointer events under the
board root and emits:

- ``board_drag_press``: the pressed source, pointer position and its rect
- ``board_drag_move``: pointer position plus the rect of every drop target
- ``board_drag_release``: the same payload as a move, on pointer up
- ``board_drag_cancel``: pointer cancelled by the browser

The script only reports geometry. Activation distance, the hovered target
(nearest corners) and the resulting move are all decided by the per-client
``DragSessionController``. The store re-renders the board after the
optimistic apply, so elements are never moved by hand.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from nicegui import ui

from cardloom.board.drag import (
    CardRef,
    ColumnRef,
    ContainerSlot,
    DropCandidate,
    Point,
    Rect,
)
from cardloom.board.errors import CardloomError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from nicegui.events import GenericEventArguments

    from cardloom.board.drag import (
        DragSessionController,
        DragSource,
        DropTarget,
        MoveRequest,
    )

logger = logging.getLogger(__name__)

BOARD_ROOT_SELECTOR = "[data-board-root]"

# Pointer moves already arrive once per animation frame; only the latest matters.
_MOVE_THROTTLE = 0.05

_SCRIPT = "/static/board-drag.js"


# ── Markup ───────────────────────────────────────────────────────────


def make_draggable_card(card: ui.card, card_id: str) -> ui.card:
    """Make a card both draggable and a drop target ("insert here").

    Returns:
        The card (for chaining).
    """
    card.props(f'data-drag=card data-drop=card data-id="{card_id}"')
    card.classes("cursor-grab non-selectable")
    return card


def make_draggable_header(header: ui.element, column_id: str) -> ui.element:
    """Make a column header the drag handle and drop target for columns."""
    header.props(f'data-drag=column data-drop=column data-id="{column_id}"')
    header.classes("cursor-grab non-selectable")
    return header


def make_card_area(area: ui.column, column_id: str) -> ui.column:
    """Make a column's card list a drop target that appends to the end."""
    area.props(f'data-drop=slot data-id="{column_id}"')
    return area


# ── Event payloads ───────────────────────────────────────────────────


def parse_target(kind: str, target_id: str) -> DropTarget | None:
    match kind:
        case "card":
            return CardRef(target_id)
        case "column":
            return ColumnRef(target_id)
        case "slot":
            return ContainerSlot(target_id)
        case _:
            return None


def parse_point(args: Mapping[str, Any]) -> Point:
    return Point(float(args["x"]), float(args["y"]))


def parse_rect(raw: Mapping[str, Any] | None) -> Rect | None:
    if not raw:
        return None
    return Rect(
        float(raw["x"]), float(raw["y"]), float(raw["width"]), float(raw["height"])
    )


def drop_candidates(
    source: DragSource | None, raw: Iterable[Mapping[str, Any]]
) -> list[DropCandidate]:
    """Targets a ``source`` can land on, in document order.

    Cards land on cards and card areas, columns on headers and card areas.
    The source itself is never a candidate.
    """
    if isinstance(source, CardRef):
        allowed: tuple[type, ...] = (CardRef, ContainerSlot)
    elif isinstance(source, ColumnRef):
        allowed = (ColumnRef, ContainerSlot)
    else:
        return []
    candidates: list[DropCandidate] = []
    for item in raw:
        target = parse_target(item.get("kind", ""), item.get("id", ""))
        rect = parse_rect(item.get("rect"))
        if target is None or rect is None or target == source:
            continue
        if isinstance(target, allowed):
            candidates.append(DropCandidate(target, rect))
    return candidates


def guarded_drop(
    submit: Callable[[MoveRequest], object], warn: Callable[[str], None]
) -> Callable[[MoveRequest], None]:
    """Wrap ``submit`` so a drop the planner refuses becomes a warning.

    A refresh can remove the dragged card or its target between press and
    release; planning then raises instead of producing a move.
    """

    def on_drop(request: MoveRequest) -> None:
        try:
            submit(request)
        except CardloomError as exc:
            logger.info("Drop %s refused: %s", request, exc)
            warn(str(exc))

    return on_drop


# ── Bridge ───────────────────────────────────────────────────────────


class PointerDragBridge:
    """Feeds browser pointer events into a ``DragSessionController``."""

    def __init__(self, drag: DragSessionController) -> None:
        self.drag = drag

    def on_press(self, e: GenericEventArguments) -> None:
        source = parse_target(e.args.get("kind", ""), e.args.get("id", ""))
        if not isinstance(source, CardRef | ColumnRef):
            return
        self.drag.press(source, parse_point(e.args), parse_rect(e.args.get("rect")))

    def on_move(self, e: GenericEventArguments) -> None:
        candidates = drop_candidates(self.drag.source, e.args.get("candidates", ()))
        self.drag.pointer_move(parse_point(e.args), candidates)

    def on_release(self, e: GenericEventArguments) -> None:
        candidates = drop_candidates(self.drag.source, e.args.get("candidates", ()))
        if self.drag.release(parse_point(e.args), candidates) is None:
            logger.debug("Release without a move")

    def on_cancel(self, _e: GenericEventArguments) -> None:
        self.drag.cancel()

    def attach(self, root_selector: str = BOARD_ROOT_SELECTOR) -> None:
        """Register the page events and start the script on the board root."""
        ui.on("board_drag_press", self.on_press)
        ui.on("board_drag_move", self.on_move, throttle=_MOVE_THROTTLE)
        ui.on("board_drag_release", self.on_release)
        ui.on("board_drag_cancel", self.on_cancel)

        ui.add_body_html(f'<script src="{_SCRIPT}"></script>')
        distance = self.drag.activation_distance
        # add_body_html scripts are missing after SPA navigation; load on demand.
        ui.run_javascript(
            "(function() {"
            f"  function init() {{ setupBoardDrag('{root_selector}', {distance}); }}"
            "  if (typeof setupBoardDrag === 'function') { init(); return; }"
            "  var s = document.createElement('script');"
            f"  s.src = '{_SCRIPT}';"
            "  s.onload = init;"
            "  document.body.appendChild(s);"
            "})();"
        )
