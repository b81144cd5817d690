"""Client-side board cache.

The store holds exactly one ``BoardSnapshot`` at a time. Applying a plan
swaps in a new snapshot and hands back the previous one, which is the
rollback token for that mutation. Listeners receive a fresh ``BoardView``
after every change.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cardloom.board.planner import check_containers
from cardloom.models.snapshot import BoardSnapshot, BoardView, build_view

if TYPE_CHECKING:
    from collections.abc import Callable

    from cardloom.board.planner import Plan

logger = logging.getLogger(__name__)

type ViewListener = Callable[[BoardView], None]


class BoardStore:
    """Holds the current snapshot of one board and notifies on change."""

    def __init__(self, snapshot: BoardSnapshot) -> None:
        self._snapshot = snapshot
        self._view: BoardView | None = None
        self._listeners: list[ViewListener] = []

    @property
    def board_id(self) -> str:
        return self._snapshot.board_id

    @property
    def snapshot(self) -> BoardSnapshot:
        return self._snapshot

    @property
    def view(self) -> BoardView:
        """Render view of the current snapshot, built once per snapshot."""
        if self._view is None:
            self._view = build_view(self._snapshot)
        return self._view

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def apply(self, plan: Plan) -> BoardSnapshot:
        """Merge ``plan`` into the current snapshot.

        Density of every container the plan touched is re-checked on the
        merged result, so nothing invalid is ever stored.

        Returns:
            The snapshot that was current before the plan, for ``rollback``.

        Raises:
            ValueError: If the plan belongs to another board.
            InvariantViolationError: If the merged snapshot is not dense.
        """
        if plan.board_id != self.board_id:
            msg = f"Plan for board {plan.board_id} applied to {self.board_id}"
            raise ValueError(msg)
        previous = self._snapshot
        updated = plan.apply_to(previous)
        check_containers(updated, plan.containers)
        self._set(updated)
        return previous

    def rollback(self, previous: BoardSnapshot) -> None:
        """Restore ``previous`` exactly. No-op if it is already current."""
        if previous is self._snapshot:
            return
        logger.info("Rolling back board %s", self.board_id)
        self._set(previous)

    def replace(self, snapshot: BoardSnapshot) -> None:
        """Install a snapshot loaded from persistence."""
        if snapshot.board_id != self.board_id:
            msg = f"Snapshot for board {snapshot.board_id} given to {self.board_id}"
            raise ValueError(msg)
        self._set(snapshot)

    def _set(self, snapshot: BoardSnapshot) -> None:
        self._snapshot = snapshot
        self._view = None
        if not self._listeners:
            return
        view = self.view
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("Board view listener failed")
