"""Ordering and move-reconciliation engine for kanban boards.

Pure planning (``positions``, ``planner``), the optimistic cache
(``store``), persistence reconciliation (``dispatcher``) and the drag
state machine (``drag``). Nothing here imports NiceGUI or the database.
"""

from cardloom.board.dispatcher import MoveOutcome, MutationDispatcher
from cardloom.board.drag import (
    CardRef,
    ColumnRef,
    ContainerSlot,
    DragPhase,
    DragSessionController,
    DropCandidate,
    MoveRequest,
    Point,
    Rect,
)
from cardloom.board.errors import (
    BoardLoadError,
    BoardValidationError,
    CardloomError,
    ColumnNotEmptyError,
    InvariantViolationError,
    NotFoundError,
    PersistenceError,
)
from cardloom.board.store import BoardStore

__all__ = [
    "BoardLoadError",
    "BoardStore",
    "BoardValidationError",
    "CardRef",
    "CardloomError",
    "ColumnNotEmptyError",
    "ColumnRef",
    "ContainerSlot",
    "DragPhase",
    "DragSessionController",
    "DropCandidate",
    "InvariantViolationError",
    "MoveOutcome",
    "MoveRequest",
    "MutationDispatcher",
    "NotFoundError",
    "PersistenceError",
    "Point",
    "Rect",
]
