"""Error taxonomy for board mutations.

- ``BoardValidationError``: bad user input, raised before any cache change.
- ``PersistenceError``: a command was rejected or timed out; the
  optimistic change has been rolled back.
- ``InvariantViolationError``: a computed plan would break position
  density. Only a defect can produce it; it is never stored.
- ``BoardLoadError``: the snapshot could not be (re)loaded.

``NotFoundError`` and ``ColumnNotEmptyError`` come from command backends
and reach callers wrapped in ``PersistenceError``.
"""

from __future__ import annotations


class CardloomError(Exception):
    """Base class for all cardloom errors."""


class BoardValidationError(CardloomError):
    """Input rejected before any optimistic mutation.

    Attributes:
        field_errors: Field name -> message, for form-level display.
    """

    def __init__(self, message: str, field_errors: dict[str, str] | None = None):
        self.field_errors = dict(field_errors or {})
        super().__init__(message)


class PersistenceError(CardloomError):
    """A persistence command failed; the cache has been rolled back."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class InvariantViolationError(CardloomError):
    """A plan would leave duplicate or missing positions in a container."""

    def __init__(self, container_id: str, positions: list[int]) -> None:
        self.container_id = container_id
        self.positions = positions
        super().__init__(
            f"Positions in {container_id} are not dense: {sorted(positions)}"
        )


class BoardLoadError(CardloomError):
    """Loading the board snapshot failed; the view should offer a retry."""

    def __init__(self, board_id: str, message: str) -> None:
        self.board_id = board_id
        super().__init__(f"Could not load board {board_id}: {message}")


class NotFoundError(CardloomError):
    """A referenced board, column, card or tag does not exist."""

    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} {entity_id} not found")


class ColumnNotEmptyError(CardloomError):
    """Deleting a column that still holds cards."""

    def __init__(self, column_id: str, card_count: int) -> None:
        self.column_id = column_id
        self.card_count = card_count
        super().__init__(
            f"Column {column_id} still holds {card_count} card(s); "
            "move or delete them first"
        )
