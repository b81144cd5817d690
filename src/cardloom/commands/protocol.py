"""Protocol defining the persistence command boundary.

Both DbBoardCommands and InMemoryBoardCommands implement this protocol,
allowing them to be used interchangeably by the mutation dispatcher.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from datetime import datetime

    from cardloom.models.board import Board, Card, Column, Subtask, Tag


class BoardCommandsProtocol(Protocol):
    """Async commands that read and write the persisted board state.

    Every mutating command runs as one unit: it either fully applies
    (including renumbering of affected siblings) or raises.
    """

    async def load_boards(self) -> list[Board]:
        """Return all boards, most recently updated first."""
        ...

    async def load_board(self, board_id: str) -> Board:
        """Return one board.

        Raises:
            NotFoundError: If the board does not exist.
        """
        ...

    async def load_columns(self, board_id: str) -> list[Column]:
        """Return the board's columns (hidden ones included) by position."""
        ...

    async def load_cards(self, board_id: str) -> list[Card]:
        """Return all cards on the board, with their tag ids."""
        ...

    async def load_tags(self, board_id: str) -> list[Tag]:
        ...

    async def load_subtasks(self, board_id: str) -> list[Subtask]:
        """Return every subtask on the board, grouped by card, by position."""
        ...

    async def create_board(self, board: Board) -> None:
        ...

    async def rename_board(
        self, board_id: str, title: str, description: str | None
    ) -> None:
        ...

    async def update_board_icon(self, board_id: str, icon: str) -> None:
        ...

    async def delete_board(self, board_id: str) -> None:
        """Delete a board with all of its columns, cards and tags."""
        ...

    async def create_column(self, column: Column) -> None:
        """Insert ``column`` at its position (clamped) and renumber."""
        ...

    async def update_column(
        self, board_id: str, column_id: str, changes: Mapping[str, Any]
    ) -> None:
        ...

    async def move_column(
        self, board_id: str, column_id: str, target_index: int
    ) -> None:
        """Move a column to ``target_index`` and renumber the board."""
        ...

    async def delete_column(self, board_id: str, column_id: str) -> None:
        """Delete a column without active cards and renumber the rest.

        Archived cards in the column are deleted with it.

        Raises:
            ColumnNotEmptyError: If the column still holds unarchived cards.
        """
        ...

    async def create_card(self, card: Card) -> None:
        """Insert ``card`` at its position (clamped) and renumber its column."""
        ...

    async def update_card(
        self, board_id: str, card_id: str, changes: Mapping[str, Any]
    ) -> None:
        ...

    async def move_card(
        self,
        board_id: str,
        card_id: str,
        from_column_id: str,
        to_column_id: str,
        target_index: int,
    ) -> None:
        """Move a card and renumber both the source and destination columns."""
        ...

    async def delete_card(self, board_id: str, card_id: str) -> None:
        """Delete a card with its subtasks and renumber its column."""
        ...

    async def set_card_archived(
        self, board_id: str, card_id: str, archived_at: datetime | None
    ) -> None:
        """Archive a card, or restore it when ``archived_at`` is None."""
        ...

    async def create_subtask(self, subtask: Subtask) -> None:
        """Insert ``subtask`` at its position (clamped) and renumber its card."""
        ...

    async def update_subtask(
        self,
        board_id: str,
        subtask_id: str,
        changes: Mapping[str, Any],
        target_index: int | None = None,
    ) -> None:
        """Update fields and, when ``target_index`` is given, reorder."""
        ...

    async def delete_subtask(self, board_id: str, subtask_id: str) -> None:
        ...

    async def create_tag(self, tag: Tag) -> None:
        ...

    async def update_tag(
        self, board_id: str, tag_id: str, changes: Mapping[str, Any]
    ) -> None:
        ...

    async def delete_tag(self, board_id: str, tag_id: str) -> None:
        ...

    async def set_card_tags(
        self, board_id: str, card_id: str, tag_ids: Sequence[str]
    ) -> None:
        """Replace the card's tag set."""
        ...
