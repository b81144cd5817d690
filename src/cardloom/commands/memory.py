"""In-memory command backend for tests, demos and DEV__COMMANDS_MOCK.

Keeps one ``BoardSnapshot`` per board and renumbers with the same planner
functions the client uses, so it behaves like the database backend without
any I/O.

Test hooks:
    - ``calls`` records every command as ``(operation, kwargs)``.
    - ``fail_next(operation, error)`` makes the next call of an operation
      raise.
    - ``pause()`` / ``resume()`` hold every command until released, and
      ``set_latency(operation, seconds)`` delays one operation, which lets
      tests control the order acknowledgements arrive in.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections import defaultdict, deque
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from cardloom.board.errors import NotFoundError
from cardloom.board.planner import (
    plan_card_append,
    plan_card_archive,
    plan_card_move,
    plan_card_removal,
    plan_card_tags,
    plan_card_update,
    plan_column_append,
    plan_column_move,
    plan_column_removal,
    plan_column_update,
    plan_subtask_append,
    plan_subtask_removal,
    plan_subtask_update,
    plan_tag_removal,
    plan_tag_upsert,
)
from cardloom.models.snapshot import BoardSnapshot

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from cardloom.board.planner import Plan
    from cardloom.models.board import Board, Card, Column, Subtask, Tag

logger = logging.getLogger(__name__)


class InMemoryBoardCommands:
    """Implementation of BoardCommandsProtocol backed by plain dicts."""

    def __init__(self) -> None:
        self._boards: dict[str, Board] = {}
        self._snapshots: dict[str, BoardSnapshot] = {}
        self._failures: defaultdict[str, deque[BaseException]] = defaultdict(deque)
        self._latency: dict[str, float] = {}
        self._gate = asyncio.Event()
        self._gate.set()
        self.calls: list[tuple[str, dict[str, Any]]] = []

    # ── Test hooks ───────────────────────────────────────────────────

    def fail_next(self, operation: str, error: BaseException | None = None) -> None:
        """Make the next ``operation`` call raise ``error``."""
        self._failures[operation].append(
            error or RuntimeError(f"{operation} rejected")
        )

    def set_latency(self, operation: str, seconds: float) -> None:
        self._latency[operation] = seconds

    def pause(self) -> None:
        self._gate.clear()

    def resume(self) -> None:
        self._gate.set()

    def calls_to(self, operation: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == operation]

    def snapshot(self, board_id: str) -> BoardSnapshot:
        """The persisted state of a board, as a snapshot."""
        self._require_board(board_id)
        return self._snapshots[board_id]

    async def _call(self, operation: str, **kwargs: Any) -> None:
        self.calls.append((operation, kwargs))
        await self._gate.wait()
        delay = self._latency.get(operation)
        if delay:
            await asyncio.sleep(delay)
        failures = self._failures.get(operation)
        if failures:
            raise failures.popleft()

    # ── Helpers ──────────────────────────────────────────────────────

    def _require_board(self, board_id: str) -> Board:
        board = self._boards.get(board_id)
        if board is None:
            raise NotFoundError("Board", board_id)
        return board

    def _commit(self, plan: Plan) -> None:
        self._snapshots[plan.board_id] = plan.apply_to(self._snapshots[plan.board_id])
        self._touch(plan.board_id)

    def _touch(self, board_id: str) -> None:
        board = self._boards[board_id]
        self._boards[board_id] = dataclasses.replace(
            board, updated_at=datetime.now(UTC)
        )

    # ── Reads ────────────────────────────────────────────────────────

    async def load_boards(self) -> list[Board]:
        await self._call("load_boards")
        epoch = datetime.min.replace(tzinfo=UTC)
        return sorted(
            self._boards.values(),
            key=lambda b: b.updated_at or epoch,
            reverse=True,
        )

    async def load_board(self, board_id: str) -> Board:
        await self._call("load_board", board_id=board_id)
        return self._require_board(board_id)

    async def load_columns(self, board_id: str) -> list[Column]:
        await self._call("load_columns", board_id=board_id)
        return self.snapshot(board_id).ordered_columns()

    async def load_cards(self, board_id: str) -> list[Card]:
        await self._call("load_cards", board_id=board_id)
        snapshot = self.snapshot(board_id)
        return [
            card
            for column in snapshot.ordered_columns()
            for card in snapshot.cards_in(column.id)
        ]

    async def load_tags(self, board_id: str) -> list[Tag]:
        await self._call("load_tags", board_id=board_id)
        return sorted(self.snapshot(board_id).tags, key=lambda t: t.label.casefold())

    async def load_subtasks(self, board_id: str) -> list[Subtask]:
        await self._call("load_subtasks", board_id=board_id)
        snapshot = self.snapshot(board_id)
        return [
            subtask
            for card in snapshot.cards
            for subtask in snapshot.subtasks_of(card.id)
        ]

    # ── Boards ───────────────────────────────────────────────────────

    async def create_board(self, board: Board) -> None:
        await self._call("create_board", board_id=board.id)
        if board.id in self._boards:
            msg = f"Board {board.id} already exists"
            raise ValueError(msg)
        now = datetime.now(UTC)
        self._boards[board.id] = dataclasses.replace(
            board, created_at=now, updated_at=now
        )
        self._snapshots[board.id] = BoardSnapshot(board.id)

    async def rename_board(
        self, board_id: str, title: str, description: str | None
    ) -> None:
        await self._call("rename_board", board_id=board_id, title=title)
        board = self._require_board(board_id)
        self._boards[board_id] = dataclasses.replace(
            board, title=title, description=description
        )
        self._touch(board_id)

    async def update_board_icon(self, board_id: str, icon: str) -> None:
        await self._call("update_board_icon", board_id=board_id, icon=icon)
        board = self._require_board(board_id)
        self._boards[board_id] = dataclasses.replace(board, icon=icon)
        self._touch(board_id)

    async def delete_board(self, board_id: str) -> None:
        await self._call("delete_board", board_id=board_id)
        self._require_board(board_id)
        del self._boards[board_id]
        del self._snapshots[board_id]

    # ── Columns ──────────────────────────────────────────────────────

    async def create_column(self, column: Column) -> None:
        await self._call("create_column", board_id=column.board_id, column_id=column.id)
        self._commit(plan_column_append(self.snapshot(column.board_id), column))

    async def update_column(
        self, board_id: str, column_id: str, changes: Mapping[str, Any]
    ) -> None:
        await self._call(
            "update_column", board_id=board_id, column_id=column_id, changes=changes
        )
        self._commit(
            plan_column_update(self.snapshot(board_id), column_id, dict(changes))
        )

    async def move_column(
        self, board_id: str, column_id: str, target_index: int
    ) -> None:
        await self._call(
            "move_column",
            board_id=board_id,
            column_id=column_id,
            target_index=target_index,
        )
        plan = plan_column_move(self.snapshot(board_id), column_id, target_index)
        if plan is not None:
            self._commit(plan)

    async def delete_column(self, board_id: str, column_id: str) -> None:
        await self._call("delete_column", board_id=board_id, column_id=column_id)
        self._commit(plan_column_removal(self.snapshot(board_id), column_id))

    # ── Cards ────────────────────────────────────────────────────────

    async def create_card(self, card: Card) -> None:
        await self._call(
            "create_card",
            board_id=card.board_id,
            column_id=card.column_id,
            card_id=card.id,
        )
        snapshot = self.snapshot(card.board_id)
        for tag_id in card.tag_ids:
            if snapshot.tag(tag_id) is None:
                raise NotFoundError("Tag", tag_id)
        self._commit(plan_card_append(snapshot, card))

    async def update_card(
        self, board_id: str, card_id: str, changes: Mapping[str, Any]
    ) -> None:
        await self._call(
            "update_card", board_id=board_id, card_id=card_id, changes=changes
        )
        self._commit(plan_card_update(self.snapshot(board_id), card_id, dict(changes)))

    async def move_card(
        self,
        board_id: str,
        card_id: str,
        from_column_id: str,
        to_column_id: str,
        target_index: int,
    ) -> None:
        await self._call(
            "move_card",
            board_id=board_id,
            card_id=card_id,
            from_column_id=from_column_id,
            to_column_id=to_column_id,
            target_index=target_index,
        )
        snapshot = self.snapshot(board_id)
        card = snapshot.card(card_id)
        if card is None:
            raise NotFoundError("Card", card_id)
        if card.column_id != from_column_id:
            msg = f"Card {card_id} is not in column {from_column_id}"
            raise ValueError(msg)
        plan = plan_card_move(snapshot, card_id, to_column_id, target_index)
        if plan is not None:
            self._commit(plan)

    async def delete_card(self, board_id: str, card_id: str) -> None:
        await self._call("delete_card", board_id=board_id, card_id=card_id)
        self._commit(plan_card_removal(self.snapshot(board_id), card_id))

    async def set_card_archived(
        self, board_id: str, card_id: str, archived_at: datetime | None
    ) -> None:
        await self._call(
            "set_card_archived",
            board_id=board_id,
            card_id=card_id,
            archived=archived_at is not None,
        )
        self._commit(plan_card_archive(self.snapshot(board_id), card_id, archived_at))

    # ── Subtasks ─────────────────────────────────────────────────────

    async def create_subtask(self, subtask: Subtask) -> None:
        await self._call(
            "create_subtask",
            board_id=subtask.board_id,
            card_id=subtask.card_id,
            subtask_id=subtask.id,
        )
        self._commit(plan_subtask_append(self.snapshot(subtask.board_id), subtask))

    async def update_subtask(
        self,
        board_id: str,
        subtask_id: str,
        changes: Mapping[str, Any],
        target_index: int | None = None,
    ) -> None:
        await self._call(
            "update_subtask",
            board_id=board_id,
            subtask_id=subtask_id,
            changes=changes,
            target_index=target_index,
        )
        self._commit(
            plan_subtask_update(
                self.snapshot(board_id), subtask_id, dict(changes), target_index
            )
        )

    async def delete_subtask(self, board_id: str, subtask_id: str) -> None:
        await self._call("delete_subtask", board_id=board_id, subtask_id=subtask_id)
        self._commit(plan_subtask_removal(self.snapshot(board_id), subtask_id))

    # ── Tags ─────────────────────────────────────────────────────────

    async def create_tag(self, tag: Tag) -> None:
        await self._call("create_tag", board_id=tag.board_id, tag_id=tag.id)
        self._commit(plan_tag_upsert(self.snapshot(tag.board_id), tag))

    async def update_tag(
        self, board_id: str, tag_id: str, changes: Mapping[str, Any]
    ) -> None:
        await self._call("update_tag", board_id=board_id, tag_id=tag_id)
        snapshot = self.snapshot(board_id)
        tag = snapshot.tag(tag_id)
        if tag is None:
            raise NotFoundError("Tag", tag_id)
        self._commit(plan_tag_upsert(snapshot, dataclasses.replace(tag, **changes)))

    async def delete_tag(self, board_id: str, tag_id: str) -> None:
        await self._call("delete_tag", board_id=board_id, tag_id=tag_id)
        self._commit(plan_tag_removal(self.snapshot(board_id), tag_id))

    async def set_card_tags(
        self, board_id: str, card_id: str, tag_ids: Sequence[str]
    ) -> None:
        await self._call(
            "set_card_tags", board_id=board_id, card_id=card_id, tag_ids=list(tag_ids)
        )
        self._commit(plan_card_tags(self.snapshot(board_id), card_id, tag_ids))
