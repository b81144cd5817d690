"""Mutation dispatcher: optimistic apply, persist, reconcile.

Every mutation follows the same sequence. Validate the input, compute a
plan against the store's latest snapshot, apply it synchronously, then
await exactly one persistence command. If the command fails or times out,
the store is rolled back to the snapshot captured at apply time and the
user is notified. There is no automatic retry.

Moves can be submitted without waiting (``submit_move``). They are applied
in submission order and persisted one at a time in that order.

Mutations still awaiting persistence are tracked in submission order. A
failure rolls back to the snapshot its mutation was applied on, which also
discards every later mutation stacked on top of it; those are marked
undone, so their own failures leave the store alone. Once nothing is in
flight, the board is reloaded to pick up whatever the later mutations did
persist.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from cardloom.board import inputs
from cardloom.board.drag import CardRef, ColumnRef
from cardloom.board.errors import BoardLoadError, NotFoundError, PersistenceError
from cardloom.board.planner import (
    CardMovePlan,
    ColumnMovePlan,
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
from cardloom.board.positions import next_position
from cardloom.config import get_settings
from cardloom.models.board import Card, Column, Subtask, Tag, new_id
from cardloom.models.snapshot import BoardSnapshot

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from cardloom.board.drag import MoveRequest
    from cardloom.board.planner import Plan
    from cardloom.board.store import BoardStore
    from cardloom.commands.protocol import BoardCommandsProtocol

logger = logging.getLogger(__name__)

type Notifier = Callable[[str], None]


@dataclass(frozen=True)
class MoveOutcome:
    """Result of one dispatched move.

    Attributes:
        plan: The applied plan, or None when the move was a no-op.
        ok: False if persistence failed and the move was rolled back.
        error: The failure, when ``ok`` is False.
    """

    plan: ColumnMovePlan | CardMovePlan | None
    ok: bool = True
    error: PersistenceError | None = None

    @property
    def skipped(self) -> bool:
        return self.plan is None


@dataclass(eq=False)
class _InFlight:
    """One applied mutation awaiting persistence."""

    previous: BoardSnapshot
    applied: BoardSnapshot
    undone: bool = False


def _ignore(_message: str) -> None:
    pass


class MutationDispatcher:
    """Runs board mutations against a ``BoardStore`` and a command backend."""

    def __init__(
        self,
        store: BoardStore,
        commands: BoardCommandsProtocol,
        *,
        notify: Notifier | None = None,
        timeout: float | None = None,
    ) -> None:
        self._store = store
        self._commands = commands
        self._notify = notify or _ignore
        self._timeout = (
            timeout if timeout is not None else get_settings().board.command_timeout
        )
        self._pending: set[asyncio.Task[MoveOutcome]] = set()
        self._in_flight: list[_InFlight] = []
        # Persistence calls run one at a time, in submission order.
        self._persist_lock = asyncio.Lock()
        self._needs_refresh = False

    @property
    def store(self) -> BoardStore:
        return self._store

    @property
    def board_id(self) -> str:
        return self._store.board_id

    @property
    def pending(self) -> int:
        """Number of moves still awaiting persistence."""
        return len(self._pending)

    async def wait_idle(self) -> None:
        """Wait until every submitted move has been reconciled."""
        while self._pending:
            await asyncio.gather(*self._pending)

    # ── Loading ──────────────────────────────────────────────────────

    async def fetch_snapshot(self) -> BoardSnapshot:
        """Read the board's columns, cards, subtasks and tags from persistence.

        Raises:
            BoardLoadError: If any read fails or times out.
        """
        board_id = self.board_id
        try:
            async with asyncio.timeout(self._timeout):
                columns = await self._commands.load_columns(board_id)
                cards = await self._commands.load_cards(board_id)
                tags = await self._commands.load_tags(board_id)
                subtasks = await self._commands.load_subtasks(board_id)
        except Exception as exc:
            logger.warning("Loading board %s failed: %s", board_id, exc)
            raise BoardLoadError(board_id, str(exc) or type(exc).__name__) from exc
        return BoardSnapshot(
            board_id=board_id,
            columns=tuple(columns),
            cards=tuple(cards),
            tags=tuple(tags),
            subtasks=tuple(subtasks),
        )

    async def load(self) -> BoardSnapshot:
        """Load the board from persistence into the store."""
        snapshot = await self.fetch_snapshot()
        self._store.replace(snapshot)
        logger.info(
            "Loaded board %s: %d columns, %d cards",
            self.board_id,
            len(snapshot.columns),
            len(snapshot.cards),
        )
        return snapshot

    async def seed_default_columns(
        self, titles: Sequence[str] | None = None
    ) -> list[Column]:
        """Create the default columns on a board that has none.

        Columns are created one after another so each lands at the end.
        Does nothing if the board already has columns.
        """
        if self._store.snapshot.columns:
            return []
        if titles is None:
            titles = get_settings().board.default_columns
        return [await self.create_column(title) for title in titles]

    # ── Reconciliation ───────────────────────────────────────────────

    def _begin(self, plan: Plan) -> _InFlight:
        """Apply ``plan`` and start tracking it until it is persisted."""
        previous = self._store.apply(plan)
        entry = _InFlight(previous=previous, applied=self._store.snapshot)
        self._in_flight.append(entry)
        return entry

    def _undo(self, entry: _InFlight) -> None:
        """Roll back a failed mutation and everything stacked on it."""
        if entry.undone:
            # An earlier rollback already restored a snapshot older than ours.
            return
        later = self._in_flight[self._in_flight.index(entry) + 1 :]
        if later or self._store.snapshot is not entry.applied:
            # Later changes were stacked on this one and are lost with it.
            self._needs_refresh = True
        for other in later:
            other.undone = True
        self._store.rollback(entry.previous)

    async def _settle(self, entry: _InFlight) -> None:
        """Stop tracking ``entry``; reload once nothing else is in flight."""
        self._in_flight.remove(entry)
        if entry.undone:
            self._needs_refresh = True
        if not self._needs_refresh or self._in_flight:
            return
        self._needs_refresh = False
        try:
            await self.load()
        except BoardLoadError:
            logger.exception("Refresh after failed mutation did not succeed")

    async def _persist(
        self, entry: _InFlight, operation: str, command: Callable[[], Awaitable[None]]
    ) -> None:
        """Await ``command``; on failure undo ``entry``, notify and raise.

        Raises:
            PersistenceError: If the command fails or times out.
        """
        try:
            async with self._persist_lock, asyncio.timeout(self._timeout):
                await command()
        except Exception as exc:
            error = PersistenceError(operation, str(exc) or type(exc).__name__)
            logger.warning("%s", error)
            self._undo(entry)
            self._notify(str(error))
            raise error from exc
        logger.debug("%s persisted on board %s", operation, self.board_id)

    # ── Moves ────────────────────────────────────────────────────────

    def plan_request(
        self, request: MoveRequest
    ) -> ColumnMovePlan | CardMovePlan | None:
        """Turn a drop into a plan against the latest optimistic snapshot."""
        snapshot = self._store.snapshot
        match request.source:
            case ColumnRef(id=column_id):
                return plan_column_move(snapshot, column_id, request.target_index)
            case CardRef(id=card_id):
                return plan_card_move(
                    snapshot, card_id, request.container_id, request.target_index
                )
            case _:
                return None

    def submit_request(self, request: MoveRequest) -> asyncio.Task[MoveOutcome] | None:
        """Plan and submit a drop. Returns None for a no-op move."""
        plan = self.plan_request(request)
        if plan is None:
            logger.debug("Drop %s is a no-op", request)
            return None
        return self.submit_move(plan)

    def submit_move(
        self, plan: ColumnMovePlan | CardMovePlan
    ) -> asyncio.Task[MoveOutcome]:
        """Apply ``plan`` now and persist it in the background."""
        entry = self._begin(plan)
        task = asyncio.create_task(self._persist_move(plan, entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def dispatch_move(
        self, plan: ColumnMovePlan | CardMovePlan | None
    ) -> MoveOutcome:
        """Apply ``plan`` and wait for persistence."""
        if plan is None:
            return MoveOutcome(plan=None)
        return await self._persist_move(plan, self._begin(plan))

    async def move_column(self, column_id: str, target_index: int) -> MoveOutcome:
        plan = plan_column_move(self._store.snapshot, column_id, target_index)
        return await self.dispatch_move(plan)

    async def move_card(
        self, card_id: str, to_column_id: str, target_index: int
    ) -> MoveOutcome:
        plan = plan_card_move(
            self._store.snapshot, card_id, to_column_id, target_index
        )
        return await self.dispatch_move(plan)

    def _move_command(self, plan: ColumnMovePlan | CardMovePlan) -> Awaitable[None]:
        if isinstance(plan, ColumnMovePlan):
            return self._commands.move_column(
                plan.board_id, plan.column_id, plan.target_index
            )
        return self._commands.move_card(
            plan.board_id,
            plan.card_id,
            plan.from_column_id,
            plan.to_column_id,
            plan.target_index,
        )

    async def _persist_move(
        self, plan: ColumnMovePlan | CardMovePlan, entry: _InFlight
    ) -> MoveOutcome:
        operation = "move_column" if isinstance(plan, ColumnMovePlan) else "move_card"
        try:
            await self._persist(entry, operation, lambda: self._move_command(plan))
        except PersistenceError as error:
            return MoveOutcome(plan=plan, ok=False, error=error)
        finally:
            await self._settle(entry)
        return MoveOutcome(plan=plan)

    # ── Other mutations ──────────────────────────────────────────────

    async def _run(
        self, plan: Plan, operation: str, command: Callable[[], Awaitable[None]]
    ) -> None:
        """Apply ``plan`` and await ``command``; roll back and raise on failure.

        Raises:
            PersistenceError: If the command fails or times out.
        """
        entry = self._begin(plan)
        try:
            await self._persist(entry, operation, command)
        finally:
            await self._settle(entry)

    async def create_column(self, title: str, **fields: Any) -> Column:
        """Validate and append a new column."""
        data = inputs.validate(inputs.ColumnInput, title=title, **fields)
        snapshot = self._store.snapshot
        column = Column(
            id=new_id(),
            board_id=self.board_id,
            title=data.title,
            position=next_position(snapshot.columns),
            wip_limit=data.wip_limit,
            color=data.color,
            icon=data.icon,
            is_enabled=data.is_enabled,
        )
        plan = plan_column_append(snapshot, column)
        placed = next(c for c in plan.columns if c.id == column.id)
        await self._run(
            plan, "create_column", lambda: self._commands.create_column(placed)
        )
        return placed

    async def update_column(self, column_id: str, **changes: Any) -> Column:
        data = inputs.validate(inputs.ColumnUpdate, **changes)
        plan = plan_column_update(self._store.snapshot, column_id, data.changes())
        await self._run(
            plan,
            "update_column",
            lambda: self._commands.update_column(
                self.board_id, column_id, data.changes()
            ),
        )
        return plan.columns[0]

    async def delete_column(self, column_id: str) -> None:
        """Delete a column that has no unarchived cards.

        Raises:
            ColumnNotEmptyError: If the column still holds active cards.
        """
        plan = plan_column_removal(self._store.snapshot, column_id)
        await self._run(
            plan,
            "delete_column",
            lambda: self._commands.delete_column(self.board_id, column_id),
        )

    async def create_card(self, column_id: str, title: str, **fields: Any) -> Card:
        """Validate and append a new card to ``column_id``."""
        data = inputs.validate(inputs.CardInput, title=title, **fields)
        snapshot = self._store.snapshot
        tag_ids = tuple(dict.fromkeys(data.tag_ids))
        card = Card(
            id=new_id(),
            board_id=self.board_id,
            column_id=column_id,
            title=data.title,
            position=next_position(snapshot.cards_in(column_id)),
            description=data.description,
            priority=data.priority,
            due_date=data.due_date,
            tag_ids=tag_ids,
        )
        plan = plan_card_append(snapshot, card)
        placed = next(c for c in plan.cards if c.id == card.id)
        await self._run(plan, "create_card", lambda: self._commands.create_card(placed))
        return placed

    async def update_card(self, card_id: str, **changes: Any) -> Card:
        data = inputs.validate(inputs.CardUpdate, **changes)
        plan = plan_card_update(self._store.snapshot, card_id, data.changes())
        await self._run(
            plan,
            "update_card",
            lambda: self._commands.update_card(self.board_id, card_id, data.changes()),
        )
        return plan.cards[0]

    async def delete_card(self, card_id: str) -> None:
        plan = plan_card_removal(self._store.snapshot, card_id)
        await self._run(
            plan,
            "delete_card",
            lambda: self._commands.delete_card(self.board_id, card_id),
        )

    async def archive_card(self, card_id: str) -> Card:
        """Hide a card from the board without deleting it."""
        return await self._set_archived(card_id, datetime.now(UTC))

    async def restore_card(self, card_id: str) -> Card:
        """Bring an archived card back to its old slot."""
        return await self._set_archived(card_id, None)

    async def _set_archived(self, card_id: str, archived_at: datetime | None) -> Card:
        plan = plan_card_archive(self._store.snapshot, card_id, archived_at)
        await self._run(
            plan,
            "set_card_archived",
            lambda: self._commands.set_card_archived(
                self.board_id, card_id, archived_at
            ),
        )
        return plan.cards[0]

    async def set_card_tags(self, card_id: str, tag_ids: Sequence[str]) -> Card:
        plan = plan_card_tags(self._store.snapshot, card_id, tag_ids)
        card = plan.cards[0]
        await self._run(
            plan,
            "set_card_tags",
            lambda: self._commands.set_card_tags(
                self.board_id, card_id, list(card.tag_ids)
            ),
        )
        return card

    async def create_subtask(self, card_id: str, title: str) -> Subtask:
        """Validate and append a subtask to ``card_id``."""
        data = inputs.validate(inputs.SubtaskInput, title=title)
        snapshot = self._store.snapshot
        subtask = Subtask(
            id=new_id(),
            board_id=self.board_id,
            card_id=card_id,
            title=data.title,
            position=next_position(snapshot.subtasks_of(card_id)),
        )
        plan = plan_subtask_append(snapshot, subtask)
        placed = next(s for s in plan.subtasks if s.id == subtask.id)
        await self._run(
            plan, "create_subtask", lambda: self._commands.create_subtask(placed)
        )
        return placed

    async def update_subtask(
        self, subtask_id: str, *, target_index: int | None = None, **changes: Any
    ) -> Subtask:
        """Rename, tick or untick a subtask, and/or move it within its card.

        Raises:
            BoardValidationError: If nothing is changed or a field is invalid.
        """
        if changes or target_index is None:
            changes = inputs.validate(inputs.SubtaskUpdate, **changes).changes()
        plan = plan_subtask_update(
            self._store.snapshot, subtask_id, changes, target_index
        )
        await self._run(
            plan,
            "update_subtask",
            lambda: self._commands.update_subtask(
                self.board_id, subtask_id, changes, target_index
            ),
        )
        return next(s for s in plan.subtasks if s.id == subtask_id)

    async def delete_subtask(self, subtask_id: str) -> None:
        plan = plan_subtask_removal(self._store.snapshot, subtask_id)
        await self._run(
            plan,
            "delete_subtask",
            lambda: self._commands.delete_subtask(self.board_id, subtask_id),
        )

    async def create_tag(self, label: str, color: str | None = None) -> Tag:
        data = inputs.validate(inputs.TagInput, label=label, color=color)
        tag = Tag(
            id=new_id(), board_id=self.board_id, label=data.label, color=data.color
        )
        plan = plan_tag_upsert(self._store.snapshot, tag)
        await self._run(plan, "create_tag", lambda: self._commands.create_tag(tag))
        return tag

    async def update_tag(self, tag_id: str, **changes: Any) -> Tag:
        data = inputs.validate(inputs.TagUpdate, **changes)
        current = self._store.snapshot.tag(tag_id)
        if current is None:
            raise NotFoundError("Tag", tag_id)
        tag = Tag(
            id=tag_id,
            board_id=self.board_id,
            label=data.changes().get("label", current.label),
            color=data.changes().get("color", current.color),
        )
        plan = plan_tag_upsert(self._store.snapshot, tag)
        await self._run(
            plan,
            "update_tag",
            lambda: self._commands.update_tag(self.board_id, tag_id, data.changes()),
        )
        return tag

    async def delete_tag(self, tag_id: str) -> None:
        plan = plan_tag_removal(self._store.snapshot, tag_id)
        await self._run(
            plan,
            "delete_tag",
            lambda: self._commands.delete_tag(self.board_id, tag_id),
        )
