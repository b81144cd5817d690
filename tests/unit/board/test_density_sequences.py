"""Seeded random mutation sequences never leave gaps or duplicate positions.

Each step runs one random operation (sometimes a burst of moves submitted
without waiting), optionally with the next call of some command set up to
fail. Once the dispatcher is idle, every container in the client store and
in the backend must be dense, and the two must agree.
"""

from __future__ import annotations

import contextlib
import random

import pytest

from cardloom.board import CardRef, ColumnRef, MoveRequest, PersistenceError
from cardloom.board.positions import is_dense
from tests.conftest import BOARD_ID, layout_of

SEEDS = [1, 7, 42, 2024, 31337]
STEPS = 40

FAILING_COMMANDS = (
    "move_card",
    "move_column",
    "create_card",
    "delete_card",
    "create_subtask",
    "update_subtask",
    "delete_subtask",
)


def _assert_dense(snapshot) -> None:
    assert is_dense(snapshot.columns), "columns"
    for column in snapshot.columns:
        assert is_dense(snapshot.cards_in(column.id)), column.id
    for card in snapshot.cards:
        assert is_dense(snapshot.subtasks_of(card.id)), card.id


def _random_index(rng: random.Random) -> int:
    # Deliberately reaches past both ends.
    return rng.randint(-3, 8)


async def _step(dispatcher, rng: random.Random, step: int) -> None:
    snapshot = dispatcher.store.snapshot
    column_ids = [c.id for c in snapshot.ordered_columns()]
    card_ids = [c.id for c in snapshot.cards]
    operation = rng.choice(
        ("create", "move", "burst", "delete", "column", "subtask", "subtask")
    )

    if operation == "create" or not card_ids:
        await dispatcher.create_card(rng.choice(column_ids), f"card {step}")
    elif operation == "move":
        await dispatcher.move_card(
            rng.choice(card_ids), rng.choice(column_ids), _random_index(rng)
        )
    elif operation == "burst":
        for _ in range(rng.randint(2, 4)):
            if rng.random() < 0.25:
                source = ColumnRef(rng.choice(column_ids))
                container = BOARD_ID
            else:
                source = CardRef(rng.choice(card_ids))
                container = rng.choice(column_ids)
            dispatcher.submit_request(
                MoveRequest(source, container, _random_index(rng))
            )
    elif operation == "delete":
        await dispatcher.delete_card(rng.choice(card_ids))
    elif operation == "column":
        await dispatcher.move_column(rng.choice(column_ids), _random_index(rng))
    else:
        card_id = rng.choice(card_ids)
        subtasks = snapshot.subtasks_of(card_id)
        if not subtasks or rng.random() < 0.4:
            await dispatcher.create_subtask(card_id, f"subtask {step}")
        elif rng.random() < 0.6:
            await dispatcher.update_subtask(
                rng.choice(subtasks).id, target_index=_random_index(rng)
            )
        else:
            await dispatcher.delete_subtask(rng.choice(subtasks).id)


class TestRandomSequences:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", SEEDS)
    async def test_positions_stay_dense(self, dispatcher, commands, seed) -> None:
        rng = random.Random(seed)

        for step in range(STEPS):
            if rng.random() < 0.2:
                commands.fail_next(rng.choice(FAILING_COMMANDS))
            with contextlib.suppress(PersistenceError):
                await _step(dispatcher, rng, step)
            await dispatcher.wait_idle()

            persisted = commands.snapshot(BOARD_ID)
            _assert_dense(dispatcher.store.snapshot)
            _assert_dense(persisted)
            assert layout_of(dispatcher.store.snapshot) == layout_of(persisted)
