"""Tests for the client-side board store."""

from __future__ import annotations

import dataclasses

import pytest

from cardloom.board.errors import InvariantViolationError
from cardloom.board.planner import Plan, plan_card_move, plan_column_update
from cardloom.board.store import BoardStore
from tests.conftest import layout_of, make_snapshot


class TestApplyAndRollback:
    def test_apply_returns_previous_snapshot(self, snapshot) -> None:
        store = BoardStore(snapshot)

        previous = store.apply(plan_card_move(snapshot, "a1", "B", 0))

        assert previous is snapshot
        assert layout_of(store.snapshot)["B"] == ["a1", "b1", "b2"]

    def test_rollback_restores_exact_snapshot(self, snapshot) -> None:
        store = BoardStore(snapshot)
        previous = store.apply(plan_card_move(snapshot, "a1", "B", 0))

        store.rollback(previous)

        assert store.snapshot is snapshot

    def test_rollback_of_current_is_noop(self, snapshot) -> None:
        store = BoardStore(snapshot)
        seen: list[object] = []
        store.subscribe(seen.append)

        store.rollback(snapshot)

        assert seen == []

    def test_invalid_plan_leaves_store_untouched(self, snapshot) -> None:
        store = BoardStore(snapshot)
        broken = Plan(
            board_id=snapshot.board_id,
            cards=(dataclasses.replace(snapshot.card("a1"), position=7),),
            containers=("A",),
        )

        with pytest.raises(InvariantViolationError):
            store.apply(broken)

        assert store.snapshot is snapshot

    def test_plan_for_other_board_rejected(self, snapshot) -> None:
        store = BoardStore(snapshot)
        other = make_snapshot(board_id="board-2")

        with pytest.raises(ValueError, match="board-2"):
            store.apply(plan_card_move(other, "a1", "B", 0))

    def test_replace_checks_board(self, snapshot) -> None:
        store = BoardStore(snapshot)
        with pytest.raises(ValueError):
            store.replace(make_snapshot(board_id="board-2"))


class TestViewAndListeners:
    def test_view_hides_disabled_columns(self, snapshot) -> None:
        store = BoardStore(snapshot)
        store.apply(plan_column_update(snapshot, "B", {"is_enabled": False}))

        view = store.view

        assert view.column_ids() == ["A", "C"]
        assert [c.id for c in view.hidden_columns] == ["B"]

    def test_view_is_cached_per_snapshot(self, snapshot) -> None:
        store = BoardStore(snapshot)
        assert store.view is store.view

    def test_listeners_receive_new_view(self, snapshot) -> None:
        store = BoardStore(snapshot)
        views = []
        store.subscribe(views.append)

        store.apply(plan_card_move(snapshot, "a1", "C", 0))

        assert len(views) == 1
        assert [card.id for card in views[0].columns[2].cards] == ["a1"]

    def test_unsubscribe(self, snapshot) -> None:
        store = BoardStore(snapshot)
        views = []
        unsubscribe = store.subscribe(views.append)
        unsubscribe()
        unsubscribe()

        store.apply(plan_card_move(snapshot, "a1", "C", 0))

        assert views == []

    def test_failing_listener_does_not_block_others(self, snapshot) -> None:
        store = BoardStore(snapshot)
        views = []

        def broken(_view) -> None:
            raise RuntimeError("render failed")

        store.subscribe(broken)
        store.subscribe(views.append)

        store.apply(plan_card_move(snapshot, "a1", "C", 0))

        assert len(views) == 1
        assert layout_of(store.snapshot)["C"] == ["a1"]

    def test_wip_limit_flag(self, snapshot) -> None:
        store = BoardStore(snapshot)
        store.apply(plan_column_update(snapshot, "A", {"wip_limit": 2}))

        column_a = store.view.columns[0]

        assert column_a.is_over_wip_limit
        assert not store.view.columns[1].is_over_wip_limit
