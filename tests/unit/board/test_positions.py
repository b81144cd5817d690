"""Tests for dense position helpers."""

from __future__ import annotations

from cardloom.board.positions import (
    clamp_index,
    is_dense,
    next_position,
    normalize,
    reorder,
)
from cardloom.models.board import Column


def _columns(*positions: int) -> list[Column]:
    return [
        Column(id=f"c{i}", board_id="b", title=f"c{i}", position=p)
        for i, p in enumerate(positions)
    ]


class TestClampIndex:
    def test_within_range_unchanged(self) -> None:
        assert clamp_index(2, 5) == 2

    def test_negative_clamps_to_zero(self) -> None:
        assert clamp_index(-3, 5) == 0

    def test_beyond_end_clamps_to_length(self) -> None:
        assert clamp_index(99, 4) == 4


class TestNormalize:
    def test_empty_input(self) -> None:
        assert normalize([]) == []

    def test_renumbers_in_given_order(self) -> None:
        result = normalize(_columns(7, 3, 9))
        assert [c.position for c in result] == [0, 1, 2]
        assert [c.id for c in result] == ["c0", "c1", "c2"]

    def test_untouched_items_keep_identity(self) -> None:
        """Items already at their index are reused, not rebuilt."""
        columns = _columns(0, 5)
        result = normalize(columns)
        assert result[0] is columns[0]
        assert result[1] is not columns[1]

    def test_does_not_mutate_input(self) -> None:
        columns = _columns(4, 2)
        normalize(columns)
        assert [c.position for c in columns] == [4, 2]


class TestIsDense:
    def test_empty_is_dense(self) -> None:
        assert is_dense([])

    def test_dense_in_any_order(self) -> None:
        assert is_dense(_columns(2, 0, 1))

    def test_gap_is_not_dense(self) -> None:
        assert not is_dense(_columns(0, 2))

    def test_duplicate_is_not_dense(self) -> None:
        assert not is_dense(_columns(0, 1, 1))

    def test_not_starting_at_zero(self) -> None:
        assert not is_dense(_columns(1, 2))


class TestReorder:
    def test_move_last_to_second(self) -> None:
        assert reorder(["A", "B", "C", "D"], 3, 1) == ["A", "D", "B", "C"]

    def test_move_first_to_end(self) -> None:
        assert reorder(["A", "B", "C"], 0, 2) == ["B", "C", "A"]

    def test_target_is_clamped(self) -> None:
        assert reorder(["A", "B", "C"], 0, 10) == ["B", "C", "A"]

    def test_input_unchanged(self) -> None:
        items = ["A", "B"]
        reorder(items, 0, 1)
        assert items == ["A", "B"]


def test_next_position_is_length() -> None:
    assert next_position(_columns(0, 1, 2)) == 3
    assert next_position([]) == 0
