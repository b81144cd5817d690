"""Tests for card display helpers (due-date badges, WIP labels)."""

from __future__ import annotations

from datetime import date

import pytest

from cardloom.models.board import Subtask
from cardloom.pages.card_display import (
    DueStatus,
    due_badge,
    subtask_progress,
    wip_label,
)

TODAY = date(2026, 3, 10)


class TestDueBadge:
    def test_no_due_date(self) -> None:
        assert due_badge(None, TODAY) is None

    def test_overdue_shows_bare_date(self) -> None:
        badge = due_badge(date(2026, 3, 8), TODAY)

        assert badge.status is DueStatus.OVERDUE
        assert badge.display == "Mar 08"
        assert badge.days_until == -2

    def test_today(self) -> None:
        badge = due_badge(TODAY, TODAY)
        assert (badge.status, badge.display) == (DueStatus.TODAY, "Due today")

    def test_tomorrow(self) -> None:
        badge = due_badge(date(2026, 3, 11), TODAY)
        assert (badge.status, badge.display) == (DueStatus.SOON, "Due tomorrow")

    @pytest.mark.parametrize(
        ("day", "text"), [(12, "Due in 2 days"), (13, "Due in 3 days")]
    )
    def test_within_three_days(self, day: int, text: str) -> None:
        badge = due_badge(date(2026, 3, day), TODAY)
        assert (badge.status, badge.display) == (DueStatus.SOON, text)

    def test_later(self) -> None:
        badge = due_badge(date(2026, 4, 1), TODAY)

        assert badge.status is DueStatus.UPCOMING
        assert badge.display == "Due Apr 01"
        assert badge.formatted_date == "Apr 01"


class TestWipLabel:
    def test_without_limit(self) -> None:
        assert wip_label(4, None) == "4"

    def test_with_limit(self) -> None:
        assert wip_label(4, 3) == "4 / 3"


def _subtask(subtask_id: str, *, done: bool) -> Subtask:
    return Subtask(subtask_id, "board-1", "a1", subtask_id, is_completed=done)


class TestSubtaskProgress:
    def test_no_subtasks(self) -> None:
        assert subtask_progress(()) is None

    def test_counts_completed(self) -> None:
        subtasks = [
            _subtask("s1", done=True),
            _subtask("s2", done=False),
            _subtask("s3", done=False),
        ]

        assert subtask_progress(subtasks) == "1/3"
