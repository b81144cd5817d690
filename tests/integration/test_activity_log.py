"""Tests for the per-board activity log and schema bootstrap."""

from __future__ import annotations

import pytest

from cardloom import db
from cardloom.board.errors import ColumnNotEmptyError
from cardloom.db.bootstrap import drop_schema, verify_schema
from cardloom.db.engine import get_engine, get_session


class TestActivity:
    async def test_mutations_are_logged(self, board_id: str) -> None:
        card = await db.create_card(board_id, "todo", "Write tests")
        await db.move_card(board_id, card.id, "todo", "doing", 0)

        entries = await db.list_recent_activity(board_id, limit=100)
        moves = [e for e in entries if e.action == "moved"]

        assert len(moves) == 1
        assert moves[0].card_id == card.id
        assert moves[0].detail == {
            "from_column": "todo",
            "to_column": "doing",
            "from": 0,
            "to": 0,
        }

    async def test_limit(self, board_id: str) -> None:
        assert len(await db.list_recent_activity(board_id, limit=2)) == 2

    async def test_failed_mutation_leaves_no_entry(self, board_id: str) -> None:
        await db.create_card(board_id, "doing", "Blocker")
        before = len(await db.list_recent_activity(board_id, limit=100))

        with pytest.raises(ColumnNotEmptyError):
            await db.delete_column(board_id, "doing")

        assert len(await db.list_recent_activity(board_id, limit=100)) == before

    @pytest.mark.usefixtures("db_engine")
    async def test_unknown_action_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown activity action"):
            async with get_session() as session:
                db.record_activity(session, "any", "teleported")


@pytest.mark.usefixtures("db_engine")
class TestSchema:
    async def test_verify_passes_after_create(self) -> None:
        await verify_schema(get_engine())

    async def test_verify_reports_missing_tables(self) -> None:
        await drop_schema(get_engine())

        with pytest.raises(RuntimeError, match="kanban_board"):
            await verify_schema(get_engine())

    async def test_verify_without_engine(self) -> None:
        with pytest.raises(RuntimeError, match="not initialized"):
            await verify_schema(None)

    def test_expected_tables(self) -> None:
        assert db.get_expected_tables() == {
            "kanban_board",
            "kanban_column",
            "kanban_card",
            "kanban_tag",
            "kanban_card_tag",
            "kanban_subtask",
            "kanban_activity",
        }
