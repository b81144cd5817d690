"""Tests for board persistence and cascade delete."""

from __future__ import annotations

import pytest
from sqlmodel import select

from cardloom import db
from cardloom.board.errors import NotFoundError
from cardloom.db.engine import get_session
from cardloom.db.models import KanbanActivity, KanbanCard, KanbanColumn, KanbanTag

pytestmark = pytest.mark.usefixtures("db_engine")


class TestCreateBoard:
    async def test_strips_title_and_defaults_icon(self) -> None:
        board = await db.create_board("  Roadmap  ")

        stored = await db.get_board(board.id)
        assert stored is not None
        assert stored.title == "Roadmap"
        assert stored.icon == "Folder"
        assert stored.created_at is not None

    async def test_explicit_id(self) -> None:
        board = await db.create_board("Sprint", board_id="sprint-1", emoji="🚀")

        assert board.id == "sprint-1"
        assert (await db.get_board("sprint-1")).emoji == "🚀"

    async def test_records_activity(self) -> None:
        board = await db.create_board("Logged")

        entries = await db.list_recent_activity(board.id)

        assert [(e.action, e.detail) for e in entries] == [
            ("created", {"title": "Logged"})
        ]


class TestListBoards:
    async def test_most_recently_updated_first(self) -> None:
        first = await db.create_board("First")
        second = await db.create_board("Second")

        await db.rename_board(first.id, "First again")

        titles = [b.title for b in await db.list_boards()]
        assert titles == ["First again", second.title]

    async def test_empty(self) -> None:
        assert await db.list_boards() == []


class TestUpdateBoard:
    async def test_rename(self, board_id: str) -> None:
        board = await db.rename_board(board_id, " Renamed ", "About it")
        assert (board.title, board.description) == ("Renamed", "About it")

    async def test_rename_missing(self) -> None:
        with pytest.raises(NotFoundError):
            await db.rename_board("missing", "x")

    async def test_update_icon(self, board_id: str) -> None:
        board = await db.update_board_icon(board_id, "Rocket")
        assert board.icon == "Rocket"

    async def test_update_icon_missing(self) -> None:
        with pytest.raises(NotFoundError):
            await db.update_board_icon("missing", "Rocket")


class TestDeleteBoard:
    async def test_missing_returns_false(self) -> None:
        assert await db.delete_board("missing") is False

    async def test_cascades_to_children(self, board_id: str) -> None:
        tag = await db.create_tag(board_id, "bug")
        await db.create_card(board_id, "todo", "Fix it", tag_ids=[tag.id])

        assert await db.delete_board(board_id) is True

        assert await db.get_board(board_id) is None
        async with get_session() as session:
            for model in (KanbanColumn, KanbanCard, KanbanTag, KanbanActivity):
                rows = await session.exec(
                    select(model).where(model.board_id == board_id)
                )
                assert rows.all() == [], model.__name__
        assert await db.card_tag_map(board_id) == {}
