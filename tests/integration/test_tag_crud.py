"""Tests for board-scoped tags and card tag assignment."""

from __future__ import annotations

import pytest

from cardloom import db
from cardloom.board.errors import NotFoundError


class TestTags:
    async def test_listed_by_label_case_insensitive(self, board_id: str) -> None:
        for label in ("bug", "Alpha", "chore"):
            await db.create_tag(board_id, label)

        assert [t.label for t in await db.list_tags(board_id)] == [
            "Alpha",
            "bug",
            "chore",
        ]

    async def test_create_on_missing_board(self, board_id: str) -> None:
        with pytest.raises(NotFoundError):
            await db.create_tag("missing", "bug")

    async def test_update(self, board_id: str) -> None:
        tag = await db.create_tag(board_id, "bug", tag_id="bug")

        updated = await db.update_tag(board_id, tag.id, {"color": "#FF0000"})

        assert (updated.label, updated.color) == ("bug", "#FF0000")

    async def test_update_on_other_board(self, board_id: str) -> None:
        await db.create_tag(board_id, "bug", tag_id="bug")
        other = await db.create_board("Other")

        with pytest.raises(NotFoundError):
            await db.update_tag(other.id, "bug", {"label": "stolen"})

    async def test_delete_missing_returns_false(self, board_id: str) -> None:
        assert await db.delete_tag(board_id, "ghost") is False


class TestCardTags:
    async def test_assignment_is_deduplicated(self, board_id: str) -> None:
        await db.create_tag(board_id, "bug", tag_id="bug")
        await db.create_tag(board_id, "ui", tag_id="ui")
        card = await db.create_card(board_id, "todo", "Fix layout")

        stored = await db.set_card_tags(board_id, card.id, ["ui", "bug", "ui"])

        assert stored == ["ui", "bug"]
        assert await db.card_tag_map(board_id) == {card.id: ["bug", "ui"]}

    async def test_replace_with_empty(self, board_id: str) -> None:
        await db.create_tag(board_id, "bug", tag_id="bug")
        card = await db.create_card(board_id, "todo", "Fix", tag_ids=["bug"])

        await db.set_card_tags(board_id, card.id, [])

        assert await db.card_tag_map(board_id) == {}

    async def test_tag_from_other_board_rejected(self, board_id: str) -> None:
        other = await db.create_board("Other")
        await db.create_tag(other.id, "foreign", tag_id="foreign")
        card = await db.create_card(board_id, "todo", "Fix")

        with pytest.raises(NotFoundError):
            await db.set_card_tags(board_id, card.id, ["foreign"])

    async def test_deleting_tag_unassigns_it(self, board_id: str) -> None:
        await db.create_tag(board_id, "bug", tag_id="bug")
        await db.create_tag(board_id, "ui", tag_id="ui")
        card = await db.create_card(board_id, "todo", "Fix", tag_ids=["bug", "ui"])

        assert await db.delete_tag(board_id, "bug") is True

        assert await db.card_tag_map(board_id) == {card.id: ["ui"]}

    async def test_deleting_card_removes_assignments(self, board_id: str) -> None:
        await db.create_tag(board_id, "bug", tag_id="bug")
        card = await db.create_card(board_id, "todo", "Fix", tag_ids=["bug"])

        await db.delete_card(board_id, card.id)

        assert await db.card_tag_map(board_id) == {}
        assert [t.id for t in await db.list_tags(board_id)] == ["bug"]
