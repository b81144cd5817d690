"""Tests for the mutation dispatcher: optimistic apply, persist, reconcile."""

from __future__ import annotations

import asyncio

import pytest

from cardloom.board import (
    BoardLoadError,
    BoardStore,
    BoardValidationError,
    CardRef,
    ColumnNotEmptyError,
    ColumnRef,
    MoveRequest,
    MutationDispatcher,
    NotFoundError,
    PersistenceError,
)
from cardloom.models.board import Board, Priority
from cardloom.models.snapshot import BoardSnapshot
from tests.conftest import BOARD_ID, layout_of


class TestMoves:
    @pytest.mark.asyncio
    async def test_card_move_persists(self, dispatcher, commands) -> None:
        outcome = await dispatcher.move_card("a2", "B", 1)

        assert outcome.ok
        assert commands.calls_to("move_card") == [
            {
                "board_id": BOARD_ID,
                "card_id": "a2",
                "from_column_id": "A",
                "to_column_id": "B",
                "target_index": 1,
            }
        ]
        expected = {"A": ["a1", "a3"], "B": ["b1", "a2", "b2"], "C": []}
        assert layout_of(dispatcher.store.snapshot) == expected
        assert layout_of(commands.snapshot(BOARD_ID)) == expected

    @pytest.mark.asyncio
    async def test_column_move_persists(self, dispatcher, commands) -> None:
        outcome = await dispatcher.move_column("C", 0)

        assert outcome.ok
        order = [c.id for c in commands.snapshot(BOARD_ID).ordered_columns()]
        assert order == ["C", "A", "B"]

    @pytest.mark.asyncio
    async def test_noop_move_issues_no_command(self, dispatcher, commands) -> None:
        outcome = await dispatcher.move_card("a2", "A", 1)

        assert outcome.skipped
        assert outcome.ok
        assert commands.calls == []

    @pytest.mark.asyncio
    async def test_failed_move_rolls_back(self, dispatcher, commands, snapshot) -> None:
        commands.fail_next("move_card")

        outcome = await dispatcher.move_card("a1", "C", 0)

        assert not outcome.ok
        assert isinstance(outcome.error, PersistenceError)
        assert dispatcher.store.snapshot == snapshot
        assert layout_of(commands.snapshot(BOARD_ID)) == layout_of(snapshot)
        assert dispatcher.notifications == [str(outcome.error)]

    @pytest.mark.asyncio
    async def test_move_is_visible_before_persistence(
        self, dispatcher, commands
    ) -> None:
        commands.pause()

        task = dispatcher.submit_request(MoveRequest(CardRef("a1"), "C", 0))

        assert layout_of(dispatcher.store.snapshot)["C"] == ["a1"]
        assert dispatcher.pending == 1
        commands.resume()
        outcome = await task
        assert outcome.ok
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_noop_request_returns_none(self, dispatcher, commands) -> None:
        request = MoveRequest(ColumnRef("A"), BOARD_ID, 0)
        assert dispatcher.submit_request(request) is None
        assert commands.calls == []

    @pytest.mark.asyncio
    async def test_timeout_rolls_back(self, snapshot, commands) -> None:
        notes: list[str] = []
        dispatcher = MutationDispatcher(
            BoardStore(snapshot), commands, notify=notes.append, timeout=0.05
        )
        commands.set_latency("move_column", 5)

        outcome = await dispatcher.move_column("A", 2)

        assert not outcome.ok
        assert "TimeoutError" in str(outcome.error)
        assert dispatcher.store.snapshot == snapshot
        assert len(notes) == 1


class TestRapidMoves:
    @pytest.mark.asyncio
    async def test_moves_apply_in_submission_order(self, dispatcher, commands) -> None:
        commands.pause()

        dispatcher.submit_request(MoveRequest(CardRef("a1"), "B", 0))
        dispatcher.submit_request(MoveRequest(CardRef("a2"), "B", 0))

        assert layout_of(dispatcher.store.snapshot)["B"] == ["a2", "a1", "b1", "b2"]
        commands.resume()
        await dispatcher.wait_idle()

        moved = [call["card_id"] for call in commands.calls_to("move_card")]
        assert moved == ["a1", "a2"]
        assert layout_of(commands.snapshot(BOARD_ID)) == layout_of(
            dispatcher.store.snapshot
        )

    @pytest.mark.asyncio
    async def test_persistence_calls_do_not_overlap(self, dispatcher, commands) -> None:
        commands.pause()

        dispatcher.submit_request(MoveRequest(CardRef("a1"), "B", 0))
        dispatcher.submit_request(MoveRequest(ColumnRef("C"), BOARD_ID, 0))
        await asyncio.sleep(0.01)

        assert [name for name, _ in commands.calls] == ["move_card"]
        assert layout_of(dispatcher.store.snapshot)["B"][0] == "a1"
        commands.resume()
        await dispatcher.wait_idle()

        assert [name for name, _ in commands.calls] == ["move_card", "move_column"]

    @pytest.mark.asyncio
    async def test_second_move_planned_against_first(
        self, dispatcher, commands
    ) -> None:
        """A card moved twice before either ack lands where the second put it."""
        commands.pause()

        dispatcher.submit_request(MoveRequest(CardRef("a1"), "B", 0))
        dispatcher.submit_request(MoveRequest(CardRef("a1"), "C", 0))
        commands.resume()
        await dispatcher.wait_idle()

        calls = commands.calls_to("move_card")
        assert calls[1]["from_column_id"] == "B"
        assert layout_of(commands.snapshot(BOARD_ID))["C"] == ["a1"]
        assert layout_of(dispatcher.store.snapshot)["C"] == ["a1"]

    @pytest.mark.asyncio
    async def test_acks_out_of_order(self, dispatcher, commands) -> None:
        commands.set_latency("move_column", 0.05)

        dispatcher.submit_request(MoveRequest(ColumnRef("C"), BOARD_ID, 0))
        dispatcher.submit_request(MoveRequest(CardRef("b2"), "A", 0))
        await dispatcher.wait_idle()

        assert layout_of(dispatcher.store.snapshot) == layout_of(
            commands.snapshot(BOARD_ID)
        )

    @pytest.mark.asyncio
    async def test_failure_under_stacked_move_reloads(
        self, dispatcher, commands
    ) -> None:
        commands.pause()
        commands.fail_next("move_card")

        dispatcher.submit_request(MoveRequest(CardRef("a1"), "B", 0))
        dispatcher.submit_request(MoveRequest(CardRef("a3"), "C", 0))
        commands.resume()
        await dispatcher.wait_idle()

        expected = {"A": ["a1", "a2"], "B": ["b1", "b2"], "C": ["a3"]}
        assert layout_of(commands.snapshot(BOARD_ID)) == expected
        assert layout_of(dispatcher.store.snapshot) == expected
        assert len(dispatcher.notifications) == 1

    @pytest.mark.asyncio
    async def test_stacked_failures_with_failed_reload_keep_original(
        self, dispatcher, commands, snapshot
    ) -> None:
        """Two dependent moves fail and the refresh fails too."""
        views = []
        dispatcher.store.subscribe(views.append)
        commands.pause()
        commands.fail_next("move_card")
        commands.fail_next("move_card")
        commands.fail_next("load_columns")

        dispatcher.submit_request(MoveRequest(CardRef("a1"), "B", 0))
        dispatcher.submit_request(MoveRequest(CardRef("a1"), "C", 0))
        commands.resume()
        await dispatcher.wait_idle()

        assert dispatcher.store.snapshot == snapshot
        assert layout_of(dispatcher.store.snapshot) == layout_of(snapshot)
        # Two optimistic applies, then one rollback and nothing after it.
        assert len(views) == 3
        for view in views[2:]:
            column_a = next(cv for cv in view.columns if cv.column.id == "A")
            assert [c.id for c in column_a.cards] == ["a1", "a2", "a3"]
        assert len(dispatcher.notifications) == 2

    @pytest.mark.asyncio
    async def test_stacked_create_fails_after_move_failure(
        self, dispatcher, commands, snapshot
    ) -> None:
        commands.pause()
        commands.fail_next("move_card")
        commands.fail_next("create_card")
        commands.fail_next("load_columns")

        dispatcher.submit_request(MoveRequest(CardRef("a1"), "B", 0))
        create = asyncio.create_task(dispatcher.create_card("C", "Late card"))
        await asyncio.sleep(0.01)
        assert [c.title for c in dispatcher.store.snapshot.cards_in("C")] == [
            "Late card"
        ]
        commands.resume()
        await dispatcher.wait_idle()

        with pytest.raises(PersistenceError):
            await create
        assert dispatcher.store.snapshot == snapshot


class TestLoading:
    @pytest.mark.asyncio
    async def test_load_replaces_snapshot(self, commands) -> None:
        dispatcher = MutationDispatcher(BoardStore(BoardSnapshot(BOARD_ID)), commands)

        await dispatcher.load()

        assert layout_of(dispatcher.store.snapshot) == layout_of(
            commands.snapshot(BOARD_ID)
        )

    @pytest.mark.asyncio
    async def test_load_failure(self, dispatcher, commands, snapshot) -> None:
        commands.fail_next("load_cards")

        with pytest.raises(BoardLoadError):
            await dispatcher.load()

        assert dispatcher.store.snapshot is snapshot

    @pytest.mark.asyncio
    async def test_seed_default_columns_on_empty_board(self, commands) -> None:
        await commands.create_board(Board(id="empty", title="Empty"))
        dispatcher = MutationDispatcher(BoardStore(BoardSnapshot("empty")), commands)

        columns = await dispatcher.seed_default_columns()

        assert [c.title for c in columns] == ["To-Do", "In Progress", "Done"]
        assert [c.position for c in columns] == [0, 1, 2]
        persisted = commands.snapshot("empty").ordered_columns()
        assert [c.title for c in persisted] == ["To-Do", "In Progress", "Done"]

    @pytest.mark.asyncio
    async def test_seed_skips_board_with_columns(self, dispatcher, commands) -> None:
        assert await dispatcher.seed_default_columns() == []
        assert commands.calls == []


class TestOtherMutations:
    @pytest.mark.asyncio
    async def test_create_column_appends(self, dispatcher, commands) -> None:
        column = await dispatcher.create_column("Review", wip_limit=3)

        assert column.position == 3
        assert dispatcher.store.snapshot.column(column.id) == column
        assert commands.snapshot(BOARD_ID).column(column.id).wip_limit == 3

    @pytest.mark.asyncio
    async def test_validation_happens_before_mutation(
        self, dispatcher, commands, snapshot
    ) -> None:
        with pytest.raises(BoardValidationError) as exc_info:
            await dispatcher.create_column("   ")

        assert "title" in exc_info.value.field_errors
        assert dispatcher.store.snapshot is snapshot
        assert commands.calls == []

    @pytest.mark.asyncio
    async def test_failed_create_rolls_back_and_raises(
        self, dispatcher, commands, snapshot
    ) -> None:
        commands.fail_next("create_card")

        with pytest.raises(PersistenceError):
            await dispatcher.create_card("A", "New card")

        assert dispatcher.store.snapshot == snapshot

    @pytest.mark.asyncio
    async def test_create_card_with_fields(self, dispatcher, commands) -> None:
        tag = await dispatcher.create_tag("Bug", "#EF4444")

        card = await dispatcher.create_card(
            "C", "Fix it", priority="high", due_date="2026-11-02", tag_ids=[tag.id]
        )

        assert card.position == 0
        assert card.priority is Priority.HIGH
        assert card.tag_ids == (tag.id,)
        assert commands.snapshot(BOARD_ID).card(card.id) == card

    @pytest.mark.asyncio
    async def test_update_card(self, dispatcher, commands) -> None:
        card = await dispatcher.update_card("a1", title="Renamed", description="")

        assert card.title == "Renamed"
        assert card.description is None
        assert commands.snapshot(BOARD_ID).card("a1").title == "Renamed"

    @pytest.mark.asyncio
    async def test_delete_card_renumbers(self, dispatcher, commands) -> None:
        await dispatcher.delete_card("a2")

        cards = commands.snapshot(BOARD_ID).cards_in("A")
        assert [(c.id, c.position) for c in cards] == [("a1", 0), ("a3", 1)]

    @pytest.mark.asyncio
    async def test_delete_non_empty_column_refused(self, dispatcher, commands) -> None:
        with pytest.raises(ColumnNotEmptyError):
            await dispatcher.delete_column("A")
        assert commands.calls == []

    @pytest.mark.asyncio
    async def test_hide_and_show_column(self, dispatcher) -> None:
        await dispatcher.update_column("B", is_enabled=False)
        assert dispatcher.store.view.column_ids() == ["A", "C"]

        await dispatcher.update_column("B", is_enabled=True)
        assert dispatcher.store.view.column_ids() == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_tags_round_trip(self, dispatcher, commands) -> None:
        bug = await dispatcher.create_tag("Bug")
        docs = await dispatcher.create_tag("Docs")

        await dispatcher.set_card_tags("a1", [bug.id, docs.id])
        await dispatcher.update_tag(bug.id, label="Defect")
        await dispatcher.delete_tag(docs.id)

        persisted = commands.snapshot(BOARD_ID)
        assert persisted.card("a1").tag_ids == (bug.id,)
        assert persisted.tag(bug.id).label == "Defect"
        assert dispatcher.store.snapshot.card("a1").tag_ids == (bug.id,)

    @pytest.mark.asyncio
    async def test_update_missing_tag(self, dispatcher) -> None:
        with pytest.raises(NotFoundError):
            await dispatcher.update_tag("nope", label="x")


@pytest.mark.asyncio
async def test_wait_idle_with_nothing_pending(dispatcher) -> None:
    await asyncio.wait_for(dispatcher.wait_idle(), timeout=1)


class TestSubtasks:
    @pytest.mark.asyncio
    async def test_create_appends_and_persists(self, dispatcher, commands) -> None:
        first = await dispatcher.create_subtask("a1", "  Draft  ")
        second = await dispatcher.create_subtask("a1", "Review")

        assert (first.title, first.position) == ("Draft", 0)
        assert second.position == 1
        persisted = commands.snapshot(BOARD_ID).subtasks_of("a1")
        assert [s.title for s in persisted] == ["Draft", "Review"]
        assert dispatcher.store.view.subtasks_of("a1") == tuple(persisted)

    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, dispatcher, commands) -> None:
        with pytest.raises(BoardValidationError):
            await dispatcher.create_subtask("a1", "   ")
        assert commands.calls == []

    @pytest.mark.asyncio
    async def test_update_and_reorder(self, dispatcher, commands) -> None:
        for title in ("one", "two", "three"):
            await dispatcher.create_subtask("a1", title)
        three = dispatcher.store.snapshot.subtasks_of("a1")[2]

        moved = await dispatcher.update_subtask(
            three.id, target_index=0, is_completed=True
        )

        assert moved.position == 0
        assert moved.is_completed
        for source in (dispatcher.store.snapshot, commands.snapshot(BOARD_ID)):
            subtasks = source.subtasks_of("a1")
            assert [s.title for s in subtasks] == ["three", "one", "two"]
            assert [s.position for s in subtasks] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_reorder_without_field_changes(self, dispatcher, commands) -> None:
        for title in ("one", "two"):
            await dispatcher.create_subtask("a1", title)
        one = dispatcher.store.snapshot.subtasks_of("a1")[0]

        await dispatcher.update_subtask(one.id, target_index=5)

        assert commands.calls_to("update_subtask")[-1]["changes"] == {}
        titles = [s.title for s in commands.snapshot(BOARD_ID).subtasks_of("a1")]
        assert titles == ["two", "one"]

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, dispatcher) -> None:
        subtask = await dispatcher.create_subtask("a1", "one")

        with pytest.raises(BoardValidationError):
            await dispatcher.update_subtask(subtask.id)

    @pytest.mark.asyncio
    async def test_delete_renumbers(self, dispatcher, commands) -> None:
        for title in ("one", "two", "three"):
            await dispatcher.create_subtask("a1", title)
        two = dispatcher.store.snapshot.subtasks_of("a1")[1]

        await dispatcher.delete_subtask(two.id)

        persisted = commands.snapshot(BOARD_ID).subtasks_of("a1")
        assert [(s.title, s.position) for s in persisted] == [("one", 0), ("three", 1)]

    @pytest.mark.asyncio
    async def test_failed_create_rolls_back(self, dispatcher, commands) -> None:
        commands.fail_next("create_subtask")

        with pytest.raises(PersistenceError):
            await dispatcher.create_subtask("a1", "one")

        assert dispatcher.store.snapshot.subtasks == ()
        assert len(dispatcher.notifications) == 1

    @pytest.mark.asyncio
    async def test_deleting_card_drops_subtasks(self, dispatcher, commands) -> None:
        await dispatcher.create_subtask("a1", "one")

        await dispatcher.delete_card("a1")

        assert dispatcher.store.snapshot.subtasks == ()
        assert commands.snapshot(BOARD_ID).subtasks == ()


class TestArchive:
    @pytest.mark.asyncio
    async def test_archive_hides_card(self, dispatcher, commands) -> None:
        card = await dispatcher.archive_card("a2")

        assert card.is_archived
        column_a = dispatcher.store.view.columns[0]
        assert [c.id for c in column_a.cards] == ["a1", "a3"]
        assert [c.id for c in dispatcher.store.view.archived_cards] == ["a2"]
        assert commands.snapshot(BOARD_ID).card("a2").is_archived
        assert commands.calls_to("set_card_archived")[0]["archived"] is True

    @pytest.mark.asyncio
    async def test_restore_returns_card_to_its_slot(
        self, dispatcher, commands, snapshot
    ) -> None:
        await dispatcher.archive_card("a2")

        restored = await dispatcher.restore_card("a2")

        assert not restored.is_archived
        assert layout_of(dispatcher.store.snapshot) == layout_of(snapshot)
        assert dispatcher.store.view.archived_cards == ()
        assert not commands.snapshot(BOARD_ID).card("a2").is_archived

    @pytest.mark.asyncio
    async def test_column_of_archived_cards_can_be_deleted(
        self, dispatcher, commands
    ) -> None:
        await dispatcher.archive_card("b1")
        await dispatcher.archive_card("b2")

        await dispatcher.delete_column("B")

        for source in (dispatcher.store.snapshot, commands.snapshot(BOARD_ID)):
            assert [c.id for c in source.ordered_columns()] == ["A", "C"]
            assert source.card("b1") is None

    @pytest.mark.asyncio
    async def test_failed_archive_rolls_back(self, dispatcher, commands) -> None:
        commands.fail_next("set_card_archived")

        with pytest.raises(PersistenceError):
            await dispatcher.archive_card("a1")

        assert not dispatcher.store.snapshot.card("a1").is_archived
