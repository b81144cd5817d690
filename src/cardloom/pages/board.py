"""Board page: columns and cards with drag-and-drop reordering.

Each client gets its own ``BoardStore``, ``MutationDispatcher`` and
``DragSessionController``. The whole board re-renders from the store's
view whenever the store changes, so optimistic applies and rollbacks look
the same to the renderer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from nicegui import events, ui

from cardloom.board import (
    BoardLoadError,
    BoardStore,
    CardloomError,
    DragSessionController,
    MutationDispatcher,
    NotFoundError,
    PersistenceError,
)
from cardloom.commands import get_board_commands
from cardloom.config import get_settings
from cardloom.models.snapshot import BoardSnapshot
from cardloom.pages.board_drag import (
    PointerDragBridge,
    guarded_drop,
    make_card_area,
    make_draggable_card,
    make_draggable_header,
)
from cardloom.pages.card_display import (
    DUE_STATUS_CLASSES,
    PRIORITY_CLASSES,
    PRIORITY_LABELS,
    due_badge,
    subtask_progress,
    wip_label,
)
from cardloom.pages.dialogs import (
    confirm,
    show_card_dialog,
    show_column_dialog,
    show_tag_dialog,
)
from cardloom.pages.layout import page_layout

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from nicegui import Client

    from cardloom.models.board import Board, Card, Column, Subtask, Tag
    from cardloom.models.snapshot import BoardView, ColumnView

logger = logging.getLogger(__name__)


class BoardPage:
    """Per-client state and rendering for one board."""

    def __init__(self, board: Board, client: Client) -> None:
        self.board = board
        self.client = client
        self.store = BoardStore(BoardSnapshot(board_id=board.id))
        self.dispatcher = MutationDispatcher(
            self.store, get_board_commands(), notify=self._notify_failure
        )
        self.drag = DragSessionController(
            lambda: self.store.snapshot,
            guarded_drop(self.dispatcher.submit_request, self._warn),
            activation_distance=get_settings().board.activation_distance,
        )
        self.drag_bridge = PointerDragBridge(self.drag)
        self.load_error: BoardLoadError | None = None
        self._unsubscribe = self.store.subscribe(self._on_view_changed)

    # ── Lifecycle ────────────────────────────────────────────────────

    async def load(self) -> None:
        """Load the board, creating default columns on an empty one."""
        try:
            await self.dispatcher.load()
        except BoardLoadError as exc:
            self.load_error = exc
            self.render.refresh()
            return
        self.load_error = None
        await self._attempt(self.dispatcher.seed_default_columns())
        self.render.refresh()

    def close(self) -> None:
        self.drag.cancel()
        self._unsubscribe()

    def _on_view_changed(self, _view: BoardView) -> None:
        self.render.refresh()

    def _notify_failure(self, message: str) -> None:
        # Move failures arrive from background tasks with no slot context.
        with self.client:
            ui.notify(message, type="negative")

    def _warn(self, message: str) -> None:
        ui.notify(message, type="warning")

    async def _attempt(self, action: Awaitable[object]) -> None:
        try:
            await action
        except PersistenceError:
            logger.debug("Mutation failed on board %s", self.board.id)
        except CardloomError as exc:
            self._warn(str(exc))

    def on_key(self, e: events.KeyEventArguments) -> None:
        if e.key.escape and e.action.keydown:
            self.drag.cancel()

    # ── Rendering ────────────────────────────────────────────────────

    @ui.refreshable
    def render(self) -> None:
        if self.load_error is not None:
            self._render_load_error(self.load_error)
            return
        view = self.store.view
        self._render_toolbar(view)
        with ui.row().classes("w-full items-start gap-4 no-wrap overflow-x-auto"):
            for column_view in view.columns:
                self._render_column(column_view, view)
            ui.button("Add column", icon="add", on_click=self.add_column).props(
                'flat data-testid="add-column-btn"'
            )

    def _render_load_error(self, error: BoardLoadError) -> None:
        with ui.card().classes("q-pa-md"):
            ui.label("This board could not be loaded.").classes("text-h6")
            ui.label(str(error)).classes("text-sm text-grey-7")
            ui.button("Retry", icon="refresh", on_click=self.load).props(
                'color=primary data-testid="retry-load-btn"'
            )

    def _render_toolbar(self, view: BoardView) -> None:
        with ui.row().classes("w-full items-center gap-2 mb-2"):
            for tag in view.tags:
                self._render_tag_chip(tag)
            ui.button("Tag", icon="add", on_click=self.add_tag).props("flat dense")
            ui.element("div").classes("flex-grow")
            if view.archived_cards:
                with ui.button(
                    f"Archived ({len(view.archived_cards)})", icon="inventory_2"
                ).props("flat dense"):
                    with ui.menu():
                        for card in view.archived_cards:
                            ui.menu_item(
                                f"Restore {card.title}",
                                on_click=lambda c=card: self._attempt(
                                    self.dispatcher.restore_card(c.id)
                                ),
                            )
            if view.hidden_columns:
                with ui.button(
                    f"Hidden columns ({len(view.hidden_columns)})", icon="visibility"
                ).props("flat dense"):
                    with ui.menu():
                        for column in view.hidden_columns:
                            ui.menu_item(
                                f"Show {column.title}",
                                on_click=lambda c=column: self._attempt(
                                    self.dispatcher.update_column(
                                        c.id, is_enabled=True
                                    )
                                ),
                            )

    def _render_tag_chip(self, tag: Tag) -> None:
        with ui.chip(tag.label, color=tag.color or "grey-4").props("dense"):
            with ui.menu().props("context-menu"):
                ui.menu_item("Edit", on_click=lambda: self.edit_tag(tag))
                ui.menu_item("Delete", on_click=lambda: self.delete_tag(tag))

    def _render_column(self, column_view: ColumnView, view: BoardView) -> None:
        column = column_view.column
        with (
            ui.card()
            .classes("w-72 shrink-0 bg-grey-1 q-pa-sm gap-2")
            .style(f"border-top: 4px solid {column.display_color}")
            .props(f'data-drag-body data-testid="column-{column.id}"')
        ):
            with ui.row().classes("w-full items-center no-wrap") as header:
                ui.label(column.title).classes("font-semibold flex-grow truncate")
                count = ui.badge(wip_label(len(column_view.cards), column.wip_limit))
                if column_view.is_over_wip_limit:
                    count.props("color=negative")
                else:
                    count.props("color=grey-6")
                with ui.button(icon="more_horiz").props("flat round dense"):
                    with ui.menu():
                        ui.menu_item("Edit", on_click=lambda: self.edit_column(column))
                        ui.menu_item(
                            "Hide",
                            on_click=lambda: self._attempt(
                                self.dispatcher.update_column(
                                    column.id, is_enabled=False
                                )
                            ),
                        )
                        ui.menu_item(
                            "Delete", on_click=lambda: self.delete_column(column)
                        )
            make_draggable_header(header, column.id)

            with ui.column().classes("w-full gap-2 min-h-[3rem]") as area:
                for card in column_view.cards:
                    self._render_card(card, view.tags, view.subtasks_of(card.id))
            make_card_area(area, column.id)

            ui.button(
                "Add card", icon="add", on_click=lambda: self.add_card(column)
            ).props("flat dense no-caps").classes("w-full")

    def _render_card(
        self, card: Card, tags: tuple[Tag, ...], subtasks: tuple[Subtask, ...]
    ) -> None:
        by_id = {tag.id: tag for tag in tags}
        with (
            ui.card()
            .classes("w-full q-pa-sm gap-1 bg-white")
            .props(f'data-testid="card-{card.id}"') as element
        ):
            element.on("click", lambda: self.edit_card(card))
            ui.label(card.title).classes("text-sm font-medium")
            with ui.row().classes("gap-1 items-center"):
                ui.label(PRIORITY_LABELS[card.priority]).classes(
                    f"text-xs px-2 rounded {PRIORITY_CLASSES[card.priority]}"
                )
                badge = due_badge(card.due_date)
                if badge is not None:
                    ui.label(badge.display).classes(
                        f"text-xs px-2 rounded {DUE_STATUS_CLASSES[badge.status]}"
                    ).tooltip(badge.formatted_date)
                progress = subtask_progress(subtasks)
                if progress is not None:
                    ui.label(progress).classes("text-xs px-2 rounded bg-grey-2")
                for tag_id in card.tag_ids:
                    tag = by_id.get(tag_id)
                    if tag is not None:
                        ui.chip(tag.label, color=tag.color or "grey-4").props(
                            "dense square"
                        ).classes("text-xs")
        make_draggable_card(element, card.id)

    # ── Actions ──────────────────────────────────────────────────────

    async def add_column(self) -> None:
        async def save(values: dict[str, Any]) -> Column:
            return await self.dispatcher.create_column(**values)

        await show_column_dialog(save)

    async def edit_column(self, column: Column) -> None:
        async def save(values: dict[str, Any]) -> Column:
            return await self.dispatcher.update_column(column.id, **values)

        await show_column_dialog(save, column)

    async def delete_column(self, column: Column) -> None:
        if await confirm(f"Delete column {column.title!r}?"):
            await self._attempt(self.dispatcher.delete_column(column.id))

    async def add_card(self, column: Column) -> None:
        async def save(values: dict[str, Any]) -> Card:
            return await self.dispatcher.create_card(column.id, **values)

        await show_card_dialog(save, self.store.view.tags)

    async def edit_card(self, card: Card) -> None:
        async def save(values: dict[str, Any]) -> Card:
            tag_ids = values.pop("tag_ids")
            updated = await self.dispatcher.update_card(card.id, **values)
            if list(tag_ids) != list(updated.tag_ids):
                updated = await self.dispatcher.set_card_tags(card.id, tag_ids)
            return updated

        with ui.dialog() as actions, ui.card():
            ui.button("Edit", icon="edit", on_click=lambda: actions.submit("edit"))
            for label, icon, value in (
                ("Subtasks", "checklist", "subtasks"),
                ("Archive", "inventory_2", "archive"),
            ):
                ui.button(
                    label, icon=icon, on_click=lambda v=value: actions.submit(v)
                ).props("flat")
            ui.button(
                "Delete", icon="delete", on_click=lambda: actions.submit("delete")
            ).props("color=negative flat")
        actions.open()
        choice = await actions
        if choice == "edit":
            await show_card_dialog(save, self.store.view.tags, card)
        elif choice == "subtasks":
            await self.edit_subtasks(card)
        elif choice == "archive":
            await self._attempt(self.dispatcher.archive_card(card.id))
        elif choice == "delete" and await confirm(f"Delete card {card.title!r}?"):
            await self._attempt(self.dispatcher.delete_card(card.id))

    async def edit_subtasks(self, card: Card) -> None:
        """Checklist dialog: add, tick, reorder and delete a card's subtasks."""

        async def change(action: Awaitable[object]) -> None:
            await self._attempt(action)
            checklist.refresh()

        @ui.refreshable
        def checklist() -> None:
            subtasks = self.store.view.subtasks_of(card.id)
            if not subtasks:
                ui.label("No subtasks yet.").classes("text-sm text-grey-7")
            for index, subtask in enumerate(subtasks):
                with ui.row().classes("w-full items-center no-wrap gap-1"):
                    ui.checkbox(
                        subtask.title,
                        value=subtask.is_completed,
                        on_change=lambda e, s=subtask: change(
                            self.dispatcher.update_subtask(s.id, is_completed=e.value)
                        ),
                    ).classes("flex-grow")
                    up = ui.button(
                        icon="arrow_upward",
                        on_click=lambda s=subtask, i=index: change(
                            self.dispatcher.update_subtask(s.id, target_index=i - 1)
                        ),
                    ).props("flat round dense")
                    up.set_enabled(index > 0)
                    down = ui.button(
                        icon="arrow_downward",
                        on_click=lambda s=subtask, i=index: change(
                            self.dispatcher.update_subtask(s.id, target_index=i + 1)
                        ),
                    ).props("flat round dense")
                    down.set_enabled(index < len(subtasks) - 1)
                    ui.button(
                        icon="delete",
                        on_click=lambda s=subtask: change(
                            self.dispatcher.delete_subtask(s.id)
                        ),
                    ).props("flat round dense color=negative")

        async def add() -> None:
            title = new_title.value
            new_title.value = ""
            await change(self.dispatcher.create_subtask(card.id, title))

        # Outside the refreshable board so a re-render does not remove it.
        with (
            self.client.content,
            ui.dialog() as dialog,
            ui.card().classes("w-[28rem]"),
        ):
            ui.label(card.title).classes("text-lg font-bold mb-2")
            with ui.column().classes("w-full gap-1"):
                checklist()
            with ui.row().classes("w-full items-center no-wrap"):
                new_title = ui.input("New subtask").classes("flex-grow")
                new_title.on("keydown.enter", add)
                ui.button(icon="add", on_click=add).props("flat round")
            with ui.row().classes("w-full justify-end"):
                ui.button("Close", on_click=dialog.close).props("flat")
        dialog.open()
        await dialog

    async def add_tag(self) -> None:
        async def save(values: dict[str, Any]) -> Tag:
            return await self.dispatcher.create_tag(**values)

        await show_tag_dialog(save)

    async def edit_tag(self, tag: Tag) -> None:
        async def save(values: dict[str, Any]) -> Tag:
            return await self.dispatcher.update_tag(tag.id, **values)

        await show_tag_dialog(save, tag)

    async def delete_tag(self, tag: Tag) -> None:
        if await confirm(f"Delete tag {tag.label!r}? It is removed from every card."):
            await self._attempt(self.dispatcher.delete_tag(tag.id))


@ui.page("/board/{board_id}")
async def board_page(board_id: str) -> None:
    """Render one board."""
    try:
        board = await get_board_commands().load_board(board_id)
    except NotFoundError:
        with page_layout("Board not found"):
            ui.label(f"There is no board with id {board_id}.").classes("text-grey-7")
            ui.button("All boards", on_click=lambda: ui.navigate.to("/"))
        return

    await ui.context.client.connected()
    client = ui.context.client
    page = BoardPage(board, client)
    ui.keyboard(on_key=page.on_key, ignore=["input", "textarea", "select"])
    client.on_disconnect(page.close)

    title = f"{board.emoji} {board.title}" if board.emoji else board.title
    with page_layout(title):
        with ui.element("div").props("data-board-root").classes("w-full"):
            page.render()
    page.drag_bridge.attach()
    await page.load()
