"""Index page: every board, with create, edit and delete."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from nicegui import ui

from cardloom.board import catalog
from cardloom.commands import get_board_commands
from cardloom.pages.dialogs import confirm, show_board_dialog
from cardloom.pages.layout import page_layout

if TYPE_CHECKING:
    from cardloom.models.board import Board

logger = logging.getLogger(__name__)


def _board_tile(board: Board, on_edit: Any, on_delete: Any) -> None:
    with (
        ui.card()
        .classes("w-64 cursor-pointer hover:shadow-lg")
        .props(f'data-testid="board-{board.id}"') as tile
    ):
        tile.on("click", lambda: ui.navigate.to(f"/board/{board.id}"))
        with ui.row().classes("w-full items-center no-wrap"):
            if board.emoji:
                ui.label(board.emoji).classes("text-2xl")
            else:
                ui.icon("folder", color=board.color or "primary").classes("text-2xl")
            ui.label(board.title).classes("text-lg font-semibold flex-grow truncate")
            with ui.button(icon="more_vert").props("flat round dense").on(
                "click.stop", lambda: None
            ):
                with ui.menu():
                    ui.menu_item("Edit", on_click=lambda: on_edit(board))
                    ui.menu_item("Delete", on_click=lambda: on_delete(board))
        if board.description:
            ui.label(board.description).classes("text-sm text-grey-7 line-clamp-2")


@ui.page("/")
async def index_page() -> None:
    """List boards and manage them."""
    commands = get_board_commands()

    @ui.refreshable
    async def board_list() -> None:
        boards = await commands.load_boards()
        if not boards:
            ui.label("No boards yet. Create one to get started.").classes(
                "text-grey-7"
            )
            return
        with ui.row().classes("gap-4"):
            for board in boards:
                _board_tile(board, edit_board, delete_board)

    async def new_board() -> None:
        async def save(values: dict[str, Any]) -> Board:
            return await catalog.create_board(commands, **values)

        board = await show_board_dialog(save)
        if board is not None:
            ui.navigate.to(f"/board/{board.id}")

    async def edit_board(board: Board) -> None:
        async def save(values: dict[str, Any]) -> bool:
            await catalog.rename_board(
                commands, board.id, values["title"], values["description"]
            )
            if values["icon"] != board.icon:
                await catalog.update_board_icon(commands, board.id, values["icon"])
            return True

        if await show_board_dialog(save, board):
            board_list.refresh()

    async def delete_board(board: Board) -> None:
        if not await confirm(f"Delete board {board.title!r} and everything on it?"):
            return
        await catalog.delete_board(commands, board.id)
        ui.notify(f"Deleted {board.title}")
        board_list.refresh()

    with page_layout():
        with ui.row().classes("w-full items-center mb-4"):
            ui.label("Boards").classes("text-2xl font-bold flex-grow")
            ui.button("New board", icon="add", on_click=new_board).props(
                'color=primary data-testid="new-board-btn"'
            )
        await board_list()
