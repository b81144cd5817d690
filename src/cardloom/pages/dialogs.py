"""Reusable dialog components for the board pages.

Form dialogs take an async ``save`` callback. Validation errors raised by
it are shown inside the dialog, which stays open; any other outcome closes
the dialog and returns the callback's result (None if it failed).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from nicegui import ui

from cardloom.board.errors import BoardValidationError, PersistenceError
from cardloom.models.board import BOARD_ICONS, COLUMN_ICONS, Priority
from cardloom.pages.card_display import PRIORITY_LABELS

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from cardloom.models.board import Board, Card, Column, Tag

logger = logging.getLogger(__name__)

type SaveCallback = Callable[[dict[str, Any]], Awaitable[object]]

_FIELD_LABELS = {
    "__root__": "",
    "title": "Title",
    "label": "Label",
    "wip_limit": "WIP limit",
    "color": "Colour",
    "icon": "Icon",
    "emoji": "Emoji",
    "due_date": "Due date",
    "priority": "Priority",
    "description": "Description",
}


def _error_text(field: str, message: str) -> str:
    label = _FIELD_LABELS.get(field, field)
    return f"{label}: {message}" if label else message


def _int_or_none(value: float | None) -> int | None:
    return None if value is None else int(value)


class _Form:
    """Dialog chrome shared by the form dialogs."""

    def __init__(self, dialog: ui.dialog, save: SaveCallback) -> None:
        self.dialog = dialog
        self._save = save
        self.errors = ui.column().classes("w-full gap-0")

    async def submit(self, values: dict[str, Any]) -> None:
        self.errors.clear()
        try:
            result = await self._save(values)
        except BoardValidationError as exc:
            problems = exc.field_errors or {"__root__": str(exc)}
            with self.errors:
                for field, message in problems.items():
                    ui.label(_error_text(field, message)).classes(
                        "text-negative text-sm"
                    )
            return
        except PersistenceError:
            # The dispatcher has already notified the user.
            logger.debug("Dialog save failed; closing")
            self.dialog.submit(None)
            return
        self.dialog.submit(result)


def _buttons(dialog: ui.dialog, label: str, on_save: Callable[[], Any]) -> None:
    with ui.row().classes("w-full justify-end gap-2"):
        ui.button("Cancel", on_click=lambda: dialog.submit(None)).props("flat")
        ui.button(label, on_click=on_save).props('color=primary data-testid="save-btn"')


def _due_date_input(value: str) -> ui.input:
    with ui.input("Due date", value=value).props("clearable") as due:
        with ui.menu().props("no-parent-event") as menu:
            ui.date().bind_value(due)
        with due.add_slot("append"):
            ui.icon("edit_calendar").on("click", menu.open).classes("cursor-pointer")
    return due


async def show_board_dialog(save: SaveCallback, board: Board | None = None) -> object:
    """Create or edit a board's title, description, icon and emoji."""
    with ui.dialog() as dialog, ui.card().classes("w-96"):
        ui.label("Edit board" if board else "New board").classes(
            "text-lg font-bold mb-2"
        )
        title = ui.input("Title", value=board.title if board else "").classes(
            "w-full"
        )
        description = ui.textarea(
            "Description", value=(board.description or "") if board else ""
        ).classes("w-full")
        icon = ui.select(
            list(BOARD_ICONS),
            value=board.icon if board else BOARD_ICONS[0],
            label="Icon",
        ).classes("w-full")
        # Emoji is chosen once, at creation.
        emoji = None if board else ui.input("Emoji").classes("w-full")
        form = _Form(dialog, save)

        def values() -> dict[str, Any]:
            result = {
                "title": title.value,
                "description": description.value,
                "icon": icon.value,
            }
            if emoji is not None:
                result["emoji"] = emoji.value
            return result

        _buttons(
            dialog, "Save" if board else "Create", lambda: form.submit(values())
        )

    dialog.open()
    return await dialog


async def show_column_dialog(
    save: SaveCallback, column: Column | None = None
) -> object:
    """Create or edit a column."""
    with ui.dialog() as dialog, ui.card().classes("w-96"):
        ui.label("Edit column" if column else "New column").classes(
            "text-lg font-bold mb-2"
        )
        title = ui.input("Title", value=column.title if column else "").classes(
            "w-full"
        )
        wip_limit = ui.number(
            "WIP limit",
            value=column.wip_limit if column else None,
            min=1,
            precision=0,
        ).classes("w-full")
        color = ui.color_input(
            "Colour", value=(column.color or "") if column else ""
        ).classes("w-full")
        icon = ui.select(
            {"": "None", **{name: name for name in COLUMN_ICONS}},
            value=(column.icon or "") if column else "",
            label="Icon",
        ).classes("w-full")
        enabled = ui.switch("Visible", value=column.is_enabled if column else True)
        form = _Form(dialog, save)
        _buttons(
            dialog,
            "Save" if column else "Add column",
            lambda: form.submit(
                {
                    "title": title.value,
                    "wip_limit": _int_or_none(wip_limit.value),
                    "color": color.value or None,
                    "icon": icon.value or None,
                    "is_enabled": enabled.value,
                }
            ),
        )

    dialog.open()
    return await dialog


async def show_card_dialog(
    save: SaveCallback, tags: Sequence[Tag] = (), card: Card | None = None
) -> object:
    """Create or edit a card, including its tags."""
    tag_options = {tag.id: tag.label for tag in tags}
    with ui.dialog() as dialog, ui.card().classes("w-[28rem]"):
        ui.label("Edit card" if card else "New card").classes("text-lg font-bold mb-2")
        title = ui.input("Title", value=card.title if card else "").classes("w-full")
        description = ui.textarea(
            "Description", value=(card.description or "") if card else ""
        ).classes("w-full")
        priority = ui.select(
            {p.value: PRIORITY_LABELS[p] for p in Priority},
            value=(card.priority if card else Priority.MEDIUM).value,
            label="Priority",
        ).classes("w-full")
        due = _due_date_input(
            card.due_date.isoformat() if card and card.due_date else ""
        ).classes("w-full")
        selected_tags = ui.select(
            tag_options,
            value=[t for t in card.tag_ids if t in tag_options] if card else [],
            multiple=True,
            label="Tags",
        ).props("use-chips").classes("w-full")
        form = _Form(dialog, save)
        _buttons(
            dialog,
            "Save" if card else "Add card",
            lambda: form.submit(
                {
                    "title": title.value,
                    "description": description.value,
                    "priority": priority.value,
                    "due_date": due.value or None,
                    "tag_ids": list(selected_tags.value or []),
                }
            ),
        )

    dialog.open()
    return await dialog


async def show_tag_dialog(save: SaveCallback, tag: Tag | None = None) -> object:
    with ui.dialog() as dialog, ui.card().classes("w-80"):
        ui.label("Edit tag" if tag else "New tag").classes("text-lg font-bold mb-2")
        label = ui.input("Label", value=tag.label if tag else "").classes("w-full")
        color = ui.color_input("Colour", value=(tag.color or "") if tag else "")
        form = _Form(dialog, save)
        _buttons(
            dialog,
            "Save" if tag else "Add tag",
            lambda: form.submit({"label": label.value, "color": color.value or None}),
        )

    dialog.open()
    return await dialog


async def confirm(message: str, confirm_label: str = "Delete") -> bool:
    """Ask a yes/no question.

    Returns:
        True if the user confirmed.
    """
    with ui.dialog() as dialog, ui.card().classes("w-96"):
        ui.label(message).classes("text-body1 mb-2")
        with ui.row().classes("w-full justify-end gap-2"):
            ui.button("Cancel", on_click=lambda: dialog.submit(False)).props("flat")
            ui.button(confirm_label, on_click=lambda: dialog.submit(True)).props(
                'color=negative data-testid="confirm-btn"'
            )

    dialog.open()
    return bool(await dialog)
