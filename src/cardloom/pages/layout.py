"""Shared layout components for Cardloom.

Provides a consistent header and page structure.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

from nicegui import ui

from cardloom.config import get_settings

if TYPE_CHECKING:
    from collections.abc import Iterator


@contextmanager
def page_layout(title: str | None = None) -> Iterator[None]:
    """Context manager for consistent page layout with a header.

    Usage:
        @ui.page("/my-page")
        async def my_page():
            with page_layout("My Page"):
                ui.label("Page content here")

    Args:
        title: Page title shown in header; defaults to the app title.

    Yields:
        Context for page content.
    """
    app_title = get_settings().app.title
    with ui.header().classes("bg-primary items-center q-py-xs"):
        ui.button(icon="view_kanban", on_click=lambda: ui.navigate.to("/")).props(
            "flat color=white"
        ).tooltip("All boards")
        ui.label(title or app_title).classes("text-h6 text-white q-ml-sm")
        ui.element("div").classes("flex-grow")
        if title:
            ui.label(app_title).classes("text-white text-body2 q-mr-md")

    with ui.element("div").classes("q-pa-md w-full"):
        yield
