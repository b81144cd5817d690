"""Input schemas for board mutations.

Every create/update goes through one of these pydantic models before
anything touches the cache. ``validate()`` turns pydantic's error into a
``BoardValidationError`` carrying per-field messages for the form.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Self

import emoji as emoji_lib
import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cardloom.board.errors import BoardValidationError
from cardloom.models.board import (
    BOARD_ICONS,
    COLUMN_ICONS,
    DEFAULT_BOARD_ICON,
    Priority,
)

TITLE_MAX_LENGTH = 200
TAG_LABEL_MAX_LENGTH = 100

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _optional_text(value: str | None) -> str | None:
    """Blank strings mean "not set"."""
    if value is None or not value:
        return None
    return value


def _hex_color(value: str | None) -> str | None:
    value = _optional_text(value)
    if value is not None and not _HEX_COLOR.match(value):
        msg = "Colour must be a hex value such as #6366F1"
        raise ValueError(msg)
    return value


def _column_icon(value: str | None) -> str | None:
    value = _optional_text(value)
    if value is not None and value not in COLUMN_ICONS:
        msg = f"Unknown column icon: {value}"
        raise ValueError(msg)
    return value


class _Input(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid", frozen=True)


class _Update(_Input):
    """Partial update: only explicitly passed fields are applied."""

    @model_validator(mode="after")
    def _require_a_field(self) -> Self:
        if not self.model_fields_set:
            msg = "At least one field must be provided"
            raise ValueError(msg)
        return self

    def changes(self) -> dict[str, Any]:
        """The explicitly set fields and their validated values."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# ── Boards ───────────────────────────────────────────────────────────


class BoardInput(_Input):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = None
    icon: str = DEFAULT_BOARD_ICON
    emoji: str | None = None
    color: str | None = None
    workspace_id: str | None = None

    _description = field_validator("description")(_optional_text)
    _color = field_validator("color")(_hex_color)

    @field_validator("icon")
    @classmethod
    def _known_icon(cls, value: str) -> str:
        if not value:
            return DEFAULT_BOARD_ICON
        if value not in BOARD_ICONS:
            msg = f"Unknown board icon: {value}"
            raise ValueError(msg)
        return value

    @field_validator("emoji")
    @classmethod
    def _single_emoji(cls, value: str | None) -> str | None:
        value = _optional_text(value)
        if value is not None and not emoji_lib.is_emoji(value):
            msg = "Emoji must be a single emoji character"
            raise ValueError(msg)
        return value


class BoardRename(_Input):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = None

    _description = field_validator("description")(_optional_text)


# ── Columns ──────────────────────────────────────────────────────────


class ColumnInput(_Input):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    wip_limit: int | None = Field(default=None, ge=1)
    color: str | None = None
    icon: str | None = None
    is_enabled: bool = True

    _color = field_validator("color")(_hex_color)
    _icon = field_validator("icon")(_column_icon)


class ColumnUpdate(_Update):
    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    wip_limit: int | None = Field(default=None, ge=1)
    color: str | None = None
    icon: str | None = None
    is_enabled: bool | None = None

    _color = field_validator("color")(_hex_color)
    _icon = field_validator("icon")(_column_icon)

    @model_validator(mode="after")
    def _no_null_required_fields(self) -> Self:
        for name in ("title", "is_enabled"):
            if name in self.model_fields_set and getattr(self, name) is None:
                msg = f"{name} cannot be cleared"
                raise ValueError(msg)
        return self


# ── Cards ────────────────────────────────────────────────────────────


class CardInput(_Input):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = None
    priority: Priority = Priority.MEDIUM
    due_date: date | None = None
    tag_ids: tuple[str, ...] = ()

    _description = field_validator("description")(_optional_text)


class CardUpdate(_Update):
    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = None
    priority: Priority | None = None
    due_date: date | None = None

    _description = field_validator("description")(_optional_text)

    @model_validator(mode="after")
    def _no_null_required_fields(self) -> Self:
        for name in ("title", "priority"):
            if name in self.model_fields_set and getattr(self, name) is None:
                msg = f"{name} cannot be cleared"
                raise ValueError(msg)
        return self


# ── Subtasks ─────────────────────────────────────────────────────────


class SubtaskInput(_Input):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)


class SubtaskUpdate(_Update):
    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    is_completed: bool | None = None

    @model_validator(mode="after")
    def _no_null_fields(self) -> Self:
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                msg = f"{name} cannot be cleared"
                raise ValueError(msg)
        return self


# ── Tags ─────────────────────────────────────────────────────────────


class TagInput(_Input):
    label: str = Field(min_length=1, max_length=TAG_LABEL_MAX_LENGTH)
    color: str | None = None

    _color = field_validator("color")(_hex_color)


class TagUpdate(_Update):
    label: str | None = Field(
        default=None, min_length=1, max_length=TAG_LABEL_MAX_LENGTH
    )
    color: str | None = None

    _color = field_validator("color")(_hex_color)


def validate[M: BaseModel](model: type[M], **values: Any) -> M:
    """Build ``model`` from ``values`` or raise ``BoardValidationError``.

    The error message is the first problem found; ``field_errors`` maps
    each offending field (``"__root__"`` for whole-model checks) to its
    message.
    """
    try:
        return model(**values)
    except pydantic.ValidationError as exc:
        field_errors: dict[str, str] = {}
        for error in exc.errors():
            loc = ".".join(str(part) for part in error["loc"]) or "__root__"
            field_errors.setdefault(loc, error["msg"].removeprefix("Value error, "))
        first = next(iter(field_errors.items()))
        message = first[1] if first[0] == "__root__" else f"{first[0]}: {first[1]}"
        raise BoardValidationError(message, field_errors) from exc
