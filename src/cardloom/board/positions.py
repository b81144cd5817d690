"""Dense zero-based ordering of columns, cards and subtasks in their containers.

Every settled container satisfies ``positions == {0, ..., len - 1}``.
Functions here never mutate their input: entities are frozen dataclasses
and are rebuilt with ``dataclasses.replace`` only when a position changes,
so untouched entities keep their identity.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def clamp_index(index: int, length: int) -> int:
    """Clamp an insertion index to ``[0, length]``."""
    return max(0, min(index, length))


def normalize[T](items: Iterable[T]) -> list[T]:
    """Set each item's ``position`` to its index, preserving order.

    Empty input gives an empty list. Never raises.
    """
    result: list[T] = []
    for index, item in enumerate(items):
        if item.position != index:  # type: ignore[attr-defined]
            item = dataclasses.replace(item, position=index)  # type: ignore[type-var]
        result.append(item)
    return result


def is_dense(items: Iterable[Any]) -> bool:
    """True if positions are exactly ``0..n-1`` with no duplicates."""
    positions = sorted(item.position for item in items)
    return positions == list(range(len(positions)))


def next_position(items: Sequence[Any]) -> int:
    """Position for an entity appended to the end of a container."""
    return len(items)


def reorder[T](items: Sequence[T], old_index: int, new_index: int) -> list[T]:
    """Move an item within a list from old_index to new_index.

    ``new_index`` is the slot after removal and is clamped. Returns a new
    list with the item repositioned.
    """
    result = list(items)
    item = result.pop(old_index)
    result.insert(clamp_index(new_index, len(result)), item)
    return result
