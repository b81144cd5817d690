"""CRUD operations for KanbanTag and card tag assignment."""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func
from sqlmodel import col, select

from cardloom.board.errors import NotFoundError
from cardloom.db.engine import get_session
from cardloom.db.models import KanbanBoard, KanbanCard, KanbanCardTag, KanbanTag

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlmodel.ext.asyncio.session import AsyncSession

UPDATABLE_FIELDS = frozenset({"label", "color"})


async def require_tags(
    session: AsyncSession, board_id: str, tag_ids: Sequence[str]
) -> None:
    """Raise ``NotFoundError`` unless every tag belongs to ``board_id``."""
    if not tag_ids:
        return
    result = await session.exec(
        select(KanbanTag.id)
        .where(KanbanTag.board_id == board_id)
        .where(col(KanbanTag.id).in_(tag_ids))
    )
    found = set(result.all())
    for tag_id in tag_ids:
        if tag_id not in found:
            raise NotFoundError("Tag", tag_id)


async def replace_card_tags(
    session: AsyncSession, card_id: str, tag_ids: Sequence[str]
) -> list[str]:
    """Swap a card's tag rows for ``tag_ids`` (deduplicated, order kept)."""
    unique = list(dict.fromkeys(tag_ids))
    await session.execute(
        delete(KanbanCardTag).where(col(KanbanCardTag.card_id) == card_id)
    )
    for tag_id in unique:
        session.add(KanbanCardTag(card_id=card_id, tag_id=tag_id))
    return unique


async def list_tags(board_id: str) -> list[KanbanTag]:
    """Tags of a board, sorted by label (case-insensitive)."""
    async with get_session() as session:
        result = await session.exec(
            select(KanbanTag)
            .where(KanbanTag.board_id == board_id)
            .order_by(func.lower(KanbanTag.label))
        )
        return list(result.all())


async def card_tag_map(board_id: str) -> dict[str, list[str]]:
    """Card id -> tag ids for every tagged card on the board."""
    async with get_session() as session:
        result = await session.exec(
            select(KanbanCardTag.card_id, KanbanCardTag.tag_id)
            .join(KanbanTag, col(KanbanTag.id) == KanbanCardTag.tag_id)
            .where(KanbanTag.board_id == board_id)
            .order_by(func.lower(KanbanTag.label))
        )
        mapping: defaultdict[str, list[str]] = defaultdict(list)
        for card_id, tag_id in result.all():
            mapping[card_id].append(tag_id)
        return dict(mapping)


async def create_tag(
    board_id: str,
    label: str,
    *,
    tag_id: str | None = None,
    color: str | None = None,
) -> KanbanTag:
    """Create a tag on a board.

    Raises:
        NotFoundError: If the board does not exist.
    """
    async with get_session() as session:
        if await session.get(KanbanBoard, board_id) is None:
            raise NotFoundError("Board", board_id)
        tag = KanbanTag(board_id=board_id, label=label.strip(), color=color)
        if tag_id is not None:
            tag.id = tag_id
        session.add(tag)
        await session.flush()
        await session.refresh(tag)
        return tag


async def update_tag(
    board_id: str, tag_id: str, changes: Mapping[str, Any]
) -> KanbanTag:
    """Update a tag's label and/or colour.

    Raises:
        NotFoundError: If the tag is not on the board.
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        msg = f"Cannot update tag fields: {sorted(unknown)}"
        raise ValueError(msg)
    async with get_session() as session:
        tag = await session.get(KanbanTag, tag_id)
        if tag is None or tag.board_id != board_id:
            raise NotFoundError("Tag", tag_id)
        for name, value in changes.items():
            setattr(tag, name, value)
        tag.updated_at = datetime.now(UTC)
        session.add(tag)
        await session.flush()
        await session.refresh(tag)
        return tag


async def delete_tag(board_id: str, tag_id: str) -> bool:
    """Delete a tag; its card assignments cascade.

    Returns:
        True if the tag was deleted, False if it was not on the board.
    """
    async with get_session() as session:
        tag = await session.get(KanbanTag, tag_id)
        if tag is None or tag.board_id != board_id:
            return False
        await session.delete(tag)
        return True


async def set_card_tags(
    board_id: str, card_id: str, tag_ids: Sequence[str]
) -> list[str]:
    """Replace a card's tags.

    Raises:
        NotFoundError: If the card or any tag is not on the board.
    """
    async with get_session() as session:
        card = await session.get(KanbanCard, card_id)
        if card is None or card.board_id != board_id:
            raise NotFoundError("Card", card_id)
        await require_tags(session, board_id, tag_ids)
        return await replace_card_tags(session, card_id, tag_ids)
