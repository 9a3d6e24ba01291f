"""Card lookups used for ownership checks and analytics scope."""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.card import Card


async def get_card_by_id(
    session: AsyncSession,
    card_id: UUID,
    user_id: UUID | None = None,
) -> Card | None:
    """Get a card by its ID, optionally filtering by owner."""
    query = select(Card).where(Card.id == card_id)
    if user_id:
        query = query.where(Card.user_id == user_id)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def card_exists(session: AsyncSession, card_id: UUID) -> bool:
    result = await session.execute(select(Card.id).where(Card.id == card_id))
    return result.scalar_one_or_none() is not None


async def get_user_card_ids(session: AsyncSession, user_id: UUID) -> list[UUID]:
    """IDs of every card owned by a user."""
    result = await session.execute(
        select(Card.id).where(Card.user_id == user_id).order_by(Card.created_at, Card.id)
    )
    return list(result.scalars().all())


async def get_card_labels(session: AsyncSession, card_ids: list[UUID]) -> dict[UUID, str]:
    """Map card IDs to their labels."""
    if not card_ids:
        return {}
    result = await session.execute(select(Card.id, Card.label).where(Card.id.in_(card_ids)))
    return {row.id: row.label for row in result.all()}


async def count_active_cards(
    session: AsyncSession,
    user_id: UUID | None = None,
    card_ids: Sequence[UUID] | None = None,
) -> int:
    """Count cards with status 'active', optionally limited to an owner or to given IDs."""
    query = select(func.count(Card.id)).where(Card.status == "active")
    if user_id:
        query = query.where(Card.user_id == user_id)
    if card_ids is not None:
        if not card_ids:
            return 0
        query = query.where(Card.id.in_(card_ids))
    result = await session.execute(query)
    return result.scalar() or 0
