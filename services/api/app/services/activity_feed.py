"""Human-readable activity feed built from recent taps."""

from typing import Any, NamedTuple
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tap import TapLog
from app.schemas.analytics import ActivityDescriptor, ActivityItem
from app.schemas.enums import ActionType
from app.services.card import get_card_labels

logger = structlog.get_logger()

DEFAULT_CARD_LABEL = "Card"


class Headline(NamedTuple):
    title: str
    description: str | None  # None: describe where the card was viewed
    icon: str
    color: str


HEADLINES: dict[ActionType, Headline] = {
    ActionType.CARD_VIEW: Headline("Card viewed", None, "FaEye", "text-blue-600"),
    ActionType.SOCIAL_LINK_CLICK: Headline(
        "Social link clicked", "Clicked: {label}", "FaShare", "text-purple-600"
    ),
    ActionType.FEATURED_LINK_CLICK: Headline(
        "Link clicked", "Clicked: {label}", "FaLink", "text-green-600"
    ),
    ActionType.BOOK_NOW_CLICK: Headline(
        "Meeting requested", "Book Now button clicked", "FaCalendarCheck", "text-indigo-600"
    ),
    ActionType.SAVE_CONTACT_CLICK: Headline(
        "Contact saved", "Save Contact button clicked", "FaUserPlus", "text-indigo-600"
    ),
    ActionType.CONTACT_DOWNLOADED: Headline(
        "Contact downloaded", "Contact information was downloaded", "FaDownload", "text-teal-600"
    ),
    ActionType.GALLERY_ITEM_CLICK: Headline(
        "Gallery viewed", "Viewed: {label}", "FaImages", "text-orange-600"
    ),
    ActionType.BIO_EXPANDED: Headline(
        "Bio expanded", "User expanded bio section", "FaExpand", "text-blue-600"
    ),
    ActionType.BIO_COLLAPSED: Headline(
        "Bio collapsed", "User collapsed bio section", "FaCompress", "text-blue-600"
    ),
}


def describe_view(geo: dict[str, Any] | None) -> str:
    """Where a card was viewed, e.g. ``Viewed in Makati, Metro Manila, Philippines``."""
    geo = geo or {}
    city = geo.get("city")
    if not city:
        return "Card was viewed"

    region = geo.get("region")
    country = geo.get("country")
    parts = [city]
    if region and region != country:
        parts.append(region)
    if country:
        parts.append(country)
    return "Viewed in " + ", ".join(parts)


def _headline_for(action: dict[str, Any] | None) -> Headline:
    if not action:
        return HEADLINES[ActionType.CARD_VIEW]
    try:
        return HEADLINES[ActionType(action.get("type"))]
    except ValueError:
        # Stored types outside the vocabulary render as a view
        return HEADLINES[ActionType.CARD_VIEW]


def format_activity(tap: TapLog, card_label: str | None = None) -> ActivityDescriptor:
    """Headline for a tap, taken from its most recent action."""
    label = card_label or DEFAULT_CARD_LABEL
    last_action = tap.actions[-1] if tap.actions else None
    headline = _headline_for(last_action)

    if headline.description is None:
        description = describe_view(tap.geo)
    else:
        description = headline.description.format(label=(last_action or {}).get("label") or "")

    return ActivityDescriptor(
        title=f"{headline.title}: {label}",
        description=description,
        icon=headline.icon,
        color=headline.color,
    )


async def recent_activity(
    session: AsyncSession,
    card_ids: list[UUID],
    limit: int = 10,
) -> list[ActivityItem]:
    """Most recent taps across the given cards, newest first."""
    if not card_ids:
        return []

    result = await session.execute(
        select(TapLog)
        .where(TapLog.card_id.in_(card_ids))
        .order_by(TapLog.timestamp.desc(), TapLog.id)
        .limit(limit)
    )
    taps = result.scalars().all()
    labels = await get_card_labels(session, list({tap.card_id for tap in taps}))

    items = []
    for tap in taps:
        card_label = labels.get(tap.card_id, DEFAULT_CARD_LABEL)
        descriptor = format_activity(tap, card_label)
        items.append(
            ActivityItem(
                **descriptor.model_dump(),
                id=tap.id,
                time=tap.timestamp,
                card_label=card_label,
                actions=tap.actions or [],
                geo=tap.geo,
            )
        )

    logger.debug("Recent activity fetched", count=len(items))
    return items
