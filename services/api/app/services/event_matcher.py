"""Attribute taps to the event that is live for their card.

A tap within ``PROXIMITY_THRESHOLD_KM`` of the venue takes the event's
location; a tap further away keeps its own location but is still linked to
the event.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.timeutils import utcnow
from app.models.event import Event
from app.schemas.enums import EventStatus, GeoMethod
from app.schemas.tap import GeoData
from app.services.geo import distance_km

logger = structlog.get_logger()

PROXIMITY_THRESHOLD_KM = 1.0


@dataclass(frozen=True)
class EventMatch:
    """Outcome of matching one tap against the card's live event."""

    event_id: UUID | None
    geo: GeoData | None
    distance_km: float | None = None

    @property
    def method(self) -> GeoMethod | None:
        return self.geo.method if self.geo else None


async def get_active_event(
    session: AsyncSession,
    card_id: UUID,
    at: datetime | None = None,
) -> Event | None:
    """Get the event live for a card at ``at`` (default: now).

    If several events overlap, the earliest start wins.
    """
    at = at or utcnow()
    result = await session.execute(
        select(Event)
        .where(
            Event.card_id == card_id,
            Event.status == EventStatus.ACTIVE.value,
            Event.start_at <= at,
            Event.end_at >= at,
        )
        .order_by(Event.start_at, Event.id)
        .limit(1)
    )
    return result.scalars().first()


def match_event(geo: GeoData | None, event: Event | None) -> EventMatch:
    """Decide attribution for a tap; does not touch storage."""
    if event is None or geo is None or not geo.has_coordinates:
        return EventMatch(event_id=None, geo=geo)

    distance = distance_km(geo.latitude, geo.longitude, event.latitude, event.longitude)

    if distance <= PROXIMITY_THRESHOLD_KM:
        # The venue's location is more reliable than device GPS at the venue
        matched = geo.model_copy(
            update={
                "latitude": event.latitude,
                "longitude": event.longitude,
                "city": event.city,
                "region": event.province,
                "country": event.country,
                "method": GeoMethod.EVENT_LOCATION,
            }
        )
    else:
        matched = geo.model_copy(update={"method": GeoMethod.USER_LOCATION_DURING_EVENT})

    return EventMatch(event_id=event.id, geo=matched, distance_km=distance)


async def attribute_tap(
    session: AsyncSession,
    card_id: UUID,
    geo: GeoData | None,
    at: datetime | None = None,
) -> EventMatch:
    """Look up the card's live event and match the tap against it."""
    event = await get_active_event(session, card_id, at)
    match = match_event(geo, event)

    if match.event_id is not None:
        logger.debug(
            "Tap attributed to event",
            card_id=str(card_id),
            event_id=str(match.event_id),
            method=match.method.value if match.method else None,
            distance_km=round(match.distance_km, 3),
        )
    return match
