"""Event business logic."""

from datetime import datetime, timezone
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ClientError, NotFoundError
from app.models.event import Event
from app.schemas.enums import EventStatus
from app.schemas.event import EventCreate
from app.services.activity_log import log_activity
from app.services.card import get_card_by_id

logger = structlog.get_logger()


def _to_utc(value: datetime, zone: ZoneInfo) -> datetime:
    """Naive UTC for storage; naive input is read in the event's time zone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=zone)
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ClientError(f"Unknown time zone: {name}") from None


async def get_event_for_owner(session: AsyncSession, event_id: UUID, user_id: UUID) -> Event:
    """Get an event owned by ``user_id`` or raise NotFoundError."""
    result = await session.execute(
        select(Event).where(Event.id == event_id, Event.user_id == user_id)
    )
    event = result.scalar_one_or_none()
    if event is None:
        raise NotFoundError("Event not found")
    return event


async def find_overlapping_event(
    session: AsyncSession,
    card_id: UUID,
    start_at: datetime,
    end_at: datetime,
) -> Event | None:
    """First active event on the card whose window intersects [start_at, end_at)."""
    result = await session.execute(
        select(Event)
        .where(
            Event.card_id == card_id,
            Event.status == EventStatus.ACTIVE.value,
            Event.start_at < end_at,
            Event.end_at > start_at,
        )
        .order_by(Event.start_at, Event.id)
        .limit(1)
    )
    return result.scalars().first()


async def create_event(
    session: AsyncSession,
    data: EventCreate,
    user_id: UUID,
    ip: str | None = None,
) -> Event:
    """Create an active event for one of the user's cards.

    Raises:
        ClientError: The window is empty or overlaps another active event.
        NotFoundError: The card does not exist or belongs to someone else.
    """
    zone = _zone(data.date_time.timezone)
    start_at = _to_utc(data.date_time.start, zone)
    end_at = _to_utc(data.date_time.end, zone)

    if start_at >= end_at:
        raise ClientError("End time must be after start time")

    card = await get_card_by_id(session, data.card_id, user_id=user_id)
    if card is None:
        raise NotFoundError("Card not found or access denied")

    overlapping = await find_overlapping_event(session, data.card_id, start_at, end_at)
    if overlapping is not None:
        raise ClientError(f"Event overlaps with existing event: {overlapping.name}")

    location = data.location
    event = Event(
        user_id=user_id,
        card_id=data.card_id,
        name=data.name,
        description=data.description,
        location_name=location.name,
        address=location.address,
        city=location.city,
        province=location.province,
        country=location.country,
        latitude=location.coordinates.latitude,
        longitude=location.coordinates.longitude,
        start_at=start_at,
        end_at=end_at,
        timezone=data.date_time.timezone,
        status=EventStatus.ACTIVE.value,
    )
    session.add(event)
    await session.flush()

    log_activity(
        session,
        user_id=user_id,
        action="Event Create",
        target_type="Event",
        target_id=event.id,
        details={"name": event.name, "cardId": str(event.card_id)},
        ip=ip,
    )
    await session.commit()
    await session.refresh(event)

    logger.info(
        "Event created",
        event_id=str(event.id),
        card_id=str(event.card_id),
        start_at=event.start_at.isoformat(),
        end_at=event.end_at.isoformat(),
    )
    return event
