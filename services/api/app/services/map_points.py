"""Project taps onto map points for the admin map."""

import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.timeutils import utcnow
from app.models.event import Event
from app.models.tap import TapLog
from app.schemas.analytics import MapPoint
from app.schemas.enums import EVENT_GEO_METHODS

logger = structlog.get_logger()

DEFAULT_MAP_DAYS = 30
DEFAULT_MAP_LIMIT = 1000

_PERIOD_PATTERN = re.compile(r"^(\d+)d$")

_EVENT_METHODS = frozenset(m.value for m in EVENT_GEO_METHODS)


def project_map_point(tap: TapLog, event: Event | None) -> MapPoint | None:
    """Point for one tap, or None when it has no usable location.

    Event-attributed taps are drawn at the venue ("manual"); others at the
    tap's own coordinates ("auto").
    """
    geo = tap.geo or {}

    if (
        event is not None
        and geo.get("method") in _EVENT_METHODS
        and event.latitude is not None
        and event.longitude is not None
    ):
        return MapPoint(
            lat=event.latitude,
            lng=event.longitude,
            type="manual",
            city=event.city,
            province=event.province,
            country=event.country,
            event_name=event.name,
            timestamp=tap.timestamp,
        )

    latitude = geo.get("latitude")
    longitude = geo.get("longitude")
    if latitude is None or longitude is None:
        return None

    return MapPoint(
        lat=latitude,
        lng=longitude,
        type="auto",
        city=geo.get("city"),
        province=geo.get("region"),
        country=geo.get("country"),
        timestamp=tap.timestamp,
    )


def project_map_points(
    taps: Iterable[TapLog],
    events_by_id: Mapping[UUID, Event],
) -> list[MapPoint]:
    points = []
    for tap in taps:
        event = events_by_id.get(tap.event_id) if tap.event_id else None
        point = project_map_point(tap, event)
        if point is not None:
            points.append(point)
    return points


def map_window_start(period: str | None, now: datetime) -> datetime:
    """Start of the map window for a period such as ``14d`` (default 30 days)."""
    match = _PERIOD_PATTERN.match(period or "")
    days = int(match.group(1)) if match else DEFAULT_MAP_DAYS
    return now - timedelta(days=days)


async def fetch_map_points(
    session: AsyncSession,
    period: str | None = None,
    limit: int = DEFAULT_MAP_LIMIT,
    now: datetime | None = None,
) -> list[MapPoint]:
    """Map points for the most recent taps within the period, newest first."""
    now = now or utcnow()
    start = map_window_start(period, now)

    result = await session.execute(
        select(TapLog)
        .where(TapLog.timestamp >= start, TapLog.timestamp <= now)
        .order_by(TapLog.timestamp.desc(), TapLog.id)
        .limit(limit)
    )
    taps = result.scalars().all()

    event_ids = {tap.event_id for tap in taps if tap.event_id}
    events_by_id: dict[UUID, Event] = {}
    if event_ids:
        events = await session.execute(select(Event).where(Event.id.in_(event_ids)))
        events_by_id = {event.id: event for event in events.scalars().all()}

    points = project_map_points(taps, events_by_id)
    logger.debug("Map points projected", taps=len(taps), points=len(points))
    return points
