"""Pure aggregations over tap records.

Every function takes the taps already selected for a scope and window and
returns plain response schemas. Nothing here touches storage, so results
depend only on the input; ties are ordered by key.
"""

import math
import re
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.timeutils import utcnow
from app.models.tap import TapLog
from app.schemas.analytics import (
    CardPerformance,
    CountBucket,
    GeoBucket,
    TimelinePoint,
    TopCity,
)
from app.schemas.enums import CONVERSION_ACTIONS, ActionType, GeoMethod
from app.schemas.event import AttributionBreakdown, EventAnalytics, HourCount

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_PERIOD = "7d"

MOBILE_PATTERN = re.compile(r"Mobile|Android|iPhone", re.IGNORECASE)
DEVICE_MOBILE = "Mobile"
DEVICE_DESKTOP = "Desktop"

DEFAULT_EVENT_TIMEZONE = "Asia/Manila"

_CONVERSION_TYPES = frozenset(a.value for a in CONVERSION_ACTIONS)


def resolve_period(period: str | None, now: datetime | None = None) -> tuple[str, datetime, datetime]:
    """Map a period key to ``(key, start, end)``; unknown keys fall back to 7d."""
    key = period if period in PERIOD_DAYS else DEFAULT_PERIOD
    end = now or utcnow()
    return key, end - timedelta(days=PERIOD_DAYS[key]), end


def previous_window(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """Window of equal length ending where ``start`` begins."""
    return start - (end - start), start


def percentage(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(count / total * 100, 1)


def trend_percent(current: int, previous: int) -> float:
    """Period-over-period change, 0 when there is nothing to compare with."""
    if previous <= 0:
        return 0.0
    return round((current - previous) / previous * 100, 1)


def _geo(tap: TapLog) -> dict[str, Any]:
    return tap.geo or {}


def _action_types(tap: TapLog) -> list[str]:
    return [action.get("type") for action in tap.actions or [] if action.get("type")]


def _ranked(counts: Counter) -> list[tuple[Any, int]]:
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def _buckets(counts: Counter, total: int | None = None) -> list[CountBucket]:
    total = sum(counts.values()) if total is None else total
    return [
        CountBucket(key=key, count=count, percentage=percentage(count, total))
        for key, count in _ranked(counts)
    ]


def timeline(taps: Iterable[TapLog]) -> list[TimelinePoint]:
    """Taps per UTC day, oldest first; days without taps are omitted."""
    views: Counter = Counter()
    with_actions: Counter = Counter()
    for tap in taps:
        day = tap.timestamp.strftime("%Y-%m-%d")
        views[day] += 1
        if tap.actions:
            with_actions[day] += 1

    return [
        TimelinePoint(date=day, views=views[day], actions=with_actions[day])
        for day in sorted(views)
    ]


def geographic_breakdown(
    taps: Sequence[TapLog],
    include_city: bool = True,
    limit: int = 20,
) -> list[GeoBucket]:
    """Taps per country and region (and city), over taps with a country."""
    counts: Counter = Counter()
    for tap in taps:
        geo = _geo(tap)
        country = geo.get("country")
        if not country:
            continue
        city = (geo.get("city") or "") if include_city else ""
        key = (country, geo.get("region") or "", city)
        counts[key] += 1

    located = sum(counts.values())
    return [
        GeoBucket(
            country=country,
            region=region or None,
            city=city or None,
            count=count,
            percentage=percentage(count, located),
        )
        for (country, region, city), count in _ranked(counts)[:limit]
    ]


def unique_countries(taps: Iterable[TapLog]) -> int:
    return len({_geo(tap).get("country") for tap in taps} - {None, ""})


def classify_device(user_agent: str | None) -> str:
    """``Mobile`` or ``Desktop``; a missing user agent counts as desktop."""
    if user_agent and MOBILE_PATTERN.search(user_agent):
        return DEVICE_MOBILE
    return DEVICE_DESKTOP


def device_breakdown(taps: Sequence[TapLog]) -> list[CountBucket]:
    counts = Counter(classify_device(tap.user_agent) for tap in taps)
    return _buckets(counts, total=len(taps))


def action_distribution(taps: Iterable[TapLog]) -> list[CountBucket]:
    """Count every recorded action by type, most frequent first."""
    counts = Counter(action_type for tap in taps for action_type in _action_types(tap))
    return _buckets(counts)


def gallery_engagement(taps: Iterable[TapLog]) -> list[CountBucket]:
    """Gallery clicks per item label."""
    counts: Counter = Counter()
    for tap in taps:
        for action in tap.actions or []:
            if action.get("type") != ActionType.GALLERY_ITEM_CLICK.value:
                continue
            counts[action.get("label") or action.get("mediaId") or "Untitled"] += 1
    return _buckets(counts)


def _share_of_taps(taps: Sequence[TapLog], predicate) -> float:
    if not taps:
        return 0.0
    matching = sum(1 for tap in taps if predicate(set(_action_types(tap))))
    return percentage(matching, len(taps))


def conversion_rate(taps: Sequence[TapLog]) -> float:
    """Percent of taps that saved the contact or asked to book."""
    return _share_of_taps(taps, lambda types: bool(types & _CONVERSION_TYPES))


def engagement_rate(taps: Sequence[TapLog]) -> float:
    """Percent of taps with any interaction beyond viewing the card."""
    return _share_of_taps(taps, lambda types: bool(types - {ActionType.CARD_VIEW.value}))


def action_rate(taps: Sequence[TapLog]) -> float:
    """Percent of taps with at least one recorded action."""
    return _share_of_taps(taps, bool)


def card_performance(
    taps: Iterable[TapLog],
    labels: dict[UUID, str],
    limit: int = 10,
) -> list[CardPerformance]:
    counts = Counter(tap.card_id for tap in taps)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], str(item[0])))
    return [
        CardPerformance(card_id=card_id, label=labels.get(card_id, "Card"), count=count)
        for card_id, count in ranked[:limit]
    ]


def top_cities(taps: Iterable[TapLog], limit: int = 10) -> list[TopCity]:
    counts = Counter(_geo(tap).get("city") for tap in taps)
    counts.pop(None, None)
    counts.pop("", None)
    return [TopCity(city=city, taps=count) for city, count in _ranked(counts)[:limit]]


def _event_zone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or DEFAULT_EVENT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_EVENT_TIMEZONE)


def _location_label(geo: dict[str, Any]) -> str:
    city = geo.get("city") or "Unknown City"
    region = geo.get("region") or "Unknown Region"
    country = geo.get("country") or "Unknown Country"
    return f"{city}, {region}, {country}"


def _whole_percent(part: int, total: int) -> int:
    # Halves round up: 1 of 8 is 13
    return math.floor(part / total * 100 + 0.5) if total else 0


def event_breakdown(taps: Sequence[TapLog], timezone: str | None = None) -> EventAnalytics:
    """At-venue versus remote split for the taps attributed to one event.

    The hourly timeline is expressed in the event's local time.
    """
    total = len(taps)
    methods = [_geo(tap).get("method") for tap in taps]
    at_event = methods.count(GeoMethod.EVENT_LOCATION.value)
    remote = methods.count(GeoMethod.USER_LOCATION_DURING_EVENT.value)

    locations = Counter(_location_label(_geo(tap)) for tap in taps)

    zone = _event_zone(timezone)
    hours: Counter = Counter()
    for tap in taps:
        local = tap.timestamp.replace(tzinfo=ZoneInfo("UTC")).astimezone(zone)
        hours[local.strftime("%H:00")] += 1

    at_event_percent = _whole_percent(at_event, total)
    remote_percent = _whole_percent(remote, total)

    return EventAnalytics(
        total_taps=total,
        at_event_taps=at_event,
        remote_taps=remote,
        event_effectiveness=at_event_percent,
        location_stats={label: count for label, count in _ranked(locations)},
        timeline=[HourCount(hour=hour, count=hours[hour]) for hour in sorted(hours)],
        breakdown=AttributionBreakdown(
            at_event=at_event,
            remote=remote,
            at_event_percent=at_event_percent,
            remote_percent=remote_percent,
        ),
    )
