"""Analytics reads: scope resolution, tap queries and composed reports.

Scope is always resolved before anything is aggregated, so a caller can
never see taps of a card outside their scope.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.aggregators import tap_metrics
from app.core.exceptions import NotFoundError
from app.core.observability import record_analytics_query
from app.core.timeutils import utcnow
from app.models.card import Card
from app.models.tap import TapLog
from app.schemas.analytics import (
    AggregationItem,
    AggregationResult,
    AnalyticsOverview,
    AnalyticsReport,
    DashboardStats,
    TopCard,
    TopCity,
)
from app.schemas.enums import Dimension
from app.schemas.event import EventAnalyticsResponse, EventResponse
from app.services.card import (
    card_exists,
    count_active_cards,
    get_card_by_id,
    get_card_labels,
    get_user_card_ids,
)
from app.services.event import get_event_for_owner

logger = structlog.get_logger()

DEFAULT_BREAKDOWN_LIMIT = 20
DEFAULT_LEADERBOARD_LIMIT = 10


@dataclass(frozen=True)
class AnalyticsScope:
    """Cards an analytics query may read; ``None`` means every card."""

    card_ids: tuple[UUID, ...] | None = None

    @property
    def is_empty(self) -> bool:
        return self.card_ids is not None and not self.card_ids

    @property
    def is_single_card(self) -> bool:
        return self.card_ids is not None and len(self.card_ids) == 1


async def resolve_user_scope(
    session: AsyncSession,
    user_id: UUID,
    card_id: UUID | None = None,
) -> AnalyticsScope:
    """The user's cards, or one of them.

    Raises:
        NotFoundError: ``card_id`` is not one of the user's cards.
    """
    if card_id is not None:
        card = await get_card_by_id(session, card_id, user_id=user_id)
        if card is None:
            raise NotFoundError("Card not found")
        return AnalyticsScope((card_id,))
    return AnalyticsScope(tuple(await get_user_card_ids(session, user_id)))


async def resolve_admin_scope(
    session: AsyncSession,
    card_id: UUID | None = None,
) -> AnalyticsScope:
    """Every card, or one specific card."""
    if card_id is not None:
        if not await card_exists(session, card_id):
            raise NotFoundError("Card not found")
        return AnalyticsScope((card_id,))
    return AnalyticsScope(None)


def _in_scope(query: Select, scope: AnalyticsScope) -> Select:
    if scope.card_ids is None:
        return query
    return query.where(TapLog.card_id.in_(scope.card_ids))


def _in_window(query: Select, start: datetime | None, end: datetime | None) -> Select:
    # Windows are half-open: [start, end)
    if start is not None:
        query = query.where(TapLog.timestamp >= start)
    if end is not None:
        query = query.where(TapLog.timestamp < end)
    return query


async def fetch_taps(
    session: AsyncSession,
    scope: AnalyticsScope,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[TapLog]:
    """Taps in scope within the window, oldest first."""
    if scope.is_empty:
        return []
    query = _in_window(_in_scope(select(TapLog), scope), start, end)
    result = await session.execute(query.order_by(TapLog.timestamp, TapLog.id))
    return list(result.scalars().all())


async def count_taps(
    session: AsyncSession,
    scope: AnalyticsScope,
    start: datetime | None = None,
    end: datetime | None = None,
) -> int:
    if scope.is_empty:
        return 0
    query = _in_window(_in_scope(select(func.count(TapLog.id)), scope), start, end)
    result = await session.execute(query)
    return result.scalar() or 0


def _start_of_day(at: datetime) -> datetime:
    return at.replace(hour=0, minute=0, second=0, microsecond=0)


async def count_taps_today(
    session: AsyncSession,
    scope: AnalyticsScope,
    now: datetime | None = None,
) -> int:
    """Taps since midnight UTC."""
    today = _start_of_day(now or utcnow())
    return await count_taps(session, scope, today, today + timedelta(days=1))


def _dimension_items(
    dimension: Dimension,
    taps: list[TapLog],
    limit: int,
) -> list[AggregationItem]:
    total = len(taps)

    if dimension is Dimension.TIMELINE:
        return [
            AggregationItem(
                key=point.date,
                count=point.views,
                percentage=tap_metrics.percentage(point.views, total),
                attributes={"actions": point.actions},
            )
            for point in tap_metrics.timeline(taps)
        ]

    if dimension is Dimension.GEOGRAPHY:
        return [
            AggregationItem(
                key=", ".join(part for part in (bucket.city, bucket.region, bucket.country) if part),
                count=bucket.count,
                percentage=bucket.percentage,
                attributes={"country": bucket.country, "region": bucket.region, "city": bucket.city},
            )
            for bucket in tap_metrics.geographic_breakdown(taps, include_city=True, limit=limit)
        ]

    if dimension is Dimension.DEVICE:
        buckets = tap_metrics.device_breakdown(taps)
    elif dimension is Dimension.ACTION:
        buckets = tap_metrics.action_distribution(taps)
    else:
        buckets = tap_metrics.gallery_engagement(taps)

    return [
        AggregationItem(key=bucket.key, count=bucket.count, percentage=bucket.percentage)
        for bucket in buckets[:limit]
    ]


async def query_analytics(
    session: AsyncSession,
    scope: AnalyticsScope,
    period: str | None,
    dimension: Dimension,
    limit: int = DEFAULT_BREAKDOWN_LIMIT,
    now: datetime | None = None,
) -> AggregationResult:
    """Aggregate the taps in scope along one dimension.

    The result also carries the tap counts of this and the previous period
    and the trend between them.
    """
    started = time.perf_counter()

    period_key, start, end = tap_metrics.resolve_period(period, now)
    previous_start, previous_end = tap_metrics.previous_window(start, end)

    taps = await fetch_taps(session, scope, start, end)
    previous_count = await count_taps(session, scope, previous_start, previous_end)

    result = AggregationResult(
        dimension=dimension,
        period=period_key,
        start_date=start,
        end_date=end,
        total=len(taps),
        items=_dimension_items(dimension, taps, limit),
        current_period_count=len(taps),
        previous_period_count=previous_count,
        trend_percent=tap_metrics.trend_percent(len(taps), previous_count),
    )

    record_analytics_query(f"breakdown_{dimension.value}", time.perf_counter() - started)
    return result


async def build_report(
    session: AsyncSession,
    scope: AnalyticsScope,
    period: str | None,
    now: datetime | None = None,
) -> AnalyticsReport:
    """Every dimension plus headline numbers for a scope and period."""
    started = time.perf_counter()
    now = now or utcnow()

    period_key, start, end = tap_metrics.resolve_period(period, now)
    previous_start, previous_end = tap_metrics.previous_window(start, end)

    taps = await fetch_taps(session, scope, start, end)
    previous_count = await count_taps(session, scope, previous_start, previous_end)
    total_taps = await count_taps(session, scope)
    taps_today = await count_taps_today(session, scope, now)
    active_cards = await count_active_cards(session, card_ids=scope.card_ids)

    overview = AnalyticsOverview(
        active_cards=active_cards,
        total_taps=total_taps,
        period_taps=len(taps),
        previous_period_taps=previous_count,
        taps_today=taps_today,
        conversion_rate=tap_metrics.conversion_rate(taps),
        engagement_rate=tap_metrics.engagement_rate(taps),
        action_rate=tap_metrics.action_rate(taps),
        geographic_reach=tap_metrics.unique_countries(taps),
        views_trend=tap_metrics.trend_percent(len(taps), previous_count),
    )

    card_performance = []
    if not scope.is_single_card:
        labels = await get_card_labels(session, list({tap.card_id for tap in taps}))
        card_performance = tap_metrics.card_performance(taps, labels)

    report = AnalyticsReport(
        period=period_key,
        start_date=start,
        end_date=end,
        card_id=scope.card_ids[0] if scope.is_single_card else None,
        overview=overview,
        timeline=tap_metrics.timeline(taps),
        geographic=tap_metrics.geographic_breakdown(taps),
        devices=tap_metrics.device_breakdown(taps),
        actions=tap_metrics.action_distribution(taps),
        gallery_engagement=tap_metrics.gallery_engagement(taps),
        card_performance=card_performance,
    )

    duration = time.perf_counter() - started
    record_analytics_query("report", duration)
    logger.debug(
        "Analytics report built",
        period=period_key,
        cards=len(scope.card_ids) if scope.card_ids is not None else "all",
        taps=len(taps),
        duration_ms=round(duration * 1000, 2),
    )
    return report


async def dashboard_stats(session: AsyncSession, user_id: UUID) -> DashboardStats:
    """Headline counters for the owner's dashboard."""
    scope = await resolve_user_scope(session, user_id)
    return DashboardStats(
        active_cards=await count_active_cards(session, user_id),
        total_taps=await count_taps(session, scope),
        taps_today=await count_taps_today(session, scope),
    )


async def top_cards(
    session: AsyncSession,
    limit: int = DEFAULT_LEADERBOARD_LIMIT,
) -> list[TopCard]:
    """Cards with the most taps of all time."""
    taps = func.count(TapLog.id).label("taps")
    result = await session.execute(
        select(Card.id, Card.label, Card.user_id, taps)
        .join(TapLog, TapLog.card_id == Card.id)
        .group_by(Card.id, Card.label, Card.user_id)
        .order_by(taps.desc(), Card.id)
        .limit(limit)
    )
    return [
        TopCard(card_id=row.id, label=row.label, user_id=row.user_id, taps=row.taps)
        for row in result.all()
    ]


async def top_cities(
    session: AsyncSession,
    limit: int = DEFAULT_LEADERBOARD_LIMIT,
) -> list[TopCity]:
    """Cities with the most taps of all time."""
    taps = await fetch_taps(session, AnalyticsScope(None))
    return tap_metrics.top_cities(taps, limit)


async def event_analytics(
    session: AsyncSession,
    event_id: UUID,
    user_id: UUID,
) -> EventAnalyticsResponse:
    """Attribution report for one of the user's events.

    Only taps attributed to the event and made during its window count.
    """
    started = time.perf_counter()
    event = await get_event_for_owner(session, event_id, user_id)

    result = await session.execute(
        select(TapLog)
        .where(
            TapLog.event_id == event.id,
            TapLog.timestamp >= event.start_at,
            TapLog.timestamp <= event.end_at,
        )
        .order_by(TapLog.timestamp, TapLog.id)
    )
    taps = list(result.scalars().all())

    response = EventAnalyticsResponse(
        event=EventResponse.from_model(event),
        analytics=tap_metrics.event_breakdown(taps, event.timezone),
    )
    record_analytics_query("event", time.perf_counter() - started)
    return response
