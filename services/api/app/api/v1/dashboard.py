"""Dashboard and analytics endpoints."""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_session
from app.core.deps import AdminPrincipal, CurrentPrincipal
from app.core.rate_limit import RATE_LIMIT_API, limiter
from app.schemas.analytics import (
    ActivityItem,
    AggregationResult,
    AnalyticsReport,
    DashboardStats,
    TopCard,
    TopCity,
)
from app.schemas.enums import Dimension
from app.services import activity_feed, analytics

logger = structlog.get_logger()

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

PeriodQuery = Annotated[str | None, Query(description="7d, 30d or 90d (default 7d)")]
CardQuery = Annotated[UUID | None, Query(description="Restrict to one card")]


@router.get("/stats", response_model=DashboardStats)
@limiter.limit(RATE_LIMIT_API)
async def get_dashboard_stats(
    request: Request,
    principal: CurrentPrincipal,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> DashboardStats:
    """Active cards, total taps and taps today for the caller's cards."""
    return await analytics.dashboard_stats(session, principal.user_id)


@router.get("/analytics", response_model=AnalyticsReport)
@limiter.limit(RATE_LIMIT_API)
async def get_analytics(
    request: Request,
    principal: CurrentPrincipal,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    period: PeriodQuery = None,
    card_id: CardQuery = None,
) -> AnalyticsReport:
    """Analytics report over the caller's cards, or one of them."""
    scope = await analytics.resolve_user_scope(session, principal.user_id, card_id)
    return await analytics.build_report(session, scope, period)


@router.get("/admin-analytics", response_model=AnalyticsReport)
@limiter.limit(RATE_LIMIT_API)
async def get_admin_analytics(
    request: Request,
    admin: AdminPrincipal,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    period: PeriodQuery = None,
    card_id: CardQuery = None,
) -> AnalyticsReport:
    """Analytics report over every card, or any single card."""
    scope = await analytics.resolve_admin_scope(session, card_id)
    logger.info(
        "Admin analytics requested",
        admin_id=str(admin.user_id),
        card_id=str(card_id) if card_id else None,
    )
    return await analytics.build_report(session, scope, period)


@router.get("/analytics/breakdown/{dimension}", response_model=AggregationResult)
@limiter.limit(RATE_LIMIT_API)
async def get_breakdown(
    request: Request,
    dimension: Dimension,
    principal: CurrentPrincipal,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    period: PeriodQuery = None,
    card_id: CardQuery = None,
    limit: Annotated[int, Query(ge=1, le=100)] = analytics.DEFAULT_BREAKDOWN_LIMIT,
) -> AggregationResult:
    """Taps along one dimension with the period-over-period trend.

    Admins query across all cards; other users only their own.
    """
    if principal.is_admin:
        scope = await analytics.resolve_admin_scope(session, card_id)
    else:
        scope = await analytics.resolve_user_scope(session, principal.user_id, card_id)
    return await analytics.query_analytics(session, scope, period, dimension, limit)


@router.get("/activity", response_model=list[ActivityItem])
@limiter.limit(RATE_LIMIT_API)
async def get_recent_activity(
    request: Request,
    principal: CurrentPrincipal,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> list[ActivityItem]:
    """Most recent taps on the caller's cards, with a headline each."""
    scope = await analytics.resolve_user_scope(session, principal.user_id)
    return await activity_feed.recent_activity(session, list(scope.card_ids), limit)


@router.get("/analytics/top-cards", response_model=list[TopCard])
@limiter.limit(RATE_LIMIT_API)
async def get_top_cards(
    request: Request,
    admin: AdminPrincipal,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    limit: Annotated[int, Query(ge=1, le=100)] = analytics.DEFAULT_LEADERBOARD_LIMIT,
) -> list[TopCard]:
    return await analytics.top_cards(session, limit)


@router.get("/analytics/top-cities", response_model=list[TopCity])
@limiter.limit(RATE_LIMIT_API)
async def get_top_cities(
    request: Request,
    admin: AdminPrincipal,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    limit: Annotated[int, Query(ge=1, le=100)] = analytics.DEFAULT_LEADERBOARD_LIMIT,
) -> list[TopCity]:
    return await analytics.top_cities(session, limit)
