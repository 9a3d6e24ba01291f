"""Pydantic schemas for analytics API responses."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel
from app.schemas.enums import Dimension


class CountBucket(CamelModel):
    """Count for one key of a breakdown."""

    key: str
    count: int
    percentage: float = Field(default=0.0, description="Share of the breakdown total")


class TimelinePoint(CamelModel):
    """Taps on one UTC day."""

    date: str = Field(description="UTC date, YYYY-MM-DD")
    views: int
    actions: int = Field(description="Taps with at least one action")


class GeoBucket(CamelModel):
    """Taps from one country / region (/ city)."""

    country: str
    region: str | None = None
    city: str | None = None
    count: int
    percentage: float = 0.0


class CardPerformance(CamelModel):
    card_id: UUID
    label: str
    count: int


class AnalyticsOverview(CamelModel):
    """Headline numbers for a scope and period."""

    active_cards: int = Field(description="Active cards in scope")
    total_taps: int = Field(description="All-time taps in scope")
    period_taps: int = Field(description="Taps in the selected period")
    previous_period_taps: int
    taps_today: int
    conversion_rate: float
    engagement_rate: float
    action_rate: float
    geographic_reach: int = Field(description="Distinct countries in the period")
    views_trend: float = Field(description="Percent change versus the previous period")


class AnalyticsReport(CamelModel):
    """All dimensions for one scope and period."""

    period: str
    start_date: datetime
    end_date: datetime
    card_id: UUID | None = None
    overview: AnalyticsOverview
    timeline: list[TimelinePoint]
    geographic: list[GeoBucket]
    devices: list[CountBucket]
    actions: list[CountBucket]
    gallery_engagement: list[CountBucket]
    card_performance: list[CardPerformance] = Field(default_factory=list)


class AggregationItem(CamelModel):
    """One key of a single-dimension query."""

    key: str
    count: int
    percentage: float = 0.0
    attributes: dict[str, Any] | None = None


class AggregationResult(CamelModel):
    """Result of a single-dimension analytics query."""

    dimension: Dimension
    period: str
    start_date: datetime
    end_date: datetime
    total: int
    items: list[AggregationItem]
    current_period_count: int
    previous_period_count: int
    trend_percent: float


class DashboardStats(CamelModel):
    active_cards: int
    total_taps: int
    taps_today: int


class TopCard(CamelModel):
    card_id: UUID
    label: str
    user_id: UUID | None = None
    taps: int


class TopCity(CamelModel):
    city: str
    taps: int


class ActivityDescriptor(CamelModel):
    """Human-readable headline for a tap."""

    title: str
    description: str
    icon: str
    color: str


class ActivityItem(ActivityDescriptor):
    """Entry of the recent activity feed."""

    id: UUID
    type: str = "tap"
    time: datetime
    card_label: str
    actions: list[dict[str, Any]] = Field(default_factory=list)
    geo: dict[str, Any] | None = None


class MapPoint(CamelModel):
    """One tap location for the admin map."""

    lat: float
    lng: float
    type: str = Field(description="'manual' (event location) or 'auto' (tap location)")
    city: str | None = None
    province: str | None = None
    country: str | None = None
    event_name: str | None = None
    timestamp: datetime
    count: int = 1
