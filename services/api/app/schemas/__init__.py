"""Pydantic schemas."""

from app.schemas.analytics import (
    ActivityDescriptor,
    ActivityItem,
    AggregationItem,
    AggregationResult,
    AnalyticsOverview,
    AnalyticsReport,
    CardPerformance,
    CountBucket,
    DashboardStats,
    GeoBucket,
    MapPoint,
    TimelinePoint,
    TopCard,
    TopCity,
)
from app.schemas.enums import ActionType, Dimension, EventStatus, GeoMethod
from app.schemas.event import (
    EventAnalytics,
    EventAnalyticsResponse,
    EventCreate,
    EventResponse,
)
from app.schemas.tap import ActionPayload, GeoData, TapActionIn, TapPayload, TapResponse

__all__ = [
    "ActionPayload",
    "ActionType",
    "ActivityDescriptor",
    "ActivityItem",
    "AggregationItem",
    "AggregationResult",
    "AnalyticsOverview",
    "AnalyticsReport",
    "CardPerformance",
    "CountBucket",
    "DashboardStats",
    "Dimension",
    "EventAnalytics",
    "EventAnalyticsResponse",
    "EventCreate",
    "EventResponse",
    "EventStatus",
    "GeoBucket",
    "GeoData",
    "GeoMethod",
    "MapPoint",
    "TapActionIn",
    "TapPayload",
    "TapResponse",
    "TimelinePoint",
    "TopCard",
    "TopCity",
]
