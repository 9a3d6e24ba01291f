"""Aggregation logic for tap analytics."""

from app.aggregators.tap_metrics import (
    action_distribution,
    action_rate,
    card_performance,
    classify_device,
    conversion_rate,
    device_breakdown,
    engagement_rate,
    event_breakdown,
    gallery_engagement,
    geographic_breakdown,
    previous_window,
    resolve_period,
    timeline,
    top_cities,
    trend_percent,
    unique_countries,
)

__all__ = [
    "action_distribution",
    "action_rate",
    "card_performance",
    "classify_device",
    "conversion_rate",
    "device_breakdown",
    "engagement_rate",
    "event_breakdown",
    "gallery_engagement",
    "geographic_breakdown",
    "previous_window",
    "resolve_period",
    "timeline",
    "top_cities",
    "trend_percent",
    "unique_countries",
]
