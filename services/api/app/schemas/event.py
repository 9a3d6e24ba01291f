"""Event Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel
from app.schemas.enums import EventStatus


class Coordinates(CamelModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class EventLocation(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    address: str | None = Field(default=None, max_length=500)
    city: str = Field(min_length=1, max_length=255)
    province: str = Field(min_length=1, max_length=255)
    country: str = Field(min_length=1, max_length=255)
    coordinates: Coordinates


class EventDateTime(CamelModel):
    start: datetime
    end: datetime
    timezone: str = "Asia/Manila"


class EventCreate(CamelModel):
    """Body of ``POST /events``."""

    card_id: UUID
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    location: EventLocation
    date_time: EventDateTime


class EventResponse(CamelModel):
    id: UUID
    card_id: UUID
    user_id: UUID
    name: str
    description: str | None = None
    location: EventLocation
    date_time: EventDateTime
    status: EventStatus

    @classmethod
    def from_model(cls, event: object) -> "EventResponse":
        return cls(
            id=event.id,
            card_id=event.card_id,
            user_id=event.user_id,
            name=event.name,
            description=event.description,
            location=EventLocation(
                name=event.location_name,
                address=event.address,
                city=event.city,
                province=event.province,
                country=event.country,
                coordinates=Coordinates(latitude=event.latitude, longitude=event.longitude),
            ),
            date_time=EventDateTime(
                start=event.start_at,
                end=event.end_at,
                timezone=event.timezone,
            ),
            status=event.status,
        )


class HourCount(CamelModel):
    hour: str = Field(description="Hour bucket as HH:00 in the event's time zone")
    count: int


class AttributionBreakdown(CamelModel):
    at_event: int
    remote: int
    at_event_percent: int
    remote_percent: int


class EventAnalytics(CamelModel):
    total_taps: int
    at_event_taps: int
    remote_taps: int
    event_effectiveness: int = Field(description="Percent of taps made at the venue")
    location_stats: dict[str, int]
    timeline: list[HourCount]
    breakdown: AttributionBreakdown


class EventAnalyticsResponse(CamelModel):
    event: EventResponse
    analytics: EventAnalytics
