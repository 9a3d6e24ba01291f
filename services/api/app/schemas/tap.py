"""Tap and action Pydantic schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel
from app.schemas.enums import ActionType, GeoMethod


class GeoData(CamelModel):
    """Location block reported by the client (or derived server-side)."""

    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    accuracy: float | None = Field(default=None, ge=0, description="Accuracy radius in meters")
    city: str | None = None
    country: str | None = None
    region: str | None = None
    timezone: str | None = None
    method: GeoMethod = GeoMethod.UNKNOWN
    timestamp: datetime | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_empty(self) -> bool:
        """True when the client sent an empty object."""
        return not self.model_fields_set

    def to_document(self) -> dict[str, Any]:
        """Storage form of the geo block."""
        return self.model_dump(mode="json", exclude_none=True)


class TapActionIn(CamelModel):
    """An action as posted by the client; the server stamps the time."""

    type: ActionType
    label: str | None = Field(default=None, max_length=500)
    media_id: str | None = Field(default=None, max_length=255)
    url: str | None = Field(default=None, max_length=2048)


class TapPayload(CamelModel):
    """Body of ``POST /taps``."""

    card_id: UUID
    ip: str | None = Field(default=None, max_length=64)
    geo: GeoData | None = None
    user_agent: str | None = None
    session_id: str | None = Field(default=None, max_length=128)
    actions: list[TapActionIn] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "example": {
                "cardId": "550e8400-e29b-41d4-a716-446655440000",
                "sessionId": "s-1700000000000-x1y2z3",
                "userAgent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)",
                "geo": {
                    "latitude": 14.5995,
                    "longitude": 120.9842,
                    "city": "Manila",
                    "region": "Metro Manila",
                    "country": "Philippines",
                    "method": "browser_geolocation",
                },
                "actions": [{"type": "card_view"}],
            }
        }
    }


class ActionPayload(TapPayload):
    """Body of ``POST /taps/action``: at least one action is required."""

    actions: list[TapActionIn] = Field(min_length=1)


class TapResponse(CamelModel):
    """A stored tap record."""

    id: UUID
    card_id: UUID
    event_id: UUID | None = None
    timestamp: datetime
    ip: str | None = None
    geo: dict[str, Any] | None = None
    user_agent: str | None = None
    session_id: str | None = None
    actions: list[dict[str, Any]] = Field(default_factory=list)
