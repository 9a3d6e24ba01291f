"""Event endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.client_ip import resolve_client_ip
from app.core.database import get_async_session
from app.core.deps import CurrentPrincipal
from app.core.rate_limit import RATE_LIMIT_API, limiter
from app.schemas.event import EventAnalyticsResponse, EventCreate, EventResponse
from app.services import analytics, event as event_service

router = APIRouter(prefix="/events", tags=["events"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT_API)
async def create_event(
    request: Request,
    event_data: EventCreate,
    principal: CurrentPrincipal,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> EventResponse:
    """Create an event for one of the caller's cards.

    Taps on the card while the event is live are attributed to it. Rejected
    if it overlaps another active event on the same card.
    """
    host = request.client.host if request.client else None
    event = await event_service.create_event(
        session,
        event_data,
        user_id=principal.user_id,
        ip=resolve_client_ip(request.headers, host),
    )
    return EventResponse.from_model(event)


@router.get("/{event_id}/analytics", response_model=EventAnalyticsResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_event_analytics(
    request: Request,
    event_id: UUID,
    principal: CurrentPrincipal,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> EventAnalyticsResponse:
    """At-venue versus remote taps for one of the caller's events."""
    return await analytics.event_analytics(session, event_id, principal.user_id)
