"""Tap ingestion endpoints (public) and the admin map."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.client_ip import resolve_client_ip
from app.core.database import get_async_session
from app.core.deps import AdminPrincipal
from app.core.rate_limit import RATE_LIMIT_API, RATE_LIMIT_INGEST, limiter
from app.schemas.analytics import MapPoint
from app.schemas.tap import ActionPayload, TapPayload, TapResponse
from app.services import map_points, tap_ingestor

logger = structlog.get_logger()

router = APIRouter(prefix="/taps", tags=["taps"])


def _client_ip(request: Request) -> str | None:
    host = request.client.host if request.client else None
    return resolve_client_ip(request.headers, host)


@router.post("", response_model=TapResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT_INGEST)
async def ingest_tap(
    request: Request,
    payload: TapPayload,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> TapResponse:
    """Record a card view.

    A new record is always created. If the card has a live event the tap is
    attributed to it.
    """
    tap = await tap_ingestor.record_tap(session, payload, _client_ip(request))
    return TapResponse.model_validate(tap)


@router.post(
    "/action",
    response_model=TapResponse,
    responses={status.HTTP_201_CREATED: {"model": TapResponse}},
)
@limiter.limit(RATE_LIMIT_INGEST)
async def ingest_action(
    request: Request,
    response: Response,
    payload: ActionPayload,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> TapResponse:
    """Record actions taken during a session.

    Appends to the session's most recent tap (200), or creates a new tap
    when the session has none (201).
    """
    tap, created = await tap_ingestor.record_action(session, payload, _client_ip(request))
    if created:
        response.status_code = status.HTTP_201_CREATED
    return TapResponse.model_validate(tap)


@router.get("/map-points", response_model=list[MapPoint])
@limiter.limit(RATE_LIMIT_API)
async def get_map_points(
    request: Request,
    admin: AdminPrincipal,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    period: Annotated[str | None, Query(pattern=r"^\d+d$", description="e.g. 30d")] = None,
    limit: Annotated[int, Query(ge=1, le=5000)] = map_points.DEFAULT_MAP_LIMIT,
) -> list[MapPoint]:
    """Tap locations for the admin map: event venues and raw tap positions."""
    points = await map_points.fetch_map_points(session, period=period, limit=limit)
    logger.debug("Map points served", admin_id=str(admin.user_id), points=len(points))
    return points
