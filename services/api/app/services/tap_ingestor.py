"""Tap and action ingestion.

``record_tap`` always creates a record (the card view). ``record_action``
appends to the session's most recent record, or creates one when the
session has none yet, so an action is never dropped for lack of a prior
tap. Ingestion is at-most-once: a client retry is stored twice.
"""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import ClientError
from app.core.observability import (
    record_actions_appended,
    record_event_attribution,
    record_tap_created,
)
from app.core.redis import session_lock
from app.core.timeutils import utcnow
from app.models.tap import TapLog
from app.schemas.tap import ActionPayload, TapActionIn, TapPayload
from app.services.card import card_exists
from app.services.event_matcher import attribute_tap
from app.services.geoip import get_geoip_service

settings = get_settings()
logger = structlog.get_logger()


def _action_document(action: TapActionIn) -> dict[str, Any]:
    return {
        "type": action.type.value,
        "label": action.label,
        "mediaId": action.media_id,
        "url": action.url or "",
        "timestamp": utcnow().isoformat(),
    }


def _new_tap(payload: TapPayload, ip: str | None) -> TapLog:
    return TapLog(
        card_id=payload.card_id,
        timestamp=utcnow(),
        ip=ip,
        geo=payload.geo.to_document() if payload.geo else None,
        user_agent=payload.user_agent,
        session_id=payload.session_id,
        actions=[_action_document(action) for action in payload.actions],
    )


async def _require_card(session: AsyncSession, card_id: UUID) -> None:
    if not await card_exists(session, card_id):
        raise ClientError(f"Unknown card: {card_id}")


async def record_tap(
    session: AsyncSession,
    payload: TapPayload,
    client_ip: str | None = None,
) -> TapLog:
    """Store a new tap, attributed to the card's live event if any."""
    await _require_card(session, payload.card_id)

    ip = payload.ip or client_ip
    geo = payload.geo

    if geo is None and settings.geoip_enrichment_enabled:
        geo = await get_geoip_service().lookup(ip)

    match = await attribute_tap(session, payload.card_id, geo)

    tap = _new_tap(payload.model_copy(update={"geo": match.geo}), ip)
    tap.event_id = match.event_id

    session.add(tap)
    await session.commit()

    record_tap_created("tap")
    if match.event_id is not None:
        record_event_attribution(match.method.value)

    logger.info(
        "Tap recorded",
        tap_id=str(tap.id),
        card_id=str(tap.card_id),
        event_id=str(tap.event_id) if tap.event_id else None,
        geo_method=match.method.value if match.method else None,
    )
    return tap


async def find_session_tap(
    session: AsyncSession,
    card_id: UUID,
    session_id: str,
) -> TapLog | None:
    """Most recent tap for a card and session, with no time bound."""
    result = await session.execute(
        select(TapLog)
        .where(TapLog.card_id == card_id, TapLog.session_id == session_id)
        .order_by(TapLog.timestamp.desc(), TapLog.id.desc())
        .limit(1)
    )
    return result.scalars().first()


async def record_action(
    session: AsyncSession,
    payload: ActionPayload,
    client_ip: str | None = None,
) -> tuple[TapLog, bool]:
    """Append the payload's actions to the session's tap.

    Every action in the payload is appended, in order, not only the first
    one. Each gets its own server timestamp.

    Returns the tap and whether it had to be created.
    """
    await _require_card(session, payload.card_id)

    ip = payload.ip or client_ip

    if not payload.session_id:
        return await _create_from_action(session, payload, ip), True

    async with session_lock(payload.card_id, payload.session_id):
        tap = await find_session_tap(session, payload.card_id, payload.session_id)
        if tap is None:
            return await _create_from_action(session, payload, ip), True

        # Reassign so the JSON column is flagged dirty
        tap.actions = [*tap.actions, *(_action_document(a) for a in payload.actions)]

        # The geo block is replaced as a whole, never merged
        if payload.geo is not None and not payload.geo.is_empty:
            tap.geo = payload.geo.to_document()

        await session.commit()

    record_actions_appended(len(payload.actions))
    logger.info(
        "Actions appended",
        tap_id=str(tap.id),
        card_id=str(tap.card_id),
        action_types=[a.type.value for a in payload.actions],
    )
    return tap, False


async def _create_from_action(
    session: AsyncSession,
    payload: ActionPayload,
    ip: str | None,
) -> TapLog:
    tap = _new_tap(payload, ip)
    session.add(tap)
    await session.commit()

    record_tap_created("action_fallback")
    logger.info(
        "Tap created from action",
        tap_id=str(tap.id),
        card_id=str(tap.card_id),
        session_id=payload.session_id,
    )
    return tap
