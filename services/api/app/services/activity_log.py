"""Audit trail for administrative changes."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity_log import ActivityLog

logger = structlog.get_logger()


def log_activity(
    session: AsyncSession,
    *,
    user_id: UUID | None,
    action: str,
    target_type: str | None = None,
    target_id: UUID | None = None,
    details: dict[str, Any] | None = None,
    ip: str | None = None,
) -> ActivityLog:
    """Add an audit entry to the caller's transaction."""
    entry = ActivityLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details,
        ip=ip,
    )
    session.add(entry)
    logger.info(
        "Activity recorded",
        action=action,
        target_type=target_type,
        target_id=str(target_id) if target_id else None,
    )
    return entry
