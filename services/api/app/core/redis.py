"""Redis client used for per-session ingestion locks."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as redis
import structlog

from app.core.config import get_settings
from app.core.observability import record_session_lock_failure

settings = get_settings()
logger = structlog.get_logger()

_redis_client: redis.Redis | None = None

SESSION_LOCK_PREFIX = "tapcard:session-lock:"


async def get_redis() -> redis.Redis:
    """Get the Redis client instance, creating it if necessary."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        logger.info("Redis client initialized", url=settings.redis_url)
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None
        logger.info("Redis connection closed")


def _session_lock_key(card_id: object, session_id: str) -> str:
    return f"{SESSION_LOCK_PREFIX}{card_id}:{session_id}"


@asynccontextmanager
async def session_lock(card_id: object, session_id: str) -> AsyncIterator[bool]:
    """Serialize read-then-write appends for one ``(card_id, session_id)``.

    Yields whether the lock was taken. When Redis is unreachable or the lock
    cannot be acquired within ``session_lock_wait`` the block still runs
    unlocked; concurrent appends may then race.
    """
    client = await get_redis()
    lock = client.lock(
        _session_lock_key(card_id, session_id),
        timeout=settings.session_lock_ttl,
        blocking_timeout=settings.session_lock_wait,
    )

    try:
        acquired = bool(await lock.acquire())
    except redis.RedisError as e:
        logger.warning(
            "Session lock unavailable",
            card_id=str(card_id),
            session_id=session_id,
            error=str(e),
        )
        acquired = False

    if not acquired:
        record_session_lock_failure()

    try:
        yield acquired
    finally:
        if acquired:
            try:
                await lock.release()
            except redis.RedisError as e:
                # Lock expired before release
                logger.warning(
                    "Session lock release failed",
                    card_id=str(card_id),
                    session_id=session_id,
                    error=str(e),
                )
