"""Rate limiting configuration using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.core.client_ip import resolve_client_ip
from app.core.config import get_settings

settings = get_settings()


def get_real_client_ip(request: Request) -> str:
    """Rate limit key: the resolved client IP, or the socket address."""
    host = request.client.host if request.client else None
    return resolve_client_ip(request.headers, host) or get_remote_address(request)


limiter = Limiter(
    key_func=get_real_client_ip,
    default_limits=["1000/hour"],
    storage_uri=settings.rate_limit_storage_uri,
    strategy="fixed-window",
)

# Public ingestion endpoints: every card view and click posts here
RATE_LIMIT_INGEST = "600/minute"

# Authenticated dashboard and analytics endpoints
RATE_LIMIT_API = "100/minute"
