"""Observability setup: structured logging, tracing, metrics, and error tracking."""

import logging
import re
import time
import uuid
from contextvars import ContextVar

import sentry_sdk
import structlog
from fastapi import FastAPI, Request, Response
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Counter, Histogram, generate_latest
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.core.config import get_settings

settings = get_settings()

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

# Prometheus metrics - HTTP
REQUEST_COUNT = Counter(
    "tapcard_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "tapcard_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Prometheus metrics - ingestion
TAPS_INGESTED = Counter(
    "tapcard_taps_ingested_total",
    "Tap records created",
    ["source"],  # tap, action_fallback
)

ACTIONS_APPENDED = Counter(
    "tapcard_actions_appended_total",
    "Actions appended to an existing session tap",
)

EVENT_ATTRIBUTIONS = Counter(
    "tapcard_event_attributions_total",
    "Taps attributed to a live event",
    ["method"],  # event_location, user_location_during_event
)

SESSION_LOCK_FAILURES = Counter(
    "tapcard_session_lock_failures_total",
    "Session appends that ran without the per-session lock",
)

# Prometheus metrics - analytics
ANALYTICS_QUERY_DURATION = Histogram(
    "tapcard_analytics_query_duration_seconds",
    "Time to compute an analytics response",
    ["report"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# Path segments that carry identifiers, collapsed to keep label cardinality low
_UUID_SEGMENT = re.compile(
    r"/[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)


def normalize_endpoint(path: str) -> str:
    """Replace UUID path segments with a placeholder."""
    return _UUID_SEGMENT.sub("/{id}", path)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to every request.

    Reuses an inbound X-Request-ID header when present, binds the ID to the
    structlog context and echoes it back on the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_ctx.reset(token)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with its latency and record HTTP metrics."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        logger = structlog.get_logger()
        start_time = time.perf_counter()

        logger.info(
            "Request started",
            client_ip=request.client.host if request.client else None,
        )

        response = await call_next(request)
        duration = time.perf_counter() - start_time

        logger.info(
            "Request completed",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )

        endpoint = normalize_endpoint(request.url.path)
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()
        REQUEST_LATENCY.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


def configure_structlog() -> None:
    """Configure structlog for JSON logging with context variables."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if settings.debug else logging.INFO,
    )


def setup_opentelemetry(app: FastAPI) -> None:
    """Export traces over OTLP when an endpoint is configured."""
    if not settings.otlp_endpoint:
        structlog.get_logger().info("OpenTelemetry disabled (no OTLP endpoint configured)")
        return

    provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: "tapcard-api"}))
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=True))
    )
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)

    structlog.get_logger().info(
        "OpenTelemetry configured",
        otlp_endpoint=settings.otlp_endpoint,
    )


def setup_sentry() -> None:
    """Report unhandled errors to Sentry when a DSN is configured."""
    if not settings.sentry_dsn:
        structlog.get_logger().info("Sentry disabled (no DSN configured)")
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment="development" if settings.debug else "production",
        traces_sample_rate=0.1,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        # Tap payloads carry IPs and coordinates
        send_default_pii=False,
    )

    structlog.get_logger().info("Sentry configured")


def setup_observability(app: FastAPI) -> None:
    """Configure logging, error tracking, tracing and the /metrics endpoint."""
    configure_structlog()
    setup_sentry()
    setup_opentelemetry(app)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type="text/plain; charset=utf-8",
        )

    structlog.get_logger().info("Observability setup complete")


def record_tap_created(source: str) -> None:
    """Record a new tap record."""
    TAPS_INGESTED.labels(source=source).inc()


def record_actions_appended(count: int) -> None:
    """Record actions appended to an existing tap record."""
    ACTIONS_APPENDED.inc(count)


def record_event_attribution(method: str) -> None:
    """Record a tap attributed to a live event."""
    EVENT_ATTRIBUTIONS.labels(method=method).inc()


def record_session_lock_failure() -> None:
    """Record an append that could not take the session lock."""
    SESSION_LOCK_FAILURES.inc()


def record_analytics_query(report: str, duration: float) -> None:
    """Record the time spent computing an analytics response."""
    ANALYTICS_QUERY_DURATION.labels(report=report).observe(duration)
