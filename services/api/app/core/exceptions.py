"""Domain errors and their HTTP mapping."""

import sentry_sdk
import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger()


class TapCardError(Exception):
    """Base class for errors raised by the service layer."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientError(TapCardError):
    """Request rejected: missing or invalid field, unresolvable reference."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(TapCardError):
    """A referenced card, event or record does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ServerError(TapCardError):
    """Unexpected failure while serving an otherwise valid request."""


async def tapcard_error_handler(request: Request, exc: TapCardError) -> JSONResponse:
    """Render a service error as a JSON response."""
    if isinstance(exc, ServerError):
        logger.error("Server error", path=request.url.path, error=exc.message)
        sentry_sdk.capture_exception(exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": "Internal server error"},
        )

    logger.info(
        "Request rejected",
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Report storage failures generically; details go to the log only."""
    logger.error("Storage error", path=request.url.path, error=str(exc))
    sentry_sdk.capture_exception(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the domain error handlers to the application."""
    app.add_exception_handler(TapCardError, tapcard_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
