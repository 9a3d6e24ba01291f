"""API v1 router - aggregates all v1 endpoints."""

from fastapi import APIRouter

from app.api.v1.dashboard import router as dashboard_router
from app.api.v1.events import router as events_router
from app.api.v1.taps import router as taps_router

router = APIRouter(prefix="/api/v1")

# Include sub-routers
router.include_router(taps_router)
router.include_router(dashboard_router)
router.include_router(events_router)


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
