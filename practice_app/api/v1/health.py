"""
Health check and status endpoints.
"""
from fastapi import APIRouter, Request

from practice_app.core import settings
from practice_app.core.datetime_utils import utc_now

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.
    Returns basic health status and the number of live practice sessions.
    """
    registry = getattr(request.app.state, "registry", None)
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "live_sessions": len(registry) if registry is not None else 0,
    }


@router.get("/ping")
async def ping():
    """
    Simple ping endpoint for basic connectivity testing.
    """
    return {"message": "pong"}
