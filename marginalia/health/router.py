"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter, Request

from marginalia.config import get_settings
from marginalia.core.database import AsyncCassandraConnection


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check: the application process is up."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, Any]:
    """Readiness check: whether the application can serve requests.

    Includes storage connectivity and broadcast hub statistics.
    """
    settings = get_settings()
    hub = getattr(request.app.state, "hub", None)
    storage_connected = (
        AsyncCassandraConnection.is_connected() if settings.uses_cassandra else True
    )
    return {
        "status": "ready" if storage_connected else "degraded",
        "environment": settings.environment,
        "debug": settings.debug,
        "storage": settings.storage_backend,
        "storage_connected": storage_connected,
        "broadcast": hub.stats() if hub is not None else None,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
