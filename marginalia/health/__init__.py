"""Health check endpoints."""

from marginalia.health.router import router


__all__ = ["router"]
