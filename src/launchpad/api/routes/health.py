"""Health check endpoint with database, stream and scheduler status."""

from typing import Any

from fastapi import APIRouter, Request

from launchpad.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """
    Health check endpoint.

    Returns:
        dict with overall status, version and per-component health.
        Status is "degraded" when Supabase is unhealthy or the trade
        stream gave up reconnecting.
    """
    settings = get_settings()
    container = getattr(request.app.state, "container", None)

    if container is None:
        return {
            "status": "starting",
            "version": settings.app_version,
        }

    components = await container.health()
    return {
        "status": "ok" if components.pop("healthy") else "degraded",
        "version": settings.app_version,
        **components,
    }
