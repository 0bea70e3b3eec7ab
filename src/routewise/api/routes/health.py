"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..deps import AppServices, get_services

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/amap", status_code=status.HTTP_200_OK)
async def health_amap(services: AppServices = Depends(get_services)) -> dict:
    """Check that the AMap web service answers with the configured key."""
    if services.amap is None:
        return {"service": "amap", "healthy": False, "error": "AMap client is not configured"}
    healthy = await services.amap.check_health()
    return {"service": "amap", "healthy": healthy}
