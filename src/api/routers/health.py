"""Health check endpoints."""
import logging

import httpx
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.config import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

HEALTH_TIMEOUT = 5.0


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    backend: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    """Check application health and reachability of the backend's auth service."""
    backend_status = "healthy"
    try:
        async with httpx.AsyncClient(timeout=HEALTH_TIMEOUT) as client:
            response = await client.get(
                settings.supabase_auth_health_url,
                headers={"apikey": settings.supabase_anon_key},
            )
            response.raise_for_status()
    except httpx.HTTPError:
        logger.exception("Backend health check failed")
        backend_status = "unhealthy"

    return HealthResponse(
        status="healthy" if backend_status == "healthy" else "degraded",
        backend=backend_status,
    )
