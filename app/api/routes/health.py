"""Health check endpoints."""

from datetime import datetime, timezone

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db, get_ifsc_client, get_redis
from app.config import get_settings
from app.services.ifsc_client import IFSCClient

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime


class ReadyCheck(BaseModel):
    """Individual readiness check."""

    status: str
    message: str | None = None


class ReadyResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    checks: dict[str, ReadyCheck]


@router.get("/health", response_model=HealthResponse)
async def health():
    """
    Basic health check.

    Returns healthy if the service is running.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/ready", response_model=ReadyResponse)
async def ready(
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
):
    """
    Readiness check for all dependencies.

    Checks:
    - Database connectivity
    - Redis connectivity
    - Results provider configured
    """
    checks = {}
    all_ready = True

    try:
        await db.execute(text("SELECT 1"))
        checks["db"] = ReadyCheck(status="ok")
    except Exception as e:
        checks["db"] = ReadyCheck(status="error", message=str(e))
        all_ready = False

    try:
        await redis_client.ping()
        checks["redis"] = ReadyCheck(status="ok")
    except Exception as e:
        checks["redis"] = ReadyCheck(status="error", message=str(e))
        all_ready = False

    settings = get_settings()
    if settings.provider_configured:
        checks["provider"] = ReadyCheck(status="ok", message=settings.ifsc_base_url)
    else:
        # Warn only; stored results can still be scored
        checks["provider"] = ReadyCheck(status="warning", message="Provider not configured")

    return ReadyResponse(ready=all_ready, checks=checks)


@router.get("/health/provider")
async def provider_health(
    provider: IFSCClient = Depends(get_ifsc_client),
):
    """Check results provider connectivity."""
    try:
        is_healthy = await provider.health_check()
        return {
            "status": "healthy" if is_healthy else "unhealthy",
            "timestamp": datetime.now(timezone.utc),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "timestamp": datetime.now(timezone.utc),
        }
