"""FastAPI dependencies for CragPicks."""

from collections.abc import AsyncGenerator

import redis.asyncio as redis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.base import async_session_factory
from app.services.ifsc_client import IFSCClient
from app.services.results import ResultsSyncClient
from app.services.scoring.engine import load_default_rules
from app.services.scoring.locking import EventRunLock
from app.services.scoring.orchestrator import ScoringOrchestrator


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_redis() -> AsyncGenerator[redis.Redis, None]:
    """Get Redis client dependency."""
    settings = get_settings()
    client = redis.from_url(settings.redis_url)
    try:
        yield client
    finally:
        await client.aclose()


async def get_ifsc_client() -> AsyncGenerator[IFSCClient, None]:
    """Get results provider client dependency."""
    async with IFSCClient() as client:
        yield client


async def get_orchestrator(
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis | None = Depends(get_redis),
    provider: IFSCClient = Depends(get_ifsc_client),
) -> ScoringOrchestrator:
    """Get a scoring orchestrator wired to the request's session."""
    settings = get_settings()
    return ScoringOrchestrator(
        session=db,
        sync_client=ResultsSyncClient(db, provider),
        rules=load_default_rules(settings.config_path),
        run_lock=EventRunLock(redis_client, timeout=settings.scoring_lock_timeout_seconds),
    )
