"""Per-event scoring run lock.

Prevents two scoring runs for the same event from overlapping. Uses a
Redis lock with an expiry so a crashed run cannot block the event forever.
Without a Redis client the lock is a no-op (single-process deployments
and tests).
"""

from contextlib import asynccontextmanager

import redis.asyncio as redis
import structlog
from redis.exceptions import LockError

from app.services.errors import RunInProgressError

logger = structlog.get_logger(__name__)


class EventRunLock:
    """Non-blocking, expiring lock keyed by event id."""

    def __init__(
        self,
        redis_client: redis.Redis | None,
        timeout: int = 600,
        key_prefix: str = "lock:scoring:event",
    ):
        self.redis = redis_client
        self.timeout = timeout
        self.key_prefix = key_prefix

    def _get_key(self, event_id: int) -> str:
        return f"{self.key_prefix}:{event_id}"

    @asynccontextmanager
    async def hold(self, event_id: int):
        """
        Hold the lock for the duration of a run.

        Raises:
            RunInProgressError: If another run holds the lock
        """
        if self.redis is None:
            yield
            return

        lock = self.redis.lock(self._get_key(event_id), timeout=self.timeout)
        acquired = await lock.acquire(blocking=False)
        if not acquired:
            raise RunInProgressError(
                f"A scoring run for event {event_id} is already in progress",
                event_id=event_id,
            )

        logger.debug("scoring_lock_acquired", event_id=event_id)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # Expired mid-run; the next run may already own it
                logger.warning("scoring_lock_release_failed", event_id=event_id, error=str(e))
