"""In-process TTL cache for provider responses.

Owned by a single IFSCClient instance. Expired entries are evicted
when they are read.
"""

import time
from collections.abc import Callable
from typing import Any


class TTLCache:
    """
    Minimal key -> value cache with a fixed time-to-live.

    Args:
        ttl: Seconds an entry stays valid. 0 disables caching.
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        if self.ttl <= 0:
            return
        self._entries[key] = (self._clock() + self.ttl, value)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
