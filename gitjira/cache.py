"""Get-or-fetch caches owned by a provider instance."""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

ONE_DAY = 24 * 60 * 60


class AsyncCache(Generic[T]):
    """Holds one fetched value, refetched on miss or after ``ttl`` seconds.

    ``ttl=None`` keeps the value for the lifetime of the owner. Concurrent
    misses may both fetch; the last writer wins.
    """

    def __init__(self, name: str, ttl: float | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.name = name
        self.ttl = ttl
        self._clock = clock
        self._value: T | None = None
        self._stored_at: float | None = None

    def _fresh(self) -> bool:
        if self._stored_at is None:
            return False
        if self.ttl is None:
            return True
        return self._clock() - self._stored_at < self.ttl

    async def get_or_fetch(self, fetch: Callable[[], Awaitable[T]]) -> T:
        if self._fresh():
            return self._value  # type: ignore[return-value]
        logger.debug("cache miss: %s", self.name)
        value = await fetch()
        self._value = value
        self._stored_at = self._clock()
        return value

    def invalidate(self) -> None:
        self._value = None
        self._stored_at = None
