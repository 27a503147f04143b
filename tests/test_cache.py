"""Tests for gitjira.cache."""

from gitjira.cache import AsyncCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _counting_fetch(calls: list[int]):
    async def fetch() -> list[int]:
        calls.append(len(calls) + 1)
        return list(calls)

    return fetch


class TestAsyncCache:
    async def test_fetches_once_without_ttl(self) -> None:
        calls: list[int] = []
        cache: AsyncCache[list[int]] = AsyncCache("fields")
        fetch = _counting_fetch(calls)
        assert await cache.get_or_fetch(fetch) == [1]
        assert await cache.get_or_fetch(fetch) == [1]
        assert calls == [1]

    async def test_refetches_after_ttl(self) -> None:
        clock = FakeClock()
        calls: list[int] = []
        cache: AsyncCache[list[int]] = AsyncCache("projects", ttl=60, clock=clock)
        fetch = _counting_fetch(calls)

        await cache.get_or_fetch(fetch)
        clock.now += 59
        assert await cache.get_or_fetch(fetch) == [1]
        clock.now += 1
        assert await cache.get_or_fetch(fetch) == [1, 2]

    async def test_invalidate(self) -> None:
        calls: list[int] = []
        cache: AsyncCache[list[int]] = AsyncCache("fields")
        fetch = _counting_fetch(calls)
        await cache.get_or_fetch(fetch)
        cache.invalidate()
        await cache.get_or_fetch(fetch)
        assert calls == [1, 2]
