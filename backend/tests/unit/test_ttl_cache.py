"""Unit tests for TTLCache."""

import pytest

from app.application.services.ttl_cache import TTLCache


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _loader(value, calls: list):
    async def load():
        calls.append(value)
        return value

    return load


@pytest.mark.asyncio
async def test_value_cached_until_expiry():
    clock = _Clock()
    cache: TTLCache[str] = TTLCache(ttl_seconds=10, clock=clock)
    calls: list = []

    assert await cache.get("k", _loader("v1", calls)) == "v1"
    clock.now = 9
    assert await cache.get("k", _loader("v2", calls)) == "v1"
    clock.now = 10
    assert await cache.get("k", _loader("v2", calls)) == "v2"
    assert calls == ["v1", "v2"]


@pytest.mark.asyncio
async def test_invalidate_single_key_and_all():
    cache: TTLCache[int] = TTLCache(ttl_seconds=60)
    calls: list = []
    await cache.get("a", _loader(1, calls))
    await cache.get("b", _loader(2, calls))

    cache.invalidate("a")
    assert "a" not in cache and "b" in cache

    cache.invalidate()
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_max_size_evicts_oldest():
    cache: TTLCache[int] = TTLCache(ttl_seconds=60, max_size=2)
    calls: list = []
    for key, value in (("a", 1), ("b", 2), ("c", 3)):
        await cache.get(key, _loader(value, calls))
    assert "a" not in cache
    assert "b" in cache and "c" in cache


@pytest.mark.asyncio
async def test_loader_error_leaves_cache_unchanged():
    cache: TTLCache[int] = TTLCache(ttl_seconds=60)

    async def failing():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await cache.get("k", failing)
    assert len(cache) == 0


def test_invalid_arguments():
    with pytest.raises(ValueError):
        TTLCache(ttl_seconds=0)
    with pytest.raises(ValueError):
        TTLCache(max_size=0)
