"""Small async-aware TTL cache.

Entries are (value, monotonic timestamp) pairs. ``get`` returns a fresh
entry or calls the loader; ``invalidate`` drops one key or everything.
When full, the oldest entry is evicted.
"""

import asyncio
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Keyed cache with time-based expiry and a size cap.

    Usage:
        cache: TTLCache[list[OrganizationProfile]] = TTLCache(ttl_seconds=300)
        profiles = await cache.get("profiles", source.load_profiles)
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_size: int = 128,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self._ttl = ttl_seconds
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, tuple[V, float]] = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._is_fresh(entry[1])

    async def get(self, key: str, loader: Callable[[], Awaitable[V]]) -> V:
        """Return the cached value for *key*, loading it when missing or expired.

        Loader errors propagate and leave the cache unchanged.
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry[1]):
                return entry[0]

            value = await loader()
            self._entries[key] = (value, self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)
            return value

    def invalidate(self, key: str | None = None) -> None:
        """Drop *key*, or every entry when *key* is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def _is_fresh(self, cached_at: float) -> bool:
        return self._clock() - cached_at < self._ttl
