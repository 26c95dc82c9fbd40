"""In-memory TTL caches keyed by request signature.

Expiry is lazy: a stale entry is shadowed on read, never swept.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    data: T
    cached_at: float


class TTLCache(Generic[T]):
    def __init__(self, ttl: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = float(ttl)
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.cached_at >= self.ttl:
            return None
        return entry.data

    def set(self, key: str, value: T) -> None:
        self._entries[key] = CacheEntry(data=value, cached_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None


class MarketCaches:
    """The independent cache instances used by both provider clients."""

    def __init__(
        self,
        *,
        quote_ttl: float = 30.0,
        candle_ttl: float = 300.0,
        search_ttl: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.quotes: TTLCache[Any] = TTLCache(quote_ttl, clock=clock)
        self.candles: TTLCache[Any] = TTLCache(candle_ttl, clock=clock)
        self.search: TTLCache[Any] = TTLCache(search_ttl, clock=clock)
        # Secondary-provider candles live in their own namespace.
        self.yahoo: TTLCache[Any] = TTLCache(candle_ttl, clock=clock)

    def clear_all(self) -> None:
        for cache in (self.quotes, self.candles, self.search, self.yahoo):
            cache.clear()


def cache_key(*parts: str) -> str:
    return ":".join(str(p).replace(" ", "") for p in parts)
