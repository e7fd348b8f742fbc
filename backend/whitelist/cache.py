"""
Small time-bounded memoization for whitelist reads.

Why: The database-backed service answers repeated membership checks (e.g. a
login burst) without a query per request. The clock and the expiry are
injected so tests can move time explicitly; there is no eviction strategy
beyond expiry and manual invalidation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar
import time


V = TypeVar("V")

DEFAULT_TTL_SECONDS = 300


@dataclass
class _CacheEntry(Generic[V]):
    value: V
    expires_at: float


class ExpiringCache(Generic[V]):
    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl_seconds < 0:
            raise ValueError("invalid_ttl")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, _CacheEntry[V]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return entry.value

    def put(self, key: Hashable, value: V) -> None:
        self._entries[key] = _CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def invalidate(self, key: Hashable | None = None) -> None:
        """Drop one entry, or everything when ``key`` is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["DEFAULT_TTL_SECONDS", "ExpiringCache"]
