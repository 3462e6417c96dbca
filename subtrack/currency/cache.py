"""
Time-windowed cache.

Each entry stores its value together with an absolute expiry instant taken
from an injectable clock. Expired entries are dropped on read, so the next
caller goes back to the source of truth.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Optional, TypeVar


T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class ExpiringCache(Generic[T]):
    """
    Key/value cache whose entries expire `ttl_seconds` after being set.

    A TTL of 0 disables caching entirely. Values may be None; use
    `get_entry()` to tell a cached None apart from a miss.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry[T]] = {}

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get_entry(self, key: Hashable) -> Optional[CacheEntry[T]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self.get_entry(key)
        return default if entry is None else entry.value

    def set(self, key: Hashable, value: T) -> None:
        if not self.enabled:
            return
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self._ttl)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
