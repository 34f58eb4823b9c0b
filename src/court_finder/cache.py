"""In-memory cache with per-entry expiry."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return self.expires_at > now


class TTLCache(Generic[T]):
    """Thread-safe key/value store whose entries expire after a TTL.

    Expired entries read as misses and are dropped on the next write.
    There is no size bound: keys are URLs or (venue, date) pairs.
    """

    def __init__(self, ttl: float = 300.0, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry[T]] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: Hashable) -> Optional[T]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or not entry.is_valid(self._clock()):
            return None
        return entry.value

    def set(self, key: Hashable, value: T, ttl: Optional[float] = None) -> None:
        now = self._clock()
        entry = CacheEntry(value=value, expires_at=now + (self._ttl if ttl is None else ttl))
        with self._lock:
            self._purge(now)
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for entry in self._entries.values() if entry.is_valid(now))

    def _purge(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
        for key in expired:
            del self._entries[key]
