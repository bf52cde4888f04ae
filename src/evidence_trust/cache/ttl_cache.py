"""Bounded, time-expiring result cache shared by the engines.

Entries are ``key -> (value, stored_at)``. When full, the oldest inserted
entry is evicted. Reads and writes hold a re-entrant lock so one cache can be
shared by a worker pool; pass separate instances to shard per worker.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

import structlog

logger = structlog.get_logger(__name__)

V = TypeVar("V")


@dataclass
class CacheStats:
    size: int
    max_size: int
    ttl_seconds: float
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "size": self.size,
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hit_rate, 3),
        }


class TTLCache(Generic[V]):
    """Insertion-ordered cache with per-entry expiry."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._entries: dict[str, tuple[V, float]] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            value, stored_at = entry
            if self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            if key in self._entries:
                # Re-inserting moves the key to the newest position.
                del self._entries[key]
            elif len(self._entries) >= self.max_size:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                logger.debug("cache_evicted", key=oldest)
            self._entries[key] = (value, self._clock())

    def resize(self, ttl_seconds: float, max_size: int) -> None:
        """Apply new limits; the oldest entries go when the cache shrinks."""
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        with self._lock:
            self.ttl_seconds = ttl_seconds
            self.max_size = max_size
            while len(self._entries) > max_size:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                logger.debug("cache_evicted", key=oldest)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                max_size=self.max_size,
                ttl_seconds=self.ttl_seconds,
                hits=self._hits,
                misses=self._misses,
            )
