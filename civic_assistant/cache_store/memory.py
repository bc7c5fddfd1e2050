"""Process-local TTL cache shared by the provider clients and the aggregator."""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from civic_assistant.cache_store.base import CacheStats, CacheStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/in_memory_cache_store")


@dataclass(frozen=True)
class CacheEntry:
    """Stored value plus the clock reading after which it is a miss."""
    key: str
    value: Any
    expires_at: float


class InMemoryCacheStore(CacheStore):
    """Thread-safe, TTL-aware in-memory store with lazy expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize an empty store; `clock` is injectable for tests."""
        logger.debug("Initializing InMemoryCacheStore")
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the value for `key`, dropping it first if it has expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._clock() >= entry.expires_at:
                self._entries.pop(key, None)
                self._misses += 1
                logger.debug("Cache entry expired: %s", key)
                return None
            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store `value` under `key` for `ttl_seconds`; last write wins."""
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl_seconds)

    def delete(self, key: str) -> None:
        """Remove a key if it exists."""
        with self._lock:
            self._entries.pop(key, None)

    def flush(self) -> None:
        """Clear all entries and reset counters."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        logger.info("Cache flushed (%d entries dropped)", count)

    def _purge_expired(self, now: float) -> None:
        """Drop expired entries; caller must hold the lock."""
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for k in expired:
            del self._entries[k]

    def stats(self) -> CacheStats:
        """Return live key count and hit/miss counters."""
        with self._lock:
            self._purge_expired(self._clock())
            return CacheStats(keys=len(self._entries), hits=self._hits, misses=self._misses)

    def ttl_remaining(self) -> dict[str, float]:
        """Return seconds until expiry for every live key."""
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            return {k: round(e.expires_at - now, 3) for k, e in self._entries.items()}
