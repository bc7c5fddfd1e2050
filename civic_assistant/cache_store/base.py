"""Shared protocol and types for cache storage backends."""

from dataclasses import dataclass
from typing import Any, Optional, Protocol


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time counters exposed by the cache introspection endpoint."""
    keys: int
    hits: int
    misses: int


class CacheStore(Protocol):
    """Protocol for key/value stores with per-entry expiry."""
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if absent or expired."""

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store a value, replacing any existing entry for the key."""

    def delete(self, key: str) -> None:
        """Remove a key without raising if it is absent."""

    def flush(self) -> None:
        """Drop every entry (operational resets only)."""

    def stats(self) -> CacheStats:
        """Return key count and hit/miss counters."""

    def ttl_remaining(self) -> dict[str, float]:
        """Return seconds left for each live key."""
