"""Cache storage backends."""

from .base import CacheStats, CacheStore
from .memory import InMemoryCacheStore

__all__ = [
    "CacheStats",
    "CacheStore",
    "InMemoryCacheStore",
]
