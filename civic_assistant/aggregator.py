"""Fan out to every provider for one request and assemble the environmental snapshot."""

from __future__ import annotations

import json
from concurrent.futures import Executor, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Sequence

from pydantic import ValidationError as PydanticValidationError

from civic_assistant.cache_store import CacheStore
from civic_assistant.domain import EnvironmentalSnapshot, Location, ProviderResult, UserContext
from civic_assistant.errors import ErrorKind, ValidationError
from civic_assistant.providers.base import ProviderClient
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="aggregator")

REQUIRED_LOCATION_FIELDS = ("location.lat", "location.lng", "location.address")

# Provider domain -> snapshot field.
SNAPSHOT_FIELDS = {
    "weather": "weather",
    "air_quality": "air_quality",
    "traffic": "traffic",
    "health": "health",
    "crime": "crime",
    "market": "markets",
}


def validate_location(raw: Mapping[str, Any] | None) -> Location:
    """Turn a raw `location` mapping into a Location or raise ValidationError."""
    if not isinstance(raw, Mapping):
        raise ValidationError("Missing required location data", REQUIRED_LOCATION_FIELDS)
    address = raw.get("address")
    if raw.get("lat") is None or raw.get("lng") is None or not (isinstance(address, str) and address.strip()):
        raise ValidationError("Missing required location data", REQUIRED_LOCATION_FIELDS)
    try:
        return Location.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError("Malformed location data", REQUIRED_LOCATION_FIELDS) from exc


def snapshot_cache_key(location: Location, user_context: UserContext) -> str:
    """Composite key over the full (location, user context) request."""
    context = json.dumps(user_context.model_dump(mode="json"), sort_keys=True)
    return f"snapshot:{location.lat}:{location.lng}:{location.address}:{context}"


class EnvironmentalAggregator:
    """Runs all provider fetches concurrently and always returns a complete snapshot."""

    def __init__(
        self,
        providers: Sequence[ProviderClient],
        cache: CacheStore,
        *,
        snapshot_ttl_seconds: float = 300,
        executor: Executor | None = None,
        max_workers: int = 12,
        fetch_timeout_seconds: float | None = 35.0,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        missing = set(SNAPSHOT_FIELDS) - {p.domain for p in providers}
        if missing:
            raise ValueError(f"Aggregator is missing providers for: {sorted(missing)}")
        self.providers = list(providers)
        self._cache = cache
        self.snapshot_ttl_seconds = snapshot_ttl_seconds
        # Long-lived pool: fetches outlive a disconnected caller and still fill the cache.
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="provider")
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self._now = now

    def _collect(self, location: Location, user_context: UserContext) -> list[ProviderResult]:
        """Submit every fetch and wait for them, up to `fetch_timeout_seconds` overall.

        Fetches still running at the deadline are reported as timeouts with the
        domain default; they keep running and fill the cache when they finish.
        """
        futures = {
            self._executor.submit(provider.fetch, location, user_context): provider
            for provider in self.providers
        }
        _, pending = wait(futures, timeout=self.fetch_timeout_seconds)

        results = []
        for future, provider in futures.items():
            if future in pending:
                logger.warning(
                    "Provider %s did not finish within %ss; using default payload",
                    provider.domain,
                    self.fetch_timeout_seconds,
                )
                results.append(
                    ProviderResult.failure(provider.domain, provider.default_payload(), ErrorKind.UPSTREAM_TIMEOUT)
                )
                continue
            exc = future.exception()
            if exc is not None:
                logger.error(
                    "Provider %s raised instead of returning a result",
                    provider.domain,
                    exc_info=(type(exc), exc, exc.__traceback__),
                )
                results.append(
                    ProviderResult.failure(provider.domain, provider.default_payload(), ErrorKind.INTERNAL_ERROR)
                )
            else:
                results.append(future.result())
        return results

    def aggregate(self, location: Location, user_context: UserContext | None = None) -> EnvironmentalSnapshot:
        """Return the snapshot for `location`, from cache when the same request was seen recently."""
        user_context = user_context or UserContext()
        key = snapshot_cache_key(location, user_context)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Snapshot cache hit for %s", location.address)
            return cached

        logger.info("Fetching environmental data for %s", location.address)
        results = self._collect(location, user_context)

        fields = {SNAPSHOT_FIELDS[r.domain]: r.data for r in results}
        failures = {r.domain: r.error.value for r in results if not r.ok}
        if failures:
            logger.warning("Some data sources failed", extra={"failures": failures})

        snapshot = EnvironmentalSnapshot(
            **fields,
            unavailable=sorted(failures),
            last_updated=self._now(),
            location=location,
        )
        self._cache.set(key, snapshot, self.snapshot_ttl_seconds)
        return snapshot

    def shutdown(self) -> None:
        """Stop accepting work; in-flight fetches are allowed to finish."""
        self._executor.shutdown(wait=False)
