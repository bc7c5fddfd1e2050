"""Factory helpers for wiring the six providers at startup."""

from __future__ import annotations

import datetime as dt
from typing import Callable

from civic_assistant import config
from civic_assistant.cache_store import CacheStore
from civic_assistant.llm.base import TextCompleter
from civic_assistant.providers.air_quality import AirQualityProvider
from civic_assistant.providers.base import ProviderClient
from civic_assistant.providers.crime import CrimeProvider
from civic_assistant.providers.health import HealthProvider
from civic_assistant.providers.market import MarketProvider
from civic_assistant.providers.traffic import TrafficProvider
from civic_assistant.providers.weather import WeatherProvider
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="providers/factory")

# Snapshot field order.
PROVIDER_CLASSES: tuple[type[ProviderClient], ...] = (
    WeatherProvider,
    AirQualityProvider,
    TrafficProvider,
    HealthProvider,
    CrimeProvider,
    MarketProvider,
)


def build_providers(
    completer: TextCompleter,
    cache: CacheStore,
    settings: config.Settings | None = None,
    *,
    today: Callable[[], dt.date] = dt.date.today,
) -> list[ProviderClient]:
    """Instantiate every provider against one upstream and one shared cache."""
    settings = settings or config.settings
    providers = [
        cls(
            completer,
            cache,
            ttl_seconds=settings.provider_ttl_seconds[cls.domain],
            coordinate_precision=settings.coordinate_precision,
            today=today,
        )
        for cls in PROVIDER_CLASSES
    ]
    logger.info(
        "Built providers",
        extra={"ttls": {p.domain: p.ttl_seconds for p in providers}},
    )
    return providers
