"""Process-wide service objects, built once and injected into request handlers."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from civic_assistant import config
from civic_assistant.aggregator import EnvironmentalAggregator
from civic_assistant.backends import GeneralBackend, LiveBackend
from civic_assistant.cache_store import CacheStore, InMemoryCacheStore
from civic_assistant.chat import ChatOrchestrator
from civic_assistant.domain import AISource
from civic_assistant.llm import ChatCompletionsClient, GenerateContentClient
from civic_assistant.providers import build_providers
from civic_assistant.rate_limiter import SlidingWindowRateLimiter
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="services")


@dataclass
class Services:
    """Everything a request handler needs; no module-level mutable state."""
    settings: config.Settings
    cache: CacheStore
    environment_limiter: SlidingWindowRateLimiter
    chat_limiter: SlidingWindowRateLimiter
    aggregator: EnvironmentalAggregator
    chat: ChatOrchestrator
    started_at: float = field(default_factory=time.monotonic)


def build_services(settings: config.Settings | None = None) -> Services:
    """Wire transports, providers, limiters and orchestrators from settings."""
    settings = settings or config.settings

    general_client = GenerateContentClient(
        settings.general_base_url,
        settings.general_api_key,
        settings.general_model,
        timeout=settings.upstream_timeout_seconds,
        options=settings.general_options,
    )
    live_client = ChatCompletionsClient(
        settings.live_base_url,
        settings.live_api_key,
        settings.live_model,
        timeout=settings.upstream_timeout_seconds,
        options=settings.live_options,
    )
    if not settings.general_base_url:
        logger.error("General backend base URL is not set (CIVIC_GENERAL_BASE_URL)")
    if not settings.general_api_key:
        logger.error("General backend API key is not set (CIVIC_GENERAL_API_KEY)")
    if not settings.live_api_key:
        logger.error("Live backend API key is not set (CIVIC_LIVE_API_KEY)")

    cache = InMemoryCacheStore()
    provider_upstream = live_client if settings.provider_backend == "live" else general_client
    logger.info("Providers will use the %s upstream", settings.provider_backend)
    aggregator = EnvironmentalAggregator(
        build_providers(provider_upstream, cache, settings),
        cache,
        snapshot_ttl_seconds=settings.snapshot_ttl_seconds,
        max_workers=settings.aggregation_max_workers,
        fetch_timeout_seconds=settings.aggregation_timeout_seconds,
    )

    persona = {
        "assistant_name": settings.assistant_name,
        "city": settings.city_name,
        "history_turns": settings.history_turns,
    }
    chat = ChatOrchestrator(
        {
            AISource.LIVE: LiveBackend(live_client, **persona),
            AISource.GENERAL: GeneralBackend(general_client, **persona),
        },
        history_turns=settings.history_turns,
    )

    return Services(
        settings=settings,
        cache=cache,
        environment_limiter=SlidingWindowRateLimiter(
            settings.rate_limit_max_calls, settings.rate_limit_window_seconds
        ),
        chat_limiter=SlidingWindowRateLimiter(
            settings.chat_rate_limit_max_calls, settings.rate_limit_window_seconds
        ),
        aggregator=aggregator,
        chat=chat,
    )
