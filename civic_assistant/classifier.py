"""Decide whether a chat query needs the search-grounded (LIVE) backend."""

from __future__ import annotations

import re

from civic_assistant.domain import AISource

REAL_TIME_TERMS: tuple[str, ...] = (
    # news and time
    "news", "breaking", "latest", "recent", "today", "yesterday", "this week", "current events",
    "happening now", "live", "update", "announcement", "press release",
    # weather
    "weather", "temperature", "rain", "snow", "forecast", "climate", "storm", "hurricane",
    "sunny", "cloudy", "wind", "humidity",
    # fact checking
    "verify", "fact check", "is it true", "confirm", "validate", "check if", "real or fake",
    # markets
    "stock price", "market", "trading", "nasdaq", "dow jones", "cryptocurrency", "bitcoin",
    # sports
    "score", "game result", "match", "tournament", "championship", "playoffs",
    # traffic and travel
    "traffic", "road conditions", "accident", "construction", "transit", "flight status",
    # "now"
    "right now", "at this moment", "currently", "as of today", "real time", "live data",
    # availability
    "status", "availability", "open now", "closed", "hours of operation",
    # near future
    "upcoming", "this year", "this month", "next week", "next day", "as of now", "tomorrow",
)

TIME_SENSITIVE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"what.*(happened|happening).*today",
        r"latest.*on",
        r"current.*status",
        r"is.*open.*now",
        r"weather.*in",
        r"news.*about",
        r"stock.*price",
        r"verify.*that",
        r"fact.*check",
    )
)


def needs_live_information(query: str) -> bool:
    """True if the query contains a trigger term or matches a time-sensitive pattern."""
    lowered = query.lower()
    if any(term in lowered for term in REAL_TIME_TERMS):
        return True
    return any(pattern.search(query) for pattern in TIME_SENSITIVE_PATTERNS)


def classify(query: str) -> AISource:
    """Pure, deterministic routing decision for one query."""
    if not query or not query.strip():
        return AISource.GENERAL
    return AISource.LIVE if needs_live_information(query) else AISource.GENERAL
