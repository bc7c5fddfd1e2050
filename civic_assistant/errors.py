"""Error taxonomy shared by the aggregation core, the chat router and the HTTP layer."""

from __future__ import annotations

from enum import Enum
from typing import Sequence


class ErrorKind(str, Enum):
    """Why a provider fell back to its default payload."""
    UPSTREAM_ERROR = "upstream_error"
    UPSTREAM_TIMEOUT = "upstream_timeout"
    PARSE_ERROR = "parse_error"
    INTERNAL_ERROR = "internal_error"


class CivicAssistantError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(CivicAssistantError):
    """Request is missing required fields or carries malformed ones (HTTP 400)."""

    def __init__(self, message: str, required: Sequence[str] | None = None) -> None:
        super().__init__(message)
        self.required = list(required or [])


class UpstreamError(CivicAssistantError):
    """An upstream AI or data service was unreachable or returned an error."""

    kind = ErrorKind.UPSTREAM_ERROR


class UpstreamTimeout(UpstreamError):
    """An upstream call exceeded its timeout."""

    kind = ErrorKind.UPSTREAM_TIMEOUT


class ParseError(UpstreamError):
    """Upstream text did not contain a JSON object matching the expected schema."""

    kind = ErrorKind.PARSE_ERROR


class ChatFailure(UpstreamError):
    """Both chat backends failed; `ai_source` names the last one attempted."""

    def __init__(self, message: str, ai_source) -> None:
        super().__init__(message)
        self.ai_source = ai_source


class RateLimitExceeded(CivicAssistantError):
    """Caller exceeded the admission window (HTTP 429)."""

    def __init__(self, identity: str, retry_after_seconds: float) -> None:
        super().__init__(f"Rate limit exceeded for {identity}")
        self.identity = identity
        self.retry_after_seconds = retry_after_seconds


class InternalError(CivicAssistantError):
    """Unexpected defect; surfaced to callers only as a generic 500."""
