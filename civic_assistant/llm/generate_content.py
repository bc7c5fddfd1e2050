"""Thin client for a generate-content style text generation API."""

from __future__ import annotations

from typing import Any

import requests

from civic_assistant.errors import UpstreamError, UpstreamTimeout
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="llm/generate_content")

DEFAULT_SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]


def text_part(text: str) -> dict[str, str]:
    """Build a plain-text content part."""
    return {"text": text}


def inline_data_part(mime_type: str, base64_data: str) -> dict[str, Any]:
    """Build an inline binary content part."""
    return {"inline_data": {"mime_type": mime_type, "data": base64_data}}


class GenerateContentClient:
    """Minimal client for `POST {base_url}/{model}:generateContent` with bearer auth."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        model: str,
        *,
        timeout: float = 30.0,
        options: dict[str, Any] | None = None,
        safety_settings: list[dict[str, str]] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.url = f"{self.base_url}/{model}:generateContent"
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.options = dict(options or {})
        self.safety_settings = safety_settings if safety_settings is not None else DEFAULT_SAFETY_SETTINGS

    def generate(self, contents: list[dict[str, Any]], **overrides: Any) -> str:
        """Send `contents` (user/model turns) and return the first candidate's text."""
        if not self.base_url:
            raise UpstreamError("Generate-content base URL not configured")
        if not self.api_key:
            raise UpstreamError("Generate-content API key not configured")

        payload = {
            "contents": contents,
            "generationConfig": {**self.options, **overrides},
            "safetySettings": self.safety_settings,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            logger.debug("Generate-content POST with %d content turns", len(contents))
            r = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as exc:
            logger.warning("Generate-content POST timed out after %.0fs", self.timeout)
            raise UpstreamTimeout(f"Generate-content request timed out after {self.timeout}s") from exc
        except requests.exceptions.RequestException as exc:
            logger.warning("Generate-content POST failed: %s", exc)
            raise UpstreamError(f"Generate-content request failed: {exc}") from exc

        logger.info(
            "Generate-content POST took %.2fs, status %s",
            r.elapsed.total_seconds(),
            r.status_code,
        )
        if r.status_code != 200:
            raise UpstreamError(
                f"Generate-content POST failed with status {r.status_code}: {(r.text or '')[:200]} "
                f"(model={self.model})"
            )

        try:
            data = r.json()
        except ValueError as exc:
            raise UpstreamError(f"Generate-content returned non-JSON response: {r.text[:200]}") from exc

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UpstreamError("Invalid response format from generate-content API") from exc
        if not text or not text.strip():
            raise UpstreamError("Generate-content returned empty text")
        return text

    def complete(self, prompt: str, *, system: str | None = None) -> str:
        """Single-prompt helper used by the provider clients.

        The reference model has no system-instruction field, so the system
        message is prefixed to the prompt.
        """
        text = f"{system}\n\n{prompt}" if system else prompt
        return self.generate([{"role": "user", "parts": [text_part(text)]}], temperature=0.2)
