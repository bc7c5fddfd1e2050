"""Thin client for an OpenAI-compatible, search-grounded chat-completions API."""

from __future__ import annotations

from typing import Any

import requests

from civic_assistant.errors import UpstreamError, UpstreamTimeout
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="llm/chat_completions")


class ChatCompletionsClient:
    """Minimal client for `POST {base_url}/chat/completions` with bearer auth."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        model: str,
        *,
        timeout: float = 30.0,
        options: dict[str, Any] | None = None,
    ) -> None:
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.options = dict(options or {})

    def chat(self, messages: list[dict[str, str]], **overrides: Any) -> str:
        """Send a chat request and return the assistant content."""
        if not self.api_key:
            raise UpstreamError("Chat-completions API key not configured")

        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            **self.options,
            **overrides,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            logger.debug("Chat-completions POST payload: %s", payload)
            r = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as exc:
            logger.warning("Chat-completions POST timed out after %.0fs", self.timeout)
            raise UpstreamTimeout(f"Chat-completions request timed out after {self.timeout}s") from exc
        except requests.exceptions.RequestException as exc:
            logger.warning("Chat-completions POST failed: %s", exc)
            raise UpstreamError(f"Chat-completions request failed: {exc}") from exc

        logger.info(
            "Chat-completions POST took %.2fs, status %s",
            r.elapsed.total_seconds(),
            r.status_code,
        )
        if r.status_code != 200:
            raise UpstreamError(
                f"Chat-completions POST failed with status {r.status_code}: {(r.text or '')[:200]} "
                f"(model={self.model})"
            )

        try:
            data = r.json()
        except ValueError as exc:
            raise UpstreamError(f"Chat-completions returned non-JSON response: {r.text[:200]}") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UpstreamError("Chat-completions response had no message content") from exc
        if isinstance(content, (dict, list)):
            content = str(content)
        if not content or not str(content).strip():
            raise UpstreamError("Chat-completions returned empty content")
        return content

    def complete(self, prompt: str, *, system: str | None = None) -> str:
        """Single-prompt helper used by the provider clients."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        # Low temperature: provider prompts expect a strict JSON object back.
        return self.chat(messages, temperature=0.2, top_p=0.9)
