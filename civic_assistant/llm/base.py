"""Interface shared by upstream transports that can answer a single prompt."""

from __future__ import annotations

from typing import Protocol


class TextCompleter(Protocol):
    """Anything that turns one prompt (plus optional system message) into text."""

    def complete(self, prompt: str, *, system: str | None = None) -> str:
        """Return the upstream's text, raising UpstreamError/UpstreamTimeout on failure."""
        ...
