"""Pull a JSON object out of free-text model output.

Upstream models are instructed to return only a JSON object, but often wrap it
in prose or Markdown code fences anyway. Extraction here is a separate step
with an explicit `ParseError` outcome; callers decide what a failure means.
"""

from __future__ import annotations

import json
from typing import Any, Iterator

from civic_assistant.errors import ParseError


def strip_markdown_fences(text: str) -> str:
    """Remove surrounding Markdown code fences from text."""
    if not text:
        return text
    t = text.strip()
    if not t.startswith("```"):
        return t
    lines = t.splitlines()
    if lines and lines[0].strip().startswith("```"):
        lines = lines[1:]
    if lines and lines[-1].strip().startswith("```"):
        lines = lines[:-1]
    return "\n".join(lines).strip()


def _balanced_objects(text: str) -> Iterator[str]:
    """Yield each brace-balanced `{...}` substring in order of its opening brace.

    Braces inside JSON string literals are ignored.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    yield text[start:i + 1]
                    break
        start = text.find("{", start + 1)


def extract_json_object(text: str | None) -> dict[str, Any]:
    """Return the first balanced substring of `text` that parses as a JSON object.

    Raises ParseError when the text is empty or holds no parseable object.
    """
    if not text or not text.strip():
        raise ParseError("Upstream returned empty text")

    cleaned = strip_markdown_fences(text)
    for candidate in _balanced_objects(cleaned):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    raise ParseError(f"No JSON object found in upstream text: {cleaned[:120]!r}")
