"""HTTP transports for the two upstream AI services."""

from .base import TextCompleter
from .chat_completions import ChatCompletionsClient
from .generate_content import GenerateContentClient

__all__ = [
    "TextCompleter",
    "ChatCompletionsClient",
    "GenerateContentClient",
]
