"""Route a chat query to the right backend and fall back once on failure."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Mapping, Optional, Sequence

from civic_assistant.backends import ChatBackend
from civic_assistant.classifier import classify
from civic_assistant.domain import AISource, Attachment, ChatReply, ConversationTurn, UserContext
from civic_assistant.errors import ChatFailure, UpstreamError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="chat")


class ChatState(str, Enum):
    """Stages a single chat request moves through."""
    CLASSIFY = "classify"
    PRIMARY_ATTEMPT = "primary_attempt"
    FALLBACK_ATTEMPT = "fallback_attempt"
    SUCCESS = "success"
    FAILURE = "failure"


class ChatOrchestrator:
    """
    CLASSIFY -> PRIMARY_ATTEMPT -> (SUCCESS | FALLBACK_ATTEMPT) -> (SUCCESS | FAILURE).

    Exactly one fallback hop, so the worst case is two upstream timeouts. The
    returned reply is tagged with the backend that produced the text.
    """

    def __init__(
        self,
        backends: Mapping[AISource, ChatBackend],
        *,
        classifier: Callable[[str], AISource] = classify,
        history_turns: int = 5,
    ) -> None:
        missing = set(AISource) - set(backends)
        if missing:
            raise ValueError(f"ChatOrchestrator needs both backends; missing {sorted(m.value for m in missing)}")
        self.backends = dict(backends)
        self._classify = classifier
        self.history_turns = history_turns

    def respond(
        self,
        query: str,
        history: Sequence[ConversationTurn] = (),
        user_context: UserContext | None = None,
        attachment: Optional[Attachment] = None,
    ) -> ChatReply:
        """Answer `query`, raising ChatFailure only if both backends fail."""
        user_context = user_context or UserContext()
        history = list(history)[-self.history_turns:] if self.history_turns > 0 else []

        state = ChatState.CLASSIFY
        primary = self._classify(query)
        logger.info("Classified query", extra={"state": state.value, "ai_source": primary.value})

        attempts: list[AISource] = []
        last_error: UpstreamError | None = None
        for state, source in ((ChatState.PRIMARY_ATTEMPT, primary), (ChatState.FALLBACK_ATTEMPT, primary.other)):
            attempts.append(source)
            try:
                text = self.backends[source].respond(query, history, user_context, attachment)
            except UpstreamError as exc:
                last_error = exc
                logger.warning(
                    "%s backend failed during %s: %s",
                    source.value,
                    state.value,
                    exc,
                )
                continue
            logger.info(
                "Chat answered",
                extra={"state": ChatState.SUCCESS.value, "ai_source": source.value, "attempts": len(attempts)},
            )
            return ChatReply(text=text, source=source, fallback_used=source is not primary, attempts=attempts)

        logger.error("Both chat backends failed", extra={"state": ChatState.FAILURE.value})
        raise ChatFailure(f"Failed to generate AI response: {last_error}", ai_source=attempts[-1]) from last_error
