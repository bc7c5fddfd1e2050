"""The two chat backends: LIVE (search-grounded) and GENERAL (conversational).

Both build the same system instruction and differ only in request shape:
LIVE speaks chat-completions and cannot take attachments; GENERAL speaks
generate-content and sends attachments inline as base64.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from civic_assistant.domain import AISource, Attachment, ConversationRole, ConversationTurn, UserContext
from civic_assistant.llm.chat_completions import ChatCompletionsClient
from civic_assistant.llm.generate_content import GenerateContentClient, inline_data_part, text_part
from civic_assistant.prompts import (
    GENERAL_ACKNOWLEDGEMENT,
    LIVE_SUFFIX,
    build_system_instruction,
    recent_turns,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="backends")


class ChatBackend(Protocol):
    """A single upstream conversational AI."""
    source: AISource

    def respond(
        self,
        query: str,
        history: Sequence[ConversationTurn],
        user_context: UserContext,
        attachment: Optional[Attachment] = None,
    ) -> str:
        """Return reply text, raising UpstreamError on failure."""
        ...


class _InstructionMixin:
    """Shared persona/history settings for both backends."""

    def __init__(self, *, assistant_name: str, city: str, history_turns: int) -> None:
        self.assistant_name = assistant_name
        self.city = city
        self.history_turns = history_turns

    def _instruction(self, history: Sequence[ConversationTurn], user_context: UserContext) -> str:
        return build_system_instruction(
            history,
            user_context,
            assistant_name=self.assistant_name,
            city=self.city,
            history_turns=self.history_turns,
        )


class LiveBackend(_InstructionMixin):
    """Search-grounded backend for time-sensitive questions."""
    source = AISource.LIVE

    def __init__(
        self,
        client: ChatCompletionsClient,
        *,
        assistant_name: str = "Orpheus",
        city: str = "Indianapolis, Indiana",
        history_turns: int = 5,
    ) -> None:
        super().__init__(assistant_name=assistant_name, city=city, history_turns=history_turns)
        self.client = client

    def build_messages(
        self, query: str, history: Sequence[ConversationTurn], user_context: UserContext
    ) -> list[dict[str, str]]:
        """System instruction, bounded history, then the query."""
        system = f"{self._instruction(history, user_context)}\n\n{LIVE_SUFFIX.format(city=self.city)}"
        messages = [{"role": "system", "content": system}]
        messages += [
            {"role": t.role.value, "content": t.text.strip()}
            for t in recent_turns(history, self.history_turns)
        ]
        messages.append({"role": "user", "content": query.strip()})
        return messages

    def respond(
        self,
        query: str,
        history: Sequence[ConversationTurn],
        user_context: UserContext,
        attachment: Optional[Attachment] = None,
    ) -> str:
        if attachment is not None:
            logger.info("LIVE backend does not accept attachments; dropping %s", attachment.mime_type)
        return self.client.chat(self.build_messages(query, history, user_context))


class GeneralBackend(_InstructionMixin):
    """Conversational backend; the only one that accepts attachments."""
    source = AISource.GENERAL

    def __init__(
        self,
        client: GenerateContentClient,
        *,
        assistant_name: str = "Orpheus",
        city: str = "Indianapolis, Indiana",
        history_turns: int = 5,
    ) -> None:
        super().__init__(assistant_name=assistant_name, city=city, history_turns=history_turns)
        self.client = client

    def build_contents(
        self,
        query: str,
        history: Sequence[ConversationTurn],
        user_context: UserContext,
        attachment: Optional[Attachment] = None,
    ) -> list[dict]:
        """Instruction as a leading user/model exchange, then history, then the query."""
        ack = GENERAL_ACKNOWLEDGEMENT.format(assistant=self.assistant_name, city=self.city)
        contents = [
            {"role": "user", "parts": [text_part(self._instruction(history, user_context))]},
            {"role": "model", "parts": [text_part(ack)]},
        ]
        for turn in recent_turns(history, self.history_turns):
            role = "user" if turn.role == ConversationRole.USER else "model"
            contents.append({"role": role, "parts": [text_part(turn.text.strip())]})

        user_parts = [text_part(query.strip())]
        if attachment is not None:
            user_parts.append(inline_data_part(attachment.mime_type, attachment.base64_data))
        contents.append({"role": "user", "parts": user_parts})
        return contents

    def respond(
        self,
        query: str,
        history: Sequence[ConversationTurn],
        user_context: UserContext,
        attachment: Optional[Attachment] = None,
    ) -> str:
        return self.client.generate(self.build_contents(query, history, user_context, attachment))
