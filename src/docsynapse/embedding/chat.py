"""Chat completion gateway sharing the embedding failure policy."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from docsynapse.errors import ProviderError

LOGGER = logging.getLogger(__name__)

Message = Dict[str, str]


class ChatGateway:
    """Sends chat messages to the provider and returns the reply text."""

    def __init__(self, client: Any, model: str) -> None:
        self.client = client
        self.model = model

    def chat(self, messages: Sequence[Message], *, json_mode: bool = False) -> str:
        kwargs: Dict[str, Any] = {"model": self.model, "messages": list(messages)}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = self.client.chat.completions.create(**kwargs)
        except Exception as exc:
            raise ProviderError(f"Chat request failed: {exc}") from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise ProviderError(f"Unexpected chat response: {response!r}") from exc
        if not isinstance(content, str):
            raise ProviderError("Chat response has no text content")
        return content.strip()


def build_messages(
    system_prompt: str,
    user_message: str,
    history: Sequence[Message] | None = None,
    *,
    max_history: int = 4,
) -> List[Message]:
    """System prompt, the last ``max_history`` turns, then the user message."""
    messages: List[Message] = [{"role": "system", "content": system_prompt}]
    if history and max_history > 0:
        messages.extend(
            {"role": turn["role"], "content": turn["content"]}
            for turn in list(history)[-max_history:]
        )
    messages.append({"role": "user", "content": user_message})
    return messages
