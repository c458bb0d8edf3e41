"""Groq adapter; Groq speaks the chat-completions format."""

from __future__ import annotations

from typing import Any

import groq
from groq import Groq

from polyglot_agent.backends.openai_backend import (
    from_openai_message,
    to_openai_messages,
    to_openai_tools,
)
from polyglot_agent.config import Config
from polyglot_agent.errors import TransportError
from polyglot_agent.observability import observe
from polyglot_agent.schemas import TextBlock, ToolUseBlock


class GroqChatBackend:
    provider_name = "groq"

    def __init__(self, config: Config, *, client: Any = None) -> None:
        self.config = config
        self.client = client or Groq(api_key=config.api_key, timeout=config.request_timeout)

    @observe("chat.groq")
    def chat(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        model: str,
        max_tokens: int = 4096,
    ) -> list[TextBlock | ToolUseBlock]:
        request: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": self.config.temperature,
            "messages": to_openai_messages(system, messages),
        }
        if tools:
            request["tools"] = to_openai_tools(tools)
        try:
            response = self.client.chat.completions.create(**request)
        except groq.APIStatusError as exc:
            raise TransportError(f"HTTP {exc.status_code}: {exc.message}", exc.status_code) from exc
        except groq.APIConnectionError as exc:
            raise TransportError(f"groq connection failed: {exc}") from exc

        if not response.choices:
            return []
        return from_openai_message(response.choices[0].message.model_dump(), self.provider_name)
