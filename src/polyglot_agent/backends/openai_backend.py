"""OpenAI chat-completions adapter (also serves Ollama's compatible endpoint)."""

from __future__ import annotations

import json
import os
from typing import Any

import openai
from openai import OpenAI

from polyglot_agent.backends.base import parse_response
from polyglot_agent.config import Config
from polyglot_agent.errors import TransportError
from polyglot_agent.logger import get_logger
from polyglot_agent.observability import observe
from polyglot_agent.schemas import TextBlock, ToolUseBlock

logger = get_logger("backends.openai")


def _block_field(block: Any, key: str) -> Any:
    if isinstance(block, dict):
        return block.get(key)
    return getattr(block, key, None)


def to_openai_messages(system: str, messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Convert canonical messages to chat-completions format."""
    result: list[dict[str, Any]] = [{"role": "system", "content": system}]
    for message in messages:
        role = message.get("role")
        if role == "user":
            result.extend(_convert_user(message.get("content")))
        elif role == "assistant":
            result.append(_convert_assistant(message.get("content")))
    return result


def _convert_user(content: Any) -> list[dict[str, Any]]:
    if isinstance(content, str):
        return [{"role": "user", "content": content}]
    if isinstance(content, list) and content and all(
        _block_field(block, "type") == "tool_result" for block in content
    ):
        # Each tool result becomes its own `tool` message.
        return [
            {
                "role": "tool",
                "tool_call_id": _block_field(block, "tool_use_id"),
                "content": str(_block_field(block, "content")),
            }
            for block in content
        ]
    if isinstance(content, list):
        texts = [_block_field(block, "text") for block in content]
        return [{"role": "user", "content": "\n".join(text for text in texts if text)}]
    return [{"role": "user", "content": str(content)}]


def _convert_assistant(content: Any) -> dict[str, Any]:
    if not isinstance(content, list):
        return {"role": "assistant", "content": str(content)}

    text_parts: list[str] = []
    tool_calls: list[dict[str, Any]] = []
    for block in content:
        kind = _block_field(block, "type")
        if kind == "text":
            text_parts.append(_block_field(block, "text") or "")
        elif kind == "tool_use":
            tool_calls.append(
                {
                    "id": _block_field(block, "id"),
                    "type": "function",
                    "function": {
                        "name": _block_field(block, "name"),
                        "arguments": json.dumps(_block_field(block, "input") or {}),
                    },
                }
            )

    converted: dict[str, Any] = {"role": "assistant"}
    if text_parts:
        converted["content"] = "\n".join(text_parts)
    if tool_calls:
        converted["tool_calls"] = tool_calls
    return converted


def to_openai_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": tool["name"],
                "description": tool.get("description") or "",
                "parameters": tool.get("input_schema") or {},
            },
        }
        for tool in tools
    ]


def _parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("TOOL ARGUMENTS not valid JSON: %s", raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}


def from_openai_message(
    message: dict[str, Any] | None, provider: str = "openai"
) -> list[TextBlock | ToolUseBlock]:
    """Normalize a chat-completions `message` back into canonical content blocks."""
    if not message:
        return []
    blocks: list[dict[str, Any]] = []
    content = message.get("content")
    if content:
        blocks.append({"type": "text", "text": content})
    for call in message.get("tool_calls") or []:
        function = call.get("function") or {}
        blocks.append(
            {
                "type": "tool_use",
                "id": call.get("id"),
                "name": function.get("name"),
                "input": _parse_arguments(function.get("arguments")),
            }
        )
    return parse_response(blocks, provider)


def _resolve_ollama_base_url(base_url: str | None = None) -> str:
    if base_url:
        return base_url
    explicit = os.getenv("OLLAMA_BASE_URL")
    if explicit:
        return explicit
    host = (os.getenv("OLLAMA_HOST") or "").strip().rstrip("/")
    if host:
        return host if host.endswith("/v1") else f"{host}/v1"
    return "http://localhost:11434/v1"


class OpenAIChatBackend:
    provider_name = "openai"

    def __init__(self, config: Config, *, client: Any = None, ollama: bool = False) -> None:
        self.config = config
        if client is not None:
            self.client = client
        elif ollama:
            self.provider_name = "ollama"
            self.client = OpenAI(
                api_key=config.api_key or "ollama",
                base_url=_resolve_ollama_base_url(config.base_url),
                timeout=config.request_timeout,
            )
        else:
            self.client = OpenAI(
                api_key=config.api_key,
                base_url=config.base_url,
                timeout=config.request_timeout,
            )

    @observe("chat.openai")
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
            "max_completion_tokens": max_tokens,
            "temperature": self.config.temperature,
            "messages": to_openai_messages(system, messages),
        }
        if tools:
            request["tools"] = to_openai_tools(tools)
        try:
            response = self.client.chat.completions.create(**request)
        except openai.APIStatusError as exc:
            raise TransportError(f"HTTP {exc.status_code}: {exc.message}", exc.status_code) from exc
        except openai.APIConnectionError as exc:
            raise TransportError(f"{self.provider_name} connection failed: {exc}") from exc

        if not response.choices:
            return []
        return from_openai_message(response.choices[0].message.model_dump(), self.provider_name)
