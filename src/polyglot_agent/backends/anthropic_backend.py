"""Anthropic Messages API adapter over plain HTTP.

The canonical transcript already uses the Messages API block shapes, so the
request body is sent as-is and `content` comes back without conversion.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from polyglot_agent.backends.base import parse_response
from polyglot_agent.config import Config
from polyglot_agent.errors import TransportError
from polyglot_agent.observability import observe
from polyglot_agent.schemas import TextBlock, ToolUseBlock

DEFAULT_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicChatBackend:
    provider_name = "anthropic"

    def __init__(self, config: Config, *, transport: httpx.BaseTransport | None = None) -> None:
        self.config = config
        self.base_url = (config.base_url or DEFAULT_BASE_URL).rstrip("/")
        self.transport = transport

    def build_headers(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "anthropic-version": ANTHROPIC_VERSION,
        }
        if self.config.api_key:
            headers["x-api-key"] = self.config.api_key
        if extra:
            headers.update(dict(extra))
        return headers

    @observe("chat.anthropic")
    def chat(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        model: str,
        max_tokens: int = 4096,
    ) -> list[TextBlock | ToolUseBlock]:
        payload: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": self.config.temperature,
            "system": system,
            "messages": messages,
        }
        if tools:
            payload["tools"] = tools
        try:
            with httpx.Client(
                base_url=self.base_url,
                timeout=self.config.request_timeout,
                transport=self.transport,
            ) as client:
                response = client.post("/v1/messages", json=payload, headers=self.build_headers())
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise TransportError(f"HTTP {status}: {exc.response.text}", status) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"anthropic request failed: {exc}") from exc
        except ValueError as exc:
            raise TransportError(f"anthropic returned invalid JSON: {exc}") from exc

        # Only text and tool_use blocks are part of the canonical surface.
        content = [
            block
            for block in data.get("content") or []
            if isinstance(block, dict) and block.get("type") in ("text", "tool_use")
        ]
        return parse_response(content, self.provider_name)
