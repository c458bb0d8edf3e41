"""Chat backend contract consumed by the reasoning engine and memory compaction."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from polyglot_agent.errors import TransportError
from polyglot_agent.schemas import TextBlock, ToolUseBlock, parse_blocks


@runtime_checkable
class ChatBackend(Protocol):
    """Normalizes one provider round trip into canonical content blocks.

    `messages` use the canonical transcript shape: user turns carry a string
    or a list of `tool_result` blocks, assistant turns carry a string or a
    list of `text` / `tool_use` blocks. `tools` are
    `{name, description, input_schema}` dicts.

    Implementations raise `TransportError` for non-success responses,
    connection failures, timeouts and
    malformed content.
    """

    def chat(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        model: str,
        max_tokens: int = 4096,
    ) -> list[TextBlock | ToolUseBlock]:
        ...


def parse_response(raw: Any, provider: str) -> list[TextBlock | ToolUseBlock]:
    """Validate provider content; blocks that fail validation raise `TransportError`."""
    try:
        return parse_blocks(raw)
    except ValidationError as exc:
        raise TransportError(
            f"{provider} returned malformed content ({exc.error_count()} invalid field(s))"
        ) from exc
