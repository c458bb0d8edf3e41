"""Scripted collaborators shared by the test suite."""

from __future__ import annotations

import copy
import itertools
from collections.abc import Callable
from typing import Any

from polyglot_agent.config import Config
from polyglot_agent.schemas import parse_blocks

_ids = itertools.count(1)


def tool_call(name: str, /, call_id: str | None = None, **input: Any) -> dict[str, Any]:
    return {
        "type": "tool_use",
        "id": call_id or f"toolu_{next(_ids)}",
        "name": name,
        "input": input,
    }


def text(content: str) -> dict[str, Any]:
    return {"type": "text", "text": content}


class ScriptedBackend:
    """Backend that replays pre-scripted responses and records every request."""

    def __init__(
        self,
        responses: list[Any],
        *,
        on_chat: Callable[[], Any] | None = None,
    ) -> None:
        self._responses = list(responses)
        self._index = 0
        self.on_chat = on_chat
        self.calls: list[dict[str, Any]] = []

    def chat(self, *, system, messages, tools, model, max_tokens=4096):  # noqa: ANN001
        self.calls.append(
            {
                "system": system,
                "messages": copy.deepcopy(messages),
                "tools": tools,
                "model": model,
                "max_tokens": max_tokens,
            }
        )
        if self.on_chat is not None:
            self.on_chat()
        if self._index < len(self._responses):
            value = self._responses[self._index]
            self._index += 1
        else:
            value = self._responses[-1]
        if isinstance(value, Exception):
            raise value
        return parse_blocks(value)

    def tool_names(self, call_index: int = 0) -> list[str]:
        return [tool["name"] for tool in self.calls[call_index]["tools"]]


class InMemoryStore:
    def __init__(self) -> None:
        self.data: dict[str, list[dict[str, Any]]] = {}

    def read(self, namespace: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self.data.get(namespace, []))

    def write(self, namespace: str, memories: list[dict[str, Any]]) -> None:
        self.data[namespace] = copy.deepcopy(memories)

    def clear(self, namespace: str) -> None:
        self.data.pop(namespace, None)


def make_config(**overrides: Any) -> Config:
    """Config isolated from the process environment."""
    values: dict[str, Any] = {
        "model": "test-model",
        "backend": None,
        "api_key": "test-key",
        "temperature": 0.0,
        "base_url": None,
        "max_tokens": 1024,
        "max_iterations": 10,
        "request_timeout": 5.0,
        "memory_pressure": 0.7,
        "memory_keep_recent": 4,
        "context_window": None,
        "compact_model": None,
        "namespace": "tests",
        "memory_path": None,
        "memory_store": InMemoryStore(),
    }
    values.update(overrides)
    return Config(**values)
