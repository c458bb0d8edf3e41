"""Runtime configuration consumed by engines, memory and backends.

All defaults come from the process environment (optionally populated from a
`.env` file), and every field can be overridden per instance.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from dotenv import find_dotenv, load_dotenv

if TYPE_CHECKING:
    from polyglot_agent.backends.base import ChatBackend
    from polyglot_agent.memory.store import MemoryStore

load_dotenv(find_dotenv(usecwd=True))

DEFAULT_MODEL = "claude-sonnet-4-20250514"


def _env_str(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _default_api_key() -> str | None:
    return (
        _env_str("POLYGLOT_API_KEY")
        or _env_str("ANTHROPIC_API_KEY")
        or _env_str("OPENAI_API_KEY")
        or _env_str("GROQ_API_KEY")
    )


@dataclass
class Config:
    model: str = field(default_factory=lambda: _env_str("POLYGLOT_MODEL", DEFAULT_MODEL))
    backend: str | ChatBackend | None = field(
        default_factory=lambda: _env_str("POLYGLOT_BACKEND")
    )
    api_key: str | None = field(default_factory=_default_api_key)
    base_url: str | None = field(default_factory=lambda: _env_str("POLYGLOT_BASE_URL"))
    temperature: float = field(default_factory=lambda: _env_float("POLYGLOT_TEMPERATURE", 0.0))
    max_tokens: int = field(default_factory=lambda: _env_int("POLYGLOT_MAX_TOKENS", 4096))
    max_iterations: int = field(default_factory=lambda: _env_int("POLYGLOT_MAX_ITERATIONS", 50))
    request_timeout: float = field(
        default_factory=lambda: _env_float("POLYGLOT_REQUEST_TIMEOUT_SECONDS", 120.0)
    )
    # Memory
    memory_pressure: float = field(
        default_factory=lambda: _env_float("POLYGLOT_MEMORY_PRESSURE", 0.7)
    )
    memory_keep_recent: int = field(default_factory=lambda: _env_int("POLYGLOT_KEEP_RECENT", 4))
    context_window: int | None = None
    compact_model: str | None = field(
        default_factory=lambda: _env_str("POLYGLOT_COMPACT_MODEL")
    )
    namespace: str | None = field(default_factory=lambda: _env_str("POLYGLOT_NAMESPACE"))
    memory_path: str | None = field(default_factory=lambda: _env_str("POLYGLOT_MEMORY_PATH"))
    memory_store: MemoryStore | None = None
    on_compact: Callable[[str], Any] | None = None
    on_compact_error: Callable[[BaseException], Any] | None = None
