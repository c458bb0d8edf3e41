"""Backend selection from configuration."""

from __future__ import annotations

import re

from polyglot_agent.backends.anthropic_backend import AnthropicChatBackend
from polyglot_agent.backends.base import ChatBackend
from polyglot_agent.backends.groq_backend import GroqChatBackend
from polyglot_agent.backends.openai_backend import OpenAIChatBackend
from polyglot_agent.config import Config

ANTHROPIC_MODELS = re.compile(r"^claude-", re.IGNORECASE)

SUPPORTED_BACKENDS = ("openai", "groq", "ollama", "anthropic")


def backend_for(config: Config) -> ChatBackend:
    """Pick a backend.

    Selection order:
    1) a backend instance placed on `config.backend`
    2) an explicit backend name on `config.backend`
    3) the model name: `claude-*` goes to Anthropic, everything else to OpenAI
    """
    backend = config.backend
    if backend is not None and not isinstance(backend, str):
        return backend

    name = (backend or "").lower().strip()
    if name == "openai":
        return OpenAIChatBackend(config)
    if name == "groq":
        return GroqChatBackend(config)
    if name == "ollama":
        return OpenAIChatBackend(config, ollama=True)
    if name == "anthropic":
        return AnthropicChatBackend(config)
    if name:
        raise ValueError(
            f"Unsupported backend {name!r}. Set POLYGLOT_BACKEND to one of: "
            + ", ".join(SUPPORTED_BACKENDS)
        )

    if ANTHROPIC_MODELS.match(config.model or ""):
        return AnthropicChatBackend(config)
    return OpenAIChatBackend(config)
