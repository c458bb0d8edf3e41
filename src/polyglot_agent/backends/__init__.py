from polyglot_agent.backends.anthropic_backend import AnthropicChatBackend
from polyglot_agent.backends.base import ChatBackend
from polyglot_agent.backends.groq_backend import GroqChatBackend
from polyglot_agent.backends.openai_backend import OpenAIChatBackend
from polyglot_agent.backends.registry import backend_for

__all__ = [
    "AnthropicChatBackend",
    "ChatBackend",
    "GroqChatBackend",
    "OpenAIChatBackend",
    "backend_for",
]
