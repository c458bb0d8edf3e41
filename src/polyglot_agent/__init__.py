"""Run natural language and embedded code against one shared host environment."""

from polyglot_agent.config import Config
from polyglot_agent.context import Context
from polyglot_agent.dispatch import run
from polyglot_agent.effect_registry import EffectRegistry, define_effect, effects
from polyglot_agent.environment import Environment, FunctionRegistry
from polyglot_agent.errors import (
    FatalError,
    IterationCapExceeded,
    MockMatchError,
    PolyglotError,
    RecoverableError,
    ReleasedReferenceError,
    TransportError,
)
from polyglot_agent.interop import ObjectRegistry, RemoteReference
from polyglot_agent.memory import Memory, SQLiteMemoryStore
from polyglot_agent.mock import Mock

__all__ = [
    "Config",
    "Context",
    "EffectRegistry",
    "Environment",
    "FatalError",
    "FunctionRegistry",
    "IterationCapExceeded",
    "Memory",
    "Mock",
    "MockMatchError",
    "ObjectRegistry",
    "PolyglotError",
    "RecoverableError",
    "ReleasedReferenceError",
    "RemoteReference",
    "SQLiteMemoryStore",
    "TransportError",
    "define_effect",
    "effects",
    "run",
]
