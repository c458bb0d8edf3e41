"""Engine capability model.

Every engine answers one question, "is this an execution engine?", and the
three interop capabilities follow from it. Only the reasoning engine says no:
it cannot hold remote references, cannot be called back from another engine
and keeps no state between calls.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from polyglot_agent.context import Context
from polyglot_agent.environment import Environment
from polyglot_agent.logger import get_logger


class Engine:
    name = "engine"
    execution_engine = True

    def __init__(self, environment: Environment, context: Context | None = None) -> None:
        self.environment = environment
        self.context = context if context is not None else Context()
        self.logger = get_logger(f"engines.{self.name}")

    @property
    def config(self):
        return self.context.config

    @property
    def supports_remote_ref(self) -> bool:
        return self.execution_engine

    @property
    def supports_bidirectional(self) -> bool:
        return self.execution_engine

    @property
    def supports_state(self) -> bool:
        return self.execution_engine

    def execute(self, code: str) -> Any:
        raise NotImplementedError("Engine must implement the execute method.")

    def read_var(self, name: str) -> Any:
        return self.environment.read(name)

    def write_var(self, name: str, value: Any) -> None:
        self.environment.write(name, value)

    def host_functions(self) -> dict[str, Callable[..., Any]]:
        """Receiver methods, registered functions and effects, by name."""
        functions = self.environment.host_functions()
        for effect in self.context.effects:
            functions.setdefault(effect.name, effect)
        return functions
