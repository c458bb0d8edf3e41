"""One logical thread of execution.

A `Context` owns everything that used to be implicit per-caller state: the
object registry, lazily created memory, nesting depth, the incognito flag,
an active mock, the tool-handler stack and the persistent state of the
embedded engines. It is passed explicitly to every engine call and must not
be shared between threads.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from polyglot_agent.config import Config
from polyglot_agent.effect_registry import EffectRegistry
from polyglot_agent.effect_registry import effects as default_effects
from polyglot_agent.interop.object_registry import ObjectRegistry
from polyglot_agent.logger import get_logger
from polyglot_agent.memory.memory import Memory
from polyglot_agent.mock import Mock
from polyglot_agent.observability import flush

if TYPE_CHECKING:
    from polyglot_agent.backends.base import ChatBackend

ToolHandler = Callable[[str, dict[str, Any]], Any]


class Context:
    def __init__(
        self,
        config: Config | None = None,
        *,
        registry: ObjectRegistry | None = None,
        effects: EffectRegistry | None = None,
        backend: ChatBackend | None = None,
    ) -> None:
        self.config = config or Config()
        self.registry = registry if registry is not None else ObjectRegistry()
        self.effects = effects if effects is not None else default_effects
        self.depth = 0
        self.incognito = False
        self.mock: Mock | None = None
        self.last_language: str | None = None
        # Embedded engine state, kept across calls.
        self.python_namespace: dict[str, Any] = {}
        self.js_runtime: Any = None
        self._handlers: list[ToolHandler] = []
        self._memory: Memory | None = None
        self._backend = backend
        self.logger = get_logger("context")

    # --- Backend ---

    @property
    def backend(self) -> ChatBackend:
        if self._backend is None:
            from polyglot_agent.backends import backend_for

            self._backend = backend_for(self.config)
        return self._backend

    # --- Memory ---

    @property
    def memory(self) -> Memory | None:
        """Current memory, created on first use. Always None while incognito."""
        if self.incognito:
            return None
        if self._memory is None:
            self._memory = Memory(self.config, backend=self._backend)
        return self._memory

    @memory.setter
    def memory(self, value: Memory | None) -> None:
        self._memory = value

    @contextmanager
    def incognito_scope(self) -> Iterator[Context]:
        saved_memory, saved_incognito = self._memory, self.incognito
        self.incognito = True
        try:
            yield self
        finally:
            self._memory, self.incognito = saved_memory, saved_incognito

    # --- Mock ---

    @contextmanager
    def mocking(self, mock: Mock | None = None) -> Iterator[Mock]:
        previous = self.mock
        self.mock = mock if mock is not None else Mock()
        try:
            yield self.mock
        finally:
            self.mock = previous

    # --- Tool handlers ---

    def push_handler(self, handler: ToolHandler) -> None:
        self._handlers.append(handler)

    def pop_handler(self) -> ToolHandler:
        return self._handlers.pop()

    @contextmanager
    def handler(self, handler: ToolHandler) -> Iterator[ToolHandler]:
        """Route every tool call to `handler(name, input)` for the duration of the block."""
        self.push_handler(handler)
        try:
            yield handler
        finally:
            self.pop_handler()

    def current_handler(self) -> ToolHandler | None:
        return self._handlers[-1] if self._handlers else None

    # --- Lifecycle ---

    def reset(self) -> None:
        """Drop memory and engine state, release every registered handle and flush traces."""
        if self._memory is not None:
            self._memory.wait_for_compaction()
        self._memory = None
        self.python_namespace = {}
        self.js_runtime = None
        self.last_language = None
        self.registry.clear()
        flush()
        self.logger.info("CONTEXT RESET")
