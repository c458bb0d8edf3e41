"""Embedded Python engine with an isolated, persistent namespace.

Unlike the native engine, snippets here never touch host objects directly.
Environment values referenced by the snippet are injected as copies (plain
data) or `RemoteReference`s (everything else), and names the snippet assigns
at top level are extracted back afterwards.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from polyglot_agent.engines.base import Engine
from polyglot_agent.engines.native import split_trailing_expression
from polyglot_agent.interop.marshal import from_foreign, to_python_engine

ASSIGNMENT = re.compile(r"^(\w+)\s*=[^=]", re.MULTILINE)
AUGMENTED_ASSIGNMENT = re.compile(r"^(\w+)\s*(?://|\*\*|>>|<<|[+\-*/%@&|^])=(?!=)", re.MULTILINE)


def extract_declared_vars(code: str) -> list[str]:
    names = ASSIGNMENT.findall(code) + AUGMENTED_ASSIGNMENT.findall(code)
    return list(dict.fromkeys(names))


def references(code: str, name: str) -> bool:
    return re.search(rf"\b{re.escape(name)}\b", code) is not None


class PythonEngine(Engine):
    name = "python"

    @property
    def namespace(self) -> dict[str, Any]:
        return self.context.python_namespace

    def execute(self, code: str) -> Any:
        statements, expression = split_trailing_expression(code, "<python-engine>")
        namespace = self.namespace
        self._inject(namespace, code)

        exec(statements, namespace)
        result = eval(expression, namespace) if expression is not None else None

        declared = extract_declared_vars(code)
        self._extract(namespace, declared)
        if expression is None and "result" in declared:
            result = namespace.get("result")
        return from_foreign(result, self.context.registry)

    def _inject(self, namespace: dict[str, Any], code: str) -> None:
        registry = self.context.registry
        for name, fn in self.host_functions().items():
            namespace[name] = self._bridge(fn)
        for name, value in list(self.environment.values.items()):
            if not references(code, name):
                continue
            try:
                namespace[name] = to_python_engine(value, registry, source_engine="native")
            except (RecursionError, TypeError, ValueError) as exc:
                self.logger.debug("INJECT SKIPPED name=%s error=%s", name, exc)

    def _extract(self, namespace: dict[str, Any], names: list[str]) -> None:
        registry = self.context.registry
        for name in names:
            if name not in namespace:
                continue
            self.write_var(name, from_foreign(namespace[name], registry))

    def _bridge(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        """Wrap a host function so arguments and results are marshalled."""
        registry = self.context.registry

        def call(*args: Any, **kwargs: Any) -> Any:
            host_args = [from_foreign(arg, registry) for arg in args]
            host_kwargs = {key: from_foreign(value, registry) for key, value in kwargs.items()}
            return to_python_engine(fn(*host_args, **host_kwargs), registry, source_engine="native")

        call.__name__ = getattr(fn, "__name__", "host_function")
        call.__doc__ = getattr(fn, "__doc__", None)
        return call
