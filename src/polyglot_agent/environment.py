"""The host-owned program state shared by every engine.

An `Environment` is an addressable `name -> value` map, an optional receiver
object whose public methods are callable by name, and an explicit function
registry. Attribute reads and writes go through an optional per-variable
safelist instead of open reflection.
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from polyglot_agent.errors import (
    AttributeAccessError,
    InvalidIdentifierError,
    UnknownFunctionError,
)

VALID_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def validate_identifier(name: Any) -> str:
    if not isinstance(name, str) or VALID_IDENTIFIER.fullmatch(name) is None:
        raise InvalidIdentifierError(f"invalid identifier: {name!r}")
    return name


class FunctionRegistry:
    """Explicit `name -> callable` table; unknown names are rejected, never reflected."""

    def __init__(self, functions: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self._functions: dict[str, Callable[..., Any]] = {}
        for name, fn in (functions or {}).items():
            self.register(name, fn)

    def register(self, name: str, fn: Callable[..., Any] | None = None) -> Any:
        validate_identifier(name)
        if fn is None:

            def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
                self._functions[name] = func
                return func

            return decorator
        self._functions[name] = fn
        return fn

    def get(self, name: str) -> Callable[..., Any] | None:
        return self._functions.get(name)

    def items(self) -> Iterator[tuple[str, Callable[..., Any]]]:
        return iter(list(self._functions.items()))

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)


class Environment:
    def __init__(
        self,
        values: dict[str, Any] | None = None,
        *,
        receiver: Any = None,
        functions: FunctionRegistry | Mapping[str, Callable[..., Any]] | None = None,
        attribute_safelist: Mapping[str, set[str] | frozenset[str] | list[str]] | None = None,
    ) -> None:
        # Held by reference: engines write straight into the host's dict.
        self.values: dict[str, Any] = values if values is not None else {}
        self.receiver = receiver
        if isinstance(functions, FunctionRegistry):
            self.functions = functions
        else:
            self.functions = FunctionRegistry(functions)
        self.attribute_safelist = (
            {name: set(attrs) for name, attrs in attribute_safelist.items()}
            if attribute_safelist is not None
            else None
        )

    # --- Named values ---

    def has(self, name: str) -> bool:
        if name in self.values:
            return True
        if self.receiver is None or name.startswith("_"):
            return False
        return hasattr(self.receiver, name)

    def read(self, name: str) -> Any:
        validate_identifier(name)
        if name in self.values:
            return self.values[name]
        holder = self._receiver_attribute(name)
        if holder is not None:
            return holder[0]
        raise NameError(f"undefined variable or method '{name}'")

    def write(self, name: str, value: Any) -> None:
        validate_identifier(name)
        self.values[name] = value

    def _receiver_attribute(self, name: str) -> tuple[Any] | None:
        if self.receiver is None or name.startswith("_"):
            return None
        if not hasattr(self.receiver, name):
            return None
        value = getattr(self.receiver, name)
        if callable(value):
            # Methods are called, not read: resolve to the method's result.
            return (value(),) if _takes_no_arguments(value) else None
        return (value,)

    # --- Attributes ---

    def _check_attribute(self, obj_name: str, attr: str) -> None:
        validate_identifier(attr)
        if attr.startswith("_"):
            raise AttributeAccessError(f"attribute '{attr}' is private")
        if self.attribute_safelist is None:
            return
        if attr not in self.attribute_safelist.get(obj_name, set()):
            raise AttributeAccessError(f"attribute '{attr}' of '{obj_name}' is not accessible")

    def read_attr(self, obj_name: str, attr: str) -> Any:
        obj = self.read(obj_name)
        self._check_attribute(obj_name, attr)
        if isinstance(obj, Mapping) and attr in obj:
            return obj[attr]
        return getattr(obj, attr)

    def write_attr(self, obj_name: str, attr: str, value: Any) -> None:
        obj = self.read(obj_name)
        self._check_attribute(obj_name, attr)
        if isinstance(obj, dict):
            obj[attr] = value
        else:
            setattr(obj, attr, value)

    # --- Functions ---

    def receiver_methods(self) -> dict[str, Callable[..., Any]]:
        """Public methods declared by the receiver's own classes (not `object`)."""
        if self.receiver is None:
            return {}
        methods: dict[str, Callable[..., Any]] = {}
        for cls in reversed(type(self.receiver).__mro__):
            if cls is object:
                continue
            for name, raw in vars(cls).items():
                if name.startswith("_") or isinstance(raw, property):
                    continue
                bound = getattr(self.receiver, name, None)
                if callable(bound):
                    methods[name] = bound
        return methods

    def host_functions(self) -> dict[str, Callable[..., Any]]:
        functions = self.receiver_methods()
        functions.update(dict(self.functions.items()))
        return functions

    def resolve_function(self, name: str) -> Callable[..., Any]:
        validate_identifier(name)
        fn = self.functions.get(name)
        if fn is not None:
            return fn
        method = self.receiver_methods().get(name)
        if method is not None:
            return method
        value = self.values.get(name)
        if callable(value):
            return value
        raise UnknownFunctionError(f"undefined function '{name}'")

    def call(self, name: str, args: list[Any] | None = None) -> Any:
        return self.resolve_function(name)(*(args or []))

    def describe_functions(self) -> list[str]:
        lines = []
        for name, fn in self.host_functions().items():
            lines.append(f"{name}{_signature_text(fn)}")
        return lines


def _takes_no_arguments(fn: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return False
    return all(
        param.default is not inspect.Parameter.empty
        or param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        for param in signature.parameters.values()
    )


def _signature_text(fn: Callable[..., Any]) -> str:
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return "(...)"
    parts = []
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            parts.append(f"*{param.name}")
        elif param.kind is inspect.Parameter.VAR_KEYWORD:
            parts.append(f"**{param.name}")
        elif param.default is inspect.Parameter.empty:
            parts.append(param.name)
        else:
            parts.append(f"{param.name}=...")
    return "(" + ", ".join(parts) + ")"
