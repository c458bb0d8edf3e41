"""Registry for host-defined effects.

An effect is a host callable that the reasoning engine sees as a tool and the
execution engines see as a plain function:

    @define_effect("query_db", description="Execute a SQL query")
    def query_db(sql: str, limit: int = 10):
        ...

The handler's keyword signature becomes the tool's input schema. Required
parameters are the ones without a default; the JSON type is inferred from the
default when there is one, otherwise it is a string.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from polyglot_agent.environment import VALID_IDENTIFIER
from polyglot_agent.errors import EffectArgumentError, EffectDefinitionError
from polyglot_agent.logger import get_logger

RESERVED_EFFECTS = frozenset(
    {"read_var", "write_var", "read_attr", "write_attr", "call_func", "done", "remember"}
)

_NO_DEFAULT = inspect.Parameter.empty


@dataclass(frozen=True)
class EffectParam:
    name: str
    required: bool = True
    default: Any = None
    type: str = "string"


def infer_type(default: Any) -> str:
    # bool before int: bool is an int subclass.
    if isinstance(default, bool):
        return "boolean"
    if isinstance(default, int):
        return "integer"
    if isinstance(default, float):
        return "number"
    if isinstance(default, (list, tuple)):
        return "array"
    if isinstance(default, dict):
        return "object"
    return "string"


def extract_params(handler: Callable[..., Any]) -> list[EffectParam]:
    params: list[EffectParam] = []
    for param in inspect.signature(handler).parameters.values():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if param.kind is inspect.Parameter.POSITIONAL_ONLY:
            continue
        if param.default is _NO_DEFAULT:
            params.append(EffectParam(name=param.name, required=True))
        else:
            params.append(
                EffectParam(
                    name=param.name,
                    required=False,
                    default=param.default,
                    type=infer_type(param.default),
                )
            )
    return params


@dataclass
class EffectDefinition:
    name: str
    handler: Callable[..., Any]
    description: str = ""
    params: list[EffectParam] = field(default_factory=list)

    @classmethod
    def from_handler(
        cls,
        name: str,
        handler: Callable[..., Any],
        *,
        description: str | None = None,
        params: list[EffectParam] | None = None,
    ) -> EffectDefinition:
        return cls(
            name=name,
            handler=handler,
            description=description or inspect.getdoc(handler) or name,
            params=list(params) if params is not None else extract_params(handler),
        )

    def to_tool(self) -> dict[str, Any]:
        """Tool definition in the canonical `{name, description, input_schema}` shape."""
        properties: dict[str, Any] = {}
        required: list[str] = []
        for param in self.params:
            properties[param.name] = {"type": param.type, "description": param.name}
            if param.required:
                required.append(param.name)

        schema: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return {"name": self.name, "description": self.description, "input_schema": schema}

    def call(self, input: Mapping[str, Any]) -> Any:
        """Invoke the handler with model-provided input; unknown keys are ignored."""
        kwargs: dict[str, Any] = {}
        for param in self.params:
            if param.name in input:
                kwargs[param.name] = input[param.name]
            elif param.required:
                raise EffectArgumentError(
                    f"missing required parameter '{param.name}' for effect '{self.name}'"
                )
        return self.handler(**kwargs)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        """Call from an execution engine: positional args map onto params in order."""
        if len(args) == 1 and not kwargs and isinstance(args[0], Mapping) and len(self.params) != 1:
            return self.call(args[0])
        if len(args) > len(self.params):
            raise EffectArgumentError(
                f"effect '{self.name}' takes {len(self.params)} argument(s), got {len(args)}"
            )
        input = {param.name: value for param, value in zip(self.params, args)}
        input.update(kwargs)
        return self.call(input)


class EffectRegistry:
    def __init__(self) -> None:
        self._effects: dict[str, EffectDefinition] = {}
        self.logger = get_logger("effects")

    def define(
        self,
        name: str,
        handler: Callable[..., Any] | None = None,
        *,
        description: str | None = None,
        params: list[EffectParam] | None = None,
    ) -> Any:
        """Register an effect. Without `handler`, returns a decorator."""
        if name in RESERVED_EFFECTS:
            raise EffectDefinitionError(f"cannot override built-in effect: {name}")
        if VALID_IDENTIFIER.fullmatch(name) is None:
            raise EffectDefinitionError(f"invalid effect name: {name!r}")

        if handler is None:

            def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
                self.define(name, func, description=description, params=params)
                return func

            return decorator

        effect = EffectDefinition.from_handler(
            name, handler, description=description, params=params
        )
        self._effects[name] = effect
        self.logger.info("EFFECT DEFINED name=%s params=%s", name, [p.name for p in effect.params])
        return effect

    def undefine(self, name: str) -> bool:
        return self._effects.pop(name, None) is not None

    def get(self, name: str) -> EffectDefinition | None:
        return self._effects.get(name)

    def clear(self) -> None:
        self._effects.clear()

    def tool_definitions(self) -> list[dict[str, Any]]:
        return [effect.to_tool() for effect in self._effects.values()]

    def handle(self, name: str, input: Mapping[str, Any]) -> tuple[bool, Any]:
        """Run the named effect if registered. Returns `(handled, result)`."""
        effect = self._effects.get(name)
        if effect is None:
            return False, None
        return True, effect.call(input)

    def __contains__(self, name: object) -> bool:
        return name in self._effects

    def __iter__(self) -> Iterator[EffectDefinition]:
        return iter(list(self._effects.values()))

    def __len__(self) -> int:
        return len(self._effects)


effects = EffectRegistry()
define_effect = effects.define
