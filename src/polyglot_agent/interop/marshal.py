"""Value marshalling between the host and foreign engines.

Plain data (None, bools, numbers, strings and lists/dicts of them) is copied.
Anything else crosses as a handle: a `RemoteReference` for the embedded
Python engine, or a `{"__ref__": handle, "__type__": name}` marker for
engines that only speak JSON.
"""

from __future__ import annotations

from typing import Any

from polyglot_agent.interop.object_registry import ObjectRegistry
from polyglot_agent.interop.remote_ref import RemoteReference

REF_KEY = "__ref__"
TYPE_KEY = "__type__"

_PRIMITIVES = (type(None), bool, int, float, str)


def is_primitive(value: Any) -> bool:
    return isinstance(value, _PRIMITIVES)


def is_ref_marker(value: Any) -> bool:
    return isinstance(value, dict) and REF_KEY in value and isinstance(value[REF_KEY], int)


def to_python_engine(value: Any, registry: ObjectRegistry, *, source_engine: str = "native") -> Any:
    """Copy plain data; wrap every other value in a RemoteReference."""
    if is_primitive(value):
        return value
    if isinstance(value, RemoteReference):
        return value
    if isinstance(value, (list, tuple)):
        return [to_python_engine(item, registry, source_engine=source_engine) for item in value]
    if isinstance(value, dict) and all(isinstance(key, str) for key in value):
        return {
            key: to_python_engine(item, registry, source_engine=source_engine)
            for key, item in value.items()
        }
    return RemoteReference.wrap(value, registry, source_engine=source_engine)


def to_json_engine(value: Any, registry: ObjectRegistry) -> Any:
    """Produce a JSON-compatible structure with handle markers for non-plain values."""
    if is_primitive(value):
        return value
    if isinstance(value, RemoteReference):
        if value.registry is registry:
            return {REF_KEY: value.handle, TYPE_KEY: value.type_name}
        value = value.resolve()
    if isinstance(value, (list, tuple)):
        return [to_json_engine(item, registry) for item in value]
    if isinstance(value, dict) and all(isinstance(key, str) for key in value):
        return {key: to_json_engine(item, registry) for key, item in value.items()}
    handle = registry.register(value)
    return {REF_KEY: handle, TYPE_KEY: type(value).__name__}


def from_foreign(value: Any, registry: ObjectRegistry) -> Any:
    """Turn foreign values back into host values, resolving handles this registry minted."""
    if isinstance(value, RemoteReference):
        if value.registry is registry:
            return value.resolve()
        return value
    if is_ref_marker(value):
        return registry.get(value[REF_KEY])
    if isinstance(value, list):
        return [from_foreign(item, registry) for item in value]
    if isinstance(value, dict):
        return {key: from_foreign(item, registry) for key, item in value.items()}
    return value


def describe_value(value: Any) -> str:
    """Render a value for a system prompt or a tool result."""
    if isinstance(value, RemoteReference):
        return repr(value)
    if is_primitive(value):
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(describe_value(item) for item in value) + "]"
    if isinstance(value, dict):
        pairs = (f"{describe_value(key)}: {describe_value(item)}" for key, item in value.items())
        return "{" + ", ".join(pairs) + "}"
    attributes = getattr(value, "__dict__", None)
    if isinstance(attributes, dict):
        fields = ", ".join(
            f"{name}={item!r}" for name, item in attributes.items() if not name.startswith("_")
        )
        return f"<{type(value).__name__} {fields}>"
    return repr(value)
