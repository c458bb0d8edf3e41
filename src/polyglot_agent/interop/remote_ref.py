"""Handle-backed proxy for a value owned by another engine.

A foreign engine that receives a non-primitive value gets a `RemoteReference`.
Every operation on the proxy resolves the handle against the owning registry
first, so once the handle is released every operation raises
`ReleasedReferenceError`.

Release is explicit (`release()`), with a `weakref.finalize` hook as a
best-effort secondary path: when the proxy itself becomes unreachable the
owner is told, without any round trip from the foreign engine.
"""

from __future__ import annotations

import weakref
from collections.abc import Iterator
from typing import Any

from polyglot_agent.errors import ReleasedReferenceError
from polyglot_agent.interop.object_registry import ObjectRegistry

_OWN_SLOTS = frozenset({"handle", "source_engine", "type_name", "_registry", "_finalizer"})


def release_callback(registry: ObjectRegistry, handle: int) -> bool:
    # Must not capture the proxy, or the finalizer would keep it alive.
    return registry.release(handle)


class RemoteReference:
    __slots__ = ("handle", "source_engine", "type_name", "_registry", "_finalizer", "__weakref__")

    def __init__(
        self,
        handle: int,
        registry: ObjectRegistry,
        *,
        source_engine: str,
        type_name: str | None = None,
    ) -> None:
        if type_name is None:
            entry = registry.entry(handle)
            type_name = entry.type_name if entry is not None else None
        object.__setattr__(self, "handle", handle)
        object.__setattr__(self, "source_engine", source_engine)
        object.__setattr__(self, "type_name", type_name)
        object.__setattr__(self, "_registry", registry)
        object.__setattr__(
            self, "_finalizer", weakref.finalize(self, release_callback, registry, handle)
        )

    @classmethod
    def wrap(cls, value: Any, registry: ObjectRegistry, *, source_engine: str) -> RemoteReference:
        """Register `value` and return a proxy for it.

        A handle that already has a live proxy gets that same proxy back.
        """
        handle = registry.register(value)
        existing = registry.proxy(handle)
        if existing is not None:
            return existing
        proxy = cls(handle, registry, source_engine=source_engine)
        registry.attach_proxy(handle, proxy)
        return proxy

    def _resolve(self) -> Any:
        entry = self._registry.entry(self.handle)
        if entry is None:
            raise ReleasedReferenceError(self.handle)
        return entry.value

    @property
    def alive(self) -> bool:
        return self._registry.registered(self.handle)

    @property
    def registry(self) -> ObjectRegistry:
        return self._registry

    def release(self) -> bool:
        """Release the handle. Returns True only for the call that actually released it."""
        result = self._finalizer()
        return bool(result)

    def resolve(self) -> Any:
        """Return the referenced value itself (owner side only)."""
        return self._resolve()

    # --- Forwarded operations ---

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        return getattr(self._resolve(), name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _OWN_SLOTS:
            raise AttributeError(f"{name} is read-only on a remote reference")
        setattr(self._resolve(), name, value)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self._resolve()(*args, **kwargs)

    def __len__(self) -> int:
        return len(self._resolve())

    def __iter__(self) -> Iterator[Any]:
        return iter(self._resolve())

    def __getitem__(self, key: Any) -> Any:
        return self._resolve()[key]

    def __setitem__(self, key: Any, value: Any) -> None:
        self._resolve()[key] = value

    def __contains__(self, item: Any) -> bool:
        return item in self._resolve()

    def __bool__(self) -> bool:
        return bool(self._resolve())

    def __str__(self) -> str:
        return str(self._resolve())

    def __repr__(self) -> str:
        return (
            f"<RemoteReference handle={self.handle} engine={self.source_engine} "
            f"type={self.type_name}>"
        )
