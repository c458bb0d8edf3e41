"""Per-context registry for values that cross engine boundaries.

When a non-primitive value is handed to a foreign engine it is registered here
and the foreign side receives an integer handle. Calls made through the handle
are resolved against this registry, so a handle is only ever meaningful to the
registry that minted it.
"""

from __future__ import annotations

import weakref
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from polyglot_agent.logger import get_logger

ReleaseCallback = Callable[[int, "RegistryEntry"], Any]


@dataclass(frozen=True)
class RegistryEntry:
    value: Any
    type_name: str


class ObjectRegistry:
    """Handle table with identity dedup and release notifications.

    Handles start at 1, grow monotonically and are never reused, even after
    `clear()`. A context is never accessed concurrently, so no locking is done.
    """

    def __init__(self) -> None:
        self._entries: dict[int, RegistryEntry] = {}
        self._handles_by_identity: dict[int, int] = {}
        self._next_handle = 1
        self._callbacks: list[ReleaseCallback] = []
        # Live proxies minted for each handle; one proxy per handle at a time.
        self._proxies: weakref.WeakValueDictionary[int, Any] = weakref.WeakValueDictionary()
        self.logger = get_logger("interop.registry")

    def register(self, value: Any) -> int:
        """Store `value` and return its handle; the same object always gets the same handle."""
        handle = self._handles_by_identity.get(id(value))
        if handle is not None and self._entries[handle].value is value:
            return handle

        handle = self._next_handle
        self._next_handle += 1
        self._entries[handle] = RegistryEntry(value=value, type_name=type(value).__name__)
        self._handles_by_identity[id(value)] = handle
        self.logger.debug("REGISTER handle=%s type=%s", handle, type(value).__name__)
        return handle

    def get(self, handle: int) -> Any | None:
        entry = self._entries.get(handle)
        return entry.value if entry is not None else None

    def entry(self, handle: int) -> RegistryEntry | None:
        return self._entries.get(handle)

    def registered(self, handle: int) -> bool:
        return handle in self._entries

    def release(self, handle: int) -> bool:
        """Drop a handle. Returns False (and notifies nobody) if it was not live."""
        entry = self._entries.pop(handle, None)
        if entry is None:
            return False
        self._handles_by_identity.pop(id(entry.value), None)
        self._proxies.pop(handle, None)
        self.logger.debug("RELEASE handle=%s type=%s", handle, entry.type_name)

        for callback in list(self._callbacks):
            try:
                callback(handle, entry)
            except Exception:
                self.logger.exception("on_release callback failed for handle=%s", handle)
        return True

    def proxy(self, handle: int) -> Any | None:
        return self._proxies.get(handle)

    def attach_proxy(self, handle: int, proxy: Any) -> None:
        self._proxies[handle] = proxy

    def on_release(self, callback: ReleaseCallback) -> ReleaseCallback:
        self._callbacks.append(callback)
        return callback

    def clear(self) -> None:
        """Release every live handle, firing callbacks once per handle."""
        for handle in list(self._entries):
            self.release(handle)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, handle: object) -> bool:
        return handle in self._entries
