"""Cross-engine object handles and proxies."""

from polyglot_agent.interop.marshal import describe_value, from_foreign
from polyglot_agent.interop.object_registry import ObjectRegistry, RegistryEntry
from polyglot_agent.interop.remote_ref import RemoteReference

__all__ = [
    "ObjectRegistry",
    "RegistryEntry",
    "RemoteReference",
    "describe_value",
    "from_foreign",
]
