"""JavaScript engine backed by an embedded QuickJS runtime.

One runtime lives on each Context. Values travel as JSON; non-plain host
values travel as `{"__ref__": handle, "__type__": name}` markers that the
prelude turns into proxies, so calls on them run against the original host
object. Serializing a proxy yields its marker again, which is how a proxy
returned from JS resolves back to the object it stands for.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

import quickjs

from polyglot_agent.engines.base import Engine
from polyglot_agent.environment import Environment
from polyglot_agent.errors import AttributeAccessError, ReleasedReferenceError
from polyglot_agent.interop.marshal import from_foreign, to_json_engine
from polyglot_agent.interop.object_registry import ObjectRegistry
from polyglot_agent.logger import get_logger

DECLARATION = re.compile(r"\b(?:const|let|var)\s+(\w+)\s*=")
BARE_ASSIGNMENT = re.compile(r"^(\w+)\s*=[^=>]", re.MULTILINE)

PRELUDE = r"""
var __polyglot = (function () {
  var live = {};
  var weak = typeof WeakRef === "function";
  var finalizers = typeof FinalizationRegistry === "function"
    ? new FinalizationRegistry(function (handle) {
        delete live[handle];
        __host_release(handle);
      })
    : null;

  function encode(args) {
    return JSON.stringify(Array.prototype.slice.call(args));
  }

  function decode(text) {
    if (text === undefined || text === null) return null;
    return revive(JSON.parse(text));
  }

  function revive(value) {
    if (value === null || typeof value !== "object") return value;
    if (Array.isArray(value)) return value.map(revive);
    if (typeof value.__ref__ === "number") return makeRef(value.__ref__, value.__type__);
    var out = {};
    for (var key in value) out[key] = revive(value[key]);
    return out;
  }

  function makeRef(handle, typeName) {
    // At most one live proxy per handle.
    var cached = weak && live[handle] ? live[handle].deref() : undefined;
    if (cached !== undefined) return cached;
    var marker = { __ref__: handle, __type__: typeName };
    var proxy = new Proxy(function () {}, {
      get: function (target, prop) {
        if (prop === "toJSON") return function () { return marker; };
        if (prop === "__ref__") return handle;
        if (prop === "__type__") return typeName;
        if (prop === "release") return function () { return __host_release(handle); };
        if (typeof prop !== "string" || prop === "then") return undefined;
        return function () {
          return decode(__host_ref_call(handle, prop, encode(arguments)));
        };
      },
      apply: function (target, self, args) {
        return decode(__host_ref_call(handle, "", JSON.stringify(args)));
      }
    });
    if (weak) live[handle] = new WeakRef(proxy);
    if (finalizers !== null) finalizers.register(proxy, handle);
    return proxy;
  }

  function bind(names) {
    for (var i = 0; i < names.length; i++) {
      host[names[i]] = (function (name) {
        return function () { return decode(__host_call(name, encode(arguments))); };
      })(names[i]);
    }
  }

  return { decode: decode, bind: bind };
})();

var host = {
  read: function (name) { return __polyglot.decode(__host_read(name)); },
  write: function (name, value) {
    __host_write(name, JSON.stringify(value === undefined ? null : value));
    return value;
  }
};
"""


def extract_declared_vars(code: str) -> list[str]:
    names = DECLARATION.findall(code) + BARE_ASSIGNMENT.findall(code)
    return list(dict.fromkeys(names))


class JSRuntime:
    """A QuickJS context plus the host callbacks its prelude relies on.

    The callbacks read `self.environment` and `self.functions`, which the
    engine points at the current call before every evaluation.
    """

    def __init__(self, registry: ObjectRegistry) -> None:
        self.registry = registry
        self.environment: Environment | None = None
        self.functions: dict[str, Any] = {}
        self._bound: set[str] = set()
        self.logger = get_logger("engines.javascript.runtime")
        self.js = quickjs.Context()
        self.js.add_callable("__host_read", self._read)
        self.js.add_callable("__host_write", self._write)
        self.js.add_callable("__host_call", self._call)
        self.js.add_callable("__host_ref_call", self._ref_call)
        self.js.add_callable("__host_release", self._release)
        self.js.eval(PRELUDE)

    def encode(self, value: Any) -> str:
        return json.dumps(to_json_engine(value, self.registry))

    def decode(self, text: str) -> Any:
        return from_foreign(json.loads(text), self.registry)

    def bind(self, functions: dict[str, Any]) -> None:
        self.functions = functions
        fresh = [name for name in functions if name not in self._bound and name not in ("read", "write")]
        if fresh:
            self.js.eval(f"__polyglot.bind({json.dumps(fresh)});")
            self._bound.update(fresh)

    def eval(self, code: str) -> Any:
        return self.js.eval(code)

    # --- Host callbacks ---

    def _read(self, name: str) -> str:
        environment = self.environment
        if environment is None or not environment.has(name):
            return "null"
        return self.encode(environment.read(name))

    def _write(self, name: str, value_json: str) -> bool:
        self.environment.write(name, self.decode(value_json))
        return True

    def _call(self, name: str, args_json: str) -> str:
        fn = self.functions.get(name)
        if fn is None:
            raise NameError(f"undefined host function '{name}'")
        return self.encode(fn(*self.decode(args_json)))

    def _ref_call(self, handle: Any, member: str, args_json: str) -> str:
        handle = int(handle)
        entry = self.registry.entry(handle)
        if entry is None:
            raise ReleasedReferenceError(handle)
        target = entry.value
        args = self.decode(args_json)
        if member == "":
            return self.encode(target(*args))
        if member.startswith("_"):
            raise AttributeAccessError(f"attribute '{member}' is private")

        if isinstance(target, Mapping) and member in target:
            value = target[member]
        elif hasattr(target, member):
            value = getattr(target, member)
        elif member == "length":
            value = len(target)
        else:
            raise AttributeError(f"{entry.type_name} has no attribute '{member}'")
        return self.encode(value(*args) if callable(value) else value)

    def _release(self, handle: Any) -> bool:
        return self.registry.release(int(handle))


class JavaScriptEngine(Engine):
    name = "javascript"

    @property
    def runtime(self) -> JSRuntime:
        if self.context.js_runtime is None:
            self.context.js_runtime = JSRuntime(self.context.registry)
        return self.context.js_runtime

    def execute(self, code: str) -> Any:
        runtime = self.runtime
        runtime.environment = self.environment
        runtime.bind(self.host_functions())

        self._inject(runtime, code)
        result = runtime.eval(code)
        self._extract(runtime, code)
        return self._to_host(result)

    def _inject(self, runtime: JSRuntime, code: str) -> None:
        for name, value in list(self.environment.values.items()):
            if re.search(rf"\b{re.escape(name)}\b", code) is None:
                continue
            try:
                payload = runtime.encode(value)
            except (RecursionError, TypeError, ValueError) as exc:
                self.logger.debug("INJECT SKIPPED name=%s error=%s", name, exc)
                continue
            runtime.eval(f"var {name} = __polyglot.decode({json.dumps(payload)});")

    def _extract(self, runtime: JSRuntime, code: str) -> None:
        for name in extract_declared_vars(code):
            try:
                payload = runtime.eval(f"JSON.stringify({name})")
            except quickjs.JSException:
                continue
            if payload is None:
                continue
            self.write_var(name, runtime.decode(payload))

    def _to_host(self, result: Any) -> Any:
        if isinstance(result, quickjs.Object):
            payload = result.json()
            return self.runtime.decode(payload) if payload else None
        return result
