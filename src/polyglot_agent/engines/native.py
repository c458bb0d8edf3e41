"""Host Python evaluated directly against the Environment.

No marshalling happens here: the snippet sees live host objects, and every
name it binds or rebinds is written back to the Environment afterwards.
"""

from __future__ import annotations

import ast
from typing import Any

from polyglot_agent.engines.base import Engine

_BUILTINS_KEY = "__builtins__"


def split_trailing_expression(code: str, filename: str) -> tuple[Any, Any]:
    """Compile `code` as statements plus an optional trailing expression."""
    tree = ast.parse(code, filename=filename, mode="exec")
    trailing = None
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        trailing = ast.Expression(body=tree.body.pop().value)
        ast.fix_missing_locations(trailing)
    statements = compile(tree, filename, "exec")
    expression = compile(trailing, filename, "eval") if trailing is not None else None
    return statements, expression


class NativeEngine(Engine):
    name = "native"

    def execute(self, code: str) -> Any:
        statements, expression = split_trailing_expression(code, "<native>")
        scope: dict[str, Any] = dict(self.host_functions())
        scope.update(self.environment.values)
        before = dict(scope)

        exec(statements, scope)
        result = eval(expression, scope) if expression is not None else None

        written = []
        for name, value in scope.items():
            if name == _BUILTINS_KEY:
                continue
            if name not in before or before[name] is not value:
                self.write_var(name, value)
                written.append(name)
        self.logger.debug("NATIVE EXECUTE wrote=%s", written)
        return result
