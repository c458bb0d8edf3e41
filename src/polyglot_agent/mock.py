"""Zero-network stand-in for the reasoning engine.

    mock = Mock()
    mock.prompt("sum", total=15, returns="ok")
    mock.prompt(re.compile(r"translate"), respond=lambda text: {"out": text.upper()})

    with context.mocking(mock):
        run("compute the sum of <numbers> into <total>", env, context)
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from polyglot_agent.errors import MockMatchError

RETURN_KEY = "_return"

Pattern = str | re.Pattern[str] | Callable[[str], bool]


@dataclass
class Stub:
    pattern: Pattern
    values: dict[str, Any] = field(default_factory=dict)
    returns: Any = None
    respond: Callable[[str], dict[str, Any]] | None = None

    def matches(self, prompt: str) -> bool:
        if isinstance(self.pattern, str):
            return self.pattern in prompt
        if isinstance(self.pattern, re.Pattern):
            return self.pattern.search(prompt) is not None
        return bool(self.pattern(prompt))

    def resolve(self, prompt: str) -> tuple[dict[str, Any], Any]:
        """Return `(values to write, return value)` for `prompt`."""
        values = dict(self.respond(prompt) or {}) if self.respond is not None else dict(self.values)
        returns = values.pop(RETURN_KEY, None)
        if self.returns is not None:
            returns = self.returns
        return values, returns


class Mock:
    def __init__(self) -> None:
        self.stubs: list[Stub] = []

    def prompt(
        self,
        pattern: Pattern,
        *,
        returns: Any = None,
        respond: Callable[[str], dict[str, Any]] | None = None,
        **values: Any,
    ) -> Stub:
        stub = Stub(pattern=pattern, values=values, returns=returns, respond=respond)
        self.stubs.append(stub)
        return stub

    def match(self, prompt: str) -> Stub | None:
        # Registration order decides between overlapping stubs.
        for stub in self.stubs:
            if stub.matches(prompt):
                return stub
        return None

    def require(self, prompt: str) -> Stub:
        stub = self.match(prompt)
        if stub is None:
            truncated = prompt if len(prompt) <= 60 else prompt[:57] + "..."
            raise MockMatchError(
                f'No mock matched: "{truncated}"\n'
                f'  Add: mock.prompt("{truncated}", returns="...")'
            )
        return stub
