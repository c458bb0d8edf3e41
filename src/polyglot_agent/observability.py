"""Langfuse tracing for backend requests and reasoning loops.

Tracing is on while both `LANGFUSE_PUBLIC_KEY` and `LANGFUSE_SECRET_KEY` are
set. The check happens per call, so keys loaded after import still count.
"""

from __future__ import annotations

import functools
import os
from collections.abc import Callable
from typing import Any, TypeVar

from langfuse.decorators import langfuse_context
from langfuse.decorators import observe as langfuse_observe

F = TypeVar("F", bound=Callable[..., Any])


def tracing_enabled() -> bool:
    return bool(os.getenv("LANGFUSE_SECRET_KEY") and os.getenv("LANGFUSE_PUBLIC_KEY"))


def observe(name: str) -> Callable[[F], F]:
    """Record the wrapped call as a Langfuse observation named `name`."""

    def decorate(fn: F) -> F:
        traced = langfuse_observe(name=name)(fn)

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if tracing_enabled():
                return traced(*args, **kwargs)
            return fn(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorate


def flush() -> None:
    """Send pending observations. Does nothing while tracing is off."""
    if tracing_enabled():
        langfuse_context.flush()
