"""Single entry point: pick an engine for a piece of text and run it."""

from __future__ import annotations

from typing import Any

from polyglot_agent.context import Context
from polyglot_agent.engines.base import Engine
from polyglot_agent.engines.detect import get_detector
from polyglot_agent.environment import Environment
from polyglot_agent.logger import get_logger

logger = get_logger("dispatch")

ENGINE_ALIASES = {
    "js": "javascript",
    "py": "python",
    "llm": "natural_language",
    "reasoning": "natural_language",
}


def select_engine(text: str, context: Context, engine: str | type[Engine] | None = None) -> type[Engine]:
    detector = get_detector()
    if isinstance(engine, type):
        return engine
    if engine is not None:
        return detector.engine_for(ENGINE_ALIASES.get(engine, engine))

    language = detector.detect(text, context.last_language)
    context.last_language = language
    return detector.engine_for(language)


def run(
    text: str,
    environment: Environment | None = None,
    context: Context | None = None,
    *,
    engine: str | type[Engine] | None = None,
) -> Any:
    """Run `text` against `environment`.

    Without `engine`, the language is detected (sticky to the context's last
    detection). With a mock active on the context, the reasoning engine
    answers from the mock instead of a backend.
    """
    environment = environment if environment is not None else Environment()
    context = context if context is not None else Context()
    engine_cls = select_engine(text, context, engine)
    logger.info("DISPATCH engine=%s depth=%s", engine_cls.name, context.depth)
    return engine_cls(environment, context).execute(text)
