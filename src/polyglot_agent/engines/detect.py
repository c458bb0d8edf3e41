"""Rule-based language detection for engine dispatch."""

from __future__ import annotations

import importlib.util
import re
from pathlib import Path
from typing import Any

import yaml

from polyglot_agent.logger import get_logger

RULES_PATH = Path(__file__).resolve().parent / "data" / "lang-rules.yml"

NATURAL_LANGUAGE = "natural_language"
STRONG_SCORE = 3
WEAK_SCORE = 1
ANTI_SCORE = -5
PATTERN_SCORE = 4
STICKY_BONUS = 2

logger = get_logger("engines.detect")


def load_rules(path: str | Path = RULES_PATH) -> dict[str, dict[str, Any]]:
    with open(path, encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return data.get("languages") or {}


def javascript_available() -> bool:
    return importlib.util.find_spec("quickjs") is not None


class Detector:
    def __init__(self, rules: dict[str, dict[str, Any]] | None = None) -> None:
        self.rules = rules if rules is not None else load_rules()
        self._patterns = {
            language: [re.compile(pattern, re.MULTILINE) for pattern in rule_set.get("patterns") or []]
            for language, rule_set in self.rules.items()
        }

    def scores(self, text: str, previous: str | None = None) -> dict[str, int]:
        scores = {language: self._score(language, text) for language in self.rules}
        # Sticky context only reinforces existing evidence.
        if previous is not None and scores.get(previous, 0) > 0:
            scores[previous] += STICKY_BONUS
        return scores

    def detect(self, text: str, previous: str | None = None) -> str:
        """Return the best-scoring language, or `natural_language` when nothing scores."""
        scores = self.scores(text, previous)
        if not scores:
            return NATURAL_LANGUAGE
        best = max(scores, key=lambda language: scores[language])
        if scores[best] <= 0:
            return NATURAL_LANGUAGE
        logger.debug("DETECT language=%s scores=%s", best, scores)
        return best

    def _score(self, language: str, text: str) -> int:
        rule_set = self.rules[language]
        score = 0
        score += STRONG_SCORE * sum(1 for token in rule_set.get("strong") or [] if token in text)
        score += WEAK_SCORE * sum(1 for token in rule_set.get("weak") or [] if token in text)
        score += ANTI_SCORE * sum(1 for token in rule_set.get("anti") or [] if token in text)
        score += PATTERN_SCORE * sum(
            1 for pattern in self._patterns[language] if pattern.search(text)
        )
        return score

    def engine_for(self, language: str) -> type:
        from polyglot_agent.engines.native import NativeEngine
        from polyglot_agent.engines.python import PythonEngine
        from polyglot_agent.engines.reasoning import ReasoningEngine

        if language == "javascript":
            if not javascript_available():
                logger.warning("JavaScript engine unavailable (quickjs not installed), falling back to reasoning")
                return ReasoningEngine
            from polyglot_agent.engines.javascript import JavaScriptEngine

            return JavaScriptEngine
        if language == "python":
            return PythonEngine
        if language == "native":
            return NativeEngine
        return ReasoningEngine

    def detect_engine(self, text: str, previous: str | None = None) -> type:
        return self.engine_for(self.detect(text, previous))


_detector: Detector | None = None


def get_detector() -> Detector:
    global _detector
    if _detector is None:
        _detector = Detector()
    return _detector
