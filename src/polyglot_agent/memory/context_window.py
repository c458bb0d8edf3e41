"""Context-window sizes per model family, used only to trigger compaction."""

from __future__ import annotations

import re

SIZES: list[tuple[re.Pattern[str], int]] = [
    (re.compile(r"claude-(3-5-|3-7-)?(sonnet|haiku|opus)"), 200_000),
    (re.compile(r"claude-(sonnet|opus|haiku)-4"), 200_000),
    (re.compile(r"gpt-4\.1"), 1_047_576),
    (re.compile(r"gpt-4o"), 128_000),
    (re.compile(r"gpt-4-turbo"), 128_000),
    (re.compile(r"gpt-3\.5"), 16_385),
    (re.compile(r"^o[134](-|$)"), 200_000),
    (re.compile(r"llama-?3\.[123]"), 128_000),
]

DEFAULT = 128_000


def detect(model_name: str | None) -> int:
    """Return the window for `model_name`, or a conservative default for unknown models."""
    if not model_name:
        return DEFAULT
    for pattern, size in SIZES:
        if pattern.search(model_name):
            return size
    return DEFAULT
