# logger.py

from __future__ import annotations

import logging
import os
import sys

_ROOT_NAME = "polyglot_agent"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    root = logging.getLogger(_ROOT_NAME)
    level_name = os.getenv("POLYGLOT_LOG_LEVEL", "WARNING").upper()
    root.setLevel(getattr(logging, level_name, logging.WARNING))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        root.addHandler(handler)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under the package root logger."""
    _configure_root()
    return logging.getLogger(f"{_ROOT_NAME}.{name}")
