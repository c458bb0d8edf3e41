"""Durable storage for long-term memory facts.

Facts are stored as one JSON list per namespace. Reads never raise: missing or
corrupt data degrades to an empty list.
"""

from __future__ import annotations

import json
import os
import sqlite3
import sys
from pathlib import Path
from typing import Any, Protocol

from polyglot_agent.logger import get_logger
from polyglot_agent.memory.clock import utc_now_iso


class MemoryStore(Protocol):
    """Namespace-keyed persistence contract used by `Memory`."""

    def read(self, namespace: str) -> list[dict[str, Any]]:
        ...

    def write(self, namespace: str, memories: list[dict[str, Any]]) -> None:
        ...

    def clear(self, namespace: str) -> None:
        ...


def default_memory_dir(memory_path: str | None = None) -> Path:
    """Resolve the directory holding the memory database."""
    if memory_path:
        return Path(memory_path) / "memory"
    xdg = os.getenv("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "polyglot_agent" / "memory"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "polyglot_agent" / "memory"
    return Path.home() / ".local" / "share" / "polyglot_agent" / "memory"


class SQLiteMemoryStore:
    """SQLite implementation of namespace-scoped long-term memory."""

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = Path(db_path) if db_path else default_memory_dir() / "memory.db"
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = get_logger("memory.store")
        self._initialize_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _initialize_schema(self) -> None:
        """Create the memory table if absent."""
        try:
            with self._connect() as conn:
                conn.executescript(
                    """
                    CREATE TABLE IF NOT EXISTS long_term_memories (
                        namespace TEXT PRIMARY KEY,
                        memories_json TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    );
                    """
                )
        except sqlite3.DatabaseError as exc:
            self.logger.warning("MEMORY SCHEMA unavailable db=%s error=%s", self.db_path, exc)

    def read(self, namespace: str) -> list[dict[str, Any]]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT memories_json FROM long_term_memories WHERE namespace = ?",
                    (namespace,),
                ).fetchone()
        except sqlite3.DatabaseError as exc:
            self.logger.warning("MEMORY READ FAILED namespace=%s error=%s", namespace, exc)
            return []

        if row is None:
            self.logger.info("MEMORY READ MISS namespace=%s", namespace)
            return []

        try:
            data = json.loads(row["memories_json"])
        except (TypeError, ValueError):
            self.logger.warning("MEMORY READ CORRUPT namespace=%s", namespace)
            return []
        if not isinstance(data, list):
            return []

        memories = [item for item in data if isinstance(item, dict) and "content" in item]
        self.logger.info("MEMORY READ HIT namespace=%s count=%s", namespace, len(memories))
        return memories

    def write(self, namespace: str, memories: list[dict[str, Any]]) -> None:
        memories_json = json.dumps(memories, default=str)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO long_term_memories (namespace, memories_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(namespace) DO UPDATE SET
                    memories_json=excluded.memories_json,
                    updated_at=excluded.updated_at
                """,
                (namespace, memories_json, utc_now_iso()),
            )
        self.logger.info("MEMORY WRITE namespace=%s count=%s", namespace, len(memories))

    def clear(self, namespace: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM long_term_memories WHERE namespace = ?", (namespace,))
        self.logger.info("MEMORY CLEAR namespace=%s", namespace)
