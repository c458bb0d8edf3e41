"""Per-context conversation memory with background compaction.

`short_term` holds the volatile transcript, `long_term` the persisted facts
and `summaries` the output of previous compactions. Compaction runs on a
single background thread per memory; callers wait for it before building a
new prompt so they never observe a half-compacted transcript.
"""

from __future__ import annotations

import math
import threading
from typing import TYPE_CHECKING, Any

from polyglot_agent.config import Config
from polyglot_agent.errors import CompactionFailure
from polyglot_agent.logger import get_logger
from polyglot_agent.memory import context_window
from polyglot_agent.memory import namespace as namespace_detection
from polyglot_agent.memory.clock import utc_now_iso
from polyglot_agent.memory.store import MemoryStore, SQLiteMemoryStore, default_memory_dir
from polyglot_agent.schemas import TextBlock, parse_blocks

if TYPE_CHECKING:
    from polyglot_agent.backends.base import ChatBackend

SUMMARY_PROMPT = (
    "Summarize this conversation concisely. Preserve key facts, decisions, and context."
)
SUMMARY_MAX_TOKENS = 1024

_default_stores: dict[str, SQLiteMemoryStore] = {}


def estimate_tokens(text: Any) -> int:
    """Rough estimate: about four characters per token."""
    if not isinstance(text, str):
        return 0
    return math.ceil(len(text) / 4)


def _message_texts(message: dict[str, Any]) -> list[str]:
    content = message.get("content")
    if isinstance(content, str):
        return [content]
    texts: list[str] = []
    if isinstance(content, list):
        for block in content:
            if not isinstance(block, dict):
                continue
            text = block.get("text") or block.get("content")
            if isinstance(text, str):
                texts.append(text)
    return texts


def is_user_round(message: dict[str, Any]) -> bool:
    return message.get("role") == "user" and isinstance(message.get("content"), str)


class Memory:
    def __init__(
        self,
        config: Config,
        *,
        store: MemoryStore | None = None,
        namespace: str | None = None,
        backend: ChatBackend | None = None,
        load: bool = True,
    ) -> None:
        self.config = config
        self.short_term: list[dict[str, Any]] = []
        self.long_term: list[dict[str, Any]] = []
        self.summaries: list[str] = []
        self._next_id = 1
        self._store = store
        self._namespace = namespace
        self._backend = backend
        self._compact_lock = threading.Lock()
        self._compact_thread: threading.Thread | None = None
        self.logger = get_logger("memory")
        if load:
            self.load_long_term()

    @classmethod
    def nested(cls, outer: Memory) -> Memory:
        """Fresh short-term memory sharing `outer`'s long-term facts."""
        inner = cls(
            outer.config,
            store=outer._store,
            namespace=outer._namespace,
            backend=outer._backend,
            load=False,
        )
        inner.long_term = outer.long_term
        inner._next_id = outer._next_id
        return inner

    # --- Collaborators ---

    @property
    def store(self) -> MemoryStore:
        if self._store is None:
            self._store = self.config.memory_store or _default_store(self.config)
        return self._store

    @property
    def namespace(self) -> str:
        if self._namespace is None:
            self._namespace = namespace_detection.detect(self.config)
        return self._namespace

    @property
    def backend(self) -> ChatBackend:
        if self._backend is None:
            from polyglot_agent.backends import backend_for

            self._backend = backend_for(self.config)
        return self._backend

    # --- Long-term facts ---

    def load_long_term(self) -> None:
        self.long_term = self.store.read(self.namespace)
        self._next_id = self._max_id() + 1

    def remember(self, content: str) -> dict[str, Any]:
        self._next_id = max(self._next_id, self._max_id() + 1)
        entry = {"id": self._next_id, "content": content, "created_at": utc_now_iso()}
        self._next_id += 1
        self.long_term.append(entry)
        self.store.write(self.namespace, self.long_term)
        self.logger.info("REMEMBER id=%s namespace=%s", entry["id"], self.namespace)
        return entry

    def forget(self, id: int) -> bool:
        before = len(self.long_term)
        self.long_term[:] = [entry for entry in self.long_term if entry.get("id") != id]
        self.store.write(self.namespace, self.long_term)
        return len(self.long_term) != before

    def _max_id(self) -> int:
        ids = [entry["id"] for entry in self.long_term if isinstance(entry.get("id"), int)]
        return max(ids, default=0)

    # --- Clearing ---

    def clear(self) -> None:
        self.clear_short_term()
        self.clear_long_term()

    def clear_short_term(self) -> None:
        self.short_term.clear()
        self.summaries.clear()

    def clear_long_term(self) -> None:
        self.long_term.clear()
        self.store.clear(self.namespace)

    # --- Token estimation ---

    def token_count(self) -> int:
        count = 0
        for message in self.short_term:
            count += sum(estimate_tokens(text) for text in _message_texts(message))
        count += sum(estimate_tokens(entry.get("content")) for entry in self.long_term)
        count += sum(estimate_tokens(summary) for summary in self.summaries)
        return count

    @property
    def rounds(self) -> int:
        return sum(1 for message in self.short_term if is_user_round(message))

    def context_window(self) -> int:
        return self.config.context_window or context_window.detect(self.config.model)

    # --- Compaction ---

    def needs_compaction(self) -> bool:
        return self.token_count() > self.config.memory_pressure * self.context_window()

    def schedule_compaction(self) -> bool:
        """Start background compaction if needed. Returns True if a worker was started."""
        if not self.needs_compaction():
            return False
        with self._compact_lock:
            if self._compact_thread is not None and self._compact_thread.is_alive():
                return False
            self._compact_thread = threading.Thread(
                target=self._run_compaction, name="polyglot-compaction", daemon=True
            )
            self._compact_thread.start()
        return True

    def wait_for_compaction(self, timeout: float | None = None) -> None:
        with self._compact_lock:
            thread = self._compact_thread
        if thread is not None:
            thread.join(timeout)

    def compact(self) -> str | None:
        """Compact synchronously, after any in-flight background compaction."""
        self.wait_for_compaction()
        return self._run_compaction()

    def _run_compaction(self) -> str | None:
        try:
            return self._perform_compaction()
        except Exception as exc:
            self.logger.warning("COMPACTION FAILED namespace=%s error=%s", self._namespace, exc)
            hook = self.config.on_compact_error
            if hook is not None:
                try:
                    hook(exc)
                except Exception:
                    self.logger.exception("on_compact_error hook failed")
            return None

    def _perform_compaction(self) -> str | None:
        keep_recent = max(self.config.memory_keep_recent, 0)
        user_indices = [
            index for index, message in enumerate(self.short_term) if is_user_round(message)
        ]
        if len(user_indices) <= keep_recent:
            return None

        cutoff = user_indices[-keep_recent] if keep_recent else len(self.short_term)
        old_messages = self.short_term[:cutoff]
        lines = []
        for message in old_messages:
            texts = _message_texts(message)
            if texts:
                lines.append(f"{message.get('role')}: {' '.join(texts)}")
        if not lines:
            return None

        summary = self._summarize("\n".join(lines))
        del self.short_term[:cutoff]
        self.summaries.append(summary)
        self.logger.info(
            "COMPACTED messages=%s kept_rounds=%s summaries=%s",
            len(old_messages),
            keep_recent,
            len(self.summaries),
        )

        if self.config.on_compact is not None:
            self.config.on_compact(summary)
        return summary

    def _summarize(self, text: str) -> str:
        try:
            raw = self.backend.chat(
                system=SUMMARY_PROMPT,
                messages=[{"role": "user", "content": text}],
                tools=[],
                model=self.config.compact_model or self.config.model,
                max_tokens=SUMMARY_MAX_TOKENS,
            )
            blocks = parse_blocks(raw)
        except Exception as exc:
            raise CompactionFailure(f"summarization failed: {exc}") from exc

        summary = "\n".join(block.text for block in blocks if isinstance(block, TextBlock)).strip()
        if not summary:
            raise CompactionFailure("summarization returned no text")
        return summary

    def __repr__(self) -> str:
        return (
            f"<Memory long_term={len(self.long_term)} short_term={self.rounds} rounds "
            f"tokens={self.token_count()}/{self.context_window()}>"
        )


def _default_store(config: Config) -> SQLiteMemoryStore:
    db_path = str(default_memory_dir(config.memory_path) / "memory.db")
    store = _default_stores.get(db_path)
    if store is None:
        store = SQLiteMemoryStore(db_path)
        _default_stores[db_path] = store
    return store
