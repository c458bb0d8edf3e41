import threading
import unittest

from polyglot_agent.errors import CompactionFailure, TransportError
from polyglot_agent.memory.memory import SUMMARY_PROMPT, Memory, estimate_tokens
from tests.support import InMemoryStore, ScriptedBackend, make_config, text


def add_rounds(memory: Memory, count: int) -> None:
    for index in range(count):
        memory.short_term.append({"role": "user", "content": f"question {index}"})
        memory.short_term.append(
            {"role": "assistant", "content": [{"type": "text", "text": f"answer {index}"}]}
        )


class LongTermMemoryTests(unittest.TestCase):
    def test_remember_assigns_monotonic_ids_and_persists(self) -> None:
        store = InMemoryStore()
        memory = Memory(make_config(memory_store=store))
        first = memory.remember("likes tea")
        second = memory.remember("lives in Oslo")

        self.assertEqual((first["id"], second["id"]), (1, 2))
        self.assertIn("created_at", first)
        self.assertEqual([m["content"] for m in store.read("tests")], ["likes tea", "lives in Oslo"])

    def test_loads_existing_facts_and_continues_ids(self) -> None:
        store = InMemoryStore()
        store.write("tests", [{"id": 7, "content": "old fact", "created_at": "t"}])
        memory = Memory(make_config(memory_store=store))

        self.assertEqual(memory.long_term[0]["content"], "old fact")
        self.assertEqual(memory.remember("new fact")["id"], 8)

    def test_forget_removes_exactly_one_fact(self) -> None:
        store = InMemoryStore()
        memory = Memory(make_config(memory_store=store))
        memory.remember("a")
        kept = memory.remember("b")
        memory.remember("c")

        self.assertTrue(memory.forget(1))
        self.assertFalse(memory.forget(1))
        self.assertEqual([m["content"] for m in store.read("tests")], ["b", "c"])
        self.assertEqual(memory.long_term[0], kept)

    def test_nested_memory_shares_long_term_only(self) -> None:
        outer = Memory(make_config())
        outer.remember("shared fact")
        add_rounds(outer, 1)

        inner = Memory.nested(outer)
        self.assertEqual(inner.short_term, [])
        self.assertIs(inner.long_term, outer.long_term)
        inner.remember("inner fact")
        self.assertEqual(outer.remember("outer fact")["id"], 3)

    def test_clear_short_and_long_term(self) -> None:
        store = InMemoryStore()
        memory = Memory(make_config(memory_store=store))
        memory.remember("fact")
        add_rounds(memory, 1)
        memory.summaries.append("earlier")

        memory.clear_short_term()
        self.assertEqual((memory.short_term, memory.summaries), ([], []))
        self.assertEqual(len(memory.long_term), 1)

        memory.clear_long_term()
        self.assertEqual(memory.long_term, [])
        self.assertEqual(store.read("tests"), [])


class TokenEstimateTests(unittest.TestCase):
    def test_estimate_rounds_up(self) -> None:
        self.assertEqual(estimate_tokens("abcd"), 1)
        self.assertEqual(estimate_tokens("abcde"), 2)
        self.assertEqual(estimate_tokens(""), 0)
        self.assertEqual(estimate_tokens(None), 0)

    def test_token_count_covers_all_sections(self) -> None:
        memory = Memory(make_config())
        memory.short_term.append({"role": "user", "content": "a" * 8})
        memory.short_term.append(
            {"role": "user", "content": [{"type": "tool_result", "tool_use_id": "t", "content": "b" * 4}]}
        )
        memory.remember("c" * 12)
        memory.summaries.append("d" * 4)
        self.assertEqual(memory.token_count(), 2 + 1 + 3 + 1)

    def test_rounds_count_user_text_turns_only(self) -> None:
        memory = Memory(make_config())
        add_rounds(memory, 3)
        memory.short_term.append(
            {"role": "user", "content": [{"type": "tool_result", "tool_use_id": "t", "content": "x"}]}
        )
        self.assertEqual(memory.rounds, 3)

    def test_needs_compaction_uses_pressure_and_window(self) -> None:
        memory = Memory(make_config(memory_pressure=0.5, context_window=10))
        memory.short_term.append({"role": "user", "content": "a" * 16})
        self.assertFalse(memory.needs_compaction())
        memory.short_term.append({"role": "user", "content": "a" * 8})
        self.assertTrue(memory.needs_compaction())


class CompactionTests(unittest.TestCase):
    def test_compact_keeps_recent_rounds_and_adds_one_summary(self) -> None:
        backend = ScriptedBackend([[text("they asked four questions")]])
        summaries = []
        config = make_config(
            memory_pressure=0.0,
            memory_keep_recent=2,
            compact_model="small-model",
            on_compact=summaries.append,
        )
        memory = Memory(config, backend=backend)
        add_rounds(memory, 5)

        self.assertTrue(memory.needs_compaction())
        summary = memory.compact()

        self.assertEqual(summary, "they asked four questions")
        self.assertLessEqual(memory.rounds, 2)
        self.assertEqual(memory.summaries, ["they asked four questions"])
        self.assertEqual(summaries, ["they asked four questions"])
        self.assertEqual(memory.short_term[0]["content"], "question 3")

        request = backend.calls[0]
        self.assertEqual(request["system"], SUMMARY_PROMPT)
        self.assertEqual(request["model"], "small-model")
        self.assertEqual(request["max_tokens"], 1024)
        self.assertEqual(request["tools"], [])
        self.assertIn("question 0", request["messages"][0]["content"])
        self.assertNotIn("question 3", request["messages"][0]["content"])

    def test_nothing_to_compact_within_keep_recent(self) -> None:
        backend = ScriptedBackend([[text("unused")]])
        memory = Memory(make_config(memory_pressure=0.0, memory_keep_recent=4), backend=backend)
        add_rounds(memory, 3)
        self.assertIsNone(memory.compact())
        self.assertEqual(backend.calls, [])

    def test_failure_leaves_short_term_untouched_and_reports(self) -> None:
        errors = []
        backend = ScriptedBackend([TransportError("HTTP 500: boom", 500)])
        memory = Memory(
            make_config(memory_pressure=0.0, memory_keep_recent=1, on_compact_error=errors.append),
            backend=backend,
        )
        add_rounds(memory, 3)
        before = list(memory.short_term)

        with self.assertLogs("polyglot_agent.memory", level="WARNING"):
            self.assertIsNone(memory.compact())

        self.assertEqual(memory.short_term, before)
        self.assertEqual(memory.summaries, [])
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], CompactionFailure)

    def test_empty_summary_is_a_failure(self) -> None:
        errors = []
        backend = ScriptedBackend([[]])
        memory = Memory(
            make_config(memory_pressure=0.0, memory_keep_recent=1, on_compact_error=errors.append),
            backend=backend,
        )
        add_rounds(memory, 2)
        with self.assertLogs("polyglot_agent.memory", level="WARNING"):
            memory.compact()
        self.assertEqual(len(errors), 1)
        self.assertEqual(memory.rounds, 2)

    def test_schedule_is_a_noop_below_threshold(self) -> None:
        memory = Memory(make_config(), backend=ScriptedBackend([[text("unused")]]))
        add_rounds(memory, 1)
        self.assertFalse(memory.schedule_compaction())

    def test_schedule_runs_one_background_worker(self) -> None:
        release = threading.Event()
        started = threading.Event()

        def slow_chat():  # noqa: ANN202
            started.set()
            release.wait(5)

        backend = ScriptedBackend([[text("summary")]], on_chat=slow_chat)
        memory = Memory(make_config(memory_pressure=0.0, memory_keep_recent=1), backend=backend)
        add_rounds(memory, 3)

        self.assertTrue(memory.schedule_compaction())
        started.wait(5)
        self.assertFalse(memory.schedule_compaction())
        release.set()
        memory.wait_for_compaction()

        self.assertEqual(len(backend.calls), 1)
        self.assertEqual(memory.summaries, ["summary"])
        self.assertEqual(memory.rounds, 1)


if __name__ == "__main__":
    unittest.main()
