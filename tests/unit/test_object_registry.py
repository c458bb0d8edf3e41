import gc
import platform
import unittest

from polyglot_agent.errors import ReleasedReferenceError
from polyglot_agent.interop.object_registry import ObjectRegistry
from polyglot_agent.interop.remote_ref import RemoteReference


class Widget:
    def __init__(self, name: str) -> None:
        self.name = name
        self.calls = 0

    def ping(self, suffix: str = "") -> str:
        self.calls += 1
        return f"pong {self.name}{suffix}"


class ObjectRegistryTests(unittest.TestCase):
    def test_register_returns_same_handle_for_same_object(self) -> None:
        registry = ObjectRegistry()
        widget = Widget("a")
        self.assertEqual(registry.register(widget), registry.register(widget))

    def test_equal_but_distinct_objects_get_distinct_handles(self) -> None:
        registry = ObjectRegistry()
        first, second = [1, 2], [1, 2]
        self.assertNotEqual(registry.register(first), registry.register(second))

    def test_handles_start_at_one_and_grow(self) -> None:
        registry = ObjectRegistry()
        handles = [registry.register(Widget(str(i))) for i in range(3)]
        self.assertEqual(handles, [1, 2, 3])
        self.assertIsNone(registry.get(0))

    def test_get_returns_exact_original_until_released(self) -> None:
        registry = ObjectRegistry()
        widget = Widget("a")
        handle = registry.register(widget)
        self.assertIs(registry.get(handle), widget)
        self.assertTrue(registry.release(handle))
        self.assertIsNone(registry.get(handle))

    def test_release_is_idempotent_and_notifies_once(self) -> None:
        registry = ObjectRegistry()
        released = []
        registry.on_release(lambda handle, entry: released.append((handle, entry.type_name)))
        handle = registry.register(Widget("a"))

        self.assertTrue(registry.release(handle))
        self.assertFalse(registry.release(handle))
        self.assertEqual(released, [(handle, "Widget")])

    def test_failing_callback_does_not_stop_other_callbacks(self) -> None:
        registry = ObjectRegistry()
        seen = []

        def broken(handle, entry):  # noqa: ANN001, ANN202
            raise RuntimeError("boom")

        registry.on_release(broken)
        registry.on_release(lambda handle, entry: seen.append(handle))
        handle = registry.register(Widget("a"))

        with self.assertLogs("polyglot_agent.interop.registry", level="ERROR"):
            self.assertTrue(registry.release(handle))
        self.assertEqual(seen, [handle])
        self.assertNotIn(handle, registry)

    def test_clear_releases_each_handle_once(self) -> None:
        registry = ObjectRegistry()
        released = []
        registry.on_release(lambda handle, entry: released.append(handle))
        handles = [registry.register(Widget(str(i))) for i in range(3)]

        registry.clear()

        self.assertEqual(sorted(released), handles)
        self.assertEqual(len(registry), 0)

    def test_handles_are_not_reused_after_clear(self) -> None:
        registry = ObjectRegistry()
        first = registry.register(Widget("a"))
        registry.clear()
        second = registry.register(Widget("b"))
        self.assertGreater(second, first)


class RemoteReferenceTests(unittest.TestCase):
    def test_proxy_forwards_len_and_iteration(self) -> None:
        registry = ObjectRegistry()
        ref = RemoteReference.wrap([1, 2, 3], registry, source_engine="python")
        self.assertEqual(len(ref), 3)
        self.assertEqual(list(ref), [1, 2, 3])
        self.assertIn(2, ref)
        self.assertEqual(ref[0], 1)
        self.assertEqual(ref.type_name, "list")

    def test_proxy_forwards_method_calls_and_attributes(self) -> None:
        registry = ObjectRegistry()
        widget = Widget("a")
        ref = RemoteReference.wrap(widget, registry, source_engine="javascript")

        self.assertEqual(ref.ping("!"), "pong a!")
        ref.name = "b"
        self.assertEqual(widget.name, "b")
        self.assertEqual(str(ref), str(widget))

    def test_every_operation_fails_after_release(self) -> None:
        registry = ObjectRegistry()
        ref = RemoteReference.wrap([1, 2, 3], registry, source_engine="python")

        self.assertTrue(ref.release())
        self.assertFalse(ref.release())
        self.assertFalse(ref.alive)
        with self.assertRaises(ReleasedReferenceError):
            len(ref)
        with self.assertRaises(ReleasedReferenceError):
            ref.append(4)
        with self.assertRaises(ReleasedReferenceError):
            str(ref)
        with self.assertRaises(ReleasedReferenceError):
            ref[0]
        self.assertIn("handle=", repr(ref))

    def test_rewrapping_a_live_value_returns_the_same_proxy(self) -> None:
        registry = ObjectRegistry()
        widget = Widget("a")
        first = RemoteReference.wrap(widget, registry, source_engine="python")
        second = RemoteReference.wrap(widget, registry, source_engine="python")
        self.assertIs(first, second)

        first.release()
        third = RemoteReference.wrap(widget, registry, source_engine="python")
        self.assertIsNot(third, first)
        self.assertTrue(third.alive)

    def test_own_fields_are_read_only(self) -> None:
        registry = ObjectRegistry()
        ref = RemoteReference.wrap(Widget("a"), registry, source_engine="python")
        with self.assertRaises(AttributeError):
            ref.handle = 99

    @unittest.skipUnless(
        platform.python_implementation() == "CPython",
        "finalizer timing is only immediate under reference counting",
    )
    def test_unreachable_proxy_releases_its_handle(self) -> None:
        registry = ObjectRegistry()
        released = []
        registry.on_release(lambda handle, entry: released.append(handle))
        ref = RemoteReference.wrap(Widget("a"), registry, source_engine="python")
        handle = ref.handle

        del ref
        gc.collect()

        self.assertEqual(released, [handle])
        self.assertNotIn(handle, registry)


if __name__ == "__main__":
    unittest.main()
