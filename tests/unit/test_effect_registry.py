import unittest

from polyglot_agent.effect_registry import EffectParam, EffectRegistry
from polyglot_agent.errors import EffectArgumentError, EffectDefinitionError


class EffectRegistryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = EffectRegistry()

    def test_schema_lists_only_required_params(self) -> None:
        def query_db(sql: str, limit: int = 10):  # noqa: ANN202
            return []

        effect = self.registry.define("query_db", query_db, description="Execute a SQL query")
        tool = effect.to_tool()

        self.assertEqual(tool["name"], "query_db")
        self.assertEqual(tool["description"], "Execute a SQL query")
        self.assertEqual(tool["input_schema"]["required"], ["sql"])
        self.assertEqual(tool["input_schema"]["properties"]["limit"]["type"], "integer")
        self.assertEqual(tool["input_schema"]["properties"]["sql"]["type"], "string")

    def test_types_are_inferred_from_defaults(self) -> None:
        def handler(flag=False, ratio=0.5, tags=(), options=None):  # noqa: ANN001, ANN202
            return None

        types = {param.name: param.type for param in self.registry.define("h", handler).params}
        self.assertEqual(
            types, {"flag": "boolean", "ratio": "number", "tags": "array", "options": "string"}
        )

    def test_no_required_params_omits_required_key(self) -> None:
        effect = self.registry.define("noop", lambda verbose=False: None)
        self.assertNotIn("required", effect.to_tool()["input_schema"])

    def test_decorator_form_registers_and_returns_function(self) -> None:
        @self.registry.define("greet", description="Say hello")
        def greet(name: str) -> str:
            return f"hello {name}"

        self.assertEqual(greet("ada"), "hello ada")
        self.assertEqual(self.registry.handle("greet", {"name": "ada"}), (True, "hello ada"))

    def test_docstring_becomes_default_description(self) -> None:
        def fetch(url):  # noqa: ANN001, ANN202
            """Fetch a URL."""
            return url

        self.assertEqual(self.registry.define("fetch", fetch).description, "Fetch a URL.")

    def test_reserved_and_invalid_names_are_rejected(self) -> None:
        for name in ("read_var", "done", "remember"):
            with self.assertRaises(EffectDefinitionError):
                self.registry.define(name, lambda: None)
        with self.assertRaises(EffectDefinitionError):
            self.registry.define("not-valid", lambda: None)

    def test_missing_required_param_names_it(self) -> None:
        self.registry.define("query_db", lambda sql, limit=10: (sql, limit))
        with self.assertRaises(EffectArgumentError) as ctx:
            self.registry.handle("query_db", {"limit": 3})
        self.assertIn("sql", str(ctx.exception))

    def test_unknown_input_keys_are_ignored(self) -> None:
        self.registry.define("query_db", lambda sql, limit=10: (sql, limit))
        handled, result = self.registry.handle("query_db", {"sql": "select 1", "extra": True})
        self.assertTrue(handled)
        self.assertEqual(result, ("select 1", 10))

    def test_positional_calls_map_onto_params(self) -> None:
        effect = self.registry.define("add", lambda a, b=1: a + b)
        self.assertEqual(effect(2, 3), 5)
        self.assertEqual(effect(2), 3)
        with self.assertRaises(EffectArgumentError):
            effect(1, 2, 3)

    def test_explicit_params_override_introspection(self) -> None:
        effect = self.registry.define(
            "lookup",
            lambda **kwargs: kwargs,
            params=[EffectParam(name="key", required=True)],
        )
        self.assertEqual(effect.call({"key": "k", "other": 1}), {"key": "k"})

    def test_unknown_effect_is_not_handled(self) -> None:
        self.assertEqual(self.registry.handle("missing", {}), (False, None))

    def test_undefine_and_clear(self) -> None:
        self.registry.define("a", lambda: 1)
        self.registry.define("b", lambda: 2)
        self.assertTrue(self.registry.undefine("a"))
        self.assertFalse(self.registry.undefine("a"))
        self.assertNotIn("a", self.registry)
        self.registry.clear()
        self.assertEqual(len(self.registry), 0)
        self.assertEqual(self.registry.tool_definitions(), [])


if __name__ == "__main__":
    unittest.main()
