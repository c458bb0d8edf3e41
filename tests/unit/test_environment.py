import unittest

from polyglot_agent.environment import Environment, FunctionRegistry, validate_identifier
from polyglot_agent.errors import (
    AttributeAccessError,
    InvalidIdentifierError,
    UnknownFunctionError,
)


class Account:
    def __init__(self) -> None:
        self.balance = 10
        self._secret = "hidden"

    def owner(self) -> str:
        return "ada"

    def deposit(self, amount: int, note: str = "") -> int:
        self.balance += amount
        return self.balance


class EnvironmentTests(unittest.TestCase):
    def test_values_are_shared_by_reference(self) -> None:
        values = {"x": 1}
        env = Environment(values)
        env.write("y", 2)
        self.assertEqual(values, {"x": 1, "y": 2})
        self.assertEqual(env.read("x"), 1)

    def test_identifiers_are_validated(self) -> None:
        env = Environment()
        for name in ("1x", "a-b", "", "x y", None):
            with self.assertRaises(InvalidIdentifierError):
                env.write(name, 1)
        self.assertEqual(validate_identifier("_ok1"), "_ok1")

    def test_read_falls_back_to_receiver(self) -> None:
        env = Environment(receiver=Account())
        self.assertEqual(env.read("owner"), "ada")
        self.assertEqual(env.read("balance"), 10)
        self.assertTrue(env.has("deposit"))
        with self.assertRaises(NameError):
            env.read("missing")
        with self.assertRaises(NameError):
            env.read("_secret")

    def test_attribute_access_honours_safelist(self) -> None:
        env = Environment({"acct": Account()}, attribute_safelist={"acct": ["balance"]})
        self.assertEqual(env.read_attr("acct", "balance"), 10)
        env.write_attr("acct", "balance", 20)
        self.assertEqual(env.values["acct"].balance, 20)
        with self.assertRaises(AttributeAccessError):
            env.read_attr("acct", "owner")

    def test_private_attributes_are_rejected(self) -> None:
        env = Environment({"acct": Account()})
        with self.assertRaises(AttributeAccessError):
            env.read_attr("acct", "_secret")

    def test_mapping_attributes(self) -> None:
        env = Environment({"config": {"mode": "fast"}})
        self.assertEqual(env.read_attr("config", "mode"), "fast")
        env.write_attr("config", "mode", "slow")
        self.assertEqual(env.values["config"]["mode"], "slow")

    def test_call_resolves_registered_functions_then_receiver(self) -> None:
        functions = FunctionRegistry({"double": lambda n: n * 2})
        env = Environment(receiver=Account(), functions=functions)
        self.assertEqual(env.call("double", [4]), 8)
        self.assertEqual(env.call("deposit", [5]), 15)
        with self.assertRaises(UnknownFunctionError):
            env.call("explode", [])

    def test_callable_values_can_be_called(self) -> None:
        env = Environment({"square": lambda n: n * n})
        self.assertEqual(env.call("square", [3]), 9)

    def test_describe_functions_lists_signatures(self) -> None:
        env = Environment(receiver=Account(), functions={"double": lambda n: n * 2})
        described = env.describe_functions()
        self.assertIn("deposit(amount, note=...)", described)
        self.assertIn("owner()", described)
        self.assertIn("double(n)", described)

    def test_function_registry_decorator(self) -> None:
        registry = FunctionRegistry()

        @registry.register("triple")
        def triple(n):  # noqa: ANN001, ANN202
            return n * 3

        self.assertIn("triple", registry)
        self.assertIs(registry.get("triple"), triple)


if __name__ == "__main__":
    unittest.main()
