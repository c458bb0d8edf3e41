"""Built-in verbs the reasoning engine exposes as tools."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from polyglot_agent.environment import Environment, validate_identifier
from polyglot_agent.interop.marshal import describe_value
from polyglot_agent.memory.memory import Memory


class Tool:
    name: str
    description: str
    input_schema: dict[str, Any] = {"type": "object", "properties": {}}

    def execute(self, args: dict[str, Any]) -> str:
        raise NotImplementedError("Tool must implement the execute method.")

    def definition(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


class ReadVarTool(Tool):
    name = "read_var"
    description = "Read a variable value from the host program."
    input_schema = {
        "type": "object",
        "properties": {"name": {"type": "string", "description": "Variable name"}},
        "required": ["name"],
    }

    def __init__(self, environment: Environment) -> None:
        self.environment = environment

    def execute(self, args: dict[str, Any]) -> str:
        return describe_value(self.environment.read(args.get("name")))


class WriteVarTool(Tool):
    name = "write_var"
    description = (
        "Write a value to a variable in the host program. "
        "Creates the variable if it doesn't exist."
    )
    input_schema = {
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Variable name"},
            "value": {"description": "Value to assign (any JSON type)"},
        },
        "required": ["name", "value"],
    }

    def __init__(self, environment: Environment) -> None:
        self.environment = environment

    def execute(self, args: dict[str, Any]) -> str:
        name = args.get("name")
        value = args.get("value")
        self.environment.write(name, value)
        return f"ok: {name} = {value!r}"


class ReadAttrTool(Tool):
    name = "read_attr"
    description = "Read an attribute from a host object."
    input_schema = {
        "type": "object",
        "properties": {
            "obj": {"type": "string", "description": "Variable name holding the object"},
            "attr": {"type": "string", "description": "Attribute name to read"},
        },
        "required": ["obj", "attr"],
    }

    def __init__(self, environment: Environment) -> None:
        self.environment = environment

    def execute(self, args: dict[str, Any]) -> str:
        obj_name = validate_identifier(args.get("obj"))
        return describe_value(self.environment.read_attr(obj_name, args.get("attr")))


class WriteAttrTool(Tool):
    name = "write_attr"
    description = "Set an attribute on a host object."
    input_schema = {
        "type": "object",
        "properties": {
            "obj": {"type": "string", "description": "Variable name holding the object"},
            "attr": {"type": "string", "description": "Attribute name to set"},
            "value": {"description": "Value to assign"},
        },
        "required": ["obj", "attr", "value"],
    }

    def __init__(self, environment: Environment) -> None:
        self.environment = environment

    def execute(self, args: dict[str, Any]) -> str:
        obj_name = validate_identifier(args.get("obj"))
        attr = args.get("attr")
        value = args.get("value")
        self.environment.write_attr(obj_name, attr, value)
        return f"ok: {obj_name}.{attr} = {value!r}"


class CallFuncTool(Tool):
    name = "call_func"
    description = "Call a function or method available in the host program."
    input_schema = {
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Function/method name"},
            "args": {"type": "array", "description": "Arguments to pass", "items": {}},
        },
        "required": ["name"],
    }

    def __init__(self, environment: Environment) -> None:
        self.environment = environment

    def execute(self, args: dict[str, Any]) -> str:
        call_args = args.get("args") or []
        if not isinstance(call_args, list):
            call_args = [call_args]
        return describe_value(self.environment.call(args.get("name"), call_args))


class RememberTool(Tool):
    name = "remember"
    description = (
        "Store a fact in long-term memory. This memory persists across executions. "
        "Use when the user explicitly asks to remember something."
    )
    input_schema = {
        "type": "object",
        "properties": {"content": {"type": "string", "description": "The fact to remember"}},
        "required": ["content"],
    }

    def __init__(self, memory: Callable[[], Memory | None]) -> None:
        self.memory = memory

    def execute(self, args: dict[str, Any]) -> str:
        memory = self.memory()
        if memory is None:
            return "Memory not available"
        content = str(args.get("content", ""))
        entry = memory.remember(content)
        return f"Remembered (id={entry['id']}): {content}"


class DoneTool(Tool):
    name = "done"
    description = "Signal that the task is complete."
    input_schema = {
        "type": "object",
        "properties": {"result": {"description": "Optional return value"}},
    }

    def execute(self, args: dict[str, Any]) -> str:
        result = args.get("result")
        return "" if result is None else str(result)


def build_tool_registry(
    environment: Environment,
    memory: Callable[[], Memory | None],
    *,
    incognito: bool = False,
) -> dict[str, Tool]:
    """Build the built-in tool map; `remember` is left out while incognito."""
    tools: list[Tool] = [
        ReadVarTool(environment),
        WriteVarTool(environment),
        ReadAttrTool(environment),
        WriteAttrTool(environment),
        CallFuncTool(environment),
        DoneTool(),
    ]
    if not incognito:
        tools.append(RememberTool(memory))
    return {tool.name: tool for tool in tools}
