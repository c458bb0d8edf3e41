"""Reasoning engine: the tool-calling loop.

The loop is a small LangGraph state machine:

    build_context -> call_backend -> dispatch -> call_backend -> ... -> finalize

`call_backend` routes to `finalize` when the model asks for no tools,
`dispatch` routes to `finalize` once `done` has been called, and exceeding
`config.max_iterations` rounds raises `IterationCapExceeded`. The transcript
itself lives on the engine (it is the current memory's short-term list) and
only the loop counters travel through graph state.
"""

from __future__ import annotations

import re
from typing import Any, TypedDict

from langgraph.graph import END, START, StateGraph

from polyglot_agent.context import Context
from polyglot_agent.engines.base import Engine
from polyglot_agent.engines.tools import Tool, build_tool_registry
from polyglot_agent.environment import Environment, validate_identifier
from polyglot_agent.errors import IterationCapExceeded
from polyglot_agent.interop.marshal import describe_value
from polyglot_agent.memory.memory import Memory
from polyglot_agent.observability import observe
from polyglot_agent.schemas import ToolResultBlock, blocks_to_messages, parse_blocks, tool_uses

REFERENCE_MARKER = re.compile(r"<(\w+)>")


class LoopState(TypedDict, total=False):
    prompt: str
    iterations: int
    # Pending tool_use blocks from the latest assistant turn.
    tool_calls: list[dict[str, Any]]
    done: bool
    done_result: Any


class ReasoningEngine(Engine):
    name = "reasoning"
    execution_engine = False

    def __init__(self, environment: Environment, context: Context | None = None) -> None:
        super().__init__(environment, context)
        self.incognito = self.context.incognito
        self.memory: Memory | None = None
        self.messages: list[dict[str, Any]] = []
        self.system_prompt = ""
        self.tools: dict[str, Tool] = build_tool_registry(
            environment, lambda: self.memory, incognito=self.incognito
        )
        self._compiled = self._compile_graph()

    def _compile_graph(self):
        builder = StateGraph(LoopState)
        builder.add_node("build_context", self._build_context)
        builder.add_node("call_backend", self._call_backend)
        builder.add_node("dispatch", self._dispatch)
        builder.add_node("finalize", self._finalize)
        builder.add_edge(START, "build_context")
        builder.add_edge("build_context", "call_backend")
        builder.add_conditional_edges(
            "call_backend",
            self._route_after_call,
            {"dispatch": "dispatch", "finish": "finalize"},
        )
        builder.add_conditional_edges(
            "dispatch",
            self._route_after_dispatch,
            {"call_backend": "call_backend", "finish": "finalize"},
        )
        builder.add_edge("finalize", END)
        return builder.compile()

    @observe("reasoning.execute")
    def execute(self, prompt: str) -> Any:
        """Run the loop for `prompt` and return the `done` payload (or None)."""
        if self.context.mock is not None:
            return self.handle_mock(prompt)

        context = self.context
        context.depth += 1
        nested = context.depth > 1
        swapped = False
        outer_memory: Memory | None = None
        try:
            if nested and not self.incognito:
                # Inner turns stay out of the caller's transcript; facts are shared.
                outer_memory = context.memory
                context.memory = Memory.nested(outer_memory)
                swapped = True
            self.memory = None if self.incognito else context.memory
            self.messages = self.memory.short_term if self.memory is not None else []

            self.logger.info("LOOP START depth=%s incognito=%s", context.depth, self.incognito)
            final_state = self._compiled.invoke(
                {"prompt": prompt, "iterations": 0, "tool_calls": [], "done": False, "done_result": None},
                config={"recursion_limit": 2 * self.config.max_iterations + 5},
            )
            self.logger.info(
                "LOOP END depth=%s iterations=%s done=%s",
                context.depth,
                final_state.get("iterations"),
                final_state.get("done"),
            )

            if self.memory is not None and not nested:
                self.memory.schedule_compaction()
            return final_state.get("done_result")
        finally:
            if swapped:
                context.memory = outer_memory
            context.depth -= 1

    # --- Graph nodes ---

    def _build_context(self, state: LoopState) -> LoopState:
        if self.memory is not None:
            self.memory.wait_for_compaction()
        prompt = state["prompt"]
        self.system_prompt = self.build_system_prompt(self.resolve_references(prompt))
        self.messages.append({"role": "user", "content": prompt})
        return {"iterations": 0, "tool_calls": [], "done": False}

    def _call_backend(self, state: LoopState) -> LoopState:
        iterations = state.get("iterations", 0) + 1
        cap = self.config.max_iterations
        if iterations > cap:
            raise IterationCapExceeded(f"exceeded {cap} iterations")

        blocks = parse_blocks(
            self.context.backend.chat(
                system=self.system_prompt,
                messages=list(self.messages),
                tools=self.tool_definitions(),
                model=self.config.model,
                max_tokens=self.config.max_tokens,
            )
        )
        self.messages.append({"role": "assistant", "content": blocks_to_messages(blocks)})
        calls = tool_uses(blocks)
        self.logger.debug("ROUND %s tool_calls=%s", iterations, [call.name for call in calls])
        return {"iterations": iterations, "tool_calls": [call.model_dump() for call in calls]}

    def _route_after_call(self, state: LoopState) -> str:
        return "dispatch" if state.get("tool_calls") else "finish"

    def _dispatch(self, state: LoopState) -> LoopState:
        done = False
        done_result = state.get("done_result")
        results: list[dict[str, Any]] = []
        for call in state.get("tool_calls") or []:
            content = self.handle_tool(call["name"], call.get("input") or {})
            if call["name"] == "done":
                done = True
                done_result = (call.get("input") or {}).get("result")
            results.append(ToolResultBlock(tool_use_id=call["id"], content=content).model_dump())
        self.messages.append({"role": "user", "content": results})
        return {"tool_calls": [], "done": done, "done_result": done_result}

    def _route_after_dispatch(self, state: LoopState) -> str:
        return "finish" if state.get("done") else "call_backend"

    def _finalize(self, state: LoopState) -> LoopState:
        done_result = state.get("done_result")
        if self.memory is not None and done_result is not None:
            self.messages.append(
                {"role": "assistant", "content": [{"type": "text", "text": f"Done: {done_result}"}]}
            )
        return {}

    # --- Tool dispatch ---

    def tool_definitions(self) -> list[dict[str, Any]]:
        return [tool.definition() for tool in self.tools.values()] + (
            self.context.effects.tool_definitions()
        )

    def handle_tool(self, name: str, input: dict[str, Any]) -> str:
        """Dispatch one tool call. Failures come back as text, never as exceptions."""
        try:
            validate_identifier(name)
            handler = self.context.current_handler()
            if handler is not None:
                return str(handler(name, dict(input)))

            handled, result = self.context.effects.handle(name, input)
            if handled:
                return describe_value(result)

            tool = self.tools.get(name)
            if tool is None:
                return f"unhandled: unknown tool {name}"
            return tool.execute(dict(input))
        except Exception as exc:
            self.logger.info("TOOL FAILED name=%s error=%s: %s", name, type(exc).__name__, exc)
            return f"error: {type(exc).__name__}: {exc}"

    # --- Context construction ---

    def resolve_references(self, prompt: str) -> dict[str, str]:
        """Describe every `<name>` marker that already exists in the Environment."""
        described: dict[str, str] = {}
        for name in dict.fromkeys(REFERENCE_MARKER.findall(prompt)):
            if not self.environment.has(name):
                continue
            try:
                described[name] = describe_value(self.environment.read(name))
            except NameError:
                continue
        return described

    def build_system_prompt(self, references: dict[str, str]) -> str:
        parts = [
            "You are embedded inside a host program. You interact with the program's live state "
            "using the provided tools.",
            "",
            "Rules:",
            "- Use read_var / read_attr to inspect variables and objects.",
            "- Use write_var to create or update variables in the host program.",
            "- Use write_attr to set attributes on host objects.",
            "- Use call_func to call functions available in the host program.",
            "- Call done when the task is complete.",
            "- When the user references <var>, that's a variable in scope.",
            "- If a referenced variable doesn't exist yet, the user expects you to create it "
            "with write_var.",
            "- Be precise with types: use numbers for numeric values, arrays for lists, "
            "strings for text.",
        ]

        if self.incognito:
            parts += [
                "",
                "You are in incognito mode. The remember tool is disabled. "
                "No memories will be loaded or saved.",
            ]
        elif self.memory is not None:
            if self.memory.summaries:
                parts += ["", "Previous conversation summary:"]
                parts += [f"  {summary}" for summary in self.memory.summaries]
            if self.memory.long_term:
                parts += ["", "Long-term memories (persistent across executions):"]
                parts += [f"- {entry['content']}" for entry in self.memory.long_term]
                parts += [
                    "",
                    "You have a `remember` tool to store new facts in long-term memory "
                    "when the user asks.",
                ]

        if references:
            parts += ["", "Current variable values:"]
            parts += [f"  {name} = {value}" for name, value in references.items()]

        functions = self.environment.describe_functions()
        if functions:
            parts += ["", "Available functions (call with call_func):"]
            parts += [f"  {signature}" for signature in functions]

        effect_tools = self.context.effects.tool_definitions()
        if effect_tools:
            parts += ["", "Custom tools available:"]
            for tool in effect_tools:
                params = ", ".join(tool["input_schema"].get("properties", {}))
                parts.append(f"  {tool['name']}({params}): {tool['description']}")

        return "\n".join(parts)

    # --- Mock mode ---

    def handle_mock(self, prompt: str) -> Any:
        """Answer `prompt` from the active mock without touching a backend."""
        stub = self.context.mock.require(prompt)
        values, returns = stub.resolve(prompt)
        for name, value in values.items():
            self.write_var(name, value)

        memory = None if self.incognito else self.context.memory
        if memory is not None:
            summary = returns if returns is not None else describe_value(values)
            memory.short_term.append({"role": "user", "content": prompt})
            memory.short_term.append(
                {"role": "assistant", "content": [{"type": "text", "text": f"Done: {summary}"}]}
            )

        if returns is not None:
            return returns
        return next(iter(values.values()), None)
