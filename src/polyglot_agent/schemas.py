# schemas.py

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class TextBlock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["text"] = "text"
    text: str = ""


class ToolUseBlock(BaseModel):
    """One tool call requested by the model."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str


ContentBlock = Annotated[TextBlock | ToolUseBlock, Field(discriminator="type")]

_blocks_adapter: TypeAdapter[list[TextBlock | ToolUseBlock]] = TypeAdapter(list[ContentBlock])


def parse_blocks(raw: Any) -> list[TextBlock | ToolUseBlock]:
    """Validate backend output (models or plain dicts) into content blocks."""
    if not raw:
        return []
    if isinstance(raw, (BaseModel, dict)):
        raw = [raw]
    items = [item.model_dump() if isinstance(item, BaseModel) else item for item in raw]
    return _blocks_adapter.validate_python(items)


def blocks_to_messages(blocks: list[TextBlock | ToolUseBlock]) -> list[dict[str, Any]]:
    """Serialize content blocks for storage in a message transcript."""
    return [block.model_dump() for block in blocks]


def tool_uses(blocks: list[TextBlock | ToolUseBlock]) -> list[ToolUseBlock]:
    return [block for block in blocks if isinstance(block, ToolUseBlock)]
