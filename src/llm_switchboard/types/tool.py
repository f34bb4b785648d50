"""
Provider‑neutral dataclasses for client‑side tool use.

They are intentionally minimal: everything provider‑specific lives in adapters.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

__all__ = [
    "ToolDefinition",
    "ToolCall",
    "ToolResult",
    "TransformedTool",
    "parse_arguments",
]


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """A tool the model may call, described by a JSON Schema."""

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=lambda: {"type": "object"})

    def to_openai(self) -> dict[str, Any]:
        """Return the ``{"type": "function", ...}`` shape used by Chat Completions."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def to_anthropic(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters,
        }


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A model‑agnostic request emitted by the LLM to call a local tool.

    ``id`` is issued by the provider and must be echoed back unchanged.
    """

    id: str
    name: str
    arguments: dict[str, Any]
    raw_arguments: Optional[str] = None

    @property
    def arguments_json(self) -> str:
        """Arguments as JSON text, preferring the provider's original text."""
        if self.raw_arguments is not None:
            return self.raw_arguments
        return json.dumps(self.arguments, separators=(",", ":"))


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Payload to send back to the LLM after the tool finished running."""

    tool_call_id: str  # must match the request id
    content: Any
    is_error: bool = False
    name: Optional[str] = None

    def content_text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        try:
            return json.dumps(self.content, separators=(",", ":"), default=str)
        except (TypeError, ValueError):
            return str(self.content)


@dataclass(frozen=True, slots=True)
class TransformedTool:
    """A provider‑safe tool plus the bookkeeping needed to map calls back.

    When a discriminated union is split, ``definition.name`` is the synthetic
    variant name and ``discriminator_value`` selects the original branch.
    """

    definition: ToolDefinition
    original_name: str
    discriminator_field: Optional[str] = None
    discriminator_value: Any = None

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def is_variant(self) -> bool:
        return self.discriminator_field is not None


def parse_arguments(raw: Any) -> dict[str, Any]:
    """Parse tool-call arguments; malformed or non-object JSON becomes ``{}``."""
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}
