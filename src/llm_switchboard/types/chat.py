"""Canonical conversation, request and result types."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from llm_switchboard.errors import InvalidRequest
from llm_switchboard.provider import Provider
from llm_switchboard.types.tool import (
    ToolCall,
    ToolDefinition,
    ToolResult,
    parse_arguments,
)

__all__ = [
    "Role",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "ContentPart",
    "Message",
    "FinishReason",
    "Usage",
    "GenerationResult",
    "StreamChunk",
    "GenerationRequest",
    "validate_conversation",
    "validate_tool_set",
]


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


@dataclass(frozen=True, slots=True)
class TextPart:
    text: str


@dataclass(frozen=True, slots=True)
class ToolCallPart:
    tool_call: ToolCall


@dataclass(frozen=True, slots=True)
class ToolResultPart:
    result: ToolResult


ContentPart = Union[TextPart, ToolCallPart, ToolResultPart]


@dataclass(frozen=True, slots=True)
class Message:
    """One conversation turn, independent of any provider's wire format."""

    role: Role
    content: tuple[ContentPart, ...] = ()
    name: Optional[str] = None
    tool_call_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", Role(self.role))
        object.__setattr__(self, "content", tuple(self.content))
        if self.role is Role.TOOL:
            if not self.tool_call_id:
                raise ValueError("tool messages must carry the tool_call_id they answer")
            result = self.tool_result
            if result is None:
                raise ValueError("tool messages must contain a ToolResultPart")
            if result.tool_call_id != self.tool_call_id:
                raise ValueError(
                    f"tool_call_id mismatch: message={self.tool_call_id!r} "
                    f"result={result.tool_call_id!r}"
                )
        elif any(isinstance(p, ToolResultPart) for p in self.content):
            raise ValueError("tool results may only appear in tool messages")
        if self.role is not Role.ASSISTANT and any(
            isinstance(p, ToolCallPart) for p in self.content
        ):
            raise ValueError("tool calls may only appear in assistant messages")

    # -- constructors ---------------------------------------------------------
    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(Role.SYSTEM, (TextPart(text),))

    @classmethod
    def user(cls, text: str, *, name: Optional[str] = None) -> "Message":
        return cls(Role.USER, (TextPart(text),), name=name)

    @classmethod
    def assistant(
        cls, text: str = "", tool_calls: Iterable[ToolCall] = ()
    ) -> "Message":
        parts: list[ContentPart] = []
        if text:
            parts.append(TextPart(text))
        parts.extend(ToolCallPart(tc) for tc in tool_calls)
        return cls(Role.ASSISTANT, tuple(parts))

    @classmethod
    def tool(cls, result: ToolResult) -> "Message":
        return cls(
            Role.TOOL,
            (ToolResultPart(result),),
            name=result.name,
            tool_call_id=result.tool_call_id,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        """Build a message from the plain ``{"role": ..., "content": ...}`` chat format."""
        role = Role(data["role"])
        content = data.get("content")

        if role is Role.TOOL:
            result = ToolResult(
                tool_call_id=data["tool_call_id"],
                content=content if content is not None else "",
                is_error=bool(data.get("is_error", False)),
                name=data.get("name"),
            )
            return cls.tool(result)

        parts: list[ContentPart] = []
        if isinstance(content, str):
            if content:
                parts.append(TextPart(content))
        elif isinstance(content, list):
            for block in content:
                if isinstance(block, str):
                    parts.append(TextPart(block))
                elif isinstance(block, Mapping) and block.get("type") == "text":
                    parts.append(TextPart(block.get("text", "")))
        elif content is not None:
            parts.append(TextPart(str(content)))

        for tc in data.get("tool_calls") or ():
            func = tc.get("function", tc)
            raw_args = func.get("arguments")
            if isinstance(raw_args, str):
                arguments = parse_arguments(raw_args)
                raw_text: Optional[str] = raw_args
            else:
                arguments = dict(raw_args or {})
                raw_text = None
            parts.append(
                ToolCallPart(
                    ToolCall(
                        id=tc["id"],
                        name=func["name"],
                        arguments=arguments,
                        raw_arguments=raw_text,
                    )
                )
            )
        return cls(role, tuple(parts), name=data.get("name"))

    # -- accessors ------------------------------------------------------------
    @property
    def text(self) -> str:
        return "".join(p.text for p in self.content if isinstance(p, TextPart))

    @property
    def tool_calls(self) -> list[ToolCall]:
        return [p.tool_call for p in self.content if isinstance(p, ToolCallPart)]

    @property
    def tool_result(self) -> Optional[ToolResult]:
        for p in self.content:
            if isinstance(p, ToolResultPart):
                return p.result
        return None


class FinishReason(StrEnum):
    STOP = "stop"
    TOOL_CALLS = "tool_calls"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: Optional[int] = None
    cache_creation_tokens: Optional[int] = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: "Usage") -> "Usage":
        def _sum(a: Optional[int], b: Optional[int]) -> Optional[int]:
            if a is None and b is None:
                return None
            return (a or 0) + (b or 0)

        return Usage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            cache_read_tokens=_sum(self.cache_read_tokens, other.cache_read_tokens),
            cache_creation_tokens=_sum(
                self.cache_creation_tokens, other.cache_creation_tokens
            ),
        )


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Unified response object for all LLM providers."""

    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    finish_reason: FinishReason = FinishReason.STOP
    usage: Usage = field(default_factory=Usage)
    model: Optional[str] = None
    provider: Optional[Provider] = None
    raw: Any = field(default=None, compare=False, repr=False)
    exhausted: bool = False
    # validated structured output, set when an output schema was requested
    parsed: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls))
        object.__setattr__(self, "finish_reason", FinishReason(self.finish_reason))

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_message(self) -> Message:
        """The assistant turn this result represents."""
        return Message.assistant(self.text, self.tool_calls)

    def with_updates(self, **changes: Any) -> "GenerationResult":
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class StreamChunk:
    """A partial result: incremental text and/or tool calls completed so far.

    The last chunk of a stream carries ``finish_reason`` and ``usage``.
    """

    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    finish_reason: Optional[FinishReason] = None
    usage: Optional[Usage] = None

    @property
    def is_final(self) -> bool:
        return self.finish_reason is not None


@dataclass(slots=True)
class GenerationRequest:
    """Everything the facade needs to run one generation."""

    messages: Sequence[Message]
    provider: Provider
    model: str
    max_output_tokens: int = 4096
    tools: Optional[Sequence[ToolDefinition]] = None
    output_schema: Any = None
    params: Optional[dict[str, Any]] = None

    def __post_init__(self) -> None:
        self.provider = Provider(self.provider)
        self.messages = [
            m if isinstance(m, Message) else Message.from_dict(m) for m in self.messages
        ]


def validate_conversation(
    messages: Sequence[Message], *, provider: Optional[str] = None
) -> None:
    """Check tool-call identity across a message sequence.

    Every tool message must answer a call issued by an earlier assistant turn,
    and no call may be answered twice.
    """
    issued: set[str] = set()
    answered: set[str] = set()
    for index, msg in enumerate(messages):
        if msg.role is Role.ASSISTANT:
            for call in msg.tool_calls:
                if call.id in issued:
                    raise InvalidRequest(
                        f"duplicate tool_call_id {call.id!r} at message {index}",
                        provider=provider,
                    )
                issued.add(call.id)
        elif msg.role is Role.TOOL:
            call_id = msg.tool_call_id
            if call_id not in issued:
                raise InvalidRequest(
                    f"tool result at message {index} answers unknown call {call_id!r}",
                    provider=provider,
                )
            if call_id in answered:
                raise InvalidRequest(
                    f"tool call {call_id!r} answered more than once",
                    provider=provider,
                )
            answered.add(call_id)


def validate_tool_set(
    tools: Iterable[ToolDefinition], *, provider: Optional[str] = None
) -> None:
    seen: set[str] = set()
    for tool in tools:
        if tool.name in seen:
            raise InvalidRequest(f"duplicate tool name {tool.name!r}", provider=provider)
        seen.add(tool.name)
