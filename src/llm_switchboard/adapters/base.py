from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from llm_switchboard.stream_utils import (
    new_tool_call_id,
    normalize_finish_reason,
    parse_arguments,
)
from llm_switchboard.types.chat import GenerationResult, Message, StreamChunk
from llm_switchboard.types.tool import ToolDefinition

__all__ = [
    "RequestAdapter",
    "StreamAccumulator",
    "normalize_finish_reason",
    "parse_arguments",
    "new_tool_call_id",
    "split_passthrough",
]

# Keys the SDKs accept as per-request options rather than body fields.
REQUEST_OPTION_KEYS = frozenset({"extra_headers", "extra_query", "extra_body", "timeout"})


class StreamAccumulator(Protocol):
    """Per-stream state turning raw SDK events into StreamChunks."""

    def feed(self, event: Any) -> list[StreamChunk]:
        ...

    def finish(self) -> StreamChunk:
        ...


class RequestAdapter(Protocol):
    """Protocol for adapting between the canonical model and a provider's wire format."""

    def to_provider(
        self,
        messages: Sequence[Message],
        params: dict[str, Any],
        *,
        model: str,
        max_output_tokens: int,
        tools: Optional[Sequence[ToolDefinition]] = None,
        schema: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Build SDK keyword arguments from messages and normalized params."""
        ...

    def from_provider(self, raw: Any) -> GenerationResult:
        """Convert a provider response to a unified GenerationResult."""
        ...

    def stream_accumulator(self) -> StreamAccumulator:
        """Return fresh state for consuming one stream."""
        ...


def split_passthrough(
    extra: Mapping[str, Any], native_keys: frozenset[str]
) -> dict[str, Any]:
    """Route extras to SDK keyword arguments, the rest into ``extra_body``."""
    kwargs: dict[str, Any] = {}
    body: dict[str, Any] = {}
    for key, value in extra.items():
        if key in REQUEST_OPTION_KEYS or key in native_keys:
            kwargs[key] = value
        else:
            body[key] = value
    if body:
        kwargs["extra_body"] = {**body, **(kwargs.get("extra_body") or {})}
    return kwargs
