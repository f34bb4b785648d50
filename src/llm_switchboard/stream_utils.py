"""Shared streaming utilities for LLM providers."""
from __future__ import annotations

import json
import uuid
from typing import Any, Iterable, Mapping, Optional

from llm_switchboard.provider import Provider
from llm_switchboard.types.chat import FinishReason, GenerationResult, StreamChunk, Usage
from llm_switchboard.types.tool import ToolCall, parse_arguments

__all__ = [
    "OpenAIStreamAccumulator",
    "AnthropicStreamAccumulator",
    "assemble_chunks",
    "normalize_finish_reason",
    "parse_arguments",
    "new_tool_call_id",
    "usage_from_openai",
    "usage_from_anthropic",
]


def normalize_finish_reason(
    raw: Optional[str],
    mapping: Mapping[str, FinishReason],
    *,
    has_tool_calls: bool,
) -> FinishReason:
    """Map a provider stop reason onto FinishReason.

    ``None`` means the provider did not say and is treated as a normal stop.
    Unknown values map to ``error``. The reason is reconciled with whether
    tool calls were actually returned.
    """
    if raw is None:
        reason = FinishReason.STOP
    else:
        reason = mapping.get(raw, FinishReason.ERROR)
    if reason is FinishReason.STOP and has_tool_calls:
        return FinishReason.TOOL_CALLS
    if reason is FinishReason.TOOL_CALLS and not has_tool_calls:
        return FinishReason.STOP
    return reason


def new_tool_call_id() -> str:
    """Id for providers that return tool calls without one."""
    return f"call_{uuid.uuid4().hex[:24]}"


def usage_from_openai(usage: Any) -> Usage:
    if usage is None:
        return Usage()
    details = getattr(usage, "prompt_tokens_details", None)
    cached = getattr(details, "cached_tokens", None) if details is not None else None
    return Usage(
        input_tokens=usage.prompt_tokens or 0,
        output_tokens=usage.completion_tokens or 0,
        cache_read_tokens=cached,
    )


def usage_from_anthropic(usage: Any) -> Usage:
    if usage is None:
        return Usage()
    return Usage(
        input_tokens=getattr(usage, "input_tokens", None) or 0,
        output_tokens=getattr(usage, "output_tokens", None) or 0,
        cache_read_tokens=getattr(usage, "cache_read_input_tokens", None),
        cache_creation_tokens=getattr(usage, "cache_creation_input_tokens", None),
    )


class OpenAIStreamAccumulator:
    """
    Turns ``ChatCompletionChunk`` objects into StreamChunks.

    Tool-call fragments are aggregated by ``index``; a call is emitted once a
    later index starts or the stream finishes. Usage arrives on the trailing
    chunk when ``stream_options.include_usage`` is set.
    """

    def __init__(self, finish_map: Mapping[str, FinishReason]) -> None:
        self._finish_map = finish_map
        self._pending: dict[int, dict[str, str]] = {}
        self._emitted = 0
        self._finish_reason: Optional[str] = None
        self._usage: Optional[Usage] = None

    def feed(self, chunk: Any) -> list[StreamChunk]:
        out: list[StreamChunk] = []
        if getattr(chunk, "usage", None) is not None:
            self._usage = usage_from_openai(chunk.usage)
        if not chunk.choices:
            return out

        choice = chunk.choices[0]
        delta = choice.delta
        if delta is not None and delta.content:
            out.append(StreamChunk(text=delta.content))

        if delta is not None and delta.tool_calls:
            for tc_chunk in delta.tool_calls:
                index = tc_chunk.index
                if index is None:
                    index = max(self._pending, default=-1) + 1
                if index not in self._pending:
                    done = self._flush(lambda i: i < index)
                    if done:
                        out.append(StreamChunk(tool_calls=done))
                    self._pending[index] = {"id": "", "name": "", "arguments": ""}

                agg = self._pending[index]
                if tc_chunk.id:
                    agg["id"] = tc_chunk.id
                if tc_chunk.function:
                    if tc_chunk.function.name:
                        agg["name"] += tc_chunk.function.name
                    if tc_chunk.function.arguments:
                        agg["arguments"] += tc_chunk.function.arguments

        if choice.finish_reason:
            self._finish_reason = choice.finish_reason
        return out

    def finish(self) -> StreamChunk:
        remaining = self._flush(lambda i: True)
        reason = normalize_finish_reason(
            self._finish_reason,
            self._finish_map,
            has_tool_calls=bool(self._emitted),
        )
        return StreamChunk(
            tool_calls=remaining,
            finish_reason=reason,
            usage=self._usage or Usage(),
        )

    def _flush(self, which: Any) -> tuple[ToolCall, ...]:
        calls: list[ToolCall] = []
        for index in sorted(i for i in self._pending if which(i)):
            data = self._pending.pop(index)
            if not data["name"]:
                continue
            calls.append(
                ToolCall(
                    id=data["id"] or new_tool_call_id(),
                    name=data["name"],
                    arguments=parse_arguments(data["arguments"]),
                    raw_arguments=data["arguments"],
                )
            )
        self._emitted += len(calls)
        return tuple(calls)


class AnthropicStreamAccumulator:
    """
    Turns raw Anthropic ``messages.stream`` events into StreamChunks.

    Only the raw event types are consumed; the SDK's convenience events
    (``text``, ``input_json``, ...) repeat the same data and are ignored.
    When *structured_tool* is set, that tool's input is emitted as JSON text.
    """

    def __init__(
        self,
        finish_map: Mapping[str, FinishReason],
        *,
        structured_tool: Optional[str] = None,
    ) -> None:
        self._finish_map = finish_map
        self._structured_tool = structured_tool
        self._blocks: dict[int, dict[str, Any]] = {}
        self._emitted = 0
        self._stop_reason: Optional[str] = None
        self._input_tokens = 0
        self._output_tokens = 0
        self._cache_read: Optional[int] = None
        self._cache_creation: Optional[int] = None

    def feed(self, event: Any) -> list[StreamChunk]:
        kind = getattr(event, "type", None)

        if kind == "message_start":
            usage = usage_from_anthropic(event.message.usage)
            self._input_tokens = usage.input_tokens
            self._output_tokens = usage.output_tokens
            self._cache_read = usage.cache_read_tokens
            self._cache_creation = usage.cache_creation_tokens
            return []

        if kind == "content_block_start":
            block = event.content_block
            if block.type == "tool_use":
                self._blocks[event.index] = {
                    "type": "tool_use",
                    "id": block.id,
                    "name": block.name,
                    "json": "",
                }
                return []
            if block.type == "text":
                self._blocks[event.index] = {"type": "text"}
                if block.text:
                    return [StreamChunk(text=block.text)]
            return []

        if kind == "content_block_delta":
            delta = event.delta
            if delta.type == "text_delta":
                return [StreamChunk(text=delta.text)] if delta.text else []
            if delta.type == "input_json_delta":
                block = self._blocks.get(event.index)
                if block is not None:
                    block["json"] += delta.partial_json
            return []

        if kind == "content_block_stop":
            block = self._blocks.pop(event.index, None)
            if block is None or block["type"] != "tool_use":
                return []
            arguments = parse_arguments(block["json"])
            if block["name"] == self._structured_tool:
                return [StreamChunk(text=json.dumps(arguments))]
            self._emitted += 1
            call = ToolCall(id=block["id"], name=block["name"], arguments=arguments)
            return [StreamChunk(tool_calls=(call,))]

        if kind == "message_delta":
            if event.delta.stop_reason is not None:
                self._stop_reason = event.delta.stop_reason
            usage = getattr(event, "usage", None)
            if usage is not None:
                if usage.output_tokens is not None:
                    self._output_tokens = usage.output_tokens
                input_tokens = getattr(usage, "input_tokens", None)
                if input_tokens is not None:
                    self._input_tokens = input_tokens
            return []

        return []

    def finish(self) -> StreamChunk:
        reason = normalize_finish_reason(
            self._stop_reason, self._finish_map, has_tool_calls=bool(self._emitted)
        )
        return StreamChunk(
            finish_reason=reason,
            usage=Usage(
                input_tokens=self._input_tokens,
                output_tokens=self._output_tokens,
                cache_read_tokens=self._cache_read,
                cache_creation_tokens=self._cache_creation,
            ),
        )


def assemble_chunks(
    chunks: Iterable[StreamChunk],
    *,
    model: Optional[str] = None,
    provider: Optional[Provider] = None,
) -> GenerationResult:
    """
    Pure function that rebuilds a GenerationResult from a chunk sequence.

    The text is the concatenation of all text deltas, tool calls keep their
    emission order, and finish reason and usage come from the final chunk.
    """
    text: list[str] = []
    tool_calls: list[ToolCall] = []
    finish_reason = FinishReason.STOP
    usage = Usage()
    for chunk in chunks:
        if chunk.text:
            text.append(chunk.text)
        tool_calls.extend(chunk.tool_calls)
        if chunk.finish_reason is not None:
            finish_reason = chunk.finish_reason
        if chunk.usage is not None:
            usage = chunk.usage
    return GenerationResult(
        text="".join(text),
        tool_calls=tuple(tool_calls),
        finish_reason=finish_reason,
        usage=usage,
        model=model,
        provider=provider,
    )
