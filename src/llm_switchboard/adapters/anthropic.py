"""Anthropic adapter for pure request/response transformations."""

from __future__ import annotations

import json
from typing import Any, Final, Optional, Sequence

from anthropic.types import Message as AnthropicMessage

from llm_switchboard.adapters.base import split_passthrough
from llm_switchboard.errors import InvalidRequest
from llm_switchboard.provider import Provider
from llm_switchboard.stream_utils import (
    AnthropicStreamAccumulator,
    normalize_finish_reason,
    usage_from_anthropic,
)
from llm_switchboard.types.chat import FinishReason, GenerationResult, Message, Role
from llm_switchboard.types.tool import ToolCall, ToolDefinition

STRUCTURED_OUTPUT_TOOL: Final = "structured_output"
STRUCTURED_OUTPUT_DESCRIPTION: Final = (
    "Return the final answer as structured data matching this schema."
)

ANTHROPIC_FINISH_REASONS: Final[dict[str, FinishReason]] = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "pause_turn": FinishReason.STOP,
    "max_tokens": FinishReason.LENGTH,
    "model_context_window_exceeded": FinishReason.LENGTH,
    "tool_use": FinishReason.TOOL_CALLS,
    "refusal": FinishReason.CONTENT_FILTER,
}

ANTHROPIC_NATIVE_KEYS: Final = frozenset(
    {"top_k", "metadata", "thinking", "service_tier"}
)

_TOOL_CHOICE_TYPES: Final = {"auto": "auto", "any": "any", "required": "any", "none": "none"}


class AnthropicRequestAdapter:
    """Adapter for converting between the canonical model and the Messages API."""

    provider: Provider = Provider.ANTHROPIC
    finish_reasons: dict[str, FinishReason] = ANTHROPIC_FINISH_REASONS

    # -- request --------------------------------------------------------------
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
        """Convert canonical messages and normalized params to Anthropic request kwargs."""
        system_parts: list[str] = []
        turns: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role is Role.SYSTEM:
                if msg.text:
                    system_parts.append(msg.text)
                continue
            role = "assistant" if msg.role is Role.ASSISTANT else "user"
            blocks = self._blocks(msg)
            if not blocks:
                continue
            # tool results and user text share one user turn
            if turns and turns[-1]["role"] == role:
                turns[-1]["content"].extend(blocks)
            else:
                turns.append({"role": role, "content": blocks})

        args: dict[str, Any] = {
            "model": model,
            "messages": turns,
            "max_tokens": max_output_tokens,
        }
        if system_parts:
            args["system"] = "\n\n".join(system_parts)

        extra = dict(params.get("extra") or {})
        self._apply_params(args, params)

        anthropic_tools = [t.to_anthropic() for t in tools or ()]
        if schema is not None:
            if any(t["name"] == STRUCTURED_OUTPUT_TOOL for t in anthropic_tools):
                raise InvalidRequest(
                    f"Tool name {STRUCTURED_OUTPUT_TOOL!r} is reserved for structured output",
                    provider=self.provider,
                )
            anthropic_tools.append(
                {
                    "name": STRUCTURED_OUTPUT_TOOL,
                    "description": STRUCTURED_OUTPUT_DESCRIPTION,
                    "input_schema": schema,
                }
            )
            if not tools:
                args["tool_choice"] = {"type": "tool", "name": STRUCTURED_OUTPUT_TOOL}
        if anthropic_tools:
            args["tools"] = anthropic_tools

        args.update(split_passthrough(extra, ANTHROPIC_NATIVE_KEYS))
        return args

    @staticmethod
    def _blocks(msg: Message) -> list[dict[str, Any]]:
        if msg.role is Role.TOOL:
            result = msg.tool_result
            block: dict[str, Any] = {
                "type": "tool_result",
                "tool_use_id": result.tool_call_id,
                "content": result.content_text(),
            }
            if result.is_error:
                block["is_error"] = True
            return [block]

        blocks: list[dict[str, Any]] = []
        if msg.text:
            blocks.append({"type": "text", "text": msg.text})
        for tc in msg.tool_calls:
            blocks.append(
                {"type": "tool_use", "id": tc.id, "name": tc.name, "input": tc.arguments}
            )
        return blocks

    @staticmethod
    def _apply_params(args: dict[str, Any], params: dict[str, Any]) -> None:
        for key in ("temperature", "top_p"):
            if params.get(key) is not None:
                args[key] = params[key]

        stop = params.get("stop")
        if stop is not None:
            args["stop_sequences"] = stop if isinstance(stop, list) else [stop]

        if params.get("user") is not None:
            args["metadata"] = {"user_id": params["user"]}

        choice = params.get("tool_choice")
        tool_choice: Optional[dict[str, Any]] = None
        if isinstance(choice, str):
            tool_choice = {"type": _TOOL_CHOICE_TYPES.get(choice, choice)}
        elif isinstance(choice, dict):
            function = choice.get("function")
            if isinstance(function, dict) and "name" in function:
                tool_choice = {"type": "tool", "name": function["name"]}
            else:
                tool_choice = dict(choice)
        if params.get("parallel_tool_calls") is False:
            tool_choice = tool_choice or {"type": "auto"}
            tool_choice["disable_parallel_tool_use"] = True
        if tool_choice is not None:
            args["tool_choice"] = tool_choice

    # -- response -------------------------------------------------------------
    def from_provider(self, raw: AnthropicMessage) -> GenerationResult:
        """Convert an Anthropic response to a unified GenerationResult."""
        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []

        for block in raw.content or ():
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                arguments = dict(block.input) if hasattr(block.input, "items") else {}
                if block.name == STRUCTURED_OUTPUT_TOOL:
                    text_parts.append(json.dumps(arguments))
                    continue
                tool_calls.append(
                    ToolCall(id=block.id, name=block.name, arguments=arguments)
                )

        return GenerationResult(
            text="".join(text_parts),
            tool_calls=tuple(tool_calls),
            finish_reason=normalize_finish_reason(
                raw.stop_reason, self.finish_reasons, has_tool_calls=bool(tool_calls)
            ),
            usage=usage_from_anthropic(raw.usage),
            model=raw.model,
            provider=self.provider,
            raw=raw,
        )

    def stream_accumulator(self) -> AnthropicStreamAccumulator:
        return AnthropicStreamAccumulator(
            self.finish_reasons, structured_tool=STRUCTURED_OUTPUT_TOOL
        )
