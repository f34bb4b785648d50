"""OpenAI adapter for pure request/response transformations."""

from __future__ import annotations

from typing import Any, Final, Optional, Sequence

from openai.types.chat import ChatCompletion

from llm_switchboard.adapters.base import split_passthrough
from llm_switchboard.params import split_extra
from llm_switchboard.provider import Provider
from llm_switchboard.stream_utils import (
    OpenAIStreamAccumulator,
    new_tool_call_id,
    normalize_finish_reason,
    parse_arguments,
    usage_from_openai,
)
from llm_switchboard.types.chat import FinishReason, GenerationResult, Message, Role
from llm_switchboard.types.tool import ToolCall, ToolDefinition

DEFAULT_SCHEMA_NAME: Final = "structured_output"

OPENAI_FINISH_REASONS: Final[dict[str, FinishReason]] = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_CALLS,
    "function_call": FinishReason.TOOL_CALLS,
    "content_filter": FinishReason.CONTENT_FILTER,
}

# Extras the Chat Completions SDK accepts as keyword arguments.
OPENAI_NATIVE_KEYS: Final = frozenset(
    {
        "logit_bias",
        "logprobs",
        "top_logprobs",
        "n",
        "metadata",
        "store",
        "service_tier",
        "modalities",
        "prediction",
    }
)

# Reasoning models take `developer` instead of `system` and count output with
# max_completion_tokens.
REASONING_MODEL_PREFIXES: Final = ("o1", "o3", "o4", "gpt-5")


def is_reasoning_model(model: str) -> bool:
    return any(model.startswith(prefix) for prefix in REASONING_MODEL_PREFIXES)


class OpenAIRequestAdapter:
    """Adapter for converting between the canonical model and Chat Completions."""

    provider: Provider = Provider.OPENAI
    finish_reasons: dict[str, FinishReason] = OPENAI_FINISH_REASONS

    def __init__(self, *, strict: bool = False) -> None:
        self.strict = strict

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
        """Convert canonical messages and normalized params to OpenAI request kwargs."""
        args: dict[str, Any] = {
            "model": model,
            "messages": [self._message(m, model) for m in messages],
            self._max_tokens_key(model): max_output_tokens,
        }

        standard, extra = split_extra(params)
        args.update(standard)
        self._adjust_params(args)

        if tools:
            args["tools"] = [self._tool(t) for t in tools]
        if schema is not None:
            args["response_format"] = self._response_format(schema)

        args.update(split_passthrough(extra, OPENAI_NATIVE_KEYS))
        return args

    def _max_tokens_key(self, model: str) -> str:
        return "max_completion_tokens" if is_reasoning_model(model) else "max_tokens"

    def _system_role(self, model: str) -> str:
        return "developer" if is_reasoning_model(model) else "system"

    def _adjust_params(self, args: dict[str, Any]) -> None:
        """Hook for OpenAI-compatible backends that reject some parameters."""

    def _message(self, msg: Message, model: str) -> dict[str, Any]:
        if msg.role is Role.SYSTEM:
            return {"role": self._system_role(model), "content": msg.text}

        if msg.role is Role.TOOL:
            result = msg.tool_result
            content = result.content_text()
            if result.is_error:
                content = f"Error: {content}"
            return {
                "role": "tool",
                "tool_call_id": result.tool_call_id,
                "content": content,
            }

        openai_msg: dict[str, Any] = {"role": msg.role.value}
        tool_calls = msg.tool_calls
        if tool_calls:
            openai_msg["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.name, "arguments": tc.arguments_json},
                }
                for tc in tool_calls
            ]
            # content is null when tool_calls is present and there is no text
            openai_msg["content"] = msg.text or None
        else:
            openai_msg["content"] = msg.text
        if msg.name:
            openai_msg["name"] = msg.name
        return openai_msg

    def _tool(self, tool: ToolDefinition) -> dict[str, Any]:
        payload = tool.to_openai()
        if self.strict:
            payload["function"]["strict"] = True
        return payload

    def _response_format(self, schema: dict[str, Any]) -> dict[str, Any]:
        return {
            "type": "json_schema",
            "json_schema": {
                "name": schema.get("title") or DEFAULT_SCHEMA_NAME,
                "schema": schema,
                "strict": self.strict,
            },
        }

    # -- response -------------------------------------------------------------
    def from_provider(self, raw: ChatCompletion) -> GenerationResult:
        """Convert an OpenAI response to a unified GenerationResult."""
        text = ""
        tool_calls: list[ToolCall] = []
        finish_reason: Optional[str] = None

        if raw.choices:
            choice = raw.choices[0]
            finish_reason = choice.finish_reason
            message = choice.message
            if message is not None:
                text = message.content or ""
                for tc in message.tool_calls or ():
                    function = getattr(tc, "function", None)
                    if function is None or not function.name:
                        continue
                    tool_calls.append(
                        ToolCall(
                            id=tc.id or new_tool_call_id(),
                            name=function.name,
                            arguments=parse_arguments(function.arguments),
                            raw_arguments=function.arguments,
                        )
                    )

        return GenerationResult(
            text=text,
            tool_calls=tuple(tool_calls),
            finish_reason=normalize_finish_reason(
                finish_reason, self.finish_reasons, has_tool_calls=bool(tool_calls)
            ),
            usage=usage_from_openai(raw.usage),
            model=raw.model,
            provider=self.provider,
            raw=raw,
        )

    def stream_accumulator(self) -> OpenAIStreamAccumulator:
        return OpenAIStreamAccumulator(self.finish_reasons)
