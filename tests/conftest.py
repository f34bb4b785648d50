"""Shared fakes for orchestration and facade tests."""

from typing import Any, AsyncIterator, Callable, Optional, Sequence, Union

import pytest

from llm_switchboard.adapters.openai import OpenAIRequestAdapter
from llm_switchboard.provider import Provider
from llm_switchboard.providers.base import BaseAsyncLLM
from llm_switchboard.schema.capabilities import ProviderCapabilities
from llm_switchboard.types.chat import (
    FinishReason,
    GenerationResult,
    Message,
    StreamChunk,
    Usage,
)
from llm_switchboard.types.tool import ToolCall

Scripted = Union[GenerationResult, BaseException, Callable[..., GenerationResult]]


class ScriptedLLM(BaseAsyncLLM):
    """Returns scripted results in order; the last one repeats forever."""

    provider = Provider.OPENAI

    def __init__(
        self,
        responses: Sequence[Scripted],
        *,
        model: str = "fake-model",
        capabilities: Optional[ProviderCapabilities] = None,
    ) -> None:
        super().__init__(model)
        self.responses = list(responses)
        self.requests: list[dict[str, Any]] = []
        self.closed = False
        self._capabilities = capabilities or ProviderCapabilities.anthropic()
        self._adapter = OpenAIRequestAdapter()

    @property
    def adapter(self) -> OpenAIRequestAdapter:
        return self._adapter

    @property
    def capabilities(self) -> ProviderCapabilities:
        return self._capabilities

    async def _create(self, args: dict[str, Any]) -> Any:
        raise NotImplementedError

    async def _stream(self, args: dict[str, Any]) -> AsyncIterator[Any]:
        raise NotImplementedError
        yield  # pragma: no cover

    def _next(self) -> Scripted:
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    async def generate(
        self,
        messages,
        *,
        max_output_tokens=4096,
        params=None,
        tools=None,
        schema=None,
    ) -> GenerationResult:
        messages = [m if isinstance(m, Message) else Message.from_dict(m) for m in messages]
        self.requests.append(
            {
                "messages": messages,
                "tools": list(tools or ()),
                "schema": schema,
                "params": params,
            }
        )
        item = self._next()
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            item = item(messages, tools)
        return item

    async def generate_stream(
        self,
        messages,
        *,
        max_output_tokens=4096,
        params=None,
        tools=None,
        schema=None,
    ) -> AsyncIterator[StreamChunk]:
        result = await self.generate(
            messages,
            max_output_tokens=max_output_tokens,
            params=params,
            tools=tools,
            schema=schema,
        )
        for word in result.text.split(" "):
            yield StreamChunk(text=word + " ")
        yield StreamChunk(
            tool_calls=result.tool_calls,
            finish_reason=result.finish_reason,
            usage=result.usage,
        )

    async def aclose(self) -> None:
        self.closed = True


def text_result(text: str, *, input_tokens: int = 10, output_tokens: int = 5) -> GenerationResult:
    return GenerationResult(
        text=text,
        finish_reason=FinishReason.STOP,
        usage=Usage(input_tokens=input_tokens, output_tokens=output_tokens),
        model="fake-model",
        provider=Provider.OPENAI,
    )


def tool_result(*calls: ToolCall, text: str = "") -> GenerationResult:
    return GenerationResult(
        text=text,
        tool_calls=calls,
        finish_reason=FinishReason.TOOL_CALLS,
        usage=Usage(input_tokens=10, output_tokens=5),
        model="fake-model",
        provider=Provider.OPENAI,
    )


@pytest.fixture
def calculator_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "a": {"type": "number"},
            "b": {"type": "number"},
        },
        "required": ["a", "b"],
    }
