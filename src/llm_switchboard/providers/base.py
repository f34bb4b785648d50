"""Base class for provider LLM implementations."""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from contextlib import aclosing
from typing import Any, AsyncIterator, ClassVar, Mapping, Optional, Sequence, Union

from llm_switchboard.adapters.base import RequestAdapter
from llm_switchboard.context import ContextPolicy, apply_context_policy
from llm_switchboard.errors import classify_error
from llm_switchboard.params import normalize_params
from llm_switchboard.provider import Provider
from llm_switchboard.schema.capabilities import ProviderCapabilities
from llm_switchboard.schema.sanitizer import SchemaSanitizer
from llm_switchboard.types.chat import (
    GenerationResult,
    Message,
    StreamChunk,
    validate_conversation,
    validate_tool_set,
)
from llm_switchboard.types.tool import ToolDefinition, TransformedTool

__all__ = ["BaseAsyncLLM", "MessageLike"]

MessageLike = Union[Message, Mapping[str, Any]]


class BaseAsyncLLM(ABC):
    """
    Base class for all LLM implementations. All implementations are async-first.

    Subclasses provide the SDK calls (``_create`` and ``_stream``) and a pure
    request adapter; everything else (validation, context policy, error
    classification, stream assembly) is shared.
    """

    provider: ClassVar[Provider]

    def __init__(
        self,
        model: str,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        context: Optional[ContextPolicy] = None,
    ) -> None:
        """
        Initializes the base LLM client.

        Args:
            model: The identifier of the LLM model to be used.
            logger: Optional logger instance. If None, a logger named after
                    this module will be used.
            name: Optional name for this component, used in logging.
                  If None, defaults to the concrete class's name.
            context: Context-window policy; no limit is enforced by default.
        """
        self.model = model
        self.logger = logger or logging.getLogger(__name__)
        self.name = name if name is not None else self.__class__.__name__
        self.context = context or ContextPolicy()

    # -- provider hooks -------------------------------------------------------
    @property
    @abstractmethod
    def adapter(self) -> RequestAdapter:
        """Request adapter for this provider."""
        ...

    @abstractmethod
    async def _create(self, args: dict[str, Any]) -> Any:
        """Send one non-streaming request and return the raw SDK response."""
        ...

    @abstractmethod
    def _stream(self, args: dict[str, Any]) -> AsyncIterator[Any]:
        """Async generator of raw SDK stream events; must release the connection on close."""
        ...

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities.for_provider(self.provider)

    # -- public API -----------------------------------------------------------
    async def generate(
        self,
        messages: Sequence[MessageLike],
        *,
        max_output_tokens: int = 4096,
        params: Optional[dict[str, Any]] = None,
        tools: Optional[Sequence[ToolDefinition]] = None,
        schema: Optional[dict[str, Any]] = None,
    ) -> GenerationResult:
        """Send a request and return the complete result.

        Raises a ProviderError subclass on failure; nothing is retried here.
        """
        args = self._build_args(messages, max_output_tokens, params, tools, schema)
        self._log(f"Sending request to {self.provider.value} model {self.model} (Stream: False)")

        started = time.monotonic()
        try:
            raw = await self._create(args)
        except Exception as exc:
            raise classify_error(exc, self.provider.value, self.logger) from exc

        result = self.adapter.from_provider(raw)
        self._log(
            f"Response in {(time.monotonic() - started) * 1000:.0f} ms "
            f"(finish: {result.finish_reason.value}, tokens: {result.usage.total_tokens})",
            logging.DEBUG,
        )
        return result

    async def generate_stream(
        self,
        messages: Sequence[MessageLike],
        *,
        max_output_tokens: int = 4096,
        params: Optional[dict[str, Any]] = None,
        tools: Optional[Sequence[ToolDefinition]] = None,
        schema: Optional[dict[str, Any]] = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Stream a request as StreamChunks.

        The sequence is finite and cannot be restarted; the last chunk carries
        the finish reason and usage. Closing the iterator early closes the
        underlying SDK stream.
        """
        args = self._build_args(messages, max_output_tokens, params, tools, schema)
        self._log(f"Sending request to {self.provider.value} model {self.model} (Stream: True)")

        accumulator = self.adapter.stream_accumulator()
        try:
            async with aclosing(self._stream(args)) as events:
                async for event in events:
                    for chunk in accumulator.feed(event):
                        yield chunk
        except Exception as exc:
            raise classify_error(exc, self.provider.value, self.logger) from exc
        yield accumulator.finish()

    async def generate_with_tools(
        self,
        messages: Sequence[MessageLike],
        tools: Sequence[TransformedTool],
        *,
        max_output_tokens: int = 4096,
        params: Optional[dict[str, Any]] = None,
    ) -> GenerationResult:
        """Generate with provider-safe tools produced by the SchemaTransformer."""
        return await self.generate(
            messages,
            max_output_tokens=max_output_tokens,
            params=params,
            tools=[t.definition for t in tools],
        )

    # -- helpers --------------------------------------------------------------
    def _build_args(
        self,
        messages: Sequence[MessageLike],
        max_output_tokens: int,
        params: Optional[dict[str, Any]],
        tools: Optional[Sequence[ToolDefinition]],
        schema: Optional[dict[str, Any]],
    ) -> dict[str, Any]:
        provider = self.provider.value
        canonical = [
            m if isinstance(m, Message) else Message.from_dict(m) for m in messages
        ]
        validate_conversation(canonical, provider=provider)
        if tools:
            validate_tool_set(tools, provider=provider)
        canonical = apply_context_policy(
            canonical,
            self.context,
            max_output_tokens=max_output_tokens,
            provider=provider,
        )
        sanitizer = SchemaSanitizer(self.capabilities, logger=self.logger)
        if tools:
            tools = [
                ToolDefinition(t.name, t.description, sanitizer.sanitize(t.parameters))
                for t in tools
            ]
        if schema is not None:
            schema = sanitizer.sanitize(schema)

        return self.adapter.to_provider(
            canonical,
            normalize_params(params),
            model=self.model,
            max_output_tokens=max_output_tokens,
            tools=tools,
            schema=schema,
        )

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close underlying async HTTP clients to avoid cleanup after the loop closes.
        Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> "BaseAsyncLLM":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
