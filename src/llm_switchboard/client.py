"""
Generation facade: one entry point for plain, streamed, tool-using and
structured generations across every registered provider.
"""

from __future__ import annotations

import logging
import time
from contextlib import aclosing
from dataclasses import replace
from typing import Any, AsyncIterator, Iterable, Mapping, Optional, Sequence

from llm_switchboard.config import ProviderConfig
from llm_switchboard.factory import create_llm
from llm_switchboard.orchestration.executor import ToolExecutor
from llm_switchboard.orchestration.orchestrator import (
    DEFAULT_MAX_ITERATIONS,
    ToolOrchestrator,
)
from llm_switchboard.orchestration.synthesizer import ResponseSynthesizer
from llm_switchboard.provider import Provider
from llm_switchboard.providers.base import BaseAsyncLLM
from llm_switchboard.records import ExchangeRecord, RecordSink, deliver_record
from llm_switchboard.schema.mapper import ToolNameMapper
from llm_switchboard.schema.transformer import SchemaTransformer
from llm_switchboard.stream_utils import assemble_chunks
from llm_switchboard.structured.processor import (
    StructuredOutputProcessor,
    StructuredOutputSchema,
    json_instruction,
    schema_as_dict,
)
from llm_switchboard.types.chat import (
    GenerationRequest,
    GenerationResult,
    Message,
    Role,
    StreamChunk,
)
from llm_switchboard.types.tool import ToolDefinition

__all__ = ["LLMClient"]


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _with_instruction(messages: Sequence[Message], instruction: str) -> list[Message]:
    """Append *instruction* to the leading system prompt, adding one if absent."""
    messages = list(messages)
    if messages and messages[0].role is Role.SYSTEM:
        head = messages[0].text
        text = f"{head}\n\n{instruction}" if head else instruction
        return [Message.system(text), *messages[1:]]
    return [Message.system(instruction), *messages]


class LLMClient:
    """
    Facade over the provider LLMs.

    LLM instances are created on first use from ``configs`` (or from the
    environment when a provider has no config) and cached per
    ``(provider, model)``. Prebuilt instances can be supplied with ``llms``.
    After every exchange an ``ExchangeRecord`` is handed to ``record_sink``.
    """

    def __init__(
        self,
        configs: Optional[Mapping[Provider, ProviderConfig]] = None,
        *,
        llms: Iterable[BaseAsyncLLM] = (),
        record_sink: Optional[RecordSink] = None,
        max_tool_iterations: int = DEFAULT_MAX_ITERATIONS,
        synthesizer: Optional[ResponseSynthesizer] = None,
        raise_on_exhaustion: bool = False,
        processor: Optional[StructuredOutputProcessor] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.configs = {Provider(p): c for p, c in (configs or {}).items()}
        self.record_sink = record_sink
        self.max_tool_iterations = max_tool_iterations
        self.synthesizer = synthesizer
        self.raise_on_exhaustion = raise_on_exhaustion
        self.logger = logger or logging.getLogger(__name__)
        self.processor = processor or StructuredOutputProcessor(logger=self.logger)
        self._llms: dict[tuple[Provider, str], BaseAsyncLLM] = {
            (llm.provider, llm.model): llm for llm in llms
        }

    # -- LLM registry ---------------------------------------------------------
    def llm_for(self, provider: Provider, model: str) -> BaseAsyncLLM:
        """Return the cached LLM for (provider, model), creating it on first use."""
        key = (Provider(provider), model)
        llm = self._llms.get(key)
        if llm is None:
            config = self.configs.get(key[0]) or ProviderConfig.from_env(key[0])
            llm = create_llm(key[0], model, config=config, logger=self.logger)
            self._llms[key] = llm
            self.logger.debug("Created %s for %s/%s", type(llm).__name__, *key)
        return llm

    # -- generation -----------------------------------------------------------
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Run one non-streaming generation.

        ``request.tools`` are transformed for the provider like in
        ``generate_with_tools`` and returned calls carry the original tool
        names. When ``request.output_schema`` is set it is passed to the
        provider for shaping only; use ``generate_with_schema`` to get a
        validated value.
        """
        llm = self.llm_for(request.provider, request.model)
        schema = (
            schema_as_dict(request.output_schema)
            if request.output_schema is not None
            else None
        )
        return await self._generate(llm, request, request.messages, schema)

    async def generate_stream(
        self, request: GenerationRequest
    ) -> AsyncIterator[StreamChunk]:
        """
        Stream one generation. The exchange is recorded once the stream ends;
        a stream closed early by the caller is not recorded.
        """
        llm = self.llm_for(request.provider, request.model)
        tools, mapper = self._prepare_tools(llm, request.tools)
        schema = (
            schema_as_dict(request.output_schema)
            if request.output_schema is not None
            else None
        )
        record = self._new_record(request, is_streaming=True)
        chunks: list[StreamChunk] = []
        started = time.monotonic()
        try:
            async with aclosing(
                llm.generate_stream(
                    request.messages,
                    max_output_tokens=request.max_output_tokens,
                    params=request.params,
                    tools=tools,
                    schema=schema,
                )
            ) as stream:
                async for chunk in stream:
                    if chunk.tool_calls:
                        chunk = replace(
                            chunk,
                            tool_calls=tuple(
                                mapper.resolve_call(c) for c in chunk.tool_calls
                            ),
                        )
                    chunks.append(chunk)
                    yield chunk
        except Exception as exc:
            await self._record(record.failed(exc, latency_ms=_elapsed_ms(started)))
            raise

        result = assemble_chunks(chunks, model=llm.model, provider=llm.provider)
        await self._record(
            record.completed(
                messages=(*record.messages, result.to_message()),
                tool_calls=result.tool_calls,
                usage=result.usage,
                finish_reason=result.finish_reason,
                latency_ms=_elapsed_ms(started),
            )
        )

    async def generate_with_tools(
        self,
        request: GenerationRequest,
        tools: Optional[Sequence[ToolDefinition]],
        executor: ToolExecutor,
    ) -> GenerationResult:
        """
        Run the tool loop until the model stops asking for tools.

        ``tools`` falls back to ``request.tools``. They are transformed for the
        provider's schema capabilities first, so a tool whose union the
        provider cannot express is offered as one tool per variant; the
        executor still sees only the original names. When
        ``request.output_schema`` is set, the model is told to answer with
        JSON matching it and the validated value is returned as
        ``result.parsed`` (an exhausted loop's synthesized answer is not
        validated).
        """
        llm = self.llm_for(request.provider, request.model)
        definitions = tools if tools is not None else (request.tools or ())
        transformed, mapper = SchemaTransformer(
            llm.capabilities, logger=self.logger
        ).transform_all(definitions)

        orchestrator = ToolOrchestrator(
            llm,
            executor,
            max_iterations=self.max_tool_iterations,
            synthesizer=self.synthesizer,
            raise_on_exhaustion=self.raise_on_exhaustion,
            logger=self.logger,
        )
        messages: Sequence[Message] = request.messages
        if request.output_schema is not None:
            messages = _with_instruction(
                messages, json_instruction(request.output_schema)
            )
        record = self._new_record(request, messages=messages)
        started = time.monotonic()
        try:
            outcome = await orchestrator.run(
                messages,
                transformed,
                mapper=mapper,
                max_output_tokens=request.max_output_tokens,
                params=request.params,
            )
            result = outcome.result
            if request.output_schema is not None and not outcome.exhausted:
                result = result.with_updates(
                    parsed=self.processor.extract_and_validate(
                        result.text, request.output_schema
                    )
                )
        except Exception as exc:
            await self._record(record.failed(exc, latency_ms=_elapsed_ms(started)))
            raise

        await self._record(
            record.completed(
                messages=tuple(outcome.messages),
                tool_calls=tuple(outcome.calls),
                tool_results=tuple(outcome.results),
                usage=outcome.usage,
                finish_reason=result.finish_reason,
                latency_ms=_elapsed_ms(started),
            )
        )
        return result

    async def generate_with_schema(
        self,
        request: GenerationRequest,
        schema: Optional[StructuredOutputSchema] = None,
        *,
        native: bool = True,
    ) -> Any:
        """
        Generate and return a value validated against *schema*.

        With ``native=True`` the provider shapes the output itself (response
        format or forced tool); otherwise a JSON instruction is added to the
        system prompt. Either way the text is extracted and validated, and a
        pydantic model class yields a model instance.
        """
        schema = schema if schema is not None else request.output_schema
        if schema is None:
            raise ValueError("generate_with_schema needs a schema or request.output_schema")

        llm = self.llm_for(request.provider, request.model)
        if native:
            result = await self._generate(
                llm, request, request.messages, schema_as_dict(schema)
            )
        else:
            messages = _with_instruction(request.messages, json_instruction(schema))
            result = await self._generate(llm, request, messages, None)
        return self.processor.extract_and_validate(result.text, schema)

    # -- helpers --------------------------------------------------------------
    async def _generate(
        self,
        llm: BaseAsyncLLM,
        request: GenerationRequest,
        messages: Sequence[Message],
        schema: Optional[dict[str, Any]],
    ) -> GenerationResult:
        tools, mapper = self._prepare_tools(llm, request.tools)
        record = self._new_record(request, messages=messages)
        started = time.monotonic()
        try:
            result = await llm.generate(
                messages,
                max_output_tokens=request.max_output_tokens,
                params=request.params,
                tools=tools,
                schema=schema,
            )
        except Exception as exc:
            await self._record(record.failed(exc, latency_ms=_elapsed_ms(started)))
            raise

        if result.tool_calls:
            result = result.with_updates(
                tool_calls=tuple(mapper.resolve_call(c) for c in result.tool_calls)
            )
        await self._record(
            record.completed(
                messages=(*record.messages, result.to_message()),
                tool_calls=result.tool_calls,
                usage=result.usage,
                finish_reason=result.finish_reason,
                latency_ms=_elapsed_ms(started),
            )
        )
        return result

    def _prepare_tools(
        self, llm: BaseAsyncLLM, tools: Optional[Sequence[ToolDefinition]]
    ) -> tuple[Optional[list[ToolDefinition]], ToolNameMapper]:
        """Provider-safe definitions for *tools* and the mapper back to them."""
        if not tools:
            return None, ToolNameMapper()
        transformed, mapper = SchemaTransformer(
            llm.capabilities, logger=self.logger
        ).transform_all(tools)
        return [t.definition for t in transformed], mapper

    @staticmethod
    def _new_record(
        request: GenerationRequest,
        *,
        messages: Optional[Sequence[Message]] = None,
        is_streaming: bool = False,
    ) -> ExchangeRecord:
        return ExchangeRecord(
            provider=request.provider,
            model=request.model,
            messages=tuple(messages if messages is not None else request.messages),
            is_streaming=is_streaming,
        )

    async def _record(self, record: ExchangeRecord) -> None:
        self.logger.debug(
            "Exchange %s %s (%s/%s, %s ms)",
            record.request_id,
            record.status.value,
            record.provider.value,
            record.model,
            record.latency_ms,
        )
        await deliver_record(self.record_sink, record, self.logger)

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """Close every cached LLM's SDK client. Safe to call multiple times."""
        for llm in self._llms.values():
            await llm.aclose()

    async def __aenter__(self) -> "LLMClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
