"""
Multi-turn tool loop.

    AWAITING_MODEL -> MODEL_RESPONDED -> DONE
                                      -> EXECUTING_TOOLS -> AWAITING_MODEL
                                      -> EXHAUSTED

An iteration is one executed tool phase. With ``max_iterations=N`` a model
that always asks for tools is called N + 1 times and its tools run N times
before the loop is declared exhausted.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Optional, Sequence

from llm_switchboard.errors import OrchestrationCancelled, OrchestrationExhausted
from llm_switchboard.orchestration.executor import ToolExecutor
from llm_switchboard.orchestration.synthesizer import (
    ResponseSynthesizer,
    SummarySynthesizer,
    SynthesisContext,
)
from llm_switchboard.providers.base import BaseAsyncLLM, MessageLike
from llm_switchboard.schema.mapper import ToolNameMapper
from llm_switchboard.types.chat import (
    FinishReason,
    GenerationResult,
    Message,
    Usage,
)
from llm_switchboard.types.tool import ToolCall, ToolResult, TransformedTool

__all__ = [
    "OrchestrationState",
    "OrchestrationResult",
    "ToolOrchestrator",
    "DEFAULT_MAX_ITERATIONS",
]

DEFAULT_MAX_ITERATIONS = 10


class OrchestrationState(StrEnum):
    AWAITING_MODEL = "awaiting_model"
    MODEL_RESPONDED = "model_responded"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True, slots=True)
class OrchestrationResult:
    """Outcome of one tool loop.

    ``calls`` carry the logical tool names and reconstructed arguments;
    ``messages`` is the conversation exactly as the provider saw it.
    """

    result: GenerationResult
    messages: list[Message]
    calls: list[ToolCall] = field(default_factory=list)
    results: list[ToolResult] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)
    iterations: int = 0

    @property
    def exhausted(self) -> bool:
        return self.result.exhausted


class ToolOrchestrator:
    """Drives the model until it stops asking for tools or the limit is hit.

    One orchestrator runs one loop at a time; ``state`` and ``transitions``
    describe the current or most recent run.
    """

    def __init__(
        self,
        llm: BaseAsyncLLM,
        executor: ToolExecutor,
        *,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        synthesizer: Optional[ResponseSynthesizer] = None,
        raise_on_exhaustion: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_iterations < 0:
            raise ValueError("max_iterations must be >= 0")
        self.llm = llm
        self.executor = executor
        self.max_iterations = max_iterations
        self.synthesizer = synthesizer or SummarySynthesizer()
        self.raise_on_exhaustion = raise_on_exhaustion
        self.logger = logger or logging.getLogger(__name__)
        self.state = OrchestrationState.AWAITING_MODEL
        self.transitions: list[tuple[OrchestrationState, OrchestrationState]] = []

    def _enter(self, state: OrchestrationState) -> None:
        self.transitions.append((self.state, state))
        self.logger.debug("Tool loop %s -> %s", self.state.value, state.value)
        self.state = state

    async def run(
        self,
        messages: Sequence[MessageLike],
        tools: Sequence[TransformedTool],
        *,
        mapper: Optional[ToolNameMapper] = None,
        max_output_tokens: int = 4096,
        params: Optional[dict[str, Any]] = None,
    ) -> OrchestrationResult:
        """Run the loop from *messages* and return the reconciled outcome.

        Raises OrchestrationExhausted when the limit is reached and
        ``raise_on_exhaustion`` is set, and OrchestrationCancelled when the
        run is cancelled while tools execute.
        """
        mapper = mapper if mapper is not None else ToolNameMapper(tools)
        conversation = [
            m if isinstance(m, Message) else Message.from_dict(m) for m in messages
        ]
        calls: list[ToolCall] = []
        results: list[ToolResult] = []
        usage = Usage()
        iterations = 0

        self.state = OrchestrationState.AWAITING_MODEL
        self.transitions = []

        while True:
            result = await self.llm.generate_with_tools(
                conversation,
                tools,
                max_output_tokens=max_output_tokens,
                params=params,
            )
            usage = usage + result.usage
            self._enter(OrchestrationState.MODEL_RESPONDED)

            if result.finish_reason is not FinishReason.TOOL_CALLS or not result.tool_calls:
                self._enter(OrchestrationState.DONE)
                conversation.append(result.to_message())
                self.logger.info(
                    "Tool loop finished after %d iterations (%s)",
                    iterations,
                    result.finish_reason.value,
                )
                return OrchestrationResult(
                    result=result.with_updates(usage=usage),
                    messages=conversation,
                    calls=calls,
                    results=results,
                    usage=usage,
                    iterations=iterations,
                )

            if iterations >= self.max_iterations:
                self._enter(OrchestrationState.EXHAUSTED)
                return await self._exhausted(
                    result,
                    conversation,
                    calls,
                    results,
                    usage,
                    iterations,
                    max_output_tokens,
                    params,
                )

            self._enter(OrchestrationState.EXECUTING_TOOLS)
            resolved = [mapper.resolve_call(call) for call in result.tool_calls]
            batch = await self._execute_all(result.tool_calls, resolved)

            conversation.append(result.to_message())
            conversation.extend(Message.tool(r) for r in batch)
            calls.extend(resolved)
            results.extend(batch)
            iterations += 1
            self.logger.info(
                "Iteration %d: executed %d tool calls (%d failed)",
                iterations,
                len(batch),
                sum(r.is_error for r in batch),
            )
            self._enter(OrchestrationState.AWAITING_MODEL)

    # -- tool execution -------------------------------------------------------
    async def _execute_all(
        self, calls: Sequence[ToolCall], resolved: Sequence[ToolCall]
    ) -> list[ToolResult]:
        """Run every call concurrently; results come back in call order."""
        tasks = [
            asyncio.ensure_future(self._execute_one(call, logical))
            for call, logical in zip(calls, resolved)
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except asyncio.CancelledError as exc:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self._enter(OrchestrationState.DONE)
            raise OrchestrationCancelled(
                f"Cancelled while executing {len(tasks)} tool calls"
            ) from exc

    async def _execute_one(self, call: ToolCall, logical: ToolCall) -> ToolResult:
        """Exactly one ToolResult per call; failures become error results."""
        try:
            value = await self.executor.execute(logical.name, logical.arguments)
        except Exception as exc:
            self.logger.warning("Tool %r failed: %s", logical.name, exc)
            message = str(exc) or type(exc).__name__
            return ToolResult(
                tool_call_id=call.id, content=message, is_error=True, name=call.name
            )
        return ToolResult(tool_call_id=call.id, content=value, name=call.name)

    # -- exhaustion -----------------------------------------------------------
    async def _exhausted(
        self,
        result: GenerationResult,
        conversation: list[Message],
        calls: list[ToolCall],
        results: list[ToolResult],
        usage: Usage,
        iterations: int,
        max_output_tokens: int,
        params: Optional[dict[str, Any]],
    ) -> OrchestrationResult:
        self.logger.warning(
            "Tool loop exhausted after %d iterations; model still requested %d calls",
            iterations,
            len(result.tool_calls),
        )
        partial = result.with_updates(usage=usage, exhausted=True)
        if self.raise_on_exhaustion:
            raise OrchestrationExhausted(iterations, partial)

        synthesized = await self.synthesizer.synthesize(
            SynthesisContext(
                llm=self.llm,
                messages=list(conversation),
                calls=list(calls),
                results=list(results),
                last_result=result,
                iterations=iterations,
                max_output_tokens=max_output_tokens,
                params=params,
            )
        )
        total = usage + synthesized.usage
        final = synthesized.with_updates(usage=total, exhausted=True)
        conversation.append(final.to_message())
        return OrchestrationResult(
            result=final,
            messages=conversation,
            calls=calls,
            results=results,
            usage=total,
            iterations=iterations,
        )
