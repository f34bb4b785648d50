"""
Best-effort answers for a tool loop that ran out of iterations.

Which synthesizer runs is policy chosen by the caller:

* ``SummarySynthesizer`` (default) makes no model call and lists what the
  successful tools returned;
* ``ModelSynthesizer`` asks the model, with tools disabled, to answer from the
  collected results and falls back to the summary if that call fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Protocol, Sequence

from llm_switchboard.errors import ProviderError
from llm_switchboard.orchestration.formatter import ToolResultFormatter
from llm_switchboard.types.chat import FinishReason, GenerationResult, Message, Role, Usage
from llm_switchboard.types.tool import ToolCall, ToolResult

if TYPE_CHECKING:
    from llm_switchboard.providers.base import BaseAsyncLLM

__all__ = [
    "SynthesisContext",
    "ResponseSynthesizer",
    "SummarySynthesizer",
    "ModelSynthesizer",
]

LIMIT_NOTICE = (
    "I reached the limit of {iterations} tool iterations before I could finish."
)
SYNTHESIS_PROMPT = (
    "The tool-call limit has been reached, so no more tools can be used. "
    "Using only the tool results below, give the best final answer to the "
    "original request. Say briefly if anything could not be completed.\n\n"
    "{results}"
)


@dataclass(frozen=True, slots=True)
class SynthesisContext:
    llm: "BaseAsyncLLM"
    messages: Sequence[Message]
    calls: Sequence[ToolCall]
    results: Sequence[ToolResult]
    last_result: GenerationResult
    iterations: int
    max_output_tokens: int = 4096
    params: Optional[dict[str, Any]] = None


class ResponseSynthesizer(Protocol):
    """Builds the answer returned when the loop is exhausted.

    The returned usage covers only work done by the synthesizer itself.
    """

    async def synthesize(self, context: SynthesisContext) -> GenerationResult:
        ...


class SummarySynthesizer:
    """Answer from the successful tool results without calling the model."""

    async def synthesize(self, context: SynthesisContext) -> GenerationResult:
        summary = ToolResultFormatter.format_fallback_summary(
            context.calls, context.results
        )
        notice = LIMIT_NOTICE.format(iterations=context.iterations)
        return GenerationResult(
            text=f"{notice}\n\n{summary}",
            finish_reason=FinishReason.STOP,
            usage=Usage(),
            model=context.last_result.model,
            provider=context.last_result.provider,
            exhausted=True,
        )


class ModelSynthesizer:
    """Ask the model for a final answer built from the collected tool results."""

    def __init__(
        self,
        fallback: Optional[ResponseSynthesizer] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.fallback = fallback or SummarySynthesizer()
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _messages(context: SynthesisContext) -> list[Message]:
        # Tool turns are left out so the request is valid without tool definitions.
        kept = [
            m
            for m in context.messages
            if m.role in (Role.SYSTEM, Role.USER)
            or (m.role is Role.ASSISTANT and not m.tool_calls and m.text)
        ]
        prompt = SYNTHESIS_PROMPT.format(
            results=ToolResultFormatter.format_for_synthesis(
                context.calls, context.results
            )
        )
        return [*kept, Message.user(prompt)]

    async def synthesize(self, context: SynthesisContext) -> GenerationResult:
        try:
            result = await context.llm.generate(
                self._messages(context),
                max_output_tokens=context.max_output_tokens,
                params=context.params,
            )
        except ProviderError as exc:
            self.logger.warning("Synthesis call failed, using summary: %s", exc)
            return await self.fallback.synthesize(context)

        return result.with_updates(
            tool_calls=(),
            finish_reason=FinishReason.STOP,
            exhausted=True,
        )
