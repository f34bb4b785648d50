"""Gemini adapter for pure request/response transformations.

Gemini is reached through its OpenAI-compatible endpoint, so the wire shape is
the OpenAI one with a few differences: ``system`` is never rewritten, tool
results carry the function name, and the native finish-reason vocabulary may
leak through.
"""

from __future__ import annotations

from typing import Any, Final

from llm_switchboard.adapters.openai import OPENAI_FINISH_REASONS, OpenAIRequestAdapter
from llm_switchboard.provider import Provider
from llm_switchboard.types.chat import FinishReason, Message, Role

GEMINI_FINISH_REASONS: Final[dict[str, FinishReason]] = {
    **OPENAI_FINISH_REASONS,
    "STOP": FinishReason.STOP,
    "MAX_TOKENS": FinishReason.LENGTH,
    "SAFETY": FinishReason.CONTENT_FILTER,
    "RECITATION": FinishReason.CONTENT_FILTER,
    "BLOCKLIST": FinishReason.CONTENT_FILTER,
    "PROHIBITED_CONTENT": FinishReason.CONTENT_FILTER,
    "SPII": FinishReason.CONTENT_FILTER,
    "IMAGE_SAFETY": FinishReason.CONTENT_FILTER,
    "MALFORMED_FUNCTION_CALL": FinishReason.ERROR,
}


class GeminiRequestAdapter(OpenAIRequestAdapter):
    """Adapter for Gemini's OpenAI-compatible Chat Completions endpoint."""

    provider: Provider = Provider.GEMINI
    finish_reasons: dict[str, FinishReason] = GEMINI_FINISH_REASONS

    def _max_tokens_key(self, model: str) -> str:
        return "max_tokens"

    def _system_role(self, model: str) -> str:
        return "system"

    def _adjust_params(self, args: dict[str, Any]) -> None:
        args.pop("parallel_tool_calls", None)

    def _message(self, msg: Message, model: str) -> dict[str, Any]:
        gemini_msg = super()._message(msg, model)
        if msg.role is Role.TOOL and msg.tool_result.name:
            gemini_msg["name"] = msg.tool_result.name
        return gemini_msg
