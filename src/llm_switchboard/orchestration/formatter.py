"""Text renderings of tool calls and their results."""

from __future__ import annotations

from typing import Sequence

from llm_switchboard.types.tool import ToolCall, ToolResult

__all__ = ["ToolResultFormatter"]

AI_CONTENT_LIMIT = 500
SYNTHESIS_CONTENT_LIMIT = 2000
DISPLAY_PREVIEW_LIMIT = 200
NO_RESULTS_SUMMARY = "Tool execution completed, but no tool returned a usable result."


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _status(result: ToolResult) -> str:
    return "FAILED" if result.is_error else "SUCCESS"


class ToolResultFormatter:
    """Static helpers; calls and results are paired by position."""

    @staticmethod
    def format_for_ai(calls: Sequence[ToolCall], results: Sequence[ToolResult]) -> str:
        blocks = []
        for call, result in zip(calls, results):
            blocks.append(
                f"Tool: {call.name}\n"
                f"Status: {_status(result)}\n"
                f"Result: {_truncate(result.content_text(), AI_CONTENT_LIMIT)}"
            )
        return "\n\n".join(blocks)

    @staticmethod
    def format_for_synthesis(
        calls: Sequence[ToolCall], results: Sequence[ToolResult]
    ) -> str:
        blocks = []
        for call, result in zip(calls, results):
            content = result.content_text()
            summary = content.strip().splitlines()[0] if content.strip() else "(empty)"
            block = (
                f"### Tool: {call.name}\n"
                f"Status: {_status(result)}\n"
                f"Summary: {_truncate(summary, DISPLAY_PREVIEW_LIMIT)}\n"
                f"Details:\n{_truncate(content, SYNTHESIS_CONTENT_LIMIT)}"
            )
            if not result.is_error:
                block += (
                    "\n\nIMPORTANT: this action already completed successfully. "
                    "Report its outcome; do not ask to run it again."
                )
            blocks.append(block)
        return "\n\n---\n\n".join(blocks)

    @staticmethod
    def format_for_display(
        calls: Sequence[ToolCall], results: Sequence[ToolResult]
    ) -> str:
        lines = []
        for index, (call, result) in enumerate(zip(calls, results), start=1):
            mark = "failed" if result.is_error else "ok"
            preview = _truncate(" ".join(result.content_text().split()), DISPLAY_PREVIEW_LIMIT)
            lines.append(f"{index}. {call.name} [{mark}]: {preview}")
        return "\n".join(lines)

    @staticmethod
    def format_fallback_summary(
        calls: Sequence[ToolCall], results: Sequence[ToolResult]
    ) -> str:
        """Summarise only the successful results, for answers built without the model."""
        blocks = [
            f"Results from {call.name}:\n{_truncate(result.content_text(), AI_CONTENT_LIMIT)}"
            for call, result in zip(calls, results)
            if not result.is_error
        ]
        if not blocks:
            return NO_RESULTS_SUMMARY
        return "\n\n".join(blocks)
