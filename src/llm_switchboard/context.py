"""Context-window accounting and oldest-first truncation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from llm_switchboard.errors import RequestTooLarge
from llm_switchboard.types.chat import Message, Role, TextPart, ToolCallPart, ToolResultPart

__all__ = ["ContextPolicy", "estimate_tokens", "apply_context_policy"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

# Rough chars-per-token ratio shared by the supported model families.
CHARS_PER_TOKEN = 4
# Per-message framing overhead (role markers, separators).
MESSAGE_OVERHEAD_TOKENS = 4


@dataclass(frozen=True, slots=True)
class ContextPolicy:
    """How to react when a request does not fit the model's context window.

    ``max_context_tokens=None`` disables the check entirely.
    """

    max_context_tokens: Optional[int] = None
    truncate: bool = False


def _message_chars(message: Message) -> int:
    total = 0
    for part in message.content:
        if isinstance(part, TextPart):
            total += len(part.text)
        elif isinstance(part, ToolCallPart):
            total += len(part.tool_call.name) + len(part.tool_call.arguments_json)
        elif isinstance(part, ToolResultPart):
            total += len(part.result.content_text())
    return total


def estimate_tokens(messages: Sequence[Message]) -> int:
    """Approximate prompt size in tokens."""
    return sum(
        _message_chars(m) // CHARS_PER_TOKEN + MESSAGE_OVERHEAD_TOKENS for m in messages
    )


def _droppable_groups(messages: Sequence[Message]) -> list[list[int]]:
    """Group non-system message indexes so tool results stay with their call turn."""
    groups: list[list[int]] = []
    for index, msg in enumerate(messages):
        if msg.role is Role.SYSTEM:
            continue
        if msg.role is Role.TOOL and groups:
            groups[-1].append(index)
        else:
            groups.append([index])
    return groups


def _opens_with_user(messages: Sequence[Message]) -> bool:
    """True when the first non-system turn is a user turn, or no user turn is left."""
    turns = [m for m in messages if m.role is not Role.SYSTEM]
    if not turns or turns[0].role is Role.USER:
        return True
    return not any(m.role is Role.USER for m in turns)


def apply_context_policy(
    messages: Sequence[Message],
    policy: ContextPolicy,
    *,
    max_output_tokens: int = 0,
    provider: Optional[str] = None,
) -> list[Message]:
    """Return *messages* unchanged, truncated, or raise RequestTooLarge.

    Truncation drops the oldest non-system messages first; an assistant turn
    that issued tool calls is dropped together with its tool results. The
    kept history resumes at a user turn and the newest group is never dropped.
    """
    messages = list(messages)
    limit = policy.max_context_tokens
    if limit is None:
        return messages

    budget = limit - max_output_tokens
    estimate = estimate_tokens(messages)
    if estimate <= budget:
        return messages

    if not policy.truncate:
        raise RequestTooLarge(
            f"Estimated {estimate} prompt tokens plus {max_output_tokens} output "
            f"tokens exceed the context window of {limit}",
            provider=provider,
        )

    dropped: set[int] = set()
    groups = _droppable_groups(messages)
    for group in groups[:-1]:
        dropped.update(group)
        kept = [m for i, m in enumerate(messages) if i not in dropped]
        if _opens_with_user(kept) and estimate_tokens(kept) <= budget:
            logger.info("Dropped %d oldest messages to fit the context window", len(dropped))
            return kept

    raise RequestTooLarge(
        f"Request does not fit the context window of {limit} tokens even after "
        "dropping older messages",
        provider=provider,
    )
