import pytest

from llm_switchboard.context import ContextPolicy, apply_context_policy, estimate_tokens
from llm_switchboard.errors import RequestTooLarge
from llm_switchboard.types import Message, ToolCall, ToolResult


def _conversation() -> list[Message]:
    call = ToolCall(id="c1", name="search", arguments={"q": "x" * 40})
    return [
        Message.system("You are terse."),
        Message.user("a" * 400),
        Message.assistant(tool_calls=[call]),
        Message.tool(ToolResult(tool_call_id="c1", content="b" * 400)),
        Message.user("final question"),
    ]


def test_estimate_counts_chars_and_overhead():
    assert estimate_tokens([Message.user("x" * 40)]) == 10 + 4


def test_no_limit_passes_through():
    messages = _conversation()
    assert apply_context_policy(messages, ContextPolicy()) == messages


def test_over_budget_without_truncation_raises():
    with pytest.raises(RequestTooLarge) as info:
        apply_context_policy(
            _conversation(), ContextPolicy(max_context_tokens=100), provider="openai"
        )
    assert info.value.provider == "openai"


def test_output_tokens_count_against_budget():
    messages = [Message.user("hello")]
    apply_context_policy(messages, ContextPolicy(max_context_tokens=50))
    with pytest.raises(RequestTooLarge):
        apply_context_policy(
            messages, ContextPolicy(max_context_tokens=50), max_output_tokens=48
        )


def test_truncation_drops_oldest_and_keeps_system():
    messages = [
        Message.system("You are terse."),
        Message.user("a" * 400),
        Message.assistant("ok"),
        Message.user("b" * 40),
        Message.assistant("c" * 40),
        Message.user("final question"),
    ]
    kept = apply_context_policy(
        messages, ContextPolicy(max_context_tokens=100, truncate=True)
    )

    assert kept == [messages[0], messages[3], messages[4], messages[5]]


def test_truncation_never_opens_with_an_assistant_turn():
    messages = _conversation()
    kept = apply_context_policy(
        messages, ContextPolicy(max_context_tokens=150, truncate=True)
    )

    # the tool exchange alone would fit but would start the history
    assert kept == [messages[0], messages[-1]]


def test_tool_results_dropped_with_their_call():
    messages = _conversation()
    kept = apply_context_policy(
        messages, ContextPolicy(max_context_tokens=30, truncate=True)
    )

    assert [m.role.value for m in kept] == ["system", "user"]
    assert kept[-1].text == "final question"


def test_truncation_that_cannot_fit_raises():
    messages = [Message.user("a" * 400), Message.user("b" * 400)]
    with pytest.raises(RequestTooLarge):
        apply_context_policy(messages, ContextPolicy(max_context_tokens=50, truncate=True))
