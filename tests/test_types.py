import pytest

from llm_switchboard.errors import InvalidRequest
from llm_switchboard.types import (
    FinishReason,
    GenerationRequest,
    GenerationResult,
    Message,
    Role,
    ToolCall,
    ToolDefinition,
    ToolResult,
    Usage,
    validate_conversation,
    validate_tool_set,
)


def _exchange(call_id: str = "call_1") -> list[Message]:
    call = ToolCall(id=call_id, name="add", arguments={"a": 2, "b": 2})
    return [
        Message.user("What is 2+2?"),
        Message.assistant(tool_calls=[call]),
        Message.tool(ToolResult(tool_call_id=call_id, content="4", name="add")),
    ]


class TestMessage:
    def test_constructors(self):
        msg = Message.user("hi", name="alice")
        assert msg.role is Role.USER
        assert msg.text == "hi"
        assert msg.name == "alice"
        assert Message.system("rules").role is Role.SYSTEM

    def test_assistant_with_calls(self):
        call = ToolCall(id="c1", name="lookup", arguments={"q": "x"})
        msg = Message.assistant("Let me check.", [call])

        assert msg.text == "Let me check."
        assert msg.tool_calls == [call]

    def test_tool_message_requires_matching_id(self):
        result = ToolResult(tool_call_id="c1", content="ok")
        with pytest.raises(ValueError, match="mismatch"):
            Message(Role.TOOL, Message.tool(result).content, tool_call_id="c2")

    def test_tool_calls_only_on_assistant(self):
        call = ToolCall(id="c1", name="lookup", arguments={})
        with pytest.raises(ValueError):
            Message(Role.USER, Message.assistant(tool_calls=[call]).content)

    def test_from_dict_chat_format(self):
        msg = Message.from_dict(
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": "call_1",
                        "type": "function",
                        "function": {"name": "calc", "arguments": '{"a": 2}'},
                    }
                ],
            }
        )

        assert msg.role is Role.ASSISTANT
        assert msg.text == ""
        call = msg.tool_calls[0]
        assert call.name == "calc"
        assert call.arguments == {"a": 2}
        assert call.raw_arguments == '{"a": 2}'

    @pytest.mark.parametrize("raw", ["{bad", "[1, 2]", "   "])
    def test_from_dict_tolerates_unparseable_arguments(self, raw):
        msg = Message.from_dict(
            {
                "role": "assistant",
                "tool_calls": [
                    {"id": "call_1", "function": {"name": "calc", "arguments": raw}}
                ],
            }
        )

        call = msg.tool_calls[0]
        assert call.arguments == {}
        assert call.raw_arguments == raw
        assert call.arguments_json == raw

    def test_from_dict_tool_message(self):
        msg = Message.from_dict(
            {"role": "tool", "tool_call_id": "call_1", "content": "4", "name": "calc"}
        )
        assert msg.tool_call_id == "call_1"
        assert msg.tool_result.content == "4"
        assert msg.tool_result.name == "calc"


class TestUsage:
    def test_addition_keeps_optional_counts(self):
        total = Usage(10, 5) + Usage(3, 2, cache_read_tokens=7)

        assert total.input_tokens == 13
        assert total.output_tokens == 7
        assert total.cache_read_tokens == 7
        assert total.cache_creation_tokens is None
        assert total.total_tokens == 20


class TestGenerationResult:
    def test_to_message_round_trips_calls(self):
        call = ToolCall(id="c1", name="lookup", arguments={})
        result = GenerationResult(
            text="checking", tool_calls=[call], finish_reason="tool_calls"
        )

        assert result.finish_reason is FinishReason.TOOL_CALLS
        assert result.has_tool_calls
        msg = result.to_message()
        assert msg.role is Role.ASSISTANT
        assert msg.tool_calls == [call]

    def test_with_updates(self):
        result = GenerationResult(text="a")
        assert result.with_updates(exhausted=True).exhausted
        assert not result.exhausted


class TestToolTypes:
    def test_arguments_json_prefers_raw_text(self):
        call = ToolCall(id="c1", name="f", arguments={"a": 1}, raw_arguments='{"a": 1}')
        assert call.arguments_json == '{"a": 1}'
        assert ToolCall(id="c2", name="f", arguments={"a": 1}).arguments_json == '{"a":1}'

    def test_content_text(self):
        assert ToolResult("c1", "plain").content_text() == "plain"
        assert ToolResult("c1", {"value": 4}).content_text() == '{"value":4}'

    def test_definition_shapes(self):
        tool = ToolDefinition("add", "Add numbers", {"type": "object"})
        assert tool.to_openai()["function"]["name"] == "add"
        assert tool.to_anthropic()["input_schema"] == {"type": "object"}


class TestValidation:
    def test_valid_exchange(self):
        validate_conversation(_exchange())

    def test_unknown_tool_call_id(self):
        messages = _exchange()
        messages[2] = Message.tool(ToolResult(tool_call_id="other", content="4"))
        with pytest.raises(InvalidRequest, match="unknown call"):
            validate_conversation(messages, provider="openai")

    def test_answered_twice(self):
        messages = _exchange()
        messages.append(messages[2])
        with pytest.raises(InvalidRequest, match="more than once"):
            validate_conversation(messages)

    def test_duplicate_call_ids(self):
        messages = _exchange() + _exchange()
        with pytest.raises(InvalidRequest, match="duplicate"):
            validate_conversation(messages)

    def test_duplicate_tool_names(self):
        tool = ToolDefinition("add", "Add numbers")
        with pytest.raises(InvalidRequest):
            validate_tool_set([tool, tool])


def test_request_coerces_dict_messages():
    request = GenerationRequest(
        messages=[{"role": "user", "content": "hello"}],
        provider="anthropic",
        model="claude-sonnet-4-5",
    )

    assert request.messages[0].text == "hello"
    assert request.max_output_tokens == 4096
