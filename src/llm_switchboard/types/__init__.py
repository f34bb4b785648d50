from .chat import (
    ContentPart,
    FinishReason,
    GenerationRequest,
    GenerationResult,
    Message,
    Role,
    StreamChunk,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    Usage,
    validate_conversation,
    validate_tool_set,
)
from .tool import ToolCall, ToolDefinition, ToolResult, TransformedTool

__all__ = [
    "ContentPart",
    "FinishReason",
    "GenerationRequest",
    "GenerationResult",
    "Message",
    "Role",
    "StreamChunk",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "Usage",
    "validate_conversation",
    "validate_tool_set",
    "ToolCall",
    "ToolDefinition",
    "ToolResult",
    "TransformedTool",
]
