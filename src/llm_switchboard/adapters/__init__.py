"""Pure transformation adapters for different LLM providers."""

from .anthropic import STRUCTURED_OUTPUT_TOOL, AnthropicRequestAdapter
from .base import RequestAdapter, StreamAccumulator
from .gemini import GeminiRequestAdapter
from .openai import OpenAIRequestAdapter

__all__ = [
    "OpenAIRequestAdapter",
    "AnthropicRequestAdapter",
    "GeminiRequestAdapter",
    "RequestAdapter",
    "StreamAccumulator",
    "STRUCTURED_OUTPUT_TOOL",
]
