from .anthropic import AnthropicLLM
from .base import BaseAsyncLLM
from .gemini import GeminiLLM
from .openai import OpenAILLM

__all__ = ["BaseAsyncLLM", "OpenAILLM", "AnthropicLLM", "GeminiLLM"]
