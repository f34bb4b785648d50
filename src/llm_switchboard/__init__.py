"""
LLM Switchboard - provider-neutral generation and tool orchestration
for OpenAI, Anthropic and Gemini.
"""

from .client import LLMClient
from .config import ProviderConfig
from .context import ContextPolicy
from .errors import (
    AmbiguousDiscriminatorError,
    AuthFailure,
    ContentFiltered,
    ExtractionError,
    InvalidRequest,
    OrchestrationCancelled,
    OrchestrationExhausted,
    ProviderError,
    ProviderUnavailable,
    RateLimited,
    RequestTooLarge,
    SchemaTransformError,
    SchemaValidationError,
    StructuredOutputError,
    SwitchboardError,
    ToolExecutionError,
)
from .factory import create_llm
from .orchestration import (
    FunctionToolExecutor,
    ModelSynthesizer,
    OrchestrationResult,
    OrchestrationState,
    SummarySynthesizer,
    ToolExecutor,
    ToolOrchestrator,
    ToolResultFormatter,
)
from .provider import Provider, get_api_key
from .providers import AnthropicLLM, BaseAsyncLLM, GeminiLLM, OpenAILLM
from .records import ExchangeRecord, InMemoryRecordSink, RecordSink, RequestStatus
from .schema import ProviderCapabilities, SchemaTransformer, ToolNameMapper
from .structured import StructuredOutputProcessor, SchemaValidator, extract_json
from .types import (
    FinishReason,
    GenerationRequest,
    GenerationResult,
    Message,
    Role,
    StreamChunk,
    ToolCall,
    ToolDefinition,
    ToolResult,
    TransformedTool,
    Usage,
)

__version__ = "0.1.0"

__all__ = [
    "LLMClient",
    "ProviderConfig",
    "ContextPolicy",
    "create_llm",
    "Provider",
    "get_api_key",
    "BaseAsyncLLM",
    "OpenAILLM",
    "AnthropicLLM",
    "GeminiLLM",
    "Message",
    "Role",
    "FinishReason",
    "Usage",
    "GenerationRequest",
    "GenerationResult",
    "StreamChunk",
    "ToolDefinition",
    "ToolCall",
    "ToolResult",
    "TransformedTool",
    "ProviderCapabilities",
    "SchemaTransformer",
    "ToolNameMapper",
    "StructuredOutputProcessor",
    "SchemaValidator",
    "extract_json",
    "ToolExecutor",
    "FunctionToolExecutor",
    "ToolOrchestrator",
    "OrchestrationState",
    "OrchestrationResult",
    "SummarySynthesizer",
    "ModelSynthesizer",
    "ToolResultFormatter",
    "ExchangeRecord",
    "RecordSink",
    "InMemoryRecordSink",
    "RequestStatus",
    "SwitchboardError",
    "ProviderError",
    "AuthFailure",
    "RateLimited",
    "InvalidRequest",
    "RequestTooLarge",
    "ProviderUnavailable",
    "ContentFiltered",
    "SchemaTransformError",
    "AmbiguousDiscriminatorError",
    "ToolExecutionError",
    "StructuredOutputError",
    "ExtractionError",
    "SchemaValidationError",
    "OrchestrationExhausted",
    "OrchestrationCancelled",
]
