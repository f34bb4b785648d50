from .executor import FunctionToolExecutor, ToolExecutor
from .formatter import ToolResultFormatter
from .orchestrator import (
    DEFAULT_MAX_ITERATIONS,
    OrchestrationResult,
    OrchestrationState,
    ToolOrchestrator,
)
from .synthesizer import (
    ModelSynthesizer,
    ResponseSynthesizer,
    SummarySynthesizer,
    SynthesisContext,
)

__all__ = [
    "DEFAULT_MAX_ITERATIONS",
    "FunctionToolExecutor",
    "ModelSynthesizer",
    "OrchestrationResult",
    "OrchestrationState",
    "ResponseSynthesizer",
    "SummarySynthesizer",
    "SynthesisContext",
    "ToolExecutor",
    "ToolOrchestrator",
    "ToolResultFormatter",
]
