"""
Error taxonomy for llm-switchboard.

Noisy provider SDK exceptions are translated into a small set of typed errors
by :func:`classify_error`, while the original exception is preserved as
``__cause__`` for full tracebacks.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Final, Optional, Type

import anthropic
import openai

if TYPE_CHECKING:
    from llm_switchboard.types.chat import GenerationResult

__all__: tuple[str, ...] = (
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
    "classify_error",
)

_logger = logging.getLogger(__name__)
_logger.addHandler(logging.NullHandler())


class SwitchboardError(Exception):
    """Base class for every error raised by this package."""

    kind: str = "error"

    def details(self) -> dict[str, Any]:
        """Structured fields for rendering the error without re-deriving context."""
        return {"kind": self.kind, "message": str(self)}


# -- provider errors ----------------------------------------------------------


class ProviderError(SwitchboardError):
    """A provider call failed.

    Attributes:
        provider: Provider name, when known.
        status_code: HTTP status reported by the provider, when known.
        original_exc: The underlying SDK exception, if any.
    """

    kind = "provider_error"
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        original_exc: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.original_exc = original_exc
        if original_exc is not None:
            self.__cause__ = original_exc

    def details(self) -> dict[str, Any]:
        data = super().details()
        data.update(
            provider=self.provider,
            status_code=self.status_code,
            retryable=self.retryable,
        )
        return data


class AuthFailure(ProviderError):
    kind = "auth_failure"


class RateLimited(ProviderError):
    kind = "rate_limited"
    retryable = True

    def __init__(self, message: str, *, retry_after: Optional[float] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

    def details(self) -> dict[str, Any]:
        data = super().details()
        data["retry_after"] = self.retry_after
        return data


class InvalidRequest(ProviderError):
    kind = "invalid_request"


class RequestTooLarge(InvalidRequest):
    """The request exceeds the model's context window and truncation is off."""

    kind = "request_too_large"


class ProviderUnavailable(ProviderError):
    kind = "provider_unavailable"
    retryable = True


class ContentFiltered(ProviderError):
    kind = "content_filtered"


# -- schema errors ------------------------------------------------------------


class SchemaTransformError(SwitchboardError):
    kind = "schema_transform_error"

    def __init__(self, message: str, *, tool_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.tool_name = tool_name

    def details(self) -> dict[str, Any]:
        data = super().details()
        data["tool_name"] = self.tool_name
        return data


class AmbiguousDiscriminatorError(SchemaTransformError):
    kind = "ambiguous_discriminator"


# -- tool errors --------------------------------------------------------------


class ToolExecutionError(SwitchboardError):
    """A single tool invocation failed. Recovered into an error ToolResult."""

    kind = "tool_execution_error"

    def __init__(self, message: str, *, tool_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.tool_name = tool_name

    def details(self) -> dict[str, Any]:
        data = super().details()
        data["tool_name"] = self.tool_name
        return data


# -- structured output errors -------------------------------------------------


class StructuredOutputError(SwitchboardError):
    kind = "structured_output_error"


class ExtractionError(StructuredOutputError):
    """No JSON value could be found in the model's reply."""

    kind = "extraction_error"


class SchemaValidationError(StructuredOutputError):
    """Extracted JSON does not match the schema.

    Attributes:
        path: Location of the failing value, e.g. ``items[2].price``.
        expected: What the schema asked for.
        actual: What was found.
    """

    kind = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
        expected: Any = None,
        actual: Any = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.expected = expected
        self.actual = actual

    def details(self) -> dict[str, Any]:
        data = super().details()
        data.update(path=self.path, expected=self.expected, actual=self.actual)
        return data


# -- orchestration errors -----------------------------------------------------


class OrchestrationExhausted(SwitchboardError):
    """The tool loop hit its iteration limit while the model still wanted tools."""

    kind = "orchestration_exhausted"

    def __init__(self, iterations: int, partial_result: "GenerationResult") -> None:
        super().__init__(
            f"Tool loop stopped after {iterations} iterations without a final answer"
        )
        self.iterations = iterations
        self.partial_result = partial_result

    def details(self) -> dict[str, Any]:
        data = super().details()
        data.update(iterations=self.iterations, partial_text=self.partial_result.text)
        return data


class OrchestrationCancelled(SwitchboardError, asyncio.CancelledError):
    """The tool loop was cancelled while tools were running.

    Also an ``asyncio.CancelledError`` so task cancellation and timeouts keep
    working for callers that never look at this package's errors.
    """

    kind = "orchestration_cancelled"


# -- SDK exception classification ---------------------------------------------

AUTH_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    anthropic.AuthenticationError,
    anthropic.PermissionDeniedError,
)

RATE_LIMIT_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.RateLimitError,
    anthropic.RateLimitError,
)

BAD_REQUEST_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.BadRequestError,
    openai.NotFoundError,
    openai.UnprocessableEntityError,
    openai.ConflictError,
    anthropic.BadRequestError,
    anthropic.NotFoundError,
    anthropic.UnprocessableEntityError,
    anthropic.ConflictError,
)

CONN_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIConnectionError,  # includes APITimeoutError
    anthropic.APIConnectionError,
    TimeoutError,
    ConnectionError,
)

STATUS_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIStatusError,
    anthropic.APIStatusError,
)

_TOO_LARGE_MARKERS = (
    "context_length_exceeded",
    "maximum context length",
    "prompt is too long",
    "request_too_large",
    "too many tokens",
)

# Error types some providers report inside an otherwise successful stream.
_UNAVAILABLE_ERROR_TYPES = ("overloaded_error", "api_error")
_RATE_LIMIT_ERROR_TYPES = ("rate_limit_error",)

_CONTENT_FILTER_MARKERS = (
    "content_filter",
    "content_policy_violation",
    "content management policy",
    "safety",
)


def _retry_after(exc: BaseException) -> Optional[float]:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    value = headers.get("retry-after")
    if value is not None:
        try:
            return float(value)
        except ValueError:
            return None
    value_ms = headers.get("retry-after-ms")
    if value_ms is not None:
        try:
            return float(value_ms) / 1000.0
        except ValueError:
            return None
    return None


def _error_text(exc: BaseException) -> str:
    code = getattr(exc, "code", None) or ""
    return f"{code} {exc}".lower()


def _body_error_type(exc: BaseException) -> Optional[str]:
    """The ``error.type`` of a provider error body, if the SDK kept one."""
    body = getattr(exc, "body", None)
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("type")
    return None


def classify_error(
    exc: BaseException,
    provider: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> ProviderError:
    """Wrap an SDK exception in the matching ProviderError subclass."""
    log = logger or _logger

    if isinstance(exc, ProviderError):
        return exc

    status_code = getattr(exc, "status_code", None)
    common: dict[str, Any] = {
        "provider": provider,
        "status_code": status_code,
        "original_exc": exc,
    }
    text = _error_text(exc)
    body_type = _body_error_type(exc)

    error: ProviderError
    if isinstance(exc, AUTH_ERRORS):
        error = AuthFailure(f"Invalid API credentials: {exc}", **common)
    elif isinstance(exc, RATE_LIMIT_ERRORS):
        error = RateLimited(
            f"Rate-limit exceeded, please retry later: {exc}",
            retry_after=_retry_after(exc),
            **common,
        )
    elif isinstance(exc, BAD_REQUEST_ERRORS) or status_code == 413:
        if status_code == 413 or any(m in text for m in _TOO_LARGE_MARKERS):
            error = RequestTooLarge(f"Request too large: {exc}", **common)
        elif any(m in text for m in _CONTENT_FILTER_MARKERS):
            error = ContentFiltered(f"Content filtered by provider: {exc}", **common)
        else:
            error = InvalidRequest(f"Invalid request: {exc}", **common)
    elif isinstance(exc, CONN_ERRORS):
        error = ProviderUnavailable(
            f"Connection problem, unable to reach the LLM provider: {exc}", **common
        )
    elif isinstance(exc, STATUS_ERRORS) and body_type in _RATE_LIMIT_ERROR_TYPES:
        error = RateLimited(
            f"Rate-limit exceeded, please retry later: {exc}",
            retry_after=_retry_after(exc),
            **common,
        )
    elif isinstance(exc, STATUS_ERRORS) and body_type in _UNAVAILABLE_ERROR_TYPES:
        error = ProviderUnavailable(f"Provider is overloaded or failing: {exc}", **common)
    elif isinstance(exc, STATUS_ERRORS) and (status_code or 0) >= 500:
        error = ProviderUnavailable(f"Provider reported an internal error: {exc}", **common)
    elif isinstance(exc, STATUS_ERRORS):
        error = InvalidRequest(f"Provider rejected the request: {exc}", **common)
    else:
        log.exception("Unclassified provider exception")
        error = ProviderError(f"{exc.__class__.__name__}: {exc}", **common)
        return error

    log.warning("Wrapping provider exception as %s", error.kind, extra={"exc": exc})
    return error
