import asyncio

import anthropic
import httpx
import openai
import pytest

from llm_switchboard.errors import (
    AuthFailure,
    ContentFiltered,
    InvalidRequest,
    OrchestrationCancelled,
    OrchestrationExhausted,
    ProviderError,
    ProviderUnavailable,
    RateLimited,
    RequestTooLarge,
    SchemaValidationError,
    SwitchboardError,
    classify_error,
)
from llm_switchboard.types import GenerationResult


def _response(status: int, headers=None) -> httpx.Response:
    return httpx.Response(
        status,
        headers=headers,
        request=httpx.Request("POST", "https://api.example.com/v1/chat"),
    )


@pytest.mark.parametrize(
    "exc, expected",
    [
        (openai.AuthenticationError("bad key", response=_response(401), body=None), AuthFailure),
        (anthropic.PermissionDeniedError("denied", response=_response(403), body=None), AuthFailure),
        (anthropic.RateLimitError("slow", response=_response(429), body=None), RateLimited),
        (openai.BadRequestError("unknown field", response=_response(400), body=None), InvalidRequest),
        (
            openai.BadRequestError(
                "This model's maximum context length is 128000 tokens",
                response=_response(400),
                body=None,
            ),
            RequestTooLarge,
        ),
        (
            anthropic.BadRequestError(
                "prompt is too long: 210000 tokens > 200000 maximum",
                response=_response(400),
                body=None,
            ),
            RequestTooLarge,
        ),
        (
            openai.BadRequestError(
                "Your request was rejected by the content_filter",
                response=_response(400),
                body=None,
            ),
            ContentFiltered,
        ),
        (openai.APIStatusError("too big", response=_response(413), body=None), RequestTooLarge),
        (openai.InternalServerError("boom", response=_response(500), body=None), ProviderUnavailable),
        (anthropic.InternalServerError("overloaded", response=_response(529), body=None), ProviderUnavailable),
        (
            anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com")),
            ProviderUnavailable,
        ),
        (openai.APITimeoutError(request=httpx.Request("POST", "https://api.openai.com")), ProviderUnavailable),
        (TimeoutError(), ProviderUnavailable),
    ],
)
def test_classification(exc, expected):
    error = classify_error(exc, "openai")

    assert type(error) is expected
    assert error.__cause__ is exc
    assert error.original_exc is exc
    assert error.provider == "openai"


@pytest.mark.parametrize(
    "error_type, expected",
    [
        ("overloaded_error", ProviderUnavailable),
        ("api_error", ProviderUnavailable),
        ("rate_limit_error", RateLimited),
        ("invalid_request_error", InvalidRequest),
    ],
)
def test_error_events_inside_a_stream(error_type, expected):
    # the HTTP status of a stream that already started is 200
    exc = anthropic.APIStatusError(
        "Overloaded",
        response=_response(200),
        body={"type": "error", "error": {"type": error_type, "message": "Overloaded"}},
    )

    error = classify_error(exc, "anthropic")

    assert type(error) is expected
    assert error.status_code == 200
    assert error.retryable is (expected is not InvalidRequest)


def test_unknown_exception_becomes_generic_provider_error():
    try:
        raise ValueError("strange")
    except ValueError as exc:
        error = classify_error(exc)

    assert type(error) is ProviderError
    assert "ValueError" in str(error)


def test_provider_errors_pass_through():
    error = RateLimited("already wrapped", provider="anthropic")
    assert classify_error(error) is error


def test_retry_after_ms_header():
    exc = openai.RateLimitError(
        "slow", response=_response(429, {"retry-after-ms": "1500"}), body=None
    )
    assert classify_error(exc).retry_after == 1.5


def test_retryable_flags():
    assert RateLimited("x").retryable
    assert ProviderUnavailable("x").retryable
    assert not InvalidRequest("x").retryable
    assert not AuthFailure("x").retryable
    assert issubclass(RequestTooLarge, InvalidRequest)


def test_details():
    error = SchemaValidationError(
        "bad price", path="items[2].price", expected="number", actual="string"
    )
    assert error.details() == {
        "kind": "validation_error",
        "message": "bad price",
        "path": "items[2].price",
        "expected": "number",
        "actual": "string",
    }
    assert RateLimited("x", retry_after=3.0, status_code=429).details()["retry_after"] == 3.0


def test_exhausted_carries_partial_result():
    partial = GenerationResult(text="partial", exhausted=True)
    error = OrchestrationExhausted(10, partial)

    assert error.iterations == 10
    assert error.partial_result is partial
    assert error.details()["partial_text"] == "partial"


def test_cancelled_is_a_cancellation():
    error = OrchestrationCancelled("stopped")
    assert isinstance(error, asyncio.CancelledError)
    assert isinstance(error, SwitchboardError)
