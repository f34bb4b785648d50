from __future__ import annotations

import logging
from typing import Optional, Type

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from llm_switchboard.config import ProviderConfig
from llm_switchboard.providers.anthropic import AnthropicLLM
from llm_switchboard.providers.base import BaseAsyncLLM
from llm_switchboard.providers.gemini import GeminiLLM
from llm_switchboard.providers.openai import OpenAILLM

from .provider import Provider, get_api_key

__all__ = ["create_llm"]

# map Provider enum to its LLM implementation
_LLM_REGISTRY: dict[Provider, Type[BaseAsyncLLM]] = {
    Provider.OPENAI: OpenAILLM,
    Provider.ANTHROPIC: AnthropicLLM,
    Provider.GEMINI: GeminiLLM,
}


def create_llm(
    provider: Provider,
    model: str,
    *,
    api_key: str | None = None,
    client: AsyncOpenAI | AsyncAnthropic | None = None,
    logger: logging.Logger | None = None,
    config: Optional[ProviderConfig] = None,
    **provider_kwargs: object,
) -> BaseAsyncLLM:
    """
    Factory for creating any supported LLM.

    Args:
        provider: Which provider to use (OPENAI, ANTHROPIC, GEMINI).
        model: Model identifier (e.g. "claude-sonnet-4-5").
        api_key: Overrides automatic lookup; if omitted, taken from ``config``
            and then from the environment.
        client: Optional pre-configured client instance to use.
            - For Provider.OPENAI: an AsyncOpenAI instance
            - For Provider.ANTHROPIC: an AsyncAnthropic instance
            - For Provider.GEMINI: an AsyncOpenAI instance pointed at Gemini's
              OpenAI-compatible endpoint
            If not provided, the relevant client is built from ``config``.
        logger: Optional custom logger.
        config: Connection settings (base URL, timeout, retries, context policy).
        **provider_kwargs: Any extra args to pass through (e.g. ``strict``).
    """
    try:
        llm_cls = _LLM_REGISTRY[Provider(provider)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unsupported provider: {provider}") from exc

    config = config or ProviderConfig()

    if client is not None:  # use caller‑supplied client verbatim
        return llm_cls.from_client(  # type: ignore[attr-defined]
            model, client, logger=logger, context=config.context, **provider_kwargs
        )

    key = api_key or config.api_key or get_api_key(provider)
    kwargs = {**config.client_kwargs(), **provider_kwargs}
    return llm_cls(model, api_key=key, logger=logger, **kwargs)  # type: ignore[call-arg]
