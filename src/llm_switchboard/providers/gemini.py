from __future__ import annotations

import logging
from typing import Optional

from llm_switchboard.adapters.gemini import GeminiRequestAdapter
from llm_switchboard.context import ContextPolicy
from llm_switchboard.provider import Provider
from llm_switchboard.schema.capabilities import ProviderCapabilities

from .openai import OpenAILLM

_DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class GeminiLLM(OpenAILLM):
    """
    Gemini LLM implementation via the OpenAI-compatible endpoint.

    ``from_client`` expects an ``AsyncOpenAI`` client already configured with
    Gemini's base URL.
    """

    provider = Provider.GEMINI

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: str = _DEFAULT_GEMINI_BASE_URL,
        context: Optional[ContextPolicy] = None,
    ) -> None:
        super().__init__(
            model,
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            logger=logger,
            name=name,
            base_url=base_url,
            context=context,
        )

    def _make_adapter(self) -> GeminiRequestAdapter:
        return GeminiRequestAdapter()

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities.gemini()
