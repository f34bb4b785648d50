from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Optional, Self

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion, ChatCompletionChunk

from llm_switchboard.adapters.openai import OpenAIRequestAdapter
from llm_switchboard.context import ContextPolicy
from llm_switchboard.provider import Provider
from llm_switchboard.providers.base import BaseAsyncLLM
from llm_switchboard.schema.capabilities import ProviderCapabilities


class OpenAILLM(BaseAsyncLLM):
    """
    OpenAI LLM implementation (async‑only).

    Use ``OpenAILLM.from_client`` when you already have an ``AsyncOpenAI`` instance.
    With ``strict=True`` tools and output schemas are sent in Structured
    Outputs strict mode and schemas are rewritten to satisfy it.
    """

    provider = Provider.OPENAI

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
        context: Optional[ContextPolicy] = None,
        strict: bool = False,
    ) -> None:
        super().__init__(model=model, logger=logger, name=name, context=context)
        self.api_key = api_key
        self.strict = strict
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = self._make_adapter()

    # Alternate constructor
    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncOpenAI,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        context: Optional[ContextPolicy] = None,
        strict: bool = False,
    ) -> Self:
        """
        Build around an already‑configured ``AsyncOpenAI`` client.
        """
        if not isinstance(client, AsyncOpenAI):
            raise TypeError(
                f"{cls.__name__}.from_client expects AsyncOpenAI; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(self, model=model, logger=logger, name=name, context=context)
        self.api_key = client.api_key
        self.strict = strict
        self._client = client
        self._adapter = self._make_adapter()
        return self

    def _make_adapter(self) -> OpenAIRequestAdapter:
        return OpenAIRequestAdapter(strict=self.strict)

    @property
    def adapter(self) -> OpenAIRequestAdapter:
        """Request adapter for OpenAI provider."""
        return self._adapter

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities.openai(strict=self.strict)

    async def _create(self, args: dict[str, Any]) -> ChatCompletion:
        return await self._client.chat.completions.create(**args)

    async def _stream(self, args: dict[str, Any]) -> AsyncIterator[ChatCompletionChunk]:
        stream = await self._client.chat.completions.create(
            **args,
            stream=True,
            stream_options={"include_usage": True},
        )
        async with stream:
            async for chunk in stream:
                yield chunk
