from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Optional, Self

from anthropic import AsyncAnthropic
from anthropic.types import Message

from llm_switchboard.adapters.anthropic import AnthropicRequestAdapter
from llm_switchboard.context import ContextPolicy
from llm_switchboard.provider import Provider
from llm_switchboard.providers.base import BaseAsyncLLM


class AnthropicLLM(BaseAsyncLLM):
    """
    Anthropic LLM implementation (async‑only).

    Use ``AnthropicLLM.from_client`` when you already have an ``AsyncAnthropic`` instance.
    """

    provider = Provider.ANTHROPIC

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
    ) -> None:
        super().__init__(model=model, logger=logger, name=name, context=context)
        self.api_key = api_key
        self._client = AsyncAnthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = AnthropicRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncAnthropic,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        context: Optional[ContextPolicy] = None,
    ) -> Self:
        """
        Wrap an existing ``AsyncAnthropic`` client.
        """
        if not isinstance(client, AsyncAnthropic):
            raise TypeError(
                f"AnthropicLLM.from_client expects AsyncAnthropic; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(self, model=model, logger=logger, name=name, context=context)
        self.api_key = client.api_key or ""
        self._client = client
        self._adapter = AnthropicRequestAdapter()
        return self

    @property
    def adapter(self) -> AnthropicRequestAdapter:
        """Request adapter for Anthropic provider."""
        return self._adapter

    async def _create(self, args: dict[str, Any]) -> Message:
        return await self._client.messages.create(**args)

    async def _stream(self, args: dict[str, Any]) -> AsyncIterator[Any]:
        """Handle Anthropic-specific streaming with context manager."""
        async with self._client.messages.stream(**args) as stream:
            async for event in stream:
                yield event
