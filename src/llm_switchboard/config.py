from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Self

from llm_switchboard.context import ContextPolicy
from llm_switchboard.provider import Provider, get_api_key

__all__ = ["ProviderConfig"]


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Connection settings for one provider, passed explicitly at construction."""

    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: float = 60.0
    max_retries: int = 2
    context: ContextPolicy = field(default_factory=ContextPolicy)

    @classmethod
    def from_env(cls, provider: Provider, **overrides: object) -> Self:
        """Build a config whose key comes from the provider's environment variable."""
        return cls(api_key=get_api_key(provider), **overrides)  # type: ignore[arg-type]

    def client_kwargs(self) -> dict[str, object]:
        """Keyword arguments for the provider LLM constructors."""
        kwargs: dict[str, object] = {
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "context": self.context,
        }
        if self.base_url is not None:
            kwargs["base_url"] = self.base_url
        return kwargs
