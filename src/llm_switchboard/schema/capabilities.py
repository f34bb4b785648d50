from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Self

from llm_switchboard.provider import Provider

__all__ = ["ProviderCapabilities"]


@dataclass(frozen=True, slots=True)
class ProviderCapabilities:
    """JSON Schema features a provider accepts in tool and output schemas."""

    supports_discriminated_unions: bool = True
    supports_all_of: bool = True
    supports_one_of: bool = True
    supports_any_of: bool = True
    supports_conditionals: bool = True
    supports_not: bool = True
    supports_additional_properties: bool = True
    supports_const: bool = True
    allowed_formats: Optional[frozenset[str]] = None
    requires_explicit_required: bool = False
    strict: bool = False

    @classmethod
    def anthropic(cls) -> Self:
        return cls()

    @classmethod
    def openai(cls, strict: bool = False) -> Self:
        # Structured Outputs strict mode rejects allOf/oneOf; anyOf is fine.
        return cls(
            supports_discriminated_unions=not strict,
            supports_all_of=not strict,
            supports_one_of=not strict,
            supports_conditionals=False,
            supports_not=False,
            requires_explicit_required=strict,
            strict=strict,
        )

    @classmethod
    def gemini(cls) -> Self:
        return cls(
            supports_discriminated_unions=False,
            supports_all_of=False,
            supports_one_of=False,
            supports_any_of=True,
            supports_conditionals=False,
            supports_not=False,
            supports_additional_properties=False,
            supports_const=False,
            allowed_formats=frozenset({"enum", "date-time"}),
            requires_explicit_required=True,
        )

    @classmethod
    def for_provider(cls, provider: Provider) -> Self:
        factories = {
            Provider.ANTHROPIC: cls.anthropic,
            Provider.OPENAI: cls.openai,
            Provider.GEMINI: cls.gemini,
        }
        try:
            return factories[Provider(provider)]()
        except (KeyError, ValueError) as exc:
            raise ValueError(f"Unsupported provider: {provider}") from exc
