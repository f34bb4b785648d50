"""Provider-aware JSON Schema rewriting for tool definitions."""

from .capabilities import ProviderCapabilities
from .mapper import ToolNameMapper
from .sanitizer import SchemaSanitizer
from .transformer import SchemaTransformer

__all__ = [
    "ProviderCapabilities",
    "SchemaSanitizer",
    "SchemaTransformer",
    "ToolNameMapper",
]
