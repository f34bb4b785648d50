from .extraction import extract_json
from .processor import (
    StructuredOutputProcessor,
    StructuredOutputSchema,
    json_instruction,
    schema_as_dict,
)
from .validator import SchemaValidator

__all__ = [
    "extract_json",
    "SchemaValidator",
    "StructuredOutputProcessor",
    "StructuredOutputSchema",
    "json_instruction",
    "schema_as_dict",
]
