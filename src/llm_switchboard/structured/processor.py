from __future__ import annotations

import json
import logging
from typing import Any, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from llm_switchboard.errors import SchemaValidationError, StructuredOutputError
from llm_switchboard.structured.extraction import extract_json
from llm_switchboard.structured.validator import SchemaValidator, format_path

__all__ = [
    "StructuredOutputProcessor",
    "StructuredOutputSchema",
    "schema_as_dict",
    "json_instruction",
]

StructuredOutputSchema = Union[dict[str, Any], Type[BaseModel]]


def _is_model(schema: Any) -> bool:
    return isinstance(schema, type) and issubclass(schema, BaseModel)


def schema_as_dict(schema: StructuredOutputSchema) -> dict[str, Any]:
    """The JSON Schema for *schema*, which may be a pydantic model class."""
    if _is_model(schema):
        return schema.model_json_schema()
    if isinstance(schema, dict):
        return schema
    raise StructuredOutputError(
        f"Output schema must be a dict or a pydantic model class, got {type(schema).__name__}"
    )


def json_instruction(schema: StructuredOutputSchema) -> str:
    """System-prompt text asking for a bare JSON answer."""
    return (
        "Respond only with a JSON value that matches this JSON Schema. "
        "Do not add commentary.\n"
        f"{json.dumps(schema_as_dict(schema), indent=2)}"
    )


class StructuredOutputProcessor:
    """Extract JSON from model text and validate it.

    Never fills in defaults: a missing required field is a validation error.
    """

    def __init__(
        self,
        validator: Optional[SchemaValidator] = None,
        *,
        strict: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.validator = validator or SchemaValidator()
        self.strict = strict
        self.logger = logger or logging.getLogger(__name__)

    def extract_and_validate(self, raw_text: str, schema: StructuredOutputSchema) -> Any:
        """Return the validated value, or a model instance for pydantic schemas."""
        value = extract_json(raw_text)
        self.validator.validate(value, schema_as_dict(schema), self.strict)
        if not _is_model(schema):
            return value

        try:
            return schema.model_validate(value)
        except ValidationError as exc:
            first = exc.errors()[0]
            path = format_path(first.get("loc", ()))
            self.logger.debug("pydantic rejected a value accepted by the JSON Schema: %s", exc)
            raise SchemaValidationError(
                f"Validation failed at {path}: {first.get('msg')}",
                path=path,
                expected=first.get("type"),
                actual=first.get("input"),
            ) from exc
