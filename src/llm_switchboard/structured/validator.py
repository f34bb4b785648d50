"""JSON Schema validation with path-addressed errors."""

from __future__ import annotations

import copy
from typing import Any, Iterable

import jsonschema
from jsonschema.exceptions import SchemaError, ValidationError, best_match

from llm_switchboard.errors import SchemaValidationError, StructuredOutputError

__all__ = ["SchemaValidator", "format_path", "json_type_name"]


def format_path(parts: Iterable[Any]) -> str:
    """Render a JSON location like ``items[2].price``; the root is ``$``."""
    out = ""
    for part in parts:
        if isinstance(part, int):
            out += f"[{part}]"
        elif out:
            out += f".{part}"
        else:
            out = str(part)
    return out or "$"


def json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _relax(schema: Any) -> Any:
    """Drop ``additionalProperties: false`` everywhere."""
    if isinstance(schema, dict):
        return {
            k: _relax(v)
            for k, v in schema.items()
            if not (k == "additionalProperties" and v is False)
        }
    if isinstance(schema, list):
        return [_relax(v) for v in schema]
    return schema


class SchemaValidator:
    """Validate values against JSON Schema using ``jsonschema``.

    Covers types (including ``integer`` and type lists), required fields,
    nested objects and arrays, enums, numeric and length bounds and patterns.
    In non-strict mode undeclared object keys are accepted.
    """

    def validate(self, value: Any, schema: dict[str, Any], strict: bool = True) -> None:
        if not strict:
            schema = _relax(copy.deepcopy(schema))

        validator_cls = jsonschema.validators.validator_for(schema)
        try:
            validator_cls.check_schema(schema)
        except SchemaError as exc:
            raise StructuredOutputError(f"Invalid JSON Schema: {exc.message}") from exc
        error = best_match(validator_cls(schema).iter_errors(value))
        if error is not None:
            raise self._convert(error) from error

    def is_valid(self, value: Any, schema: dict[str, Any], strict: bool = True) -> bool:
        try:
            self.validate(value, schema, strict)
        except SchemaValidationError:
            return False
        return True

    @staticmethod
    def _convert(error: ValidationError) -> SchemaValidationError:
        parts = list(error.absolute_path)
        instance = error.instance
        keyword = error.validator

        if keyword == "type":
            expected: Any = error.validator_value
            actual: Any = json_type_name(instance)
        elif keyword == "required" and isinstance(instance, dict):
            missing = [name for name in error.validator_value if name not in instance]
            if missing:
                parts.append(missing[0])
            expected, actual = "present", "missing"
        elif keyword == "additionalProperties" and isinstance(instance, dict):
            declared = set((error.schema or {}).get("properties", {}))
            extras = sorted(k for k in instance if k not in declared)
            expected, actual = "no additional properties", extras
        elif keyword in ("enum", "const"):
            expected, actual = error.validator_value, instance
        else:
            expected, actual = f"{keyword} {error.validator_value!r}", instance

        path = format_path(parts)
        return SchemaValidationError(
            f"Validation failed at {path}: {error.message}",
            path=path,
            expected=expected,
            actual=actual,
        )
