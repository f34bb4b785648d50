"""Strip JSON Schema constructs a provider would reject."""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional

from llm_switchboard.schema.capabilities import ProviderCapabilities

__all__ = ["SchemaSanitizer", "METADATA_KEYWORDS"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

METADATA_KEYWORDS = frozenset(
    {
        "$schema",
        "$id",
        "$comment",
        "readOnly",
        "writeOnly",
        "deprecated",
        "examples",
        "contentMediaType",
        "contentEncoding",
        "outputSchema",
    }
)

_SCHEMA_LIST_KEYS = ("anyOf", "oneOf", "allOf", "prefixItems")
_SCHEMA_MAP_KEYS = ("properties", "$defs", "definitions", "patternProperties")
_SCHEMA_VALUE_KEYS = ("additionalProperties", "not", "if", "then", "else", "contains")


class SchemaSanitizer:
    """Rewrite a schema so that *capabilities* accepts it.

    The input is never mutated; non-dict schemas are returned unchanged.
    """

    def __init__(
        self,
        capabilities: ProviderCapabilities,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.capabilities = capabilities
        self.logger = logger or logging.getLogger(__name__)

    def sanitize(self, schema: Any) -> Any:
        if not isinstance(schema, dict):
            return schema
        return self._sanitize(copy.deepcopy(schema))

    # -- internals ------------------------------------------------------------
    def _sanitize(self, schema: dict[str, Any]) -> dict[str, Any]:
        caps = self.capabilities

        if not caps.supports_all_of and "allOf" in schema:
            self._flatten_all_of(schema)

        for key in list(schema):
            if key in METADATA_KEYWORDS or key.startswith("x-"):
                del schema[key]

        if not caps.supports_one_of:
            schema.pop("oneOf", None)
        if not caps.supports_any_of:
            schema.pop("anyOf", None)
        if not caps.supports_conditionals:
            for key in ("if", "then", "else"):
                schema.pop(key, None)
        if not caps.supports_not:
            schema.pop("not", None)
        if not caps.supports_additional_properties:
            schema.pop("additionalProperties", None)

        if "const" in schema and not caps.supports_const:
            schema["enum"] = [schema.pop("const")]

        fmt = schema.get("format")
        if (
            fmt is not None
            and caps.allowed_formats is not None
            and fmt not in caps.allowed_formats
        ):
            self.logger.debug("Dropping unsupported format %r", fmt)
            del schema["format"]

        for key in _SCHEMA_MAP_KEYS:
            value = schema.get(key)
            if isinstance(value, dict):
                schema[key] = {
                    name: self._sanitize(sub) if isinstance(sub, dict) else sub
                    for name, sub in value.items()
                }
        for key in _SCHEMA_LIST_KEYS:
            value = schema.get(key)
            if isinstance(value, list):
                schema[key] = [
                    self._sanitize(sub) if isinstance(sub, dict) else sub for sub in value
                ]
        for key in _SCHEMA_VALUE_KEYS:
            value = schema.get(key)
            if isinstance(value, dict):
                schema[key] = self._sanitize(value)
        items = schema.get("items")
        if isinstance(items, dict):
            schema["items"] = self._sanitize(items)
        elif isinstance(items, list):
            schema["items"] = [
                self._sanitize(sub) if isinstance(sub, dict) else sub for sub in items
            ]

        properties = schema.get("properties")
        if isinstance(properties, dict):
            if caps.strict:
                self._make_strict(schema, properties)
            elif caps.requires_explicit_required:
                declared = [r for r in schema.get("required", []) if r in properties]
                schema["required"] = declared
        elif caps.strict and schema.get("type") == "object":
            schema["additionalProperties"] = False

        return schema

    @staticmethod
    def _flatten_all_of(schema: dict[str, Any]) -> None:
        """Merge plain ``allOf`` members into *schema*; conditional members are dropped."""
        members = schema.pop("allOf")
        if not isinstance(members, list):
            return
        for member in members:
            if not isinstance(member, dict) or "if" in member:
                continue
            props = member.get("properties")
            if isinstance(props, dict):
                schema.setdefault("properties", {}).update(props)
            for name in member.get("required", []):
                required = schema.setdefault("required", [])
                if name not in required:
                    required.append(name)
            for key, value in member.items():
                if key not in ("properties", "required"):
                    schema.setdefault(key, value)

    @staticmethod
    def _make_strict(schema: dict[str, Any], properties: dict[str, Any]) -> None:
        """Every property required, optional ones nullable, no extra keys."""
        required = set(schema.get("required", []))
        for name, sub in properties.items():
            if name in required or not isinstance(sub, dict):
                continue
            kind = sub.get("type")
            if isinstance(kind, str):
                if kind != "null":
                    sub["type"] = [kind, "null"]
            elif isinstance(kind, list):
                if "null" not in kind:
                    sub["type"] = [*kind, "null"]
            else:
                properties[name] = {"anyOf": [sub, {"type": "null"}]}
                continue
            enum = sub.get("enum")
            if isinstance(enum, list) and None not in enum:
                sub["enum"] = [*enum, None]
        schema["required"] = list(properties)
        schema["additionalProperties"] = False
