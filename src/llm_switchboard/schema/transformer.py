"""
Turn unified tool definitions into provider-safe ones.

A tool whose parameters are a discriminated union is split into one concrete
tool per branch when the provider cannot express unions. Two union shapes are
recognised at the top level of ``parameters``:

* ``oneOf`` / ``anyOf`` of object branches that each pin the same property to a
  literal (``const`` or a one-element ``enum``);
* ``allOf`` of ``{"if": {"properties": {field: {"const": v}}}, "then": {...}}``.

Each variant is named ``"{original}__{value}"``; the discriminator is removed
from its schema and restored by :class:`ToolNameMapper` when the call returns.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from llm_switchboard.errors import AmbiguousDiscriminatorError, SchemaTransformError
from llm_switchboard.schema.capabilities import ProviderCapabilities
from llm_switchboard.schema.mapper import ToolNameMapper
from llm_switchboard.schema.sanitizer import SchemaSanitizer
from llm_switchboard.types.tool import ToolDefinition, TransformedTool

__all__ = ["SchemaTransformer", "VARIANT_SEPARATOR"]

VARIANT_SEPARATOR = "__"
_UNION_KEYS = ("oneOf", "anyOf")
_MISSING = object()


@dataclass(slots=True)
class _Branch:
    value: Any
    properties: dict[str, Any]
    required: list[str]
    extra: dict[str, Any]


def _literal(prop: Any) -> Any:
    """The single value a property schema pins, or ``_MISSING``."""
    if not isinstance(prop, dict):
        return _MISSING
    if "const" in prop:
        return prop["const"]
    enum = prop.get("enum")
    if isinstance(enum, list) and len(enum) == 1:
        return enum[0]
    return _MISSING


def _value_label(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


class SchemaTransformer:
    """Split and sanitize tool schemas for one provider."""

    def __init__(
        self,
        capabilities: ProviderCapabilities,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.capabilities = capabilities
        self.logger = logger or logging.getLogger(__name__)
        self._sanitizer = SchemaSanitizer(capabilities, logger=self.logger)

    # -- public API -----------------------------------------------------------
    def transform(self, tool: ToolDefinition) -> list[TransformedTool]:
        """Return the provider-safe tools standing in for *tool*."""
        self._check(tool)
        kind = self._union_kind(tool.parameters)
        if kind is None or self._native(kind):
            return [self._passthrough(tool)]

        field_name, base, branches = self._find_union(tool, kind)
        variants = [self._variant(tool, field_name, base, b) for b in branches]
        self.logger.info(
            "Split tool %r into %d variants on %r",
            tool.name,
            len(variants),
            field_name,
        )
        return variants

    def transform_all(
        self, tools: Iterable[ToolDefinition]
    ) -> tuple[list[TransformedTool], ToolNameMapper]:
        """Transform a whole tool set and build the name mapper for it."""
        transformed: list[TransformedTool] = []
        seen: set[str] = set()
        for tool in tools:
            if tool.name in seen:
                raise SchemaTransformError(
                    f"Duplicate tool name {tool.name!r}", tool_name=tool.name
                )
            seen.add(tool.name)
            transformed.extend(self.transform(tool))

        names: set[str] = set()
        for t in transformed:
            if t.name in names:
                raise SchemaTransformError(
                    f"Variant name {t.name!r} collides with another tool",
                    tool_name=t.original_name,
                )
            names.add(t.name)
        return transformed, ToolNameMapper(transformed)

    # -- validation -----------------------------------------------------------
    @staticmethod
    def _check(tool: ToolDefinition) -> None:
        if not tool.description or not tool.description.strip():
            raise SchemaTransformError(
                f"Tool {tool.name!r} has an empty description", tool_name=tool.name
            )
        if tool.parameters is None:
            raise SchemaTransformError(
                f"Tool {tool.name!r} is missing its parameters schema",
                tool_name=tool.name,
            )
        if not isinstance(tool.parameters, dict):
            raise SchemaTransformError(
                f"Tool {tool.name!r} parameters must be a JSON object schema",
                tool_name=tool.name,
            )
        kind = tool.parameters.get("type", "object")
        if kind != "object":
            raise SchemaTransformError(
                f"Tool {tool.name!r} parameters must have type 'object', got {kind!r}",
                tool_name=tool.name,
            )

    def _passthrough(self, tool: ToolDefinition) -> TransformedTool:
        definition = ToolDefinition(
            name=tool.name,
            description=tool.description,
            parameters=self._sanitizer.sanitize(tool.parameters),
        )
        return TransformedTool(definition=definition, original_name=tool.name)

    # -- union detection ------------------------------------------------------
    @staticmethod
    def _union_kind(schema: dict[str, Any]) -> Optional[str]:
        for key in _UNION_KEYS:
            members = schema.get(key)
            if isinstance(members, list) and members:
                return key
        members = schema.get("allOf")
        if isinstance(members, list) and any(
            isinstance(m, dict) and "if" in m for m in members
        ):
            return "allOf"
        return None

    def _native(self, kind: str) -> bool:
        caps = self.capabilities
        if not caps.supports_discriminated_unions:
            return False
        if kind == "oneOf":
            return caps.supports_one_of
        if kind == "anyOf":
            return caps.supports_any_of
        return caps.supports_all_of and caps.supports_conditionals

    def _find_union(
        self, tool: ToolDefinition, kind: str
    ) -> tuple[str, dict[str, Any], list[_Branch]]:
        members = tool.parameters[kind]
        if kind == "allOf":
            return self._union_from_conditionals(tool, members)
        return self._union_from_branches(tool, kind, members)

    def _base(self, schema: dict[str, Any], drop: Sequence[str]) -> dict[str, Any]:
        return {k: copy.deepcopy(v) for k, v in schema.items() if k not in drop}

    def _union_from_branches(
        self, tool: ToolDefinition, key: str, members: list[Any]
    ) -> tuple[str, dict[str, Any], list[_Branch]]:
        per_branch: list[dict[str, Any]] = []
        for index, member in enumerate(members):
            props = member.get("properties") if isinstance(member, dict) else None
            if not isinstance(props, dict):
                raise AmbiguousDiscriminatorError(
                    f"Tool {tool.name!r}: {key} branch {index} is not an object schema",
                    tool_name=tool.name,
                )
            literals = {
                name: value
                for name, value in ((n, _literal(p)) for n, p in props.items())
                if value is not _MISSING
            }
            if not literals:
                raise AmbiguousDiscriminatorError(
                    f"Tool {tool.name!r}: {key} branch {index} has no literal "
                    "discriminator property",
                    tool_name=tool.name,
                )
            per_branch.append(literals)

        field_name = self._pick_field(tool, per_branch)
        branches = [
            _Branch(
                value=literals[field_name],
                properties=copy.deepcopy(member.get("properties", {})),
                required=list(member.get("required", [])),
                extra={
                    k: copy.deepcopy(v)
                    for k, v in member.items()
                    if k not in ("properties", "required", "type", "title")
                },
            )
            for member, literals in zip(members, per_branch)
        ]
        self._check_distinct(tool, field_name, branches)
        return field_name, self._base(tool.parameters, (key,)), branches

    def _union_from_conditionals(
        self, tool: ToolDefinition, members: list[Any]
    ) -> tuple[str, dict[str, Any], list[_Branch]]:
        base = self._base(tool.parameters, ("allOf",))
        per_branch: list[dict[str, Any]] = []
        thens: list[dict[str, Any]] = []
        for index, member in enumerate(members):
            if not isinstance(member, dict):
                continue
            if "if" not in member:
                # unconditional constraint shared by every variant
                base.setdefault("properties", {}).update(
                    copy.deepcopy(member.get("properties", {}))
                )
                for name in member.get("required", []):
                    if name not in base.setdefault("required", []):
                        base["required"].append(name)
                continue
            cond = member.get("if") or {}
            cond_props = cond.get("properties") if isinstance(cond, dict) else None
            literals = {
                name: value
                for name, value in (
                    (n, _literal(p)) for n, p in (cond_props or {}).items()
                )
                if value is not _MISSING
            }
            if not literals:
                raise AmbiguousDiscriminatorError(
                    f"Tool {tool.name!r}: allOf member {index} has an 'if' without "
                    "a literal discriminator",
                    tool_name=tool.name,
                )
            per_branch.append(literals)
            then = member.get("then")
            thens.append(then if isinstance(then, dict) else {})

        field_name = self._pick_field(tool, per_branch)
        branches = [
            _Branch(
                value=literals[field_name],
                properties=copy.deepcopy(then.get("properties", {})),
                required=list(then.get("required", [])),
                extra={},
            )
            for then, literals in zip(thens, per_branch)
        ]
        self._check_distinct(tool, field_name, branches)
        return field_name, base, branches

    @staticmethod
    def _pick_field(tool: ToolDefinition, per_branch: list[dict[str, Any]]) -> str:
        common = set(per_branch[0])
        for literals in per_branch[1:]:
            common &= set(literals)
        if not common:
            raise AmbiguousDiscriminatorError(
                f"Tool {tool.name!r}: union branches are keyed on different fields",
                tool_name=tool.name,
            )
        if len(common) == 1:
            return next(iter(common))

        distinct = [
            name
            for name in sorted(common)
            if len({json.dumps(b[name], sort_keys=True) for b in per_branch})
            == len(per_branch)
        ]
        if len(distinct) != 1:
            raise AmbiguousDiscriminatorError(
                f"Tool {tool.name!r}: cannot choose a discriminator among "
                f"{sorted(common)}",
                tool_name=tool.name,
            )
        return distinct[0]

    @staticmethod
    def _check_distinct(
        tool: ToolDefinition, field_name: str, branches: list[_Branch]
    ) -> None:
        seen: set[str] = set()
        for branch in branches:
            label = _value_label(branch.value)
            if label in seen:
                raise AmbiguousDiscriminatorError(
                    f"Tool {tool.name!r}: discriminator {field_name!r} value "
                    f"{branch.value!r} is used by more than one branch",
                    tool_name=tool.name,
                )
            seen.add(label)

    # -- variant construction -------------------------------------------------
    def _variant(
        self,
        tool: ToolDefinition,
        field_name: str,
        base: dict[str, Any],
        branch: _Branch,
    ) -> TransformedTool:
        schema = copy.deepcopy(base)
        schema.update(branch.extra)
        schema["type"] = "object"

        properties = dict(schema.get("properties") or {})
        properties.update(branch.properties)
        properties.pop(field_name, None)
        schema["properties"] = properties

        required: list[str] = []
        for name in [*schema.get("required", []), *branch.required]:
            if name != field_name and name in properties and name not in required:
                required.append(name)
        schema["required"] = required

        label = _value_label(branch.value)
        definition = ToolDefinition(
            name=f"{tool.name}{VARIANT_SEPARATOR}{label}",
            description=f"{tool.description} ({field_name}: {label})",
            parameters=self._sanitizer.sanitize(schema),
        )
        return TransformedTool(
            definition=definition,
            original_name=tool.name,
            discriminator_field=field_name,
            discriminator_value=branch.value,
        )
