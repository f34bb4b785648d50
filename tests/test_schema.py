import pytest

from llm_switchboard.errors import AmbiguousDiscriminatorError, SchemaTransformError
from llm_switchboard.provider import Provider
from llm_switchboard.schema import (
    ProviderCapabilities,
    SchemaSanitizer,
    SchemaTransformer,
    ToolNameMapper,
)
from llm_switchboard.types import ToolDefinition


def _shape_tool() -> ToolDefinition:
    return ToolDefinition(
        name="draw",
        description="Draw a shape",
        parameters={
            "type": "object",
            "properties": {"color": {"type": "string"}},
            "required": ["color"],
            "oneOf": [
                {
                    "properties": {
                        "kind": {"const": "circle"},
                        "radius": {"type": "number"},
                    },
                    "required": ["kind", "radius"],
                },
                {
                    "properties": {
                        "kind": {"enum": ["square"]},
                        "side": {"type": "number"},
                    },
                    "required": ["kind", "side"],
                },
                {
                    "properties": {
                        "kind": {"const": "line"},
                        "length": {"type": "number"},
                    },
                    "required": ["kind"],
                },
            ],
        },
    )


class TestCapabilities:
    def test_for_provider(self):
        assert ProviderCapabilities.for_provider(Provider.ANTHROPIC).supports_one_of
        assert not ProviderCapabilities.for_provider("gemini").supports_discriminated_unions

    def test_openai_strict(self):
        caps = ProviderCapabilities.openai(strict=True)
        assert caps.strict and caps.requires_explicit_required
        assert not caps.supports_discriminated_unions
        assert ProviderCapabilities.openai().supports_discriminated_unions

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            ProviderCapabilities.for_provider("mistral")


class TestSanitizer:
    def test_strips_metadata_and_extensions(self):
        schema = {
            "$schema": "https://json-schema.org/draft/2020-12/schema",
            "type": "object",
            "x-internal": True,
            "properties": {
                "name": {"type": "string", "examples": ["bob"], "deprecated": False}
            },
        }
        result = SchemaSanitizer(ProviderCapabilities.anthropic()).sanitize(schema)

        assert result == {"type": "object", "properties": {"name": {"type": "string"}}}
        assert "$schema" in schema  # input is not mutated

    def test_gemini_drops_unsupported_format_and_additional_properties(self):
        schema = {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "email": {"type": "string", "format": "email"},
                "when": {"type": "string", "format": "date-time"},
            },
        }
        result = SchemaSanitizer(ProviderCapabilities.gemini()).sanitize(schema)

        assert "additionalProperties" not in result
        assert "format" not in result["properties"]["email"]
        assert result["properties"]["when"]["format"] == "date-time"
        assert result["required"] == []

    def test_gemini_const_becomes_enum(self):
        schema = {"type": "object", "properties": {"mode": {"const": "fast"}}}
        result = SchemaSanitizer(ProviderCapabilities.gemini()).sanitize(schema)
        assert result["properties"]["mode"] == {"enum": ["fast"]}

    def test_required_filtered_to_declared_properties(self):
        schema = {
            "type": "object",
            "properties": {"a": {"type": "string"}},
            "required": ["a", "ghost"],
        }
        result = SchemaSanitizer(ProviderCapabilities.gemini()).sanitize(schema)
        assert result["required"] == ["a"]

    def test_recurses_into_items_and_defs(self):
        schema = {
            "type": "object",
            "properties": {
                "tags": {"type": "array", "items": {"type": "string", "format": "uri"}}
            },
            "$defs": {"Inner": {"type": "object", "not": {"required": ["x"]}}},
        }
        result = SchemaSanitizer(ProviderCapabilities.gemini()).sanitize(schema)

        assert result["properties"]["tags"]["items"] == {"type": "string"}
        assert "not" not in result["$defs"]["Inner"]

    def test_all_of_flattened_when_unsupported(self):
        schema = {
            "type": "object",
            "allOf": [
                {"properties": {"a": {"type": "string"}}, "required": ["a"]},
                {"properties": {"b": {"type": "integer"}}},
            ],
        }
        result = SchemaSanitizer(ProviderCapabilities.gemini()).sanitize(schema)

        assert "allOf" not in result
        assert set(result["properties"]) == {"a", "b"}
        assert result["required"] == ["a"]

    def test_openai_strict_makes_optional_fields_nullable(self):
        schema = {
            "type": "object",
            "properties": {
                "city": {"type": "string"},
                "unit": {"type": "string", "enum": ["c", "f"]},
                "extra": {"$ref": "#/$defs/Extra"},
            },
            "required": ["city"],
        }
        result = SchemaSanitizer(ProviderCapabilities.openai(strict=True)).sanitize(schema)

        assert result["required"] == ["city", "unit", "extra"]
        assert result["additionalProperties"] is False
        assert result["properties"]["city"] == {"type": "string"}
        assert result["properties"]["unit"]["type"] == ["string", "null"]
        assert result["properties"]["unit"]["enum"] == ["c", "f", None]
        assert result["properties"]["extra"] == {
            "anyOf": [{"$ref": "#/$defs/Extra"}, {"type": "null"}]
        }

    def test_non_dict_returned_unchanged(self):
        sanitizer = SchemaSanitizer(ProviderCapabilities.gemini())
        assert sanitizer.sanitize(True) is True


class TestTransformer:
    def test_passthrough_without_union(self, calculator_schema):
        tool = ToolDefinition("add", "Add two numbers", calculator_schema)
        [result] = SchemaTransformer(ProviderCapabilities.gemini()).transform(tool)

        assert result.name == "add"
        assert result.original_name == "add"
        assert not result.is_variant
        assert result.definition.parameters["required"] == ["a", "b"]

    def test_native_union_support_keeps_tool(self):
        transformed = SchemaTransformer(ProviderCapabilities.anthropic()).transform(
            _shape_tool()
        )
        assert len(transformed) == 1
        assert "oneOf" in transformed[0].definition.parameters

    def test_split_into_one_tool_per_branch(self):
        transformed = SchemaTransformer(ProviderCapabilities.gemini()).transform(
            _shape_tool()
        )

        assert [t.name for t in transformed] == ["draw__circle", "draw__square", "draw__line"]
        circle = transformed[0]
        assert circle.original_name == "draw"
        assert circle.discriminator_field == "kind"
        assert circle.discriminator_value == "circle"
        assert circle.definition.description == "Draw a shape (kind: circle)"

        params = circle.definition.parameters
        assert set(params["properties"]) == {"color", "radius"}
        assert params["required"] == ["color", "radius"]
        assert "oneOf" not in params

    def test_conditional_union(self):
        tool = ToolDefinition(
            name="notify",
            description="Send a notification",
            parameters={
                "type": "object",
                "properties": {"channel": {"type": "string"}, "text": {"type": "string"}},
                "required": ["channel", "text"],
                "allOf": [
                    {
                        "if": {"properties": {"channel": {"const": "email"}}},
                        "then": {
                            "properties": {"address": {"type": "string"}},
                            "required": ["address"],
                        },
                    },
                    {
                        "if": {"properties": {"channel": {"const": "sms"}}},
                        "then": {
                            "properties": {"phone": {"type": "string"}},
                            "required": ["phone"],
                        },
                    },
                ],
            },
        )
        email, sms = SchemaTransformer(ProviderCapabilities.openai()).transform(tool)

        assert email.name == "notify__email"
        assert email.definition.parameters["required"] == ["text", "address"]
        assert set(sms.definition.parameters["properties"]) == {"text", "phone"}

    def test_non_string_discriminator_label(self):
        tool = ToolDefinition(
            name="paginate",
            description="Fetch a page",
            parameters={
                "type": "object",
                "anyOf": [
                    {"properties": {"version": {"const": 1}, "page": {"type": "integer"}}},
                    {"properties": {"version": {"const": 2}, "cursor": {"type": "string"}}},
                ],
            },
        )
        names = [t.name for t in SchemaTransformer(ProviderCapabilities.gemini()).transform(tool)]
        assert names == ["paginate__1", "paginate__2"]

    def test_duplicate_discriminator_values_rejected(self):
        tool = ToolDefinition(
            name="draw",
            description="Draw",
            parameters={
                "type": "object",
                "oneOf": [
                    {"properties": {"kind": {"const": "circle"}}},
                    {"properties": {"kind": {"const": "circle"}}},
                ],
            },
        )
        with pytest.raises(AmbiguousDiscriminatorError):
            SchemaTransformer(ProviderCapabilities.gemini()).transform(tool)

    def test_branches_keyed_on_different_fields_rejected(self):
        tool = ToolDefinition(
            name="draw",
            description="Draw",
            parameters={
                "type": "object",
                "oneOf": [
                    {"properties": {"kind": {"const": "circle"}}},
                    {"properties": {"shape": {"const": "square"}}},
                ],
            },
        )
        with pytest.raises(AmbiguousDiscriminatorError, match="different fields"):
            SchemaTransformer(ProviderCapabilities.gemini()).transform(tool)

    def test_branch_without_literal_rejected(self):
        tool = ToolDefinition(
            name="draw",
            description="Draw",
            parameters={
                "type": "object",
                "oneOf": [
                    {"properties": {"kind": {"const": "circle"}}},
                    {"properties": {"kind": {"type": "string"}}},
                ],
            },
        )
        with pytest.raises(AmbiguousDiscriminatorError):
            SchemaTransformer(ProviderCapabilities.gemini()).transform(tool)

    def test_empty_description_rejected(self):
        with pytest.raises(SchemaTransformError, match="empty"):
            SchemaTransformer(ProviderCapabilities.anthropic()).transform(
                ToolDefinition("noop", "  ", {"type": "object"})
            )

    def test_missing_parameters_rejected(self):
        with pytest.raises(SchemaTransformError, match="missing"):
            SchemaTransformer(ProviderCapabilities.anthropic()).transform(
                ToolDefinition("noop", "Does nothing", None)  # type: ignore[arg-type]
            )

    def test_non_object_parameters_rejected(self):
        with pytest.raises(SchemaTransformError):
            SchemaTransformer(ProviderCapabilities.anthropic()).transform(
                ToolDefinition("noop", "Does nothing", {"type": "array"})
            )

    def test_transform_all_rejects_duplicates(self, calculator_schema):
        tool = ToolDefinition("add", "Add", calculator_schema)
        with pytest.raises(SchemaTransformError, match="Duplicate"):
            SchemaTransformer(ProviderCapabilities.anthropic()).transform_all([tool, tool])

    def test_transform_all_rejects_variant_collision(self, calculator_schema):
        clash = ToolDefinition("draw__circle", "Collides with a variant", calculator_schema)
        with pytest.raises(SchemaTransformError, match="collides"):
            SchemaTransformer(ProviderCapabilities.gemini()).transform_all(
                [_shape_tool(), clash]
            )


class TestToolNameMapper:
    def _mapper(self) -> ToolNameMapper:
        _, mapper = SchemaTransformer(ProviderCapabilities.gemini()).transform_all(
            [_shape_tool()]
        )
        return mapper

    def test_resolve_reinjects_discriminator(self):
        name, arguments = self._mapper().resolve("draw__square", {"color": "red", "side": 2})

        assert name == "draw"
        assert arguments == {"color": "red", "side": 2, "kind": "square"}

    def test_resolved_variant_matches_native_call(self):
        native = {"color": "blue", "kind": "circle", "radius": 1.5}
        split_args = {k: v for k, v in native.items() if k != "kind"}
        assert self._mapper().resolve("draw__circle", split_args) == ("draw", native)

    def test_unknown_name_passes_through(self):
        arguments = {"x": 1}
        assert self._mapper().resolve("other", arguments) == ("other", arguments)

    def test_non_dict_arguments_unchanged(self):
        assert self._mapper().resolve("draw__line", "oops") == ("draw", "oops")

    def test_introspection(self):
        mapper = self._mapper()
        assert len(mapper) == 3
        assert "draw__line" in mapper
        assert mapper.is_variant("draw__line")
        assert not mapper.is_variant("draw")
        assert mapper.variants_of("draw") == ["draw__circle", "draw__square", "draw__line"]
