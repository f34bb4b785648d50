import pytest
from pydantic import BaseModel

from llm_switchboard.errors import (
    ExtractionError,
    SchemaValidationError,
    StructuredOutputError,
)
from llm_switchboard.structured import (
    SchemaValidator,
    StructuredOutputProcessor,
    extract_json,
    json_instruction,
    schema_as_dict,
)
from llm_switchboard.structured.validator import format_path


class Answer(BaseModel):
    value: int
    unit: str = "none"


ORDER_SCHEMA = {
    "type": "object",
    "properties": {
        "customer": {"type": "string"},
        "unit": {"type": "string", "enum": ["c", "f"]},
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"price": {"type": "number"}},
                "required": ["price"],
            },
        },
    },
    "required": ["customer"],
    "additionalProperties": False,
}


class TestExtractJson:
    def test_whole_text(self):
        assert extract_json('  {"a": 1}  ') == {"a": 1}
        assert extract_json("[1, 2]") == [1, 2]

    def test_fenced_block(self):
        assert extract_json('```json\n{"a":1}\n```') == {"a": 1}
        assert extract_json('Here you go:\n```JSON\n[true]\n```\nDone.') == [True]

    def test_unlabelled_fence_falls_back_to_scan(self):
        assert extract_json('```\n{"a": 2}\n```') == {"a": 2}

    def test_balanced_scan(self):
        text = 'Sure! See [note] below: {"a": {"b": [1, 2]}, "s": "}"} hope that helps'
        assert extract_json(text) == {"a": {"b": [1, 2]}, "s": "}"}

    def test_no_json(self):
        with pytest.raises(ExtractionError):
            extract_json("no json here")

    def test_empty(self):
        with pytest.raises(ExtractionError, match="empty"):
            extract_json("   ")


class TestSchemaValidator:
    @pytest.fixture
    def validator(self):
        return SchemaValidator()

    def test_valid_value(self, validator):
        value = {"customer": "ada", "items": [{"price": 1.5}, {"price": 2}]}
        validator.validate(value, ORDER_SCHEMA)
        assert validator.is_valid(value, ORDER_SCHEMA)

    def test_nested_path(self, validator):
        value = {
            "customer": "ada",
            "items": [{"price": 1}, {"price": 2}, {"price": "free"}],
        }
        with pytest.raises(SchemaValidationError) as info:
            validator.validate(value, ORDER_SCHEMA)

        assert info.value.path == "items[2].price"
        assert info.value.expected == "number"
        assert info.value.actual == "string"

    def test_missing_required(self, validator):
        with pytest.raises(SchemaValidationError) as info:
            validator.validate({}, ORDER_SCHEMA)

        assert info.value.path == "customer"
        assert info.value.actual == "missing"

    def test_enum(self, validator):
        with pytest.raises(SchemaValidationError) as info:
            validator.validate({"customer": "ada", "unit": "k"}, ORDER_SCHEMA)

        assert info.value.path == "unit"
        assert info.value.expected == ["c", "f"]
        assert info.value.actual == "k"

    def test_integer_type(self, validator):
        schema = {"type": "integer"}
        assert validator.is_valid(3, schema)
        assert not validator.is_valid(3.5, schema)
        assert not validator.is_valid(True, schema)

    def test_additional_properties_only_in_strict_mode(self, validator):
        value = {"customer": "ada", "note": "extra"}
        with pytest.raises(SchemaValidationError) as info:
            validator.validate(value, ORDER_SCHEMA)
        assert info.value.path == "$"
        assert info.value.actual == ["note"]

        validator.validate(value, ORDER_SCHEMA, strict=False)
        assert ORDER_SCHEMA["additionalProperties"] is False

    def test_invalid_schema(self, validator):
        with pytest.raises(StructuredOutputError, match="Invalid JSON Schema"):
            validator.validate(1, {"type": "nope"})


def test_format_path():
    assert format_path([]) == "$"
    assert format_path(["items", 2, "price"]) == "items[2].price"
    assert format_path([0, "a"]) == "[0].a"


class TestStructuredOutputProcessor:
    def test_dict_schema(self):
        processor = StructuredOutputProcessor()
        value = processor.extract_and_validate(
            'Result:\n```json\n{"customer": "ada"}\n```', ORDER_SCHEMA
        )
        assert value == {"customer": "ada"}

    def test_defaults_are_not_filled(self):
        processor = StructuredOutputProcessor()
        schema = {
            "type": "object",
            "properties": {"a": {"type": "number", "default": 0}},
            "required": ["a"],
        }
        with pytest.raises(SchemaValidationError):
            processor.extract_and_validate("{}", schema)

    def test_pydantic_model(self):
        answer = StructuredOutputProcessor().extract_and_validate('{"value": 4}', Answer)

        assert isinstance(answer, Answer)
        assert answer.value == 4

    def test_pydantic_model_rejects_wrong_type(self):
        with pytest.raises(SchemaValidationError) as info:
            StructuredOutputProcessor().extract_and_validate('{"value": "four"}', Answer)
        assert info.value.path == "value"

    def test_non_strict_processor(self):
        processor = StructuredOutputProcessor(strict=False)
        value = processor.extract_and_validate('{"customer": "ada", "x": 1}', ORDER_SCHEMA)
        assert value["x"] == 1


def test_schema_as_dict():
    assert schema_as_dict(ORDER_SCHEMA) is ORDER_SCHEMA
    assert schema_as_dict(Answer)["required"] == ["value"]
    with pytest.raises(StructuredOutputError):
        schema_as_dict(["not", "a", "schema"])


def test_json_instruction_embeds_schema():
    instruction = json_instruction(Answer)
    assert "JSON Schema" in instruction
    assert '"value"' in instruction
