# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import pytest

from coding_runtime.llm.schema_adapter import (
    convert_to_anthropic,
    convert_to_gemini,
    convert_to_openai,
    json_schema_to_genai,
)


class TestProviderShapes:

    def test_openai(self, echo_tool):
        [converted] = convert_to_openai([echo_tool])
        assert converted["type"] == "function"
        assert converted["function"]["name"] == "echo"
        assert converted["function"]["parameters"]["required"] == ["text"]

    def test_anthropic_fills_object_defaults(self):
        [converted] = convert_to_anthropic(
            [{"name": "noop", "description": "nothing", "parameters": {}}]
        )
        assert converted["input_schema"] == {"type": "object", "properties": {}}

    def test_missing_schema(self):
        with pytest.raises(ValueError):
            convert_to_openai([{"name": "broken"}])

    def test_conversion_does_not_mutate_tool_schema(self, echo_tool):
        before = echo_tool.get_function_call_schema()
        convert_to_gemini([echo_tool])
        assert echo_tool.get_function_call_schema() == before

    def test_gemini(self, echo_tool):
        [converted] = convert_to_gemini([echo_tool])
        assert converted["name"] == "echo"
        assert converted["parameters"]["type"] == "OBJECT"
        assert converted["parameters"]["properties"]["text"]["type"] == "STRING"


class TestJsonSchemaToGenai:

    def test_refs_are_inlined(self):
        schema = {
            "type": "object",
            "properties": {"item": {"$ref": "#/$defs/Item"}},
            "$defs": {"Item": {"type": "object", "properties": {"n": {"type": "integer"}}}},
        }
        converted = json_schema_to_genai(schema)
        assert converted["properties"]["item"]["properties"]["n"]["type"] == "INTEGER"

    def test_missing_ref(self):
        with pytest.raises(ValueError):
            json_schema_to_genai({"type": "object", "properties": {"x": {"$ref": "#/$defs/Nope"}}})

    def test_optional_becomes_nullable(self):
        schema = {
            "type": "object",
            "properties": {
                "limit": {"anyOf": [{"type": "integer"}, {"type": "null"}], "default": None},
            },
        }
        limit = json_schema_to_genai(schema)["properties"]["limit"]
        assert limit["type"] == "INTEGER"
        assert limit["nullable"] is True
        assert limit["description"] == "(default: None)"

    def test_empty_object_gets_placeholder(self):
        converted = json_schema_to_genai({"type": "object", "properties": {}})
        assert list(converted["properties"]) == ["_dummy"]

    def test_complex_union_rejected(self):
        schema = {"anyOf": [{"type": "integer"}, {"type": "string"}]}
        with pytest.raises(ValueError):
            json_schema_to_genai(schema)

    def test_array_needs_items(self):
        with pytest.raises(ValueError):
            json_schema_to_genai({"type": "array"})

    def test_property_ordering_and_enum(self):
        schema = {
            "type": "object",
            "properties": {
                "mode": {"type": "string", "enum": ["a", "b"]},
                "count": {"type": "integer", "description": "How many", "default": 3},
            },
            "required": ["mode"],
        }
        converted = json_schema_to_genai(schema)
        assert converted["property_ordering"] == ["mode", "count"]
        assert converted["required"] == ["mode"]
        assert converted["properties"]["mode"]["enum"] == ["a", "b"]
        assert converted["properties"]["count"]["description"] == "How many (default: 3)"
