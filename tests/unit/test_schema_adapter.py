"""Unit tests for the tool descriptor adapter.

Covers field restriction, malformed-shape handling and the model-facing
function descriptor built from an MCP tool.
"""

import pytest
from mcp import types
from pydantic import ValidationError

from core.tools.schema_adapter import (
    ToolDescriptor,
    adapt_properties,
    descriptor_from_tool,
    to_function_specs,
)


class TestAdaptProperties:
    """adapt_properties() keeps every key and only the four known fields."""

    def test_empty_input_yields_empty_mapping(self):
        assert adapt_properties({}) == {}
        assert adapt_properties(None) == {}

    def test_extra_fields_are_dropped(self):
        raw = {
            "city": {
                "type": "string",
                "description": "City name",
                "minLength": 1,
                "default": "Paris",
                "title": "City",
            },
            "units": {
                "type": "string",
                "enum": ["metric", "imperial"],
                "additionalProperties": False,
            },
            "tags": {"type": "array", "items": {"type": "string"}, "maxItems": 3},
        }

        adapted = adapt_properties(raw)

        assert set(adapted) == set(raw)
        assert adapted["city"] == {"type": "string", "description": "City name"}
        assert adapted["units"] == {"type": "string", "enum": ["metric", "imperial"]}
        assert adapted["tags"] == {"type": "array", "items": {"type": "string"}}
        for schema in adapted.values():
            assert set(schema) <= {"type", "items", "description", "enum"}

    def test_missing_fields_are_absent_not_null(self):
        adapted = adapt_properties({"anything": {}})
        assert adapted == {"anything": {}}

    def test_type_may_be_a_list_of_strings(self):
        adapted = adapt_properties({"value": {"type": ["string", "null"]}})
        assert adapted["value"] == {"type": ["string", "null"]}

    def test_malformed_shapes_are_dropped_without_error(self):
        raw = {
            "bad_type": {"type": 42, "description": "kept"},
            "bad_enum": {"type": "string", "enum": "a,b"},
            "bad_description": {"type": "integer", "description": ["not", "text"]},
            "not_an_object": "string",
        }

        adapted = adapt_properties(raw)

        assert adapted["bad_type"] == {"description": "kept"}
        assert adapted["bad_enum"] == {"type": "string"}
        assert adapted["bad_description"] == {"type": "integer"}
        assert adapted["not_an_object"] == {}


class TestToolDescriptor:
    """ToolDescriptor invariants and rendering."""

    def test_required_must_be_declared(self):
        with pytest.raises(ValidationError):
            ToolDescriptor(name="t", properties={}, required=["missing"])

    def test_to_function_shape(self):
        tool = types.Tool(
            name="greeting",
            description="Greets someone",
            inputSchema={
                "type": "object",
                "properties": {"name": {"type": "string", "title": "Name"}},
                "required": ["name"],
                "$schema": "http://json-schema.org/draft-07/schema#",
            },
        )

        spec = descriptor_from_tool(tool).to_function()

        assert spec == {
            "type": "function",
            "function": {
                "type": "object",
                "name": "greeting",
                "description": "Greets someone",
                "parameters": {
                    "type": "object",
                    "required": ["name"],
                    "properties": {"name": {"type": "string"}},
                },
            },
        }

    def test_undeclared_required_names_are_ignored(self):
        tool = types.Tool(
            name="lookup",
            description=None,
            inputSchema={
                "type": "object",
                "properties": {"key": {"type": "string"}},
                "required": ["key", "ghost"],
            },
        )

        descriptor = descriptor_from_tool(tool)

        assert descriptor.required == ["key"]
        assert descriptor.description == ""

    def test_tool_without_parameters(self):
        tool = types.Tool(name="ping", description="Ping", inputSchema={"type": "object"})

        specs = to_function_specs([descriptor_from_tool(tool)])

        assert specs[0]["function"]["parameters"] == {
            "type": "object",
            "required": [],
            "properties": {},
        }

    def test_non_object_properties_yield_no_parameters(self):
        tool = types.Tool(
            name="t",
            inputSchema={"type": "object", "properties": ["name"], "required": ["name"]},
        )

        descriptor = descriptor_from_tool(tool)

        assert descriptor.properties == {}
        assert descriptor.required == []
        assert adapt_properties(["name"]) == {}

    @pytest.mark.parametrize("required", [5, "name", {"name": True}])
    def test_non_list_required_is_ignored(self, required):
        tool = types.Tool(
            name="t",
            inputSchema={
                "type": "object",
                "properties": {"name": {"type": "string"}},
                "required": required,
            },
        )

        descriptor = descriptor_from_tool(tool)

        assert list(descriptor.properties) == ["name"]
        assert descriptor.required == []

    def test_non_string_required_entries_are_skipped(self):
        tool = types.Tool(
            name="t",
            inputSchema={
                "type": "object",
                "properties": {"name": {"type": "string"}},
                "required": [["name"], 3, None, "name"],
            },
        )

        assert descriptor_from_tool(tool).required == ["name"]
