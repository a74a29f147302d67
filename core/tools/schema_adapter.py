"""
core.tools.schema_adapter

Turns MCP tool definitions into the function descriptors a chat model
expects.

A tool's input schema is free-form JSON Schema. The model-facing API only
needs four fields per parameter (`type`, `items`, `description`, `enum`),
so `adapt_properties` keeps exactly those and drops the rest. Values of an
unexpected shape (e.g. a numeric `type`) are dropped too; the adapter never
raises.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, model_validator


logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Models
# -------------------------------------------------------------------


class ParameterSchema(BaseModel):
    """The four parameter fields a function-calling API understands."""

    type: Optional[Union[str, List[str]]] = None
    items: Optional[Union[Dict[str, Any], List[Any]]] = None
    description: Optional[str] = None
    enum: Optional[List[Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ToolDescriptor(BaseModel):
    """A tool as offered to the chat model."""

    name: str
    description: str = ""
    schema_type: str = "object"
    properties: Dict[str, ParameterSchema] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _required_are_known(self) -> "ToolDescriptor":
        unknown = [name for name in self.required if name not in self.properties]
        if unknown:
            raise ValueError(
                f"Tool {self.name!r} requires undeclared parameters: {', '.join(unknown)}"
            )
        return self

    def to_function(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "type": self.schema_type,
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "required": list(self.required),
                    "properties": {
                        name: schema.to_dict() for name, schema in self.properties.items()
                    },
                },
            },
        }


# -------------------------------------------------------------------
# Internal helpers
# -------------------------------------------------------------------


def _coerce_type(value: Any) -> Optional[Union[str, List[str]]]:
    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    return None


def _coerce_parameter(name: str, raw: Any) -> ParameterSchema:
    if not isinstance(raw, Mapping):
        logger.debug("Parameter %r has a non-object schema; exposing it without fields", name)
        return ParameterSchema()

    fields: Dict[str, Any] = {}

    if "type" in raw:
        fields["type"] = _coerce_type(raw["type"])
    if isinstance(raw.get("items"), (Mapping, list)):
        items = raw["items"]
        fields["items"] = dict(items) if isinstance(items, Mapping) else list(items)
    if isinstance(raw.get("description"), str):
        fields["description"] = raw["description"]
    if isinstance(raw.get("enum"), list):
        fields["enum"] = list(raw["enum"])

    dropped = [key for key in ("type", "items", "description", "enum") if key in raw and fields.get(key) is None]
    if dropped:
        logger.debug("Parameter %r: dropped malformed fields %s", name, dropped)

    return ParameterSchema(**fields)


# -------------------------------------------------------------------
# Public functions
# -------------------------------------------------------------------


def adapt_parameters(raw_properties: Any) -> Dict[str, ParameterSchema]:
    if not raw_properties:
        return {}
    if not isinstance(raw_properties, Mapping):
        logger.debug(
            "Properties are not an object (%s); exposing no parameters",
            type(raw_properties).__name__,
        )
        return {}
    return {
        name: _coerce_parameter(name, raw)
        for name, raw in raw_properties.items()
        if isinstance(name, str)
    }


def adapt_properties(raw_properties: Any) -> Dict[str, Dict[str, Any]]:
    """
    Restrict every parameter schema to `type`, `items`, `description` and `enum`.

    Every key of the input is preserved. Fields that are missing or have an
    unusable shape are simply absent from the output.
    """
    return {
        name: schema.to_dict() for name, schema in adapt_parameters(raw_properties).items()
    }


def descriptor_from_tool(tool: Any) -> ToolDescriptor:
    """
    Build a ToolDescriptor from an MCP `types.Tool` (or anything exposing
    `name`, `description` and `inputSchema`).

    Required names that the schema does not declare are dropped, so the
    descriptor invariant (required is a subset of properties) always holds.
    """
    input_schema = getattr(tool, "inputSchema", None) or {}
    if not isinstance(input_schema, Mapping):
        input_schema = {}
    properties = adapt_parameters(input_schema.get("properties"))

    raw_required = input_schema.get("required")
    if not isinstance(raw_required, list):
        if raw_required is not None:
            logger.debug("Tool %r: dropped malformed required list %r", tool.name, raw_required)
        raw_required = []

    required: List[str] = []
    for name in raw_required:
        if not isinstance(name, str):
            logger.debug("Tool %r: dropped non-string required entry %r", tool.name, name)
        elif name in properties:
            required.append(name)
        else:
            logger.warning(
                "Tool %r lists undeclared required parameter %r; ignoring it",
                tool.name,
                name,
            )

    schema_type = input_schema.get("type")
    return ToolDescriptor(
        name=tool.name,
        description=getattr(tool, "description", None) or "",
        schema_type=schema_type if isinstance(schema_type, str) else "object",
        properties=properties,
        required=required,
    )


def to_function_specs(descriptors: Iterable[ToolDescriptor]) -> List[Dict[str, Any]]:
    return [descriptor.to_function() for descriptor in descriptors]
