# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Conversion of tool function-call schemas into each provider's tool shape."""

import copy
import logging

from typing import Any, Iterable

from ..types.tool_types import ToolInterface

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

_GENAI_TYPES = {
    "string": "STRING",
    "number": "NUMBER",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
    "array": "ARRAY",
    "object": "OBJECT",
}


def _function_schema(tool: ToolInterface | dict[str, Any]) -> dict[str, Any]:
    if isinstance(tool, dict):
        schema = tool
    else:
        schema = tool.get_function_call_schema()
    parameters = schema.get("parameters") or schema.get("input_schema")
    if parameters is None:
        raise ValueError(f"Tool {schema.get('name')} missing schema definition")
    return {
        "name": schema["name"],
        "description": schema.get("description", ""),
        "parameters": copy.deepcopy(parameters),
    }


def convert_to_openai(tools: Iterable[ToolInterface | dict[str, Any]]) -> list[dict[str, Any]]:
    return [{"type": "function", "function": _function_schema(t)} for t in tools]


def convert_to_anthropic(tools: Iterable[ToolInterface | dict[str, Any]]) -> list[dict[str, Any]]:
    converted = []
    for tool in tools:
        fn = _function_schema(tool)
        params = fn["parameters"]
        params.setdefault("type", "object")
        params.setdefault("properties", {})
        converted.append(
            {"name": fn["name"], "description": fn["description"], "input_schema": params}
        )
    return converted


def convert_to_gemini(tools: Iterable[ToolInterface | dict[str, Any]]) -> list[dict[str, Any]]:
    """Function declarations for the google-genai client."""
    return [
        {
            "name": fn["name"],
            "description": fn["description"],
            "parameters": json_schema_to_genai(fn["parameters"]),
        }
        for fn in map(_function_schema, tools)
    ]


def _format_default_value(value: Any) -> str:
    if isinstance(value, str):
        return f"'{value}'"
    elif isinstance(value, (list, dict)):
        return repr(value)
    elif value is None:
        return "None"
    return str(value)


def json_schema_to_genai(schema: dict[str, Any]) -> dict[str, Any]:
    """Convert a JSON schema into the OpenAPI subset Gemini accepts.

    References are inlined, types upper-cased, optional unions collapsed to
    `nullable`, defaults folded into the description, and parameter-less
    objects given a placeholder property (Gemini rejects empty objects).
    """
    defs = schema.get("$defs", {})

    def process(node: Any) -> Any:
        if not isinstance(node, dict):
            return node

        if "$ref" in node:
            ref_name = node["$ref"].split("/")[-1]
            if ref_name not in defs:
                raise ValueError(f"Schema reference {ref_name} not found")
            return process(defs[ref_name])

        result: dict[str, Any] = {}

        if "type" in node:
            result["type"] = _GENAI_TYPES.get(node["type"].lower(), node["type"].upper())

        if result.get("type") == "OBJECT" and not node.get("properties"):
            return {
                "type": "OBJECT",
                "properties": {
                    "_dummy": {
                        "type": "STRING",
                        "description": "This object takes no properties.",
                    }
                },
            }

        if result.get("type") == "ARRAY":
            if "items" not in node:
                raise ValueError("Array type must have items defined")
            result["items"] = process(node["items"])

        if "properties" in node:
            result["properties"] = {
                name: process(prop) for name, prop in node["properties"].items()
            }
            if "required" in node:
                result["required"] = list(node["required"])
            if len(node["properties"]) > 1:
                result["property_ordering"] = list(node["properties"].keys())

        if "enum" in node:
            result["enum"] = [str(v) for v in node["enum"]]

        union_key = "anyOf" if "anyOf" in node else "oneOf" if "oneOf" in node else None
        if union_key:
            variants = []
            nullable = False
            for sub in node[union_key]:
                if sub.get("type") == "null":
                    nullable = True
                else:
                    variants.append(process(sub))
            if len(variants) != 1:
                raise ValueError("Complex union types are not supported in Gemini API")
            result = {**variants[0], **result}
            if nullable:
                result["nullable"] = True

        description = node.get("description", "")
        if "default" in node:
            default_str = _format_default_value(node["default"])
            description = f"{description} (default: {default_str})" if description else f"(default: {default_str})"
        if description:
            result["description"] = description

        return result

    return process(schema)
