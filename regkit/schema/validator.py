"""Schema validator — structural validation of registry documents.

Walks the JSON Schema dicts from ``regkit.schema.definitions`` and reports
every issue as ``"<path>: <message>"``. Validation never stops at the first
problem so that authors can fix a registry in one pass.
"""

from __future__ import annotations

import re

from regkit.schema.definitions import (
    BUNDLE_SCHEMA,
    PROJECT_CONFIG_SCHEMA,
    SOURCE_REGISTRY_SCHEMA,
    TRAVERSAL_PATTERN,
)


def validate_schema(data, schema: dict) -> list[str]:
    """Validate parsed JSON data against a JSON Schema node.

    Returns:
        List of error messages. Empty list means valid.
    """
    issues: list[str] = []
    _validate_node(data, schema, "", issues)
    return issues


def validate_source_registry(data) -> list[str]:
    return validate_schema(data, SOURCE_REGISTRY_SCHEMA)


def validate_bundle(data) -> list[str]:
    return validate_schema(data, BUNDLE_SCHEMA)


def validate_project_config(data) -> list[str]:
    return validate_schema(data, PROJECT_CONFIG_SCHEMA)


def _validate_node(data, schema: dict, path: str, issues: list[str]):
    """Recursively validate data against a JSON Schema node."""
    schema_type = schema.get("type")
    where = path or "/"

    if schema_type and not _type_matches(data, schema_type):
        issues.append(f"{where}: expected type '{schema_type}', got {_json_type(data)}")
        return  # Don't recurse into wrong types

    if "enum" in schema and data not in schema["enum"]:
        issues.append(f"{where}: value '{data}' not in allowed values {schema['enum']}")

    if isinstance(data, str):
        min_len = schema.get("minLength", 0)
        if len(data) < min_len:
            issues.append(f"{where}: string too short (min {min_len}, got {len(data)})")

        if "pattern" in schema and not re.search(schema["pattern"], data):
            issues.append(f"{where}: string '{data}' does not match pattern '{schema['pattern']}'")

    # "not" is only used with patterns here, e.g. to reject ".." segments
    negated = schema.get("not")
    if negated:
        probe: list[str] = []
        _validate_node(data, negated, path, probe)
        if not probe:
            issues.append(f"{where}: value '{data}' is not allowed ({_describe(negated)})")

    if schema_type == "object" and isinstance(data, dict):
        for req in schema.get("required", []):
            if req not in data:
                issues.append(f"{where}: missing required property '{req}'")

        props = schema.get("properties", {})
        for key, value in data.items():
            if key in props:
                _validate_node(value, props[key], _join(path, key), issues)

    if schema_type == "array" and isinstance(data, list):
        min_items = schema.get("minItems", 0)
        if len(data) < min_items:
            issues.append(f"{where}: array too short (min {min_items}, got {len(data)})")

        items_schema = schema.get("items")
        if items_schema:
            for i, item in enumerate(data):
                _validate_node(item, items_schema, f"{path}[{i}]", issues)


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _describe(schema: dict) -> str:
    if "pattern" in schema:
        if schema["pattern"] == TRAVERSAL_PATTERN:
            return "path must not contain '..' segments"
        return f"must not match pattern '{schema['pattern']}'"
    return "matches a forbidden schema"


def _type_matches(data, schema_type: str) -> bool:
    """Check if data matches the expected JSON Schema type."""
    type_map = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "array": list,
        "object": dict,
        "null": type(None),
    }
    expected = type_map.get(schema_type)
    if expected is None:
        return True  # Unknown type, don't block
    # bool is a subclass of int, but JSON keeps them apart
    if schema_type in ("integer", "number") and isinstance(data, bool):
        return False
    return isinstance(data, expected)


def _json_type(data) -> str:
    names = {
        bool: "boolean",
        str: "string",
        int: "integer",
        float: "number",
        list: "array",
        dict: "object",
        type(None): "null",
    }
    return names.get(type(data), type(data).__name__)
