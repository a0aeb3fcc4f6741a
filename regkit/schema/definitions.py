"""JSON Schemas for the source registry, the built bundle, and project config.

The source registry is what authors maintain (``registry/registry.json``);
the bundle is what the builder emits and the loader verifies.
"""

# A path segment of ".." split on either separator.
TRAVERSAL_PATTERN = r"(^|[/\\])\.\.([/\\]|$)"

_STRING_ARRAY: dict = {"type": "array", "items": {"type": "string"}}

_META_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "client": {"type": "boolean"},
        "hidden": {"type": "boolean"},
        "optionalIntegrations": _STRING_ARRAY,
    },
}

SOURCE_FILE_SCHEMA: dict = {
    "type": "object",
    "required": ["path"],
    "properties": {
        "path": {
            "type": "string",
            "minLength": 1,
            "not": {"pattern": TRAVERSAL_PATTERN},
            "description": "Path of the file relative to the registry root.",
        },
        "targetPath": {"type": "string", "not": {"pattern": TRAVERSAL_PATTERN}},
        "type": {"type": "string"},
    },
}

SOURCE_ITEM_SCHEMA: dict = {
    "type": "object",
    "required": ["name", "type", "title", "description", "files"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "type": {"type": "string"},
        "title": {"type": "string"},
        "description": {"type": "string"},
        "dependencies": _STRING_ARRAY,
        "registryDependencies": _STRING_ARRAY,
        "files": {"type": "array", "items": SOURCE_FILE_SCHEMA},
        "meta": _META_SCHEMA,
    },
}

SOURCE_REGISTRY_SCHEMA: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Source registry definition",
    "type": "object",
    "required": ["items"],
    "properties": {
        "items": {"type": "array", "items": SOURCE_ITEM_SCHEMA},
    },
}

BUNDLE_FILE_SCHEMA: dict = {
    "type": "object",
    "required": ["path"],
    "properties": {
        "path": {"type": "string", "not": {"pattern": TRAVERSAL_PATTERN}},
        "content": {"type": "string"},
        "targetPath": {"type": "string", "not": {"pattern": TRAVERSAL_PATTERN}},
        "type": {"type": "string"},
    },
}

BUNDLE_ITEM_SCHEMA: dict = {
    "type": "object",
    "required": [
        "name",
        "type",
        "title",
        "description",
        "dependencies",
        "registryDependencies",
        "files",
    ],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "type": {"type": "string"},
        "title": {"type": "string"},
        "description": {"type": "string"},
        "dependencies": _STRING_ARRAY,
        "registryDependencies": _STRING_ARRAY,
        "files": {"type": "array", "items": BUNDLE_FILE_SCHEMA},
        "meta": _META_SCHEMA,
    },
}

# Extra top-level keys (themes, styles) are allowed and pass through.
BUNDLE_SCHEMA: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Registry bundle",
    "type": "object",
    "required": ["items"],
    "properties": {
        "items": {"type": "array", "items": BUNDLE_ITEM_SCHEMA},
        "integrity": {"type": "string"},
    },
}

PROJECT_CONFIG_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "installDir": {"type": "string", "minLength": 1},
        "pathPrefixes": _STRING_ARRAY,
        "installed": {"type": "object"},
    },
}


def get_schema(name: str = "bundle") -> dict:
    """Return one of the exported schemas by short name."""
    schemas = {
        "source": SOURCE_REGISTRY_SCHEMA,
        "bundle": BUNDLE_SCHEMA,
        "project": PROJECT_CONFIG_SCHEMA,
    }
    if name not in schemas:
        raise KeyError(f"Unknown schema '{name}'. Expected one of: {', '.join(schemas)}")
    return schemas[name]
