"""MCP tool definitions for the memory tools and their runtime validators.

The ``collection`` argument is only advertised when the server has no fixed
collection; validation is done with fastjsonschema.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import fastjsonschema
from loguru import logger

from .search import DEFAULT_LIMIT, SearchMode

type ToolSchema = dict[str, Any]
type ToolSchemas = dict[str, ToolSchema]
type ToolValidator = Callable[[dict[str, Any]], dict[str, Any]]

__all__ = [
    "STORE_TOOL",
    "SEARCH_TOOL",
    "FORGET_TOOL",
    "TOOL_OPERATIONS",
    "create_tool_schemas",
    "create_tool_validators",
    "ToolSchema",
    "ToolSchemas",
    "ToolValidator",
]

STORE_TOOL = "store_memory"
SEARCH_TOOL = "search_memory"
FORGET_TOOL = "forget_memory"

# Operation names reported in response envelopes
TOOL_OPERATIONS = {
    STORE_TOOL: "store",
    SEARCH_TOOL: "search",
    FORGET_TOOL: "delete",
}

KEY_TYPE = "type"
KEY_DESCRIPTION = "description"
KEY_PROPERTIES = "properties"
KEY_REQUIRED = "required"
KEY_INPUT_SCHEMA = "inputSchema"
KEY_NAME = "name"

COLLECTION_PROPERTY = {KEY_TYPE: "string", KEY_DESCRIPTION: "Collection name"}


def _tool(
    name: str,
    description: str,
    properties: dict[str, Any],
    required: list[str],
    fixed_collection: str | None,
) -> ToolSchema:
    if not fixed_collection:
        properties = {**properties, "collection": COLLECTION_PROPERTY}
    return {
        KEY_NAME: name,
        KEY_DESCRIPTION: description,
        KEY_INPUT_SCHEMA: {
            KEY_TYPE: "object",
            KEY_PROPERTIES: properties,
            KEY_REQUIRED: required,
        },
    }


def create_tool_schemas(fixed_collection: str | None = None) -> ToolSchemas:
    """Build the three memory tool definitions."""
    logger.debug(
        f"Generating tool schemas (fixed collection: {fixed_collection or 'none'})"
    )
    store = _tool(
        STORE_TOOL,
        "Store a memory/document in vector storage, to be indexed for semantic and "
        "fulltext search. The collection will be created if it does not exist.",
        {
            "content": {KEY_TYPE: "string", KEY_DESCRIPTION: "The text content to store"},
            "metadata": {
                KEY_TYPE: "object",
                KEY_DESCRIPTION: "Additional metadata to store with the memory",
                "additionalProperties": True,
            },
        },
        ["content"],
        fixed_collection,
    )
    search = _tool(
        SEARCH_TOOL,
        "Search for memories/documents in vector storage",
        {
            "query": {KEY_TYPE: "string", KEY_DESCRIPTION: "Search query text"},
            "mode": {
                KEY_TYPE: "string",
                "enum": [m.value for m in SearchMode],
                "default": SearchMode.SEMANTIC.value,
                KEY_DESCRIPTION: "Search mode: semantic (embedding-based) or fulltext",
            },
            "limit": {
                KEY_TYPE: "number",
                "default": DEFAULT_LIMIT,
                KEY_DESCRIPTION: "Maximum number of results to return",
            },
        },
        ["query"],
        fixed_collection,
    )
    forget = _tool(
        FORGET_TOOL,
        "Delete a memory/document from vector storage",
        {
            "id": {
                KEY_TYPE: "string",
                KEY_DESCRIPTION: "Auto-generated ID of the memory to delete",
            },
        },
        ["id"],
        fixed_collection,
    )
    return {tool[KEY_NAME]: tool for tool in (store, search, forget)}


def _validation_schema(input_schema: dict[str, Any]) -> dict[str, Any]:
    """Copy of an input schema without ``enum`` and ``default`` keywords.

    Mode values are checked by the service, which reports the offending value.
    """
    properties = {}
    for name, prop in input_schema[KEY_PROPERTIES].items():
        properties[name] = {
            k: v for k, v in prop.items() if k not in ("enum", "default")
        }
    return {**input_schema, KEY_PROPERTIES: properties}


def create_tool_validators(tool_schemas: ToolSchemas) -> dict[str, ToolValidator]:
    """Compile tool schemas into fast validation functions."""
    validators = {}
    for tool_name, schema in tool_schemas.items():
        validators[tool_name] = fastjsonschema.compile(
            _validation_schema(schema[KEY_INPUT_SCHEMA])
        )
    return validators
