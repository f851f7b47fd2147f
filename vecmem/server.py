"""vecmem MCP Server"""

from __future__ import annotations

import json
import sys
from typing import Any

import anyio
import mcp.server.stdio
import mcp.types as types
from loguru import logger
from mcp.server.lowlevel import Server
from mcp.server.models import InitializationOptions, ServerCapabilities

from .config import VecmemConfig
from .schema import (
    FORGET_TOOL,
    SEARCH_TOOL,
    STORE_TOOL,
    TOOL_OPERATIONS,
    ToolSchemas,
    ToolValidator,
    create_tool_schemas,
    create_tool_validators,
)
from .service import Envelope, MemoryService, failure_envelope
from .storage import MemoryBackend, create_backend

__all__ = [
    "build_server",
    "configure_logging",
    "handle_tool_call",
    "main",
    "render_envelope",
]


def configure_logging(debug: bool = False) -> None:
    """Send log output to stderr; stdout carries the stdio transport."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO")


def return_tool_error(error_msg: str) -> str:
    """Clean up validation error messages for better AI understanding."""
    return error_msg.replace("data.", "").replace("data ", "")


async def handle_tool_call(
    name: str,
    arguments: dict[str, Any] | None,
    service: MemoryService,
    tool_validators: dict[str, ToolValidator],
) -> Envelope:
    """Validate arguments and route a tool call to the memory service."""
    operation = TOOL_OPERATIONS.get(name, name)
    if name not in tool_validators:
        return failure_envelope(operation, f"Unknown tool: {name}")

    arguments = arguments or {}
    try:
        tool_validators[name](arguments)
    except Exception as validation_error:
        error_msg = return_tool_error(str(validation_error))
        return failure_envelope(operation, f"Invalid arguments: {error_msg}")

    if name == STORE_TOOL:
        return await service.store(
            arguments["content"],
            arguments.get("metadata"),
            arguments.get("collection"),
        )
    if name == SEARCH_TOOL:
        return await service.search(
            arguments["query"],
            arguments.get("mode"),
            arguments.get("limit"),
            arguments.get("collection"),
        )
    if name == FORGET_TOOL:
        return await service.forget(arguments["id"], arguments.get("collection"))
    return failure_envelope(operation, f"Unknown tool: {name}")


def render_envelope(envelope: Envelope) -> types.CallToolResult:
    """One JSON text block, with the error flag mirroring ``success``."""
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(envelope, indent=2))],
        isError=not envelope["success"],
    )


def build_server(
    config: VecmemConfig,
    service: MemoryService,
    tool_schemas: ToolSchemas | None = None,
) -> Server:
    """Create the MCP server with the memory tools registered."""
    tool_schemas = tool_schemas or create_tool_schemas(config.collection_name)
    tool_validators = create_tool_validators(tool_schemas)
    mcp_server = Server(config.server_name)

    @mcp_server.list_tools()
    async def list_tools() -> list[types.Tool]:
        """Return the store, search and forget tools."""
        return [
            types.Tool(
                name=schema["name"],
                description=schema["description"],
                inputSchema=schema["inputSchema"],
            )
            for schema in tool_schemas.values()
        ]

    @mcp_server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict) -> types.CallToolResult:
        """Route tool calls to the memory service and return JSON envelopes."""
        envelope = await handle_tool_call(name, arguments, service, tool_validators)
        return render_envelope(envelope)

    return mcp_server


async def _startup(backend: MemoryBackend) -> None:
    await backend.connect()
    await backend.health_check()


def main(config: VecmemConfig | None = None) -> int:
    """Main entry point for the vecmem MCP server."""
    try:
        config = config or VecmemConfig.from_env()
        config.validate()
        configure_logging(config.debug)
        print(
            f"[OK] Loaded config: backend={config.backend}, model={config.embedding_model}",
            file=sys.stderr,
        )
    except Exception as e:
        print(f"[ERROR] Configuration error: {e}", file=sys.stderr)
        return 1

    backend = create_backend(config)
    service = MemoryService.from_config(config, backend)
    mcp_server = build_server(config, service)
    if config.collection_name:
        print(f"[OK] Fixed collection: {config.collection_name}", file=sys.stderr)

    async def run_server() -> int:
        try:
            await _startup(backend)
            print(f"[OK] {config.backend} backend is healthy", file=sys.stderr)
        except Exception as e:
            print(f"[ERROR] Failed to connect to {config.backend}: {e}", file=sys.stderr)
            await backend.close()
            return 1

        print(
            "[READY] vecmem MCP server startup complete - ready for connections",
            file=sys.stderr,
        )
        init_options = InitializationOptions(
            server_name=config.server_name,
            server_version=config.server_version,
            capabilities=ServerCapabilities(tools={}),
        )
        try:
            async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
                await mcp_server.run(read_stream, write_stream, init_options)
        finally:
            try:
                await service.close()
            finally:
                await backend.close()
        return 0

    return anyio.run(run_server)


if __name__ == "__main__":
    sys.exit(main())
