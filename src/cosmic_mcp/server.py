"""MCP server: tool dispatch and stdio transport.

The server lifecycle:
1. Build (or reuse) the Cosmic client from configuration
2. Build the tool registry and dispatcher around that client
3. Register list-tools / call-tool handlers on a low-level MCP ``Server``
4. Serve over stdio until the peer disconnects, then close the client

The dispatcher is the last line of defense: whatever happens while validating
arguments or running a handler, the caller receives a result envelope and
nothing propagates into the transport.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from cosmic_mcp.client import CosmicClient, get_client, reset_client
from cosmic_mcp.core.logging import get_bucket_context
from cosmic_mcp.core.telemetry import tool_span
from cosmic_mcp.tools import ToolRegistry
from cosmic_mcp.tools.base import ToolResult, error_message, error_result

logger = logging.getLogger(__name__)

SERVER_NAME = "cosmic-mcp"
SERVER_VERSION = "0.1.0"


class ToolDispatcher:
    """Route tool calls by name to their spec, with a catch-all error boundary."""

    def __init__(self, client: Any, registry: ToolRegistry | None = None) -> None:
        self.client = client
        self.registry = registry if registry is not None else ToolRegistry()
        config = getattr(client, "config", None)
        # Fall back to the bucket logging was configured with.
        self._bucket: str | None = getattr(config, "bucket_slug", None) or get_bucket_context()

    def list_tools(self) -> list[types.Tool]:
        return self.registry.descriptors()

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        spec = self.registry.get(name)
        if spec is None:
            logger.warning("Unknown tool requested: %s", name)
            return error_result(f"Unknown tool: {name}")

        logger.debug("Tool call: %s args=%s", name, sorted(arguments or {}))
        started = time.monotonic()
        try:
            with tool_span(name, bucket=self._bucket):
                result = await spec.invoke(self.client, arguments)
        except Exception as exc:
            logger.warning("Tool %s failed before producing a result: %s", name, exc)
            return error_result(f"Error executing tool {name}: {error_message(exc)}")

        logger.info(
            "Tool %s finished (is_error=%s, %.0fms)",
            name,
            result.is_error,
            (time.monotonic() - started) * 1000,
        )
        return result


def create_server(dispatcher: ToolDispatcher) -> Server:
    """Create a low-level MCP server announcing the tools capability."""
    server: Server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def _list_tools() -> list[types.Tool]:
        return dispatcher.list_tools()

    # Registered directly rather than through ``@server.call_tool()`` so the SDK
    # neither re-validates arguments nor rewrites the result envelope.
    async def _call_tool(req: types.CallToolRequest) -> types.ServerResult:
        result = await dispatcher.call_tool(req.params.name, req.params.arguments)
        return types.ServerResult(result.to_call_tool_result())

    server.request_handlers[types.CallToolRequest] = _call_tool
    return server


async def serve_stdio(client: CosmicClient | None = None) -> None:
    """Run the MCP server over stdin/stdout until the client disconnects."""
    client = client if client is not None else get_client()
    dispatcher = ToolDispatcher(client)
    server = create_server(dispatcher)

    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info(
                "Server started successfully (%d tools)", len(dispatcher.registry)
            )
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await client.aclose()
        reset_client()
        logger.info("Server stopped")
