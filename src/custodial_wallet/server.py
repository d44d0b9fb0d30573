"""MCP stdio server exposing the registered wallet and coin actions."""

from __future__ import annotations

import json
import logging
from typing import Any, List

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from custodial_wallet.runtime import WalletRuntime
from custodial_wallet.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def _text(payload: dict[str, Any]) -> List[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, indent=2, default=str))]


def build_server(name: str, registry: ToolRegistry | None = None) -> Server:
    """Create a low-level MCP server bound to *registry*."""
    registry = registry or ToolRegistry.get()
    server = Server(name)

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        return [
            Tool(name=t.name, description=t.description, inputSchema=t.parameters)
            for t in registry.get_tools()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Any) -> List[TextContent]:
        if arguments is not None and not isinstance(arguments, dict):
            return _text({"status": "error", "message": "Invalid arguments. Expected an object."})
        logger.debug(f"Tool call: {name}")
        return _text(await registry.call(name, arguments))

    return server


async def run_stdio(runtime: WalletRuntime) -> None:
    """Serve over stdin/stdout until the client disconnects."""
    import custodial_wallet.tools  # noqa: F401  (registers the actions)

    runtime.install()
    server = build_server(runtime.config.server.name)
    logger.info(
        f"Starting {runtime.config.server.name} v{runtime.config.server.version} "
        f"with {len(ToolRegistry.get().list_names())} tools on stdio"
    )
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
