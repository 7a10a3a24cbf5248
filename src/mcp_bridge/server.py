"""MCP bridge server implementation."""

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import get_config, setup_logging
from .consts import SERVER_NAME
from .models import Response
from .service import get_service

logger = logging.getLogger("mcp-bridge.server")

mcp = FastMCP(
    name=SERVER_NAME,
    instructions="""
    MCP bridge server.

    This MCP server allows you to:
    1. See which remote MCP servers are configured.
    2. Discover the tools each remote server offers.
    3. Call a remote tool, with credentials chosen and checked for you.
    """,
    log_level=get_config().log_level,
)


@mcp.tool()
async def list_servers() -> Response:
    """List the remote MCP servers this bridge is configured to reach.

    Returns:
        Server names with their URL and provider.

    Workflow: **Start here** → list_remote_tools → call_remote_tool
    """
    logger.info("Listing configured servers")

    try:
        servers = get_service().config.servers
        return Response(
            status="success",
            message=f"{len(servers)} remote MCP servers configured",
            data={
                name: {"url": settings.url, "provider": str(settings.provider)}
                for name, settings in servers.items()
            },
            suggestions=["Use list_remote_tools() to see what a server offers"],
            metadata={"server_count": len(servers)},
        )
    except Exception as e:
        return Response.from_error(e)


@mcp.tool()
async def list_remote_tools(server_name: str) -> Response:
    """List the tools a remote MCP server offers.

    Performs the handshake with the server and asks for its tool list.
    Each tool comes with its description and input schema.

    Args:
        server_name: Name of a configured server (from list_servers)

    Returns:
        The server's tools.

    Workflow: list_servers → **You are here** → call_remote_tool
    """
    logger.info(f"Listing tools on {server_name}")

    try:
        tools = await get_service().list_tools(server_name)
        return Response(
            status="success",
            message=f"{len(tools)} tools available on '{server_name}'",
            data=[tool.model_dump(by_alias=True, exclude_none=True) for tool in tools],
            suggestions=["Use call_remote_tool() with a tool name and its arguments"],
            metadata={"server_name": server_name, "tool_count": len(tools)},
        )
    except Exception as e:
        return Response.from_error(e)


@mcp.tool()
async def call_remote_tool(
    server_name: str, tool_name: str, arguments: dict[str, Any] | None = None
) -> Response:
    """Call a tool on a remote MCP server.

    Args:
        server_name: Name of a configured server (from list_servers)
        tool_name: Tool to call (from list_remote_tools)
        arguments: Arguments matching the tool's input schema

    Returns:
        The tool's raw result.

    Workflow: list_servers → list_remote_tools → **You are here**
    """
    logger.info(f"Calling {tool_name} on {server_name}")

    try:
        result = await get_service().call_tool(server_name, tool_name, arguments)
        return Response(
            status="success",
            message=f"Tool '{tool_name}' on '{server_name}' completed",
            data=result,
            metadata={"server_name": server_name, "tool_name": tool_name},
        )
    except Exception as e:
        return Response.from_error(e)


@mcp.tool()
async def check_servers() -> Response:
    """Check every configured server by listing its tools.

    Returns:
        Per-server connection status, tool count and any error.
    """
    logger.info("Checking all configured servers")

    try:
        report = await get_service().check_servers()
        connected = sum(1 for entry in report.values() if entry["connected"])
        return Response(
            status="success",
            message=f"{connected}/{len(report)} servers reachable",
            data=report,
            metadata={"connected": connected, "server_count": len(report)},
        )
    except Exception as e:
        return Response.from_error(e)


def main() -> None:
    """Run the MCP server."""
    setup_logging(get_config().log_level)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
