"""MCP server for pull/edit/push of Confluence pages over stdio.

Transport: stdio (for Claude Desktop and other MCP clients)
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import os
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config_loader import ensure_config
from ..core.client import ConfluenceClient
from ..core.async_utils import run_sync
from ..core.workspace import SessionWorkspace
from ..logger import DEFAULT_LOG_FILE, setup_logging
from .lifespan import load_logging_settings, server_lifespan
from .tools import ALL_SPECS, ToolRegistry, ToolSpec, build_error_response

logger = logging.getLogger(__name__)

server = Server("confluence-edit-mcp")

# Initialized in main() for the lifetime of the stdio session
_workspace: SessionWorkspace | None = None
_registry: ToolRegistry | None = None
_client: ConfluenceClient | None = None


async def _handle_ping(
    workspace: SessionWorkspace, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- test connectivity."""
    client = get_client()
    try:
        site = await run_sync(client.validate_connection)
    except Exception as e:
        return build_error_response(
            "connection_failed",
            str(e),
            "Check CONFLUENCE_URL, CONFLUENCE_USERNAME, CONFLUENCE_TOKEN.",
        )
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=f"Connected to {site}",
            )
        ]
    )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Test connectivity to the page store",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    writes=False,
    handler=_handle_ping,
)


def get_workspace() -> SessionWorkspace:
    """Get the workspace of the running server.

    Raises:
        RuntimeError: If the server lifespan has not started
    """
    if _workspace is None:
        raise RuntimeError(
            "Workspace not initialized. Server lifespan not started."
        )
    return _workspace


def set_workspace(workspace: SessionWorkspace | None) -> None:
    global _workspace
    _workspace = workspace


def get_client() -> ConfluenceClient:
    """Get the store client of the running server.

    Raises:
        RuntimeError: If the server lifespan has not started
    """
    if _client is None:
        raise RuntimeError(
            "Client not initialized. Server lifespan not started."
        )
    return _client


def set_client(client: ConfluenceClient | None) -> None:
    global _client
    _client = client


def get_registry() -> ToolRegistry:
    """Get the tool registry.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Dispatch a tool call through the registry."""
    workspace = get_workspace()
    try:
        return await get_registry().call_tool(name, arguments, workspace)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Logging goes to a file only: stdout carries the JSON-RPC stream. The
    config file logging section applies where the CLI and environment are
    silent.

    Args:
        config_overrides: Optional dict with values from CLI (url, username,
            token, insecure, log_file, read_only, buffer_dir)
    """
    overrides = config_overrides or {}

    log_settings = load_logging_settings()
    setup_logging(
        mode="mcp",
        log_file=overrides.get("log_file")
        or os.getenv("LOG_FILE")
        or log_settings.file,
        level=log_settings.level,
    )

    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(
        all_specs, read_only=bool(overrides.get("read_only", False))
    )
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(all_specs),
    )
    if overrides.get("read_only"):
        print(
            f"Read-only mode: {registry.tool_count()} of {len(all_specs)} tools enabled",
            file=sys.stderr,
        )
    set_registry(registry)

    async with server_lifespan(config_overrides=overrides) as ctx:
        set_client(ctx["client"])
        set_workspace(ctx["workspace"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="confluence-edit-mcp",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(
                    read_stream, write_stream, init_options
                )
        finally:
            set_workspace(None)
            set_client(None)
            set_registry(None)


def run() -> None:
    """Entry point: parse CLI arguments and run the server."""
    parser = argparse.ArgumentParser(
        description="Confluence Edit MCP Server - pull, edit and push pages with optimistic locking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .confluence_edit/config.yml)
  confluence-edit-mcp

  # Override the content endpoint
  confluence-edit-mcp --url https://example.atlassian.net/wiki/rest/api/content

  # Only allow pulling and inspecting pages
  confluence-edit-mcp --read-only

  # Keep buffer files under one directory
  confluence-edit-mcp --buffer-dir ~/confluence-buffers

  # Create .confluence_edit/config.yml with commented defaults
  confluence-edit-mcp --init-config

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )

    parser.add_argument(
        "--url",
        help="Override content endpoint URL (takes precedence over CONFLUENCE_URL and config files)",
    )
    parser.add_argument(
        "--username",
        help="Override username (takes precedence over CONFLUENCE_USERNAME and config files)",
    )
    parser.add_argument(
        "--token",
        help="Override API token (visible in process list -- prefer CONFLUENCE_TOKEN)",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument(
        "--log-file",
        help=f"Log file path (default: LOG_FILE, then the config file, then {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a commented starter config file if none exists, then exit",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Do not expose tools that write pages to the store",
    )
    parser.add_argument(
        "--buffer-dir",
        help="Only allow buffer files under this directory",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"confluence-edit-mcp version {__version__}",
    )

    args = parser.parse_args()

    if args.init_config:
        path = ensure_config()
        print(f"Config file: {path}", file=sys.stderr)
        return

    config_overrides = {}
    if args.url:
        config_overrides["url"] = args.url
    if args.username:
        config_overrides["username"] = args.username
    if args.token:
        config_overrides["token"] = args.token
    if args.insecure:
        config_overrides["insecure"] = True
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.read_only:
        config_overrides["read_only"] = True
    if args.buffer_dir:
        config_overrides["buffer_dir"] = args.buffer_dir

    if config_overrides:
        override_keys = [k for k in config_overrides if k != "token"]
        print(
            f"Config overrides from CLI: {', '.join(override_keys)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides or None))
    except RuntimeError:
        # Already reported on stderr by the lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
