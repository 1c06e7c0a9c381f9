"""Lifespan management for MCP server startup and shutdown."""

import logging
import shutil
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import yaml
from dotenv import load_dotenv

from ..config import Config, load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import LoggingConfig, build_config
from ..core.async_utils import run_sync
from ..core.client import ConfluenceClient
from ..core.codec import ContentCodec
from ..core.formatter import (
    LxmlXmlFormatter,
    SubprocessXmlFormatter,
    XmlFormatter,
)
from ..core.workspace import SessionWorkspace

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


def load_logging_settings() -> LoggingConfig:
    """Read the logging section of the config files.

    Runs before logging is configured, so an unreadable or invalid file
    yields defaults here and is reported by ``server_lifespan()``.
    """
    load_dotenv()
    if not discover_config_files():
        return LoggingConfig()
    try:
        return build_config(load_hierarchical_config()).logging
    except (ValueError, OSError, yaml.YAMLError):
        return LoggingConfig()


def build_formatter(config: Config) -> XmlFormatter:
    """Pick the external formatter when it is installed, else lxml."""
    command = config.formatter_command
    if command and shutil.which(command[0]):
        return SubprocessXmlFormatter(command)
    if command:
        logger.info(
            "Formatter '%s' not found on PATH, using lxml", command[0]
        )
    return LxmlXmlFormatter()


def build_workspace(
    config: Config, base_dir: str | None = None
) -> tuple[ConfluenceClient, SessionWorkspace]:
    client = ConfluenceClient(config)
    codec = ContentCodec(
        wrapper=config.wrapper_element,
        unwrap_on_push=config.unwrap_on_push,
    )
    workspace = SessionWorkspace(
        client,
        codec=codec,
        formatter=build_formatter(config),
        base_dir=base_dir,
    )
    return client, workspace


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env (so values are available for env lookups and YAML interpolation)
    - Load YAML config if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Create the client and workspace, validate the connection
    - Fail fast if the store is unreachable

    On shutdown:
    - Close every open page

    Args:
        config_overrides: Optional dict with values from CLI (url, username,
            token, insecure, buffer_dir)

    Yields:
        Dict with 'client' and 'workspace' keys

    Raises:
        RuntimeError: If configuration is invalid or the connection fails.
    """
    logger.info("MCP server starting...")
    _stderr_print("Confluence Edit MCP Server starting...")

    overrides = config_overrides or {}
    try:
        load_dotenv()

        yaml_fallbacks: dict[str, Any] | None = None
        editor_fallbacks: dict[str, Any] | None = None
        config_files = discover_config_files()
        sources = []

        if config_files:
            unified = build_config(load_hierarchical_config())
            yaml_fallbacks = {
                k: v
                for k, v in unified.confluence.model_dump().items()
                if v is not None
            }
            editor_fallbacks = unified.editor.model_dump()
            sources.append(f"config file: {config_files[0]}")

        config = load_config(
            url=overrides.get("url"),
            username=overrides.get("username"),
            token=overrides.get("token"),
            insecure=overrides.get("insecure", False),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
            editor_fallbacks=editor_fallbacks,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("Content endpoint: %s", config.base_url)
        _stderr_print(f"  Content endpoint: {config.base_url}")
    except (ValueError, OSError, yaml.YAMLError) as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print(
            "  Ensure CONFLUENCE_URL, CONFLUENCE_USERNAME, CONFLUENCE_TOKEN are set."
        )
        raise RuntimeError(
            f"Configuration error: {e}. Ensure CONFLUENCE_URL, CONFLUENCE_USERNAME, CONFLUENCE_TOKEN are set."
        ) from e

    logger.info("Validating connection...")
    _stderr_print("  Validating connection...")
    try:
        client, workspace = build_workspace(
            config, base_dir=overrides.get("buffer_dir")
        )
        site = await run_sync(client.validate_connection)
        logger.info("Connected to %s", site)
        _stderr_print(f"  Connected to {site}")
        _stderr_print(
            "Server ready. Waiting for MCP client connection..."
        )
    except Exception as e:
        logger.error("Failed to connect: %s", e)
        _stderr_print("ERROR: Connection failed.")
        _stderr_print(f"  {e}")
        _stderr_print(
            "  Check CONFLUENCE_URL, CONFLUENCE_USERNAME, CONFLUENCE_TOKEN."
        )
        raise RuntimeError(
            f"Connection failed: {e}. Check CONFLUENCE_URL, CONFLUENCE_USERNAME, CONFLUENCE_TOKEN."
        ) from e

    try:
        yield {"client": client, "workspace": workspace}
    finally:
        for status in workspace.list_open():
            workspace.close(status["page_id"], lambda _prompt: True)
        logger.info("MCP server shutting down")
        _stderr_print("Confluence Edit MCP Server shutting down.")
