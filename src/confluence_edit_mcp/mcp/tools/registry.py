"""ToolSpec and ToolRegistry for the page tools.

- ToolSpec: immutable link between a Tool definition, whether the tool
  writes to the page store, and an async handler
  ``(workspace, args) -> CallToolResult``.
- ToolRegistry: drops store-writing tools in read-only mode, then provides
  list_tools() and call_tool() dispatch with error translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...core.errors import SessionError
from ...core.workspace import SessionWorkspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        writes: True if the tool modifies pages on the store.
        handler: Async handler with signature (workspace, args) -> CallToolResult.
    """

    tool: types.Tool
    writes: bool
    handler: Callable[
        [SessionWorkspace, dict], Awaitable[types.CallToolResult]
    ]


class ToolRegistry:
    """Registry of ToolSpecs.

    With ``read_only=True`` every spec with ``writes=True`` is left out, so
    the server can be handed to an agent that may only pull and inspect.
    """

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self._specs: dict[str, ToolSpec] = {
            spec.tool.name: spec
            for spec in specs
            if not (read_only and spec.writes)
        }

    def list_tools(self) -> list[types.Tool]:
        """Return list of types.Tool for all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        """Return number of registered tools."""
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        workspace: SessionWorkspace,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Session errors, validation errors and unexpected exceptions become
        structured CallToolResult responses with corrective actions.

        Raises:
            ValueError: If tool name is not registered (unknown or filtered out).
        """
        from .errors import build_error_response, translate_session_error

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(workspace, args)
        except SessionError as e:
            logger.warning("Session error in %s: %s", name, e)
            return translate_session_error(e, args.get("page_id"))
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check the server log and retry later.",
            )
