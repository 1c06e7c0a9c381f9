"""Page tool handlers for the MCP server.

Tools map one-to-one onto ``SessionWorkspace`` operations: open (pull into a
buffer file), push, status, set title, close, format and validate. Blocking
calls are bridged with run_sync(); failures are translated by the registry.
"""

import logging
from typing import Any

import mcp.types as types

from ...core.async_utils import run_sync
from ...core.resolver import resolve
from ...core.workspace import SessionWorkspace
from .errors import build_error_response
from .registry import ToolSpec

logger = logging.getLogger(__name__)

_PAGE_ID_PROPERTY = {
    "type": "string",
    "description": "Id of an open page (as returned by page_open)",
}

PAGE_TOOLS = [
    types.Tool(
        name="page_resolve",
        description="Extract the page id from a page URL (or return a raw id unchanged). No network access.",
        inputSchema={
            "type": "object",
            "properties": {
                "reference": {
                    "type": "string",
                    "description": "Page id or URL like https://<site>/wiki/spaces/<SPACE>/pages/<id>/<title>",
                }
            },
            "required": ["reference"],
        },
    ),
    types.Tool(
        name="page_open",
        description="Pull a page and write its editable XML to a local file. Edit the file, then call page_push.",
        inputSchema={
            "type": "object",
            "properties": {
                "reference": {
                    "type": "string",
                    "description": "Page id or page URL (required)",
                },
                "file_path": {
                    "type": "string",
                    "description": "Absolute path of the buffer file to write (required)",
                },
                "overwrite": {
                    "type": "boolean",
                    "description": "Discard the local buffer if the page is already open (default: false)",
                    "default": False,
                },
            },
            "required": ["reference", "file_path"],
        },
    ),
    types.Tool(
        name="page_push",
        description="Push the buffer file of an open page. Fails with version_conflict if the page changed on the server since it was pulled.",
        inputSchema={
            "type": "object",
            "properties": {"page_id": _PAGE_ID_PROPERTY},
            "required": ["page_id"],
        },
    ),
    types.Tool(
        name="page_status",
        description="Show id, title, space, next version and dirty state of open pages.",
        inputSchema={
            "type": "object",
            "properties": {"page_id": _PAGE_ID_PROPERTY},
            "required": [],
        },
    ),
    types.Tool(
        name="page_set_title",
        description="Change the title sent with the next page_push.",
        inputSchema={
            "type": "object",
            "properties": {
                "page_id": _PAGE_ID_PROPERTY,
                "title": {
                    "type": "string",
                    "description": "New page title (required)",
                },
            },
            "required": ["page_id", "title"],
        },
    ),
    types.Tool(
        name="page_close",
        description="Close an open page. Refuses when there are unpushed changes unless discard=true. The buffer file is kept.",
        inputSchema={
            "type": "object",
            "properties": {
                "page_id": _PAGE_ID_PROPERTY,
                "discard": {
                    "type": "boolean",
                    "description": "Close even if changes were not pushed (default: false)",
                    "default": False,
                },
            },
            "required": ["page_id"],
        },
    ),
    types.Tool(
        name="page_format",
        description="Pretty-print the buffer file of an open page in place. Presentation only.",
        inputSchema={
            "type": "object",
            "properties": {"page_id": _PAGE_ID_PROPERTY},
            "required": ["page_id"],
        },
    ),
    types.Tool(
        name="page_validate",
        description="Validate the buffer file of an open page against a RELAX NG (.rng) or XML Schema (.xsd) file. Advisory only.",
        inputSchema={
            "type": "object",
            "properties": {
                "page_id": _PAGE_ID_PROPERTY,
                "schema_path": {
                    "type": "string",
                    "description": "Path to the schema file (required)",
                },
            },
            "required": ["page_id", "schema_path"],
        },
    ),
]


def _text_result(
    text: str, structured: dict[str, Any] | None = None
) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )


def _require(args: dict[str, Any], key: str) -> Any:
    value = args.get(key)
    if not value:
        raise ValueError(f"{key} is required")
    return value


async def _handle_resolve(
    workspace: SessionWorkspace, args: dict[str, Any]
) -> types.CallToolResult:
    page_id = resolve(_require(args, "reference"))
    return _text_result(f"Page id: {page_id}", {"page_id": page_id})


async def _handle_open(
    workspace: SessionWorkspace, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle page_open.

    ``overwrite`` stands in for the interactive "discard local buffer?"
    question.
    """
    reference = _require(args, "reference")
    file_path = _require(args, "file_path")
    overwrite = bool(args.get("overwrite", False))

    session = await run_sync(
        workspace.open, reference, file_path, lambda _prompt: overwrite
    )
    if session is None:
        return build_error_response(
            "already_open",
            f"Page {resolve(reference)} is already open",
            "Push or close it first, or call page_open with overwrite=true to discard the local buffer.",
        )

    status = session.snapshot()
    status["file_path"] = file_path
    text = (
        f"Pulled page {session.id} '{session.title}' "
        f"(space {session.container_key}, version {session.version - 1}) "
        f"to {file_path}"
    )
    return _text_result(text, status)


async def _handle_push(
    workspace: SessionWorkspace, args: dict[str, Any]
) -> types.CallToolResult:
    page_id = _require(args, "page_id")
    version = await run_sync(workspace.push, page_id)
    return _text_result(
        f"Pushed page {page_id} (now version {version})",
        {"page_id": page_id, "version": version},
    )


async def _handle_status(
    workspace: SessionWorkspace, args: dict[str, Any]
) -> types.CallToolResult:
    page_id = args.get("page_id")
    if page_id:
        statuses = [await run_sync(workspace.status, page_id)]
    else:
        statuses = await run_sync(workspace.list_open)

    if not statuses:
        return _text_result("No pages open.", {"pages": []})

    lines = []
    for status in statuses:
        flags = []
        if status["dirty"] or status["buffer_modified"]:
            flags.append("modified")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        lines.append(
            f"- {status['page_id']}: '{status['title']}' "
            f"(space {status['space']}, next version {status['next_version']}) "
            f"-> {status['buffer_path']}{suffix}"
        )
    return _text_result("\n".join(lines), {"pages": statuses})


async def _handle_set_title(
    workspace: SessionWorkspace, args: dict[str, Any]
) -> types.CallToolResult:
    page_id = _require(args, "page_id")
    title = _require(args, "title")
    await run_sync(workspace.set_title, page_id, title)
    return _text_result(
        f"Title of page {page_id} set to '{title}' (sent on next push)",
        {"page_id": page_id, "title": title},
    )


async def _handle_close(
    workspace: SessionWorkspace, args: dict[str, Any]
) -> types.CallToolResult:
    page_id = _require(args, "page_id")
    discard = bool(args.get("discard", False))
    closed = await run_sync(
        workspace.close, page_id, lambda _prompt: discard
    )
    if not closed:
        return build_error_response(
            "unsaved_changes",
            f"Page {page_id} has changes that were not pushed",
            f"Call page_push(page_id='{page_id}') first, or page_close with discard=true.",
        )
    return _text_result(
        f"Closed page {page_id}", {"page_id": page_id, "closed": True}
    )


async def _handle_format(
    workspace: SessionWorkspace, args: dict[str, Any]
) -> types.CallToolResult:
    page_id = _require(args, "page_id")
    formatted, message = await run_sync(workspace.format_buffer, page_id)
    if not formatted:
        message = f"Buffer left unchanged: {message}"
    return _text_result(
        message, {"page_id": page_id, "formatted": formatted}
    )


async def _handle_validate(
    workspace: SessionWorkspace, args: dict[str, Any]
) -> types.CallToolResult:
    page_id = _require(args, "page_id")
    schema_path = _require(args, "schema_path")
    diagnostics = await run_sync(
        workspace.validate_buffer, page_id, schema_path
    )
    if diagnostics:
        text = f"{len(diagnostics)} problem(s):\n" + "\n".join(
            f"- {d}" for d in diagnostics
        )
    else:
        text = "Buffer is valid."
    return _text_result(
        text,
        {
            "page_id": page_id,
            "valid": not diagnostics,
            "diagnostics": diagnostics,
        },
    )


# ToolSpec list for registry-based dispatch
PAGE_SPECS: list[ToolSpec] = [
    ToolSpec(tool=PAGE_TOOLS[0], writes=False, handler=_handle_resolve),
    ToolSpec(tool=PAGE_TOOLS[1], writes=False, handler=_handle_open),
    ToolSpec(tool=PAGE_TOOLS[2], writes=True, handler=_handle_push),
    ToolSpec(tool=PAGE_TOOLS[3], writes=False, handler=_handle_status),
    ToolSpec(tool=PAGE_TOOLS[4], writes=False, handler=_handle_set_title),
    ToolSpec(tool=PAGE_TOOLS[5], writes=False, handler=_handle_close),
    ToolSpec(tool=PAGE_TOOLS[6], writes=False, handler=_handle_format),
    ToolSpec(tool=PAGE_TOOLS[7], writes=False, handler=_handle_validate),
]
