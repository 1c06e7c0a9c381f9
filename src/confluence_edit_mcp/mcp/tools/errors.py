"""Error response builders for MCP tool handlers.

Session failures are turned into structured responses with a corrective
action so an agent can recover (re-pull, retry, fix the URL) without a human.
"""

import mcp.types as types

from ...core.errors import (
    InvalidStateError,
    MalformedUrlError,
    PullError,
    PushError,
    SessionBusyError,
    SessionError,
    StoreError,
)


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (malformed_url, pull_failed,
            version_conflict, push_failed, invalid_state, session_busy,
            validation_error, server_error, ...)
        message: Human-readable error description
        corrective_action: Specific action the agent can take

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("invalid_state", "Page 42 is not open", "Use page_open first.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def _pull_action(error: PullError) -> tuple[str, str]:
    cause = error.cause
    if isinstance(cause, StoreError):
        if cause.status_code == 404:
            return (
                "not_found",
                f"Check that page {error.page_id} exists and that the account can view it.",
            )
        if cause.status_code in (401, 403):
            return (
                "permission_denied",
                "Check CONFLUENCE_USERNAME and CONFLUENCE_TOKEN, and the page restrictions.",
            )
    return ("pull_failed", "Check connectivity and retry page_open.")


def translate_session_error(
    error: SessionError, page_id: str | None = None
) -> types.CallToolResult:
    """Translate a session failure into a structured error response.

    Args:
        error: The session exception.
        page_id: Page the tool was operating on, for contextual hints.
    """
    target = f"page_id='{page_id}'" if page_id else "page_id=..."

    match error:
        case MalformedUrlError():
            return build_error_response(
                "malformed_url",
                str(error),
                "Pass the numeric page id, or a URL like "
                "https://<site>/wiki/spaces/<SPACE>/pages/<id>/<title>.",
            )
        case PullError():
            error_type, action = _pull_action(error)
            return build_error_response(error_type, str(error), action)
        case PushError() if error.is_conflict:
            return build_error_response(
                "version_conflict",
                str(error),
                "The page changed on the server since it was pulled. "
                f"Save your buffer elsewhere, re-pull with page_open(..., overwrite=true), "
                f"reapply your edits, then page_push({target}).",
            )
        case PushError():
            return build_error_response(
                "push_failed",
                str(error),
                f"Fix the reported problem and retry page_push({target}).",
            )
        case SessionBusyError():
            return build_error_response(
                "session_busy",
                str(error),
                "Wait for the running pull or push to finish, then retry.",
            )
        case InvalidStateError():
            return build_error_response(
                "invalid_state",
                str(error),
                "Use page_open to pull the page first; page_status lists open pages.",
            )
        case _:
            return build_error_response(
                "server_error", str(error), "Retry later."
            )
