"""MCP tool handlers for page sessions.

Wraps ``SessionWorkspace`` with async handlers and structured error
responses.
"""

from .errors import build_error_response, translate_session_error
from .page import PAGE_SPECS, PAGE_TOOLS
from .registry import ToolRegistry, ToolSpec

ALL_SPECS: list[ToolSpec] = list(PAGE_SPECS)

__all__ = [
    "ALL_SPECS",
    "PAGE_SPECS",
    "PAGE_TOOLS",
    "ToolRegistry",
    "ToolSpec",
    "build_error_response",
    "translate_session_error",
]
