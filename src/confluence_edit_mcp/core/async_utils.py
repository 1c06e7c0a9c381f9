"""Bridge blocking page operations into async MCP handlers."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a blocking call in a worker thread without stalling the event loop.

    Example:
        # In an MCP tool handler:
        version = await run_sync(workspace.push, page_id)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
