"""Page session core: store client, codec, sessions and the workspace."""

from .async_utils import run_sync
from .client import ConfluenceClient
from .codec import ContentCodec
from .errors import (
    InvalidStateError,
    MalformedUrlError,
    PullError,
    PushError,
    SessionBusyError,
    SessionError,
    StoreError,
)
from .resolver import resolve, resolve_from_id, resolve_from_url
from .session import DocumentSession
from .workspace import SessionWorkspace

__all__ = [
    "ConfluenceClient",
    "ContentCodec",
    "DocumentSession",
    "InvalidStateError",
    "MalformedUrlError",
    "PullError",
    "PushError",
    "SessionBusyError",
    "SessionError",
    "SessionWorkspace",
    "StoreError",
    "resolve",
    "resolve_from_id",
    "resolve_from_url",
    "run_sync",
]
