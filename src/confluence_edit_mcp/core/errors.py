"""Error taxonomy for page sessions.

Every failure the pull/edit/push cycle can surface is a ``SessionError``
subclass so callers (the MCP tool layer, scripts) can catch the family with a
single clause and still tell a version conflict apart from a dead network.

``StoreError`` is raised one layer lower, by ``ConfluenceClient``, for non-2xx
responses. ``DocumentSession`` wraps it into ``PullError``/``PushError``.
"""

CONFLICT_STATUS = 409


class SessionError(Exception):
    """Base class for all page session failures."""


class MalformedUrlError(SessionError):
    """A page id could not be extracted from a navigational URL."""

    def __init__(self, url: str):
        super().__init__(
            f"Cannot extract page id from '{url}': expected "
            "/wiki/spaces/<SPACE>/pages/<id>/..."
        )
        self.url = url


class PullError(SessionError):
    """Reading a page from the store failed.

    Attributes:
        cause: The underlying exception (transport, auth, not found,
            malformed response).
    """

    def __init__(self, page_id: str, cause: Exception):
        super().__init__(f"Failed to pull page {page_id}: {cause}")
        self.page_id = page_id
        self.cause = cause


class PushError(SessionError):
    """Writing a page to the store failed.

    Attributes:
        status_code: HTTP status reported by the store, or ``None`` when the
            request never produced a response (timeout, connection refused).
        message: Store-provided message, or the transport error text.
    """

    def __init__(self, status_code: int | None, message: str):
        prefix = f"HTTP {status_code}" if status_code else "transport error"
        super().__init__(f"Push rejected ({prefix}): {message}")
        self.status_code = status_code
        self.message = message

    @property
    def is_conflict(self) -> bool:
        """True when the store rejected the declared version."""
        return self.status_code == CONFLICT_STATUS


class InvalidStateError(SessionError):
    """Operation attempted on a session in the wrong state."""


class SessionBusyError(SessionError):
    """A pull or push is already in flight on this session."""


class StoreError(Exception):
    """Non-2xx response from the page store.

    Attributes:
        status_code: HTTP status (``statusCode`` from the error body when
            present, else the response status).
        message: ``message`` from the error body, or the response reason.
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
