"""Document session: the local representative of one remote page.

A session is either *unbound* (nothing loaded) or *bound* to a page. While
bound it holds the page identity, the editable text, and the version number
the next write will declare. The store assigns ``n + 1`` to an accepted write
against version ``n``, so the session keeps ``version`` one ahead of the last
version it saw and sends it unchanged on push.

State machine::

    unbound --pull--> pulling --ok--> bound
    bound   --pull--> pulling --ok--> bound (rebound)
    bound   --push--> pushing --ok--> bound (version advanced)
    pulling/pushing --error--> previous state, nothing mutated
    any     --close--> unbound

At most one pull or push runs per session. A second request while one is in
flight fails immediately with ``SessionBusyError``.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

import requests

from .codec import ContentCodec
from .errors import (
    InvalidStateError,
    PullError,
    PushError,
    SessionBusyError,
    StoreError,
)
from .models import RemotePage, SessionState, build_update_payload

logger = logging.getLogger(__name__)

# requests.RequestException covers timeouts and connection errors;
# ValueError covers undecodable JSON and pydantic validation failures.
_TRANSPORT_ERRORS = (requests.RequestException, ValueError)


class PageStore(Protocol):
    """Read/write access to pages by id."""

    def get_page(self, page_id: str) -> RemotePage: ...

    def update_page(
        self, page_id: str, payload: dict[str, Any]
    ) -> RemotePage: ...


class DocumentSession:
    """Pull, edit and push one page under optimistic locking.

    Args:
        store: The page store (``ConfluenceClient`` in production).
        codec: Storage body <-> editable text conversion.
    """

    def __init__(
        self, store: PageStore, codec: ContentCodec | None = None
    ) -> None:
        self._store = store
        self._codec = codec or ContentCodec()
        self._lock = threading.Lock()
        self._unbind()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _unbind(self) -> None:
        self.id: str | None = None
        self.version: int | None = None
        self.title: str | None = None
        self.container_key: str | None = None
        self.content: str | None = None
        self._pulled_title: str | None = None
        self._pulled_content: str | None = None
        self.state = SessionState.UNBOUND

    def _bind(self, page: RemotePage, content: str) -> None:
        self.id = page.id
        self.title = page.title
        self.container_key = page.container_key
        self.version = page.version + 1
        self.content = content
        self._pulled_title = page.title
        self._pulled_content = content
        self.state = SessionState.BOUND

    @property
    def is_bound(self) -> bool:
        return self.id is not None and self.state != SessionState.UNBOUND

    @property
    def is_dirty(self) -> bool:
        """True when title or content differ from what was last bound."""
        if not self.is_bound:
            return False
        return (
            self.content != self._pulled_content
            or self.title != self._pulled_title
        )

    def has_unsaved_session(self, page_id: str) -> bool:
        """True if this session already holds *page_id*.

        Pulling again replaces the local buffer, so callers use this to
        decide whether to ask before discarding it.
        """
        return self.is_bound and self.id == page_id

    def _begin(
        self, busy_state: SessionState, require_bound: bool
    ) -> SessionState:
        if not self._lock.acquire(blocking=False):
            raise SessionBusyError(
                f"Session is busy ({self.state.value}); wait for the "
                "current operation to finish"
            )
        if require_bound and self.state != SessionState.BOUND:
            self._lock.release()
            raise InvalidStateError(
                f"No page loaded (session is {self.state.value}); pull a page first"
            )
        previous = self.state
        self.state = busy_state
        return previous

    # ------------------------------------------------------------------
    # Pull / push
    # ------------------------------------------------------------------

    def pull(self, page_id: str) -> RemotePage:
        """Load *page_id* into this session, replacing any current content.

        Returns:
            The page as fetched from the store.

        Raises:
            SessionBusyError: If a pull or push is in flight.
            PullError: If the page could not be read. The session is left
                exactly as it was.
        """
        previous = self._begin(SessionState.PULLING, require_bound=False)
        try:
            try:
                page = self._store.get_page(page_id)
            except (StoreError, *_TRANSPORT_ERRORS) as exc:
                logger.warning("Pull of page %s failed: %s", page_id, exc)
                raise PullError(page_id, exc) from exc
            self._bind(page, self._codec.decode(page.body))
        except BaseException:
            self.state = previous
            raise
        finally:
            self._lock.release()

        logger.info(
            "Pulled page %s '%s' from space %s at version %d",
            page.id,
            page.title,
            page.container_key,
            page.version,
        )
        return page

    def push(self) -> int:
        """Write the current content and title back to the store.

        Returns:
            The version number the store assigned to the write.

        Raises:
            InvalidStateError: If no page is loaded. No request is made.
            SessionBusyError: If a pull or push is in flight.
            PushError: If the store rejected the write (most often a version
                conflict, ``status_code == 409``) or the request failed. The
                session is left exactly as it was.
        """
        previous = self._begin(SessionState.PUSHING, require_bound=True)
        try:
            body = self._codec.encode(self.content)
            payload = build_update_payload(
                self.id, self.title, self.container_key, body, self.version
            )
            try:
                page = self._store.update_page(self.id, payload)
            except StoreError as exc:
                logger.warning(
                    "Push of page %s at version %d rejected: %s",
                    self.id,
                    self.version,
                    exc,
                )
                raise PushError(exc.status_code, exc.message) from exc
            except _TRANSPORT_ERRORS as exc:
                logger.warning("Push of page %s failed: %s", self.id, exc)
                raise PushError(None, str(exc)) from exc

            self.title = page.title
            self.container_key = page.container_key
            self.version = page.version + 1
            self._pulled_title = page.title
            self._pulled_content = self.content
            self.state = SessionState.BOUND
        except BaseException:
            self.state = previous
            raise
        finally:
            self._lock.release()

        logger.info("Pushed page %s, now at version %d", self.id, page.version)
        return page.version

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _require_idle_bound(self) -> None:
        if self.state in (SessionState.PULLING, SessionState.PUSHING):
            raise SessionBusyError(
                f"Session is busy ({self.state.value})"
            )
        if self.state != SessionState.BOUND:
            raise InvalidStateError("No page loaded; pull a page first")

    def set_title(self, title: str) -> None:
        """Change the title sent with the next push."""
        self._require_idle_bound()
        if not title.strip():
            raise ValueError("Title cannot be empty")
        self.title = title

    def set_content(self, content: str) -> None:
        """Replace the editable text sent with the next push."""
        self._require_idle_bound()
        self.content = content

    def close(self) -> None:
        """Discard the page and return to unbound.

        Waits for an in-flight pull or push to finish first.
        """
        with self._lock:
            if self.id is not None:
                logger.info("Closed page %s", self.id)
            self._unbind()

    def snapshot(self) -> dict[str, Any]:
        """Plain-dict view of the session for status reports."""
        return {
            "state": self.state.value,
            "page_id": self.id,
            "title": self.title,
            "space": self.container_key,
            "next_version": self.version,
            "dirty": self.is_dirty,
        }
