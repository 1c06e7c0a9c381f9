"""Open pages and their local buffer files.

The workspace plays the part of the editing surface: it owns one
``DocumentSession`` per open page and the file that holds its editable text.
Sessions live exactly as long as the page stays open here; nothing is kept in
module globals.

Whenever an operation would throw away local work (re-pulling an open page,
closing a page with unpushed edits) the workspace asks the caller through a
``confirm`` callback instead of prompting itself. Without a callback the
answer is "no".
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..file_handler import (
    read_file_with_encoding,
    validate_file_path,
    validate_output_path,
    write_file,
)
from .codec import ContentCodec
from .errors import InvalidStateError, SessionBusyError
from .formatter import (
    FormatterError,
    LxmlXmlFormatter,
    SchemaValidator,
    XmlFormatter,
)
from .resolver import resolve
from .session import DocumentSession, PageStore

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]


@dataclass
class OpenPage:
    session: DocumentSession
    buffer_path: Path


def _ask(confirm: ConfirmCallback | None, prompt: str) -> bool:
    if confirm is None:
        return False
    return bool(confirm(prompt))


class SessionWorkspace:
    """Registry of open pages.

    Args:
        store: Page store shared by all sessions.
        codec: Codec shared by all sessions.
        formatter: Pretty-printer used by ``format_buffer``.
        validator: Schema validator used by ``validate_buffer``.
        base_dir: If set, buffer files must live under this directory.
    """

    def __init__(
        self,
        store: PageStore,
        codec: ContentCodec | None = None,
        formatter: XmlFormatter | None = None,
        validator: SchemaValidator | None = None,
        base_dir: str | None = None,
    ) -> None:
        self._store = store
        self._codec = codec or ContentCodec()
        self._formatter = formatter or LxmlXmlFormatter()
        self._validator = validator or SchemaValidator()
        self._base_dir = base_dir
        self._pages: dict[str, OpenPage] = {}
        self._opening: set[str] = set()
        self._lock = threading.Lock()

    def _entry(self, page_id: str) -> OpenPage:
        with self._lock:
            entry = self._pages.get(page_id)
        if entry is None:
            raise InvalidStateError(
                f"Page {page_id} is not open; open it first"
            )
        return entry

    def get(self, page_id: str) -> DocumentSession:
        return self._entry(page_id).session

    def open(
        self,
        reference: str,
        buffer_path: str,
        confirm: ConfirmCallback | None = None,
    ) -> DocumentSession | None:
        """Pull a page into a buffer file.

        Args:
            reference: Page id or navigational URL.
            buffer_path: Absolute path of the file to write the editable
                text to.
            confirm: Asked before replacing a page that is already open.

        Returns:
            The bound session, or ``None`` if the caller declined to
            replace an already open page.

        Raises:
            MalformedUrlError: If *reference* is a URL without a page id.
            ValueError: If *buffer_path* is not a usable path.
            PullError: If the page could not be read.
            SessionBusyError: If the same page is already being opened.
        """
        page_id = resolve(reference)
        path = validate_output_path(buffer_path, self._base_dir)

        with self._lock:
            if page_id in self._opening:
                raise SessionBusyError(
                    f"Page {page_id} is already being opened"
                )
            self._opening.add(page_id)
            entry = self._pages.get(page_id)

        try:
            return self._open(page_id, path, entry, confirm)
        finally:
            with self._lock:
                self._opening.discard(page_id)

    def _open(
        self,
        page_id: str,
        path: Path,
        entry: OpenPage | None,
        confirm: ConfirmCallback | None,
    ) -> DocumentSession | None:
        if entry is not None and entry.session.has_unsaved_session(page_id):
            prompt = (
                f"Page {page_id} is already open in {entry.buffer_path}. "
                "Discard the local buffer and pull again?"
            )
            if not _ask(confirm, prompt):
                logger.info("Re-pull of open page %s declined", page_id)
                return None
            session = entry.session
        else:
            session = DocumentSession(self._store, self._codec)

        session.pull(page_id)
        write_file(path, session.content)

        with self._lock:
            self._pages[session.id] = OpenPage(session, path)
        logger.info("Opened page %s in %s", session.id, path)
        return session

    def _read_buffer(self, entry: OpenPage) -> str:
        path = validate_file_path(str(entry.buffer_path))
        content, _encoding = read_file_with_encoding(path)
        return content

    def push(self, page_id: str) -> int:
        """Push the buffer file of an open page.

        Returns:
            The version number the store assigned.

        Raises:
            InvalidStateError: If the page is not open.
            ValueError: If the buffer file has disappeared.
            PushError: If the store rejected the write.
        """
        entry = self._entry(page_id)
        entry.session.set_content(self._read_buffer(entry))
        return entry.session.push()

    def set_title(self, page_id: str, title: str) -> None:
        self._entry(page_id).session.set_title(title)

    def buffer_modified(self, page_id: str) -> bool:
        """True if the buffer file differs from the session's content."""
        entry = self._entry(page_id)
        if not entry.buffer_path.exists():
            return False
        return self._read_buffer(entry) != entry.session.content

    def close(
        self, page_id: str, confirm: ConfirmCallback | None = None
    ) -> bool:
        """Close a page, asking first if it has unpushed changes.

        The buffer file is left on disk.

        Returns:
            True if the page was closed, False if the caller declined.
        """
        entry = self._entry(page_id)
        if entry.session.is_dirty or self.buffer_modified(page_id):
            prompt = (
                f"Page {page_id} has changes that were not pushed. "
                "Discard them?"
            )
            if not _ask(confirm, prompt):
                logger.info("Close of page %s declined", page_id)
                return False

        entry.session.close()
        with self._lock:
            self._pages.pop(page_id, None)
        return True

    def status(self, page_id: str) -> dict[str, Any]:
        entry = self._entry(page_id)
        status = entry.session.snapshot()
        status["buffer_path"] = str(entry.buffer_path)
        status["buffer_modified"] = self.buffer_modified(page_id)
        return status

    def list_open(self) -> list[dict[str, Any]]:
        with self._lock:
            page_ids = sorted(self._pages)
        return [self.status(page_id) for page_id in page_ids]

    def format_buffer(self, page_id: str) -> tuple[bool, str]:
        """Pretty-print the buffer file in place.

        Formatter failures leave the file untouched.

        Returns:
            Tuple of (formatted, message).
        """
        entry = self._entry(page_id)
        text = self._read_buffer(entry)
        try:
            formatted = self._formatter.format(text)
        except FormatterError as exc:
            logger.warning("Formatting page %s failed: %s", page_id, exc)
            return (False, str(exc))

        write_file(entry.buffer_path, formatted)
        return (True, f"Formatted {entry.buffer_path}")

    def validate_buffer(
        self, page_id: str, schema_path: str
    ) -> list[str]:
        """Validate the buffer file against a schema; advisory only."""
        entry = self._entry(page_id)
        return self._validator.validate(
            self._read_buffer(entry), schema_path
        )
