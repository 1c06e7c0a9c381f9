"""Tests for SessionWorkspace: buffers, confirmations, presentation."""

import threading
from unittest.mock import MagicMock

import pytest

from confluence_edit_mcp.core.errors import (
    InvalidStateError,
    MalformedUrlError,
    PullError,
    PushError,
    SessionBusyError,
    StoreError,
)
from confluence_edit_mcp.core.formatter import FormatterError
from confluence_edit_mcp.core.models import RemotePage
from confluence_edit_mcp.core.workspace import SessionWorkspace

PAGE_URL = "https://example.atlassian.net/wiki/spaces/ENG/pages/42/Notes"


@pytest.fixture
def workspace(mock_store):
    return SessionWorkspace(mock_store)


@pytest.fixture
def buffer(tmp_path):
    return tmp_path / "notes.xml"


@pytest.fixture
def opened(workspace, buffer):
    workspace.open("42", str(buffer))
    return workspace


class TestOpen:
    def test_writes_buffer(self, workspace, buffer, mock_store):
        session = workspace.open(PAGE_URL, str(buffer))

        mock_store.get_page.assert_called_once_with("42")
        assert session.version == 4
        assert buffer.read_text() == "<wrapper><p>hi</p>\n</wrapper>\n"
        assert workspace.get("42") is session

    def test_malformed_url(self, workspace, buffer, mock_store):
        with pytest.raises(MalformedUrlError):
            workspace.open("https://x.net/wiki/spaces/ENG", str(buffer))
        mock_store.get_page.assert_not_called()

    def test_relative_buffer_path(self, workspace, mock_store):
        with pytest.raises(ValueError, match="absolute"):
            workspace.open("42", "notes.xml")
        mock_store.get_page.assert_not_called()

    def test_buffer_outside_base_dir(self, mock_store, tmp_path):
        base = tmp_path / "buffers"
        base.mkdir()
        workspace = SessionWorkspace(mock_store, base_dir=str(base))
        with pytest.raises(ValueError, match="outside base directory"):
            workspace.open("42", str(tmp_path / "notes.xml"))

    def test_pull_failure_writes_nothing(self, workspace, buffer, mock_store):
        mock_store.get_page.side_effect = StoreError(404, "No content found")

        with pytest.raises(PullError):
            workspace.open("42", str(buffer))

        assert not buffer.exists()
        assert workspace.list_open() == []

    def test_reopen_declined_by_default(self, opened, buffer, mock_store):
        buffer.write_text("<wrapper>my edits\n</wrapper>\n")

        assert opened.open("42", str(buffer)) is None

        assert mock_store.get_page.call_count == 1
        assert buffer.read_text() == "<wrapper>my edits\n</wrapper>\n"

    def test_reopen_asks_and_declines(self, opened, buffer, mock_store):
        confirm = MagicMock(return_value=False)

        assert opened.open("42", str(buffer), confirm) is None

        prompt = confirm.call_args[0][0]
        assert "already open" in prompt
        assert mock_store.get_page.call_count == 1

    def test_reopen_confirmed_reuses_session(
        self, opened, buffer, mock_store, page_json
    ):
        first = opened.get("42")
        buffer.write_text("<wrapper>my edits\n</wrapper>\n")
        mock_store.get_page.return_value = RemotePage.from_response(
            page_json(version=8, body="<p>newer</p>")
        )

        session = opened.open("42", str(buffer), lambda _: True)

        assert session is first
        assert session.version == 9
        assert buffer.read_text() == "<wrapper><p>newer</p>\n</wrapper>\n"

    def test_concurrent_open_of_same_page(
        self, workspace, buffer, mock_store, page_json
    ):
        started = threading.Event()
        release = threading.Event()

        def slow_get(page_id):
            started.set()
            release.wait(timeout=5)
            return RemotePage.from_response(page_json())

        mock_store.get_page.side_effect = slow_get
        worker = threading.Thread(
            target=workspace.open, args=("42", str(buffer))
        )
        worker.start()
        try:
            assert started.wait(timeout=5)
            with pytest.raises(SessionBusyError, match="already being opened"):
                workspace.open(PAGE_URL, str(buffer))
        finally:
            release.set()
            worker.join(timeout=5)

        assert mock_store.get_page.call_count == 1
        assert [s["page_id"] for s in workspace.list_open()] == ["42"]

    def test_open_marker_cleared_after_failure(
        self, workspace, buffer, mock_store
    ):
        mock_store.get_page.side_effect = StoreError(500, "boom")
        with pytest.raises(PullError):
            workspace.open("42", str(buffer))

        mock_store.get_page.side_effect = None
        assert workspace.open("42", str(buffer)).version == 4


class TestPush:
    def test_push_reads_buffer(self, opened, buffer, mock_store, page_json):
        buffer.write_text("<wrapper><p>edited</p>\n</wrapper>\n")
        mock_store.update_page.return_value = RemotePage.from_response(
            page_json(version=4)
        )

        assert opened.push("42") == 4

        payload = mock_store.update_page.call_args[0][1]
        assert payload["body"]["storage"]["value"] == (
            "<wrapper><p>edited</p>\n</wrapper>\n"
        )
        assert payload["version"] == {"number": 4}
        assert opened.get("42").version == 5

    def test_push_not_open(self, workspace, mock_store):
        with pytest.raises(InvalidStateError, match="not open"):
            workspace.push("42")
        mock_store.update_page.assert_not_called()

    def test_push_missing_buffer(self, opened, buffer, mock_store):
        buffer.unlink()
        with pytest.raises(ValueError, match="File not found"):
            opened.push("42")
        mock_store.update_page.assert_not_called()

    def test_push_conflict(self, opened, buffer, mock_store):
        mock_store.update_page.side_effect = StoreError(409, "stale")

        with pytest.raises(PushError) as exc_info:
            opened.push("42")

        assert exc_info.value.is_conflict
        assert opened.get("42").version == 4


class TestClose:
    def test_clean_close(self, opened, buffer):
        assert opened.close("42") is True
        assert opened.list_open() == []
        assert buffer.exists()

    def test_modified_buffer_declined(self, opened, buffer):
        buffer.write_text("<wrapper>changed\n</wrapper>\n")

        assert opened.close("42") is False
        assert opened.get("42").is_bound

    def test_modified_buffer_confirmed(self, opened, buffer):
        buffer.write_text("<wrapper>changed\n</wrapper>\n")
        confirm = MagicMock(return_value=True)

        assert opened.close("42", confirm) is True
        assert "not pushed" in confirm.call_args[0][0]
        with pytest.raises(InvalidStateError):
            opened.get("42")

    def test_dirty_title_asks(self, opened):
        opened.set_title("42", "Renamed")
        assert opened.close("42") is False

    def test_close_not_open(self, workspace):
        with pytest.raises(InvalidStateError):
            workspace.close("42")


class TestStatus:
    def test_status(self, opened, buffer):
        status = opened.status("42")
        assert status["page_id"] == "42"
        assert status["next_version"] == 4
        assert status["buffer_path"] == str(buffer.resolve())
        assert status["buffer_modified"] is False

    def test_status_tracks_buffer_edits(self, opened, buffer):
        buffer.write_text("other")
        assert opened.status("42")["buffer_modified"] is True

    def test_list_open_sorted(self, workspace, mock_store, page_json, tmp_path):
        for page_id in ("9", "10"):
            mock_store.get_page.return_value = RemotePage.from_response(
                page_json(page_id=page_id)
            )
            workspace.open(page_id, str(tmp_path / f"{page_id}.xml"))

        assert [s["page_id"] for s in workspace.list_open()] == ["10", "9"]


class TestFormat:
    def test_formats_in_place(self, opened, buffer):
        buffer.write_text("<wrapper><p>a</p><p>b</p></wrapper>")

        ok, message = opened.format_buffer("42")

        assert ok
        assert str(buffer.resolve()) in message
        assert buffer.read_text() == "<wrapper>\n  <p>a</p>\n  <p>b</p>\n</wrapper>\n"

    def test_failure_leaves_file_untouched(self, mock_store, buffer):
        formatter = MagicMock()
        formatter.format.side_effect = FormatterError("tidy exploded")
        workspace = SessionWorkspace(mock_store, formatter=formatter)
        workspace.open("42", str(buffer))
        before = buffer.read_bytes()

        ok, message = workspace.format_buffer("42")

        assert not ok
        assert message == "tidy exploded"
        assert buffer.read_bytes() == before

    def test_format_does_not_touch_session(self, opened, buffer):
        session = opened.get("42")
        content, version = session.content, session.version

        opened.format_buffer("42")

        assert (session.content, session.version) == (content, version)


class TestValidate:
    def test_delegates_to_validator(self, mock_store, buffer, tmp_path):
        validator = MagicMock()
        validator.validate.return_value = ["1:10: Did not expect element h1"]
        workspace = SessionWorkspace(mock_store, validator=validator)
        workspace.open("42", str(buffer))

        problems = workspace.validate_buffer("42", str(tmp_path / "s.rng"))

        assert problems == ["1:10: Did not expect element h1"]
        text, schema = validator.validate.call_args[0]
        assert text == "<wrapper><p>hi</p>\n</wrapper>\n"
        assert schema == str(tmp_path / "s.rng")
