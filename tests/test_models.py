"""Tests for wire-shape models and the update payload."""

import pytest
from pydantic import ValidationError

from confluence_edit_mcp.core.models import (
    RemotePage,
    SessionState,
    build_update_payload,
)


class TestRemotePage:
    def test_from_response(self, page_json):
        page = RemotePage.from_response(page_json())
        assert page.id == "42"
        assert page.title == "Notes"
        assert page.container_key == "ENG"
        assert page.version == 3
        assert page.body == "<p>hi</p>"

    def test_numeric_id_coerced(self, page_json):
        data = page_json()
        data["id"] = 42
        assert RemotePage.from_response(data).id == "42"

    def test_missing_body_is_empty(self, page_json):
        data = page_json()
        del data["body"]
        assert RemotePage.from_response(data).body == ""

    def test_missing_version_rejected(self, page_json):
        data = page_json()
        del data["version"]
        with pytest.raises(ValidationError):
            RemotePage.from_response(data)

    def test_missing_space_rejected(self, page_json):
        data = page_json()
        del data["space"]
        with pytest.raises(ValidationError):
            RemotePage.from_response(data)

    def test_non_dict_rejected(self):
        with pytest.raises(ValidationError):
            RemotePage.from_response(["not", "a", "page"])

    def test_frozen(self, page_json):
        page = RemotePage.from_response(page_json())
        with pytest.raises(ValidationError):
            page.title = "Other"


class TestBuildUpdatePayload:
    def test_shape(self):
        payload = build_update_payload(
            "42", "Notes", "ENG", "<p>hi</p>", 4
        )
        assert payload == {
            "id": "42",
            "type": "page",
            "title": "Notes",
            "space": {"key": "ENG"},
            "body": {
                "storage": {
                    "value": "<p>hi</p>",
                    "representation": "storage",
                }
            },
            "version": {"number": 4},
        }


def test_session_state_values():
    assert SessionState.UNBOUND.value == "unbound"
    assert SessionState("pushing") is SessionState.PUSHING
