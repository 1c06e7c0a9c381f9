"""Tests for page id extraction from URLs and raw ids."""

import pytest

from confluence_edit_mcp.core.errors import MalformedUrlError
from confluence_edit_mcp.core.resolver import (
    resolve,
    resolve_from_id,
    resolve_from_url,
)


class TestResolveFromUrl:
    @pytest.mark.parametrize(
        "url, expected",
        [
            (
                "https://example.atlassian.net/wiki/spaces/ENG/pages/42/Notes",
                "42",
            ),
            ("/wiki/spaces/ENG/pages/123456/Some+Title", "123456"),
            ("https://x.net/wiki/spaces/Team1/pages/7/", "7"),
            ("https://x.net/wiki/spaces/ENG/pages/99/a/b/c", "99"),
            ("https://x.net/wiki/spaces/ENG/pages/42", "42"),
            ("https://x.net/wiki/spaces/ENG/pages/42/Notes?focused=1#c", "42"),
        ],
    )
    def test_extracts_digits_after_pages(self, url, expected):
        assert resolve_from_url(url) == expected

    @pytest.mark.parametrize(
        "url",
        [
            "https://x.net/wiki/spaces/ENG/pages/abc/Notes",
            "https://x.net/wiki/spaces/ENG/overview",
            "https://x.net/spaces/ENG/pages/42/Notes",
            "https://x.net/wiki/spaces/E-NG/pages/42/Notes",
            "https://x.net/wiki/spaces//pages/42/Notes",
            "https://x.net/wiki/spaces/ENG/pages/42x/Notes",
            "https://x.net/display/ENG/Notes",
            "",
        ],
    )
    def test_rejects_other_shapes(self, url):
        with pytest.raises(MalformedUrlError) as exc_info:
            resolve_from_url(url)
        assert exc_info.value.url == url

    def test_error_message_names_expected_shape(self):
        with pytest.raises(MalformedUrlError, match="/wiki/spaces/"):
            resolve_from_url("https://x.net/nope")


class TestResolveFromId:
    def test_identity(self):
        assert resolve_from_id("42") == "42"

    def test_does_not_validate_digits(self):
        assert resolve_from_id("not-a-number") == "not-a-number"


class TestResolve:
    def test_raw_id(self):
        assert resolve(" 42 ") == "42"

    def test_url(self):
        assert resolve("https://x.net/wiki/spaces/ENG/pages/42/Notes") == "42"

    def test_bad_url(self):
        with pytest.raises(MalformedUrlError):
            resolve("https://x.net/wiki/spaces/ENG")
