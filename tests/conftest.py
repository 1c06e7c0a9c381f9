"""Shared pytest fixtures for confluence-edit-mcp tests."""

from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

from confluence_edit_mcp.config import Config
from confluence_edit_mcp.core.models import RemotePage

load_dotenv()


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live Confluence instance",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live Confluence instance"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        base_url="https://example.atlassian.net/wiki/rest/api/content",
        username="tester@example.com",
        token="secret-token",
        insecure=False,
    )


def make_page_json(
    page_id="42",
    title="Notes",
    space="ENG",
    version=3,
    body="<p>hi</p>",
) -> dict:
    """Build a content endpoint response body."""
    return {
        "id": page_id,
        "type": "page",
        "title": title,
        "space": {"key": space},
        "version": {"number": version},
        "body": {
            "storage": {"value": body, "representation": "storage"}
        },
    }


@pytest.fixture
def page_json():
    """Factory fixture for content endpoint response bodies."""
    return make_page_json


@pytest.fixture
def mock_store():
    """A page store double serving page 42 at version 3."""
    store = MagicMock()
    store.get_page.return_value = RemotePage.from_response(
        make_page_json()
    )
    return store
