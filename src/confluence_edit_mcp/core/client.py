from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

import requests

from .errors import StoreError
from .models import RemotePage

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

PAGE_EXPAND = "body.storage,space,version"
CONNECT_TIMEOUT = 10


class ConfluenceClient:
    """Blocking REST access to pages on the content endpoint.

    Each thread gets its own ``requests.Session`` so independent page
    sessions can run concurrently without sharing connection state.
    """

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.base_url = config.base_url.rstrip("/")

    @property
    def session(self) -> requests.Session:
        """The current thread's HTTP session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.auth = (self.config.username, self.config.token)
        session.verify = not self.config.insecure
        session.headers["Accept"] = "application/json"
        return session

    def _page_url(self, page_id: str) -> str:
        return f"{self.base_url}/{page_id}"

    def _request(
        self, method: str, url: str, **kwargs: Any
    ) -> dict[str, Any]:
        """
        Send a request and return the decoded JSON body.

        Raises:
            StoreError: On a non-2xx response.
            requests.RequestException: On transport failure or a success
                response that is not JSON.
        """
        response = self._get_session().request(
            method,
            url,
            timeout=(CONNECT_TIMEOUT, self.config.timeout),
            **kwargs,
        )
        if not response.ok:
            raise self._store_error(response)
        return response.json()

    @staticmethod
    def _store_error(response: requests.Response) -> StoreError:
        """Build a StoreError from an error response body.

        The store answers errors with ``{"statusCode": ..., "message": ...}``;
        proxies in front of it may answer with HTML, in which case the HTTP
        status and reason are used. A missing or non-numeric ``statusCode``
        also falls back to the HTTP status.
        """
        status_code = response.status_code
        message = response.reason or "Unknown error"
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            try:
                status_code = int(data.get("statusCode", status_code))
            except (TypeError, ValueError):
                logger.debug(
                    "Ignoring unusable statusCode %r in error body",
                    data.get("statusCode"),
                )
            message = str(data.get("message") or message)
        return StoreError(status_code, message)

    def validate_connection(self) -> str:
        """
        Check credentials and reachability with a one-item listing.

        Returns:
            The site base URL reported by the store, or the configured
            endpoint when the listing carries no links.

        Raises:
            StoreError: If the endpoint rejects the request.
        """
        data = self._request("GET", self.base_url, params={"limit": 1})
        links = data.get("_links") if isinstance(data, dict) else None
        if isinstance(links, dict) and links.get("base"):
            return str(links["base"])
        return self.base_url

    def get_page(self, page_id: str) -> RemotePage:
        """
        Fetch a page with body, space and version expanded.

        Args:
            page_id: Page identifier.

        Returns:
            The page as held by the store.

        Raises:
            StoreError: If the page is not found or access is denied.
            requests.RequestException: On transport failure.
            pydantic.ValidationError: If the response lacks required fields.
        """
        data = self._request(
            "GET", self._page_url(page_id), params={"expand": PAGE_EXPAND}
        )
        page = RemotePage.from_response(data)
        logger.debug(
            "Fetched page %s (version %d, %d chars)",
            page.id,
            page.version,
            len(page.body),
        )
        return page

    def update_page(
        self, page_id: str, payload: dict[str, Any]
    ) -> RemotePage:
        """
        Replace a page with a full document representation.

        Args:
            page_id: Page identifier.
            payload: Document built by ``build_update_payload``; its
                ``version.number`` must be the server version + 1.

        Returns:
            The page as stored after the write.

        Raises:
            StoreError: On version conflict (409), permission or validation
                failures.
            requests.RequestException: On transport failure.
            pydantic.ValidationError: If the response lacks required fields.
        """
        data = self._request(
            "PUT",
            self._page_url(page_id),
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        return RemotePage.from_response(data)
