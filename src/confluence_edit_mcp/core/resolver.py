"""Page identifier extraction.

Pages are addressed by opaque ids. Users usually have a browser URL at hand,
e.g. ``https://example.atlassian.net/wiki/spaces/ENG/pages/42/Notes``, so the
id can also be taken from the navigational path. Purely syntactic: no request
is made here.
"""

import re
from urllib.parse import urlparse

from .errors import MalformedUrlError

# /wiki/spaces/<SPACE>/pages/<digits>[/<anything>]
_PAGE_PATH_PATTERN = re.compile(
    r"^/wiki/spaces/[A-Za-z0-9]+/pages/(?P<page_id>\d+)(?:/.*)?$"
)


def resolve_from_url(url: str) -> str:
    """Return the page id embedded in a navigational URL.

    Args:
        url: Full URL or bare path. Query string and fragment are ignored.

    Returns:
        The digit run following ``/pages/``.

    Raises:
        MalformedUrlError: If the path does not have the
            ``/wiki/spaces/<SPACE>/pages/<digits>/...`` shape.
    """
    path = urlparse(url.strip()).path
    match = _PAGE_PATH_PATTERN.match(path)
    if match is None:
        raise MalformedUrlError(url)
    return match.group("page_id")


def resolve_from_id(page_id: str) -> str:
    """Return a raw id unchanged. The store rejects ids it does not know."""
    return page_id


def resolve(reference: str) -> str:
    """Resolve either a URL/path or a raw id to a page id."""
    reference = reference.strip()
    if "/" in reference:
        return resolve_from_url(reference)
    return resolve_from_id(reference)
