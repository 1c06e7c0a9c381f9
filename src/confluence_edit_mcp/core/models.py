"""Pydantic models for the page store's wire shapes.

- ``SessionState``: lifecycle states of a ``DocumentSession``.
- ``RemotePage``: flattened view of a page as returned by the content
  endpoint (``?expand=body.storage,space,version``).
- ``build_update_payload``: the full document representation a ``PUT``
  expects.

Response models are frozen; a response that does not validate is treated as a
transport failure by the session layer.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

STORAGE_REPRESENTATION = "storage"
PAGE_TYPE = "page"


class SessionState(str, Enum):
    """Lifecycle states of a document session."""

    UNBOUND = "unbound"
    BOUND = "bound"
    PULLING = "pulling"
    PUSHING = "pushing"


class _Space(BaseModel):
    key: str

    model_config = {"frozen": True}


class _Version(BaseModel):
    number: int = Field(ge=1)

    model_config = {"frozen": True}


class _Storage(BaseModel):
    value: str = ""

    model_config = {"frozen": True}


class _Body(BaseModel):
    storage: _Storage = Field(default_factory=_Storage)

    model_config = {"frozen": True}


class _PageResponse(BaseModel):
    id: str
    title: str
    space: _Space
    version: _Version
    body: _Body = Field(default_factory=_Body)

    model_config = {"frozen": True}

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_string(cls, value: Any) -> Any:
        # Some deployments return numeric ids
        if isinstance(value, int):
            return str(value)
        return value


class RemotePage(BaseModel):
    """A page as held by the store.

    Attributes:
        id: Page identifier.
        title: Page title.
        container_key: Key of the space the page lives in.
        version: Current version number on the server.
        body: Storage-format body fragment (may be empty).
    """

    id: str
    title: str
    container_key: str
    version: int
    body: str = ""

    model_config = {"frozen": True}

    @classmethod
    def from_response(cls, data: Any) -> RemotePage:
        """Build a ``RemotePage`` from a decoded JSON response.

        Raises:
            pydantic.ValidationError: If required fields are missing or
                mistyped.
        """
        page = _PageResponse.model_validate(data)
        return cls(
            id=page.id,
            title=page.title,
            container_key=page.space.key,
            version=page.version.number,
            body=page.body.storage.value,
        )


def build_update_payload(
    page_id: str,
    title: str,
    container_key: str,
    body: str,
    version: int,
) -> dict[str, Any]:
    """Build the JSON document for a page update.

    ``version`` is the number the write declares, i.e. the version the
    store will assign if it accepts the write.
    """
    return {
        "id": page_id,
        "type": PAGE_TYPE,
        "title": title,
        "space": {"key": container_key},
        "body": {
            "storage": {
                "value": body,
                "representation": STORAGE_REPRESENTATION,
            }
        },
        "version": {"number": version},
    }
