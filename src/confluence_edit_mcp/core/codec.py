"""Conversion between storage-format bodies and editable text.

The store's storage format is an XHTML-like fragment without a single root
element, so it is not a well-formed XML document on its own. ``decode`` wraps
it in one container element so XML tooling (pretty-printers, schema
validators) accepts the editable buffer.

``encode`` sends the buffer verbatim, wrapper included. That asymmetry is the
long-standing behaviour of the tool; ``unwrap_on_push=True`` opts into
stripping the wrapper that ``decode`` added.
"""

import re

DEFAULT_WRAPPER = "wrapper"

_XML_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9._-]*$")


def is_valid_element_name(name: str) -> bool:
    """Return True if *name* can be used as the wrapper element name."""
    return bool(_XML_NAME_PATTERN.match(name)) and not name.lower().startswith(
        "xml"
    )


class ContentCodec:
    """Wrap and unwrap storage-format fragments.

    Args:
        wrapper: Name of the container element added by ``decode``.
        unwrap_on_push: Strip the wrapper in ``encode`` when present.
    """

    def __init__(
        self, wrapper: str = DEFAULT_WRAPPER, unwrap_on_push: bool = False
    ):
        if not is_valid_element_name(wrapper):
            raise ValueError(f"Invalid wrapper element name: '{wrapper}'")
        self.wrapper = wrapper
        self.unwrap_on_push = unwrap_on_push
        self._open = f"<{wrapper}>"
        self._close = f"\n</{wrapper}>\n"

    def decode(self, storage_body: str) -> str:
        """Wrap a storage fragment into a standalone editable document."""
        return f"{self._open}{storage_body}{self._close}"

    def encode(self, editable_text: str) -> str:
        """Return the storage body to send for *editable_text*."""
        if self.unwrap_on_push and self.is_wrapped(editable_text):
            return self.strip_wrapper(editable_text)
        return editable_text

    def is_wrapped(self, text: str) -> bool:
        """True if *text* carries exactly the wrapper ``decode`` produces."""
        return (
            text.startswith(self._open)
            and text.endswith(self._close)
            and len(text) >= len(self._open) + len(self._close)
        )

    def strip_wrapper(self, text: str) -> str:
        """Inverse of ``decode``.

        Raises:
            ValueError: If *text* is not wrapped by this codec.
        """
        if not self.is_wrapped(text):
            raise ValueError(
                f"Text is not wrapped in <{self.wrapper}> element"
            )
        return text[len(self._open) : len(text) - len(self._close)]
