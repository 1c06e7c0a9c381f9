"""Presentation helpers for the editable buffer.

Pretty-printing and schema validation only change how the buffer looks or
what the user is told about it. They never take part in pull/push, and their
failures are reported, not propagated into the session.

- ``SubprocessXmlFormatter``: pipes the buffer through an external formatter
  (``tidy`` by default).
- ``LxmlXmlFormatter``: in-process pretty-printing with lxml.
- ``SchemaValidator``: RELAX NG (``.rng``) or XML Schema (``.xsd``)
  validation with lxml.
"""

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from lxml import etree

logger = logging.getLogger(__name__)


class FormatterError(Exception):
    """The formatter could not produce output for the given text."""


class XmlFormatter(Protocol):
    def format(self, text: str) -> str: ...


class SubprocessXmlFormatter:
    """Run an external XML pretty-printer over stdin/stdout.

    Args:
        command: argv of the formatter. It must read XML on stdin and write
            the formatted XML to stdout.
        timeout: Seconds to wait for the process.
        ok_returncodes: Exit codes that still carry usable output. ``tidy``
            exits with 1 when it only emitted warnings.
    """

    def __init__(
        self,
        command: Sequence[str],
        timeout: float = 10,
        ok_returncodes: frozenset[int] = frozenset({0, 1}),
    ):
        if not command:
            raise ValueError("Formatter command cannot be empty")
        self.command = list(command)
        self.timeout = timeout
        self.ok_returncodes = ok_returncodes

    def format(self, text: str) -> str:
        try:
            result = subprocess.run(
                self.command,
                input=text,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, OSError) as exc:
            raise FormatterError(
                f"Formatter '{self.command[0]}' failed to run: {exc}"
            ) from exc

        if result.returncode not in self.ok_returncodes or not result.stdout:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            raise FormatterError(
                f"Formatter '{self.command[0]}' failed: {detail}"
            )
        return result.stdout


class LxmlXmlFormatter:
    """Pretty-print with lxml, no external process required."""

    def format(self, text: str) -> str:
        parser = etree.XMLParser(remove_blank_text=True)
        try:
            root = etree.fromstring(text.encode("utf-8"), parser)
        except etree.XMLSyntaxError as exc:
            raise FormatterError(f"Buffer is not well-formed XML: {exc}") from exc
        return etree.tostring(root, pretty_print=True, encoding="unicode")


class SchemaValidator:
    """Validate editable text against a schema file.

    The schema language is picked from the file extension: ``.rng`` for
    RELAX NG, ``.xsd`` for XML Schema.
    """

    def _load_schema(self, schema_path: Path):
        suffix = schema_path.suffix.lower()
        if suffix == ".rng":
            return etree.RelaxNG(file=str(schema_path))
        if suffix == ".xsd":
            return etree.XMLSchema(file=str(schema_path))
        raise ValueError(
            f"Unsupported schema type '{suffix}': use .rng or .xsd"
        )

    def validate(self, text: str, schema_path: str | Path) -> list[str]:
        """Return diagnostics as ``line:column: message`` strings.

        An empty list means the text is valid.

        Raises:
            ValueError: If the schema file is missing, unsupported, or
                itself invalid.
        """
        path = Path(schema_path)
        if not path.is_file():
            raise ValueError(f"Schema file not found: {schema_path}")
        try:
            schema = self._load_schema(path)
        except etree.LxmlError as exc:
            raise ValueError(f"Cannot load schema {path}: {exc}") from exc

        try:
            document = etree.fromstring(text.encode("utf-8"))
        except etree.XMLSyntaxError as exc:
            line, column = exc.position
            return [f"{line}:{column}: {exc.msg}"]

        if schema.validate(document):
            return []
        return [
            f"{entry.line}:{entry.column}: {entry.message}"
            for entry in schema.error_log
        ]
