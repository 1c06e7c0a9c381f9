"""Tests for buffer pretty-printing and schema validation."""

import subprocess
from unittest.mock import patch

import pytest

from confluence_edit_mcp.core.formatter import (
    FormatterError,
    LxmlXmlFormatter,
    SchemaValidator,
    SubprocessXmlFormatter,
)

RNG_SCHEMA = """\
<element name="wrapper" xmlns="http://relaxng.org/ns/structure/1.0">
  <zeroOrMore>
    <element name="p"><text/></element>
  </zeroOrMore>
</element>
"""

XSD_SCHEMA = """\
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">
  <xs:element name="wrapper">
    <xs:complexType>
      <xs:sequence>
        <xs:element name="p" type="xs:string" minOccurs="0" maxOccurs="unbounded"/>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""


class TestLxmlFormatter:
    def test_pretty_prints(self):
        formatted = LxmlXmlFormatter().format(
            "<wrapper><p>a</p><p>b</p>\n</wrapper>\n"
        )
        assert formatted == "<wrapper>\n  <p>a</p>\n  <p>b</p>\n</wrapper>\n"

    def test_malformed_raises(self):
        with pytest.raises(FormatterError, match="not well-formed"):
            LxmlXmlFormatter().format("<wrapper><p>oops</wrapper>")


class TestSubprocessFormatter:
    def test_empty_command_rejected(self):
        with pytest.raises(ValueError):
            SubprocessXmlFormatter([])

    @patch("confluence_edit_mcp.core.formatter.subprocess.run")
    def test_success(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            ["tidy"], 0, stdout="<wrapper/>\n", stderr=""
        )
        formatter = SubprocessXmlFormatter(["tidy", "-xml"])

        assert formatter.format("<wrapper></wrapper>") == "<wrapper/>\n"
        args, kwargs = mock_run.call_args
        assert args[0] == ["tidy", "-xml"]
        assert kwargs["input"] == "<wrapper></wrapper>"
        assert kwargs["text"] is True

    @patch("confluence_edit_mcp.core.formatter.subprocess.run")
    def test_warnings_exit_code_accepted(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            ["tidy"], 1, stdout="<wrapper/>\n", stderr="line 1 warning"
        )
        assert SubprocessXmlFormatter(["tidy"]).format("x") == "<wrapper/>\n"

    @patch("confluence_edit_mcp.core.formatter.subprocess.run")
    def test_error_exit_code(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            ["tidy"], 2, stdout="", stderr="Error: missing </p>"
        )
        with pytest.raises(FormatterError, match="missing </p>"):
            SubprocessXmlFormatter(["tidy"]).format("x")

    @patch("confluence_edit_mcp.core.formatter.subprocess.run")
    def test_empty_output(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            ["tidy"], 0, stdout="", stderr=""
        )
        with pytest.raises(FormatterError, match="exit code 0"):
            SubprocessXmlFormatter(["tidy"]).format("x")

    @patch("confluence_edit_mcp.core.formatter.subprocess.run")
    def test_missing_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError("tidy")
        with pytest.raises(FormatterError, match="failed to run"):
            SubprocessXmlFormatter(["tidy"]).format("x")

    @patch("confluence_edit_mcp.core.formatter.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(["tidy"], 10)
        with pytest.raises(FormatterError):
            SubprocessXmlFormatter(["tidy"]).format("x")


class TestSchemaValidator:
    @pytest.fixture
    def rng(self, tmp_path):
        path = tmp_path / "page.rng"
        path.write_text(RNG_SCHEMA)
        return path

    @pytest.fixture
    def xsd(self, tmp_path):
        path = tmp_path / "page.xsd"
        path.write_text(XSD_SCHEMA)
        return path

    def test_rng_valid(self, rng):
        assert SchemaValidator().validate("<wrapper><p>hi</p>\n</wrapper>\n", rng) == []

    def test_rng_invalid(self, rng):
        problems = SchemaValidator().validate(
            "<wrapper><h1>hi</h1>\n</wrapper>\n", rng
        )
        assert problems
        assert problems[0].startswith("1:")

    def test_xsd_valid(self, xsd):
        assert SchemaValidator().validate("<wrapper><p>hi</p></wrapper>", xsd) == []

    def test_xsd_invalid(self, xsd):
        problems = SchemaValidator().validate(
            "<wrapper><table/></wrapper>", str(xsd)
        )
        assert len(problems) == 1
        assert "table" in problems[0]

    def test_malformed_document(self, rng):
        problems = SchemaValidator().validate("<wrapper><p>", rng)
        assert len(problems) == 1
        assert problems[0].split(":")[0] == "1"

    def test_missing_schema(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            SchemaValidator().validate("<a/>", tmp_path / "none.rng")

    def test_unsupported_schema_type(self, tmp_path):
        path = tmp_path / "schema.dtd"
        path.write_text("<!ELEMENT a EMPTY>")
        with pytest.raises(ValueError, match="Unsupported schema"):
            SchemaValidator().validate("<a/>", path)

    def test_broken_schema(self, tmp_path):
        path = tmp_path / "broken.rng"
        path.write_text("<element xmlns='http://relaxng.org/ns/structure/1.0'/>")
        with pytest.raises(ValueError, match="Cannot load schema"):
            SchemaValidator().validate("<a/>", path)
