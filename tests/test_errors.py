"""Tests for error collection, strict mode and invalid input."""

import unittest

from allowhtml import AllowHTML, InvalidInput, ParseError, StrictModeError


class TestErrorCollection(unittest.TestCase):
    """Test that errors are collected when collect_errors=True."""

    def test_no_errors_by_default(self):
        """By default, errors list is not populated (for performance)."""
        doc = AllowHTML("<p>\x00</p><b>")
        assert doc.errors == []

    def test_collect_errors_enabled(self):
        """When collect_errors=True, parse errors are collected."""
        doc = AllowHTML("<p>\x00</p>", collect_errors=True)
        assert len(doc.errors) > 0
        assert all(isinstance(e, ParseError) for e in doc.errors)

    def test_error_has_line_and_column(self):
        doc = AllowHTML("<p>\x00</p>", collect_errors=True)
        error = doc.errors[0]
        assert error.code == "unexpected-null-character"
        assert error.line == 1
        assert error.column == 4

    def test_valid_html_no_errors(self):
        doc = AllowHTML("<p>hello <b>world</b></p>", collect_errors=True)
        assert doc.errors == []

    def test_error_column_after_newline(self):
        """Error column is calculated correctly after newlines."""
        doc = AllowHTML("line1\nline2\x00", collect_errors=True)
        error = doc.errors[0]
        assert error.line == 2
        assert error.column == 6

    def test_structure_errors(self):
        doc = AllowHTML("<b>x</i>", collect_errors=True)
        assert [e.code for e in doc.errors] == ["unexpected-end-tag", "expected-closing-tag-but-got-eof"]

    def test_end_tag_closing_open_children(self):
        doc = AllowHTML("<b><i>x</b>", collect_errors=True)
        assert [e.code for e in doc.errors] == ["end-tag-too-early"]

    def test_nesting_too_deep(self):
        doc = AllowHTML("<b><b><b>x</b></b></b>", collect_errors=True, max_depth=2)
        codes = [e.code for e in doc.errors]
        assert "nesting-too-deep" in codes
        assert "unexpected-end-tag" in codes
        assert doc.to_html() == "<b><b>x</b></b>"

    def test_parse_error_formatting(self):
        error = ParseError("eof-in-tag", line=3, column=7)
        assert str(error) == "line 3, column 7: eof-in-tag"
        assert repr(error) == "<ParseError line 3, column 7: eof-in-tag>"
        assert str(ParseError("invalid-input", message="expected a string")) == "invalid-input: expected a string"
        assert str(ParseError("unexpected-end-tag")) == "unexpected-end-tag"

    def test_only_tokenizer_errors_have_a_position(self):
        doc = AllowHTML("<b>\n\x00</i>", collect_errors=True)
        assert [(e.code, e.position) for e in doc.errors] == [
            ("unexpected-null-character", (2, 1)),
            ("unexpected-end-tag", None),
            ("expected-closing-tag-but-got-eof", None),
        ]


class TestStrictMode(unittest.TestCase):
    """Test strict mode that raises on parse errors."""

    def test_strict_mode_raises(self):
        """Strict mode raises StrictModeError on first error."""
        with self.assertRaises(StrictModeError) as ctx:
            AllowHTML("<p>\x00</p>", strict=True)
        assert isinstance(ctx.exception.error, ParseError)
        assert ctx.exception.error.code == "unexpected-null-character"

    def test_strict_mode_raises_on_structure_error(self):
        with self.assertRaises(StrictModeError) as ctx:
            AllowHTML("<b>unclosed", strict=True)
        assert ctx.exception.error.code == "expected-closing-tag-but-got-eof"

    def test_strict_mode_is_syntax_error(self):
        with self.assertRaises(SyntaxError):
            AllowHTML("<a x=1 x=2></a>", strict=True)

    def test_strict_mode_passes_clean_input(self):
        doc = AllowHTML("<p>clean</p>", strict=True)
        assert doc.errors == []
        assert doc.to_html() == "<p>clean</p>"


class TestInvalidInput(unittest.TestCase):
    def test_non_string_gives_empty_output_and_logs(self):
        with self.assertLogs("allowhtml.parser", level="WARNING") as logs:
            doc = AllowHTML(None)
        assert doc.to_html() == ""
        assert doc.errors[0].code == "invalid-input"
        assert "NoneType" in logs.output[0]

    def test_bytes_are_not_decoded(self):
        with self.assertLogs("allowhtml.parser", level="WARNING"):
            doc = AllowHTML(b"<b>x</b>")
        assert doc.to_html() == ""

    def test_strict_non_string_raises(self):
        with self.assertRaises(InvalidInput):
            AllowHTML(42, strict=True)
