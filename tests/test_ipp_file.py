"""
Unit tests for the ipptool-style attribute file parser.
"""

import pytest

from core.ipp_file import MAX_INCLUDE_DEPTH, IppAttribute, IppFileParser, IppVars


class RecordingCallbacks:
    """Callbacks that record everything and keep going."""

    def __init__(self, continue_on_error=True, known_tokens=None):
        self.continue_on_error = continue_on_error
        self.known_tokens = known_tokens or {}
        self.errors = []
        self.tokens = []
        self.dropped = set()

    def keep_attribute(self, name):
        return name not in self.dropped

    def on_error(self, parser, message):
        self.errors.append(message)
        return self.continue_on_error

    def on_token(self, parser, token):
        self.tokens.append((token, parser.linenum))
        argc = self.known_tokens.get(token)
        if argc is None:
            return False
        for _ in range(argc):
            if parser.read_token() is None:
                return False
        return True


# Fixtures

@pytest.fixture
def callbacks():
    return RecordingCallbacks()


@pytest.fixture
def parse(tmp_path, callbacks):
    """Parse text written to tmp_path/test.conf."""
    def _parse(text, variables=None, name="test.conf"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return IppFileParser(callbacks, variables).parse(path)
    return _parse


# Tests for value parsing

class TestAttributes:
    """Test ATTR statements."""

    def test_simple_attributes(self, parse):
        attrs = parse(
            "ATTR keyword sides-supported one-sided,two-sided-long-edge\n"
            "ATTR integer copies-default 1\n"
            "ATTR boolean color-supported true\n"
        )

        assert list(attrs) == ["sides-supported", "copies-default", "color-supported"]
        assert attrs["sides-supported"].values == ("one-sided", "two-sided-long-edge")
        assert attrs["copies-default"] == IppAttribute("copies-default", "integer", (1,), "printer")
        assert attrs["color-supported"].value is True

    def test_value_tag_is_case_insensitive(self, parse):
        attrs = parse("ATTR mimeMediaType document-format-default application/pdf\n")
        assert attrs["document-format-default"].value_tag == "mimemediatype"
        assert attrs["document-format-default"].value == "application/pdf"

    def test_quoted_values(self, parse):
        attrs = parse('ATTR text printer-info "Second floor, \\"east\\" wing"\n')
        assert attrs["printer-info"].value == 'Second floor, "east" wing'

    def test_comments_ignored(self, parse):
        attrs = parse("# heading\nATTR integer copies-default 2 # inline\n# ATTR integer x 1\n")
        assert list(attrs) == ["copies-default"]

    def test_range_and_resolution(self, parse):
        attrs = parse(
            "ATTR rangeOfInteger copies-supported 1-999\n"
            "ATTR resolution printer-resolution-supported 300dpi,600x1200dpi\n"
        )
        assert attrs["copies-supported"].value == (1, 999)
        assert attrs["printer-resolution-supported"].values == ((300, 300, "dpi"), (600, 1200, "dpi"))

    def test_enum_by_number_or_keyword(self, parse):
        attrs = parse(
            "ATTR enum orientation-requested-default 3\n"
            "ATTR enum orientation-requested-supported portrait,landscape\n"
        )
        assert attrs["orientation-requested-default"].value == 3
        assert attrs["orientation-requested-supported"].values == ("portrait", "landscape")

    def test_out_of_band_has_no_values(self, parse):
        attrs = parse("ATTR no-value printer-geo-location\nATTR integer copies-default 1\n")
        assert attrs["printer-geo-location"].values == ()
        assert attrs["printer-geo-location"].value is None
        assert attrs["copies-default"].value == 1

    def test_group(self, parse):
        attrs = parse(
            "ATTR integer copies-default 1\n"
            "GROUP job-attributes-tag\n"
            "ATTR keyword job-sheets none\n"
        )
        assert attrs["copies-default"].group == "printer"
        assert attrs["job-sheets"].group == "job"

    def test_bad_group(self, parse, callbacks):
        attrs = parse("GROUP bogus-tag\nATTR integer copies-default 1\n")
        assert attrs["copies-default"].group == "printer"
        assert callbacks.errors and 'Bad GROUP tag "bogus-tag"' in callbacks.errors[0]

    def test_collection(self, parse):
        attrs = parse(
            "ATTR collection media-col-default {\n"
            "    MEMBER keyword media-type stationery\n"
            "    MEMBER collection media-size { MEMBER integer x-dimension 21000 MEMBER integer y-dimension 29700 }\n"
            "}\n"
        )

        col = attrs["media-col-default"].value
        assert col["media-type"].value == "stationery"
        assert col["media-size"].value["x-dimension"].value == 21000
        assert col["media-size"].value["y-dimension"].value == 29700

    def test_collection_to_dict(self, parse):
        attrs = parse("ATTR collection media-col-default { MEMBER keyword media-type stationery }\n")
        data = attrs["media-col-default"].to_dict()
        assert data["values"][0]["media-type"]["values"] == ["stationery"]

    def test_keep_attribute_filter(self, parse, callbacks):
        callbacks.dropped.add("printer-state")
        attrs = parse("ATTR enum printer-state 3\nATTR integer copies-default 1\n")
        assert list(attrs) == ["copies-default"]


class TestErrors:
    """Test error reporting and recovery."""

    def test_bad_value_skips_attribute(self, parse, callbacks, tmp_path):
        attrs = parse("ATTR integer copies-default 1\nATTR integer copies-max lots\nATTR boolean color-supported false\n")

        assert list(attrs) == ["copies-default", "color-supported"]
        assert callbacks.errors == [
            f'Bad integer value "lots" for "copies-max" on line 2 of "{tmp_path / "test.conf"}".'
        ]

    def test_error_callback_can_abort(self, tmp_path):
        callbacks = RecordingCallbacks(continue_on_error=False)
        path = tmp_path / "test.conf"
        path.write_text("ATTR boolean color-supported maybe\nATTR integer copies-default 1\n")

        assert IppFileParser(callbacks).parse(path) is None
        assert len(callbacks.errors) == 1

    def test_missing_file(self, tmp_path, callbacks):
        assert IppFileParser(callbacks).parse(tmp_path / "missing.conf") is None
        assert callbacks.errors[0].startswith("Unable to open")

    def test_unterminated_string(self, parse, callbacks):
        assert parse('ATTR text printer-info "never closed\n') is None
        assert "Unterminated quoted string" in callbacks.errors[0]

    def test_unterminated_collection(self, parse, callbacks):
        assert parse("ATTR collection media-col-default { MEMBER keyword media-type plain\n") is None
        assert "Unterminated collection" in callbacks.errors[0]

    def test_missing_attr_value(self, parse, callbacks):
        assert parse("ATTR integer copies-default\n") is None
        assert 'Missing value for "copies-default"' in callbacks.errors[0]

    def test_syntax_error_reports_line(self, parse, callbacks, tmp_path):
        assert parse("ATTR integer copies-default 1\n\nATTR\n") is None
        assert callbacks.errors[0].endswith(f'on line 3 of "{tmp_path / "test.conf"}".')

    def test_location_added_for_names_containing_line(self, parse, callbacks, tmp_path):
        assert parse("ATTR integer job-deadline\n") is None
        assert callbacks.errors == [
            f'Missing value for "job-deadline" on line 1 of "{tmp_path / "test.conf"}".'
        ]

    def test_invalid_utf8(self, tmp_path, callbacks):
        path = tmp_path / "test.conf"
        path.write_bytes(b'ATTR text printer-info "\xff\xfe"\n')

        assert IppFileParser(callbacks).parse(path) is None
        assert callbacks.errors[0].startswith(f'Unable to read "{path}"')


class TestTokens:
    """Test delegation of unknown tokens to the caller."""

    def test_unknown_token_aborts_by_default(self, parse, callbacks):
        assert parse("Frobnicate now\n") is None
        assert callbacks.tokens == [("Frobnicate", 1)]

    def test_token_callback_reads_arguments(self, tmp_path):
        callbacks = RecordingCallbacks(known_tokens={"Make": 1, "Strings": 2})
        path = tmp_path / "test.conf"
        path.write_text('Make "Example"\n\nStrings en en.strings\nATTR integer copies-default 1\n')

        attrs = IppFileParser(callbacks).parse(path)

        assert list(attrs) == ["copies-default"]
        assert callbacks.tokens == [("Make", 1), ("Strings", 3)]

    def test_read_token_at_end_of_file(self, tmp_path):
        callbacks = RecordingCallbacks(known_tokens={"Make": 1})
        path = tmp_path / "test.conf"
        path.write_text("Make\n")
        assert IppFileParser(callbacks).parse(path) is None


# Tests for variables and includes

class TestVariables:
    """Test DEFINE and variable expansion."""

    def test_define_and_expand(self, parse):
        attrs = parse(
            "DEFINE MODEL Laser\n"
            'ATTR text printer-make-and-model "Example $MODEL ${MODEL}9000"\n'
        )
        assert attrs["printer-make-and-model"].value == "Example Laser Laser9000"

    def test_define_default_does_not_override(self, parse):
        attrs = parse(
            "DEFINE-DEFAULT COPIES 5\n"
            "ATTR integer copies-default $COPIES\n",
            variables=IppVars({"COPIES": "2"}),
        )
        assert attrs["copies-default"].value == 2

    def test_define_default_sets_undefined(self, parse):
        attrs = parse("DEFINE-DEFAULT COPIES 5\nATTR integer copies-default $COPIES\n")
        assert attrs["copies-default"].value == 5

    def test_environment_and_literal_dollar(self, parse, monkeypatch):
        monkeypatch.setenv("PRINTER_LOCATION", "Room 101")
        attrs = parse('ATTR text printer-location "$ENV[PRINTER_LOCATION] costs $$5"\n')
        assert attrs["printer-location"].value == "Room 101 costs $5"

    def test_undefined_variable_is_empty(self):
        assert IppVars().expand("a${missing}b") == "ab"


class TestInclude:
    """Test INCLUDE handling."""

    def test_relative_include(self, tmp_path, callbacks, write_file):
        write_file(tmp_path / "common" / "base.conf", "DEFINE COLOR true\nATTR integer copies-default 1\n")
        main = write_file(
            tmp_path / "laser.conf",
            'INCLUDE "common/base.conf"\nATTR boolean color-supported $COLOR\n',
        )

        attrs = IppFileParser(callbacks).parse(main)

        assert list(attrs) == ["copies-default", "color-supported"]
        assert attrs["color-supported"].value is True

    def test_missing_include_aborts(self, tmp_path, callbacks, write_file):
        main = write_file(tmp_path / "laser.conf", 'INCLUDE "nope.conf"\nATTR integer copies-default 1\n')
        assert IppFileParser(callbacks).parse(main) is None
        assert "nope.conf" in callbacks.errors[0]

    def test_errors_name_included_file(self, tmp_path, callbacks, write_file):
        write_file(tmp_path / "inc.conf", "\nATTR integer copies-default x\n")
        main = write_file(tmp_path / "laser.conf", 'INCLUDE "inc.conf"\n')

        attrs = IppFileParser(callbacks).parse(main)

        assert attrs == {}
        assert callbacks.errors[0].endswith(f'on line 2 of "{tmp_path / "inc.conf"}".')

    def test_self_include(self, tmp_path, callbacks, write_file):
        main = write_file(tmp_path / "loop.conf", 'ATTR integer copies-default 1\nINCLUDE "loop.conf"\n')

        assert IppFileParser(callbacks).parse(main) is None
        assert callbacks.errors[0].startswith("Recursive INCLUDE")

    def test_include_cycle(self, tmp_path, callbacks, write_file):
        write_file(tmp_path / "b.conf", 'INCLUDE "a.conf"\n')
        main = write_file(tmp_path / "a.conf", 'INCLUDE "b.conf"\n')

        assert IppFileParser(callbacks).parse(main) is None
        assert callbacks.errors[0].startswith("Recursive INCLUDE")
        assert callbacks.errors[0].endswith(f'on line 1 of "{tmp_path / "b.conf"}".')

    def test_include_depth_limit(self, tmp_path, callbacks, write_file):
        for level in range(MAX_INCLUDE_DEPTH + 1):
            write_file(tmp_path / f"level{level}.conf", f'INCLUDE "level{level + 1}.conf"\n')

        assert IppFileParser(callbacks).parse(tmp_path / "level0.conf") is None
        assert callbacks.errors == [
            f'Recursive INCLUDE of "{tmp_path / f"level{MAX_INCLUDE_DEPTH}.conf"}" '
            f'on line 1 of "{tmp_path / f"level{MAX_INCLUDE_DEPTH - 1}.conf"}".'
        ]
