"""Tests for paramstream.errors — exception hierarchy and error messages."""

from paramstream.errors import (
    DuplicateNameError,
    MalformedEncodingError,
    MissingValueError,
    ParamStreamError,
    ParseError,
    SourceReadError,
)


class TestHierarchy:
    def test_all_are_paramstream_errors(self) -> None:
        for exc in (
            MalformedEncodingError,
            ParseError,
            DuplicateNameError,
            SourceReadError,
            MissingValueError,
        ):
            assert issubclass(exc, ParamStreamError)

    def test_duplicate_name_is_parse_error(self) -> None:
        assert issubclass(DuplicateNameError, ParseError)

    def test_source_read_error_is_not_parse_error(self) -> None:
        assert not issubclass(SourceReadError, ParseError)
        assert issubclass(SourceReadError, OSError)

    def test_builtin_bases(self) -> None:
        assert issubclass(MalformedEncodingError, ValueError)
        assert issubclass(MissingValueError, TypeError)


class TestDuplicateNameError:
    def test_attributes(self) -> None:
        err = DuplicateNameError("q", "a", "b")

        assert err.name == "q"
        assert err.existing == "a"
        assert err.new == "b"

    def test_message(self) -> None:
        err = DuplicateNameError("", "", "empty-name")

        assert str(err) == "Duplicate parameter name '': '' and 'empty-name'"
