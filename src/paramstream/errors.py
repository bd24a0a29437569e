"""paramstream exception hierarchy.

Shared across the codec, parsers, streams, and builders so every module
raises and catches the same types.

Input-constraint violations (bad ranges, negative limits, unknown
encodings) are plain ``ValueError`` and are raised at the offending call.
Everything here is raised lazily, from inside a terminal operation, except
where a builder validates its arguments eagerly.
"""


class ParamStreamError(Exception):
    """Base for all paramstream-specific errors."""


class MalformedEncodingError(ParamStreamError, ValueError):
    """Raised by the codec when text is not valid percent-encoded text.

    Either a ``%`` is not followed by two hex digits, or the escaped bytes
    are not valid in the configured character encoding.
    """


class ParseError(ParamStreamError):
    """The parser could not produce the next pair.

    Raised at the terminal operation that reached the malformed pair.
    ``__cause__`` holds the underlying ``MalformedEncodingError``. Pairs
    handed to the consumer before the failure stay delivered.
    """


class DuplicateNameError(ParseError):
    """Raised by ``to_dict(DuplicateNameStrategy.RAISE)`` on a repeated name.

    Attributes:
        name: The parameter name that occurred more than once.
        existing: The value already stored for *name*.
        new: The value that conflicted with it.
    """

    def __init__(self, name: str, existing: str, new: str) -> None:
        self.name = name
        self.existing = existing
        self.new = new
        super().__init__(
            f"Duplicate parameter name {name!r}: {existing!r} and {new!r}"
        )


class SourceReadError(ParamStreamError, OSError):
    """The underlying reader failed while the incremental parser was reading.

    Kept apart from ``ParseError`` so callers can tell malformed data from
    an I/O problem. ``__cause__`` holds the reader's original error.
    """


class MissingValueError(ParamStreamError, TypeError):
    """A required name, value, or values container is ``None``.

    Mapping-backed streams raise this when a terminal operation reaches the
    offending entry, never at construction. Builders raise it immediately.
    """
