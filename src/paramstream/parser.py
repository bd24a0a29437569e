"""Parsers for query strings and form-post bodies.

Two input shapes, one contract:

- ``parse(text, start, end)``: a ``SequenceParser`` over a ``str`` range.
  Segments are located by index search, and the range can be bisected at
  a segment boundary for parallel traversal.
- ``parse_reader(reader)``: a ``ReaderParser`` over a text reader. Pairs
  are accumulated from the reader as they are needed; it never splits.

Usage::

    from paramstream import DuplicateNameStrategy, parse

    params = parse("q=python&tag=a&tag=b").to_multi_dict()
    # {"q": ["python"], "tag": ["a", "b"]}

    first = parse(body).with_encoding("latin-1").to_dict(DuplicateNameStrategy.USE_FIRST)

    with open("form.txt") as fh:
        names = list(parse_reader(fh).stream().map(lambda name, value: name))

A parser is single-use: the first terminal operation (``to_dict``,
``to_multi_dict``, ``for_each``, or any terminal on a stream obtained from
``stream()``) consumes it, and later terminal operations see no parameters.

Decoding is lazy. A malformed escape raises ``ParseError`` only when the
terminal operation reaches that pair; pairs delivered before it stay
delivered.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, Self

from paramstream._internal.state import ConsumptionState
from paramstream.codec import decode
from paramstream.config import ParserConfig
from paramstream.duplicates import DuplicateNameStrategy
from paramstream.errors import MalformedEncodingError, ParseError, SourceReadError
from paramstream.sources import PairAction, PairSource

if TYPE_CHECKING:
    from paramstream.stream import ParameterStream

logger = logging.getLogger("paramstream.parser")

_NAME_DELIMITERS = re.compile(r"[&=]")


class SupportsRead(Protocol):
    """A text reader: ``io.StringIO``, an open text file, a socket wrapper, ..."""

    def read(self, size: int = -1, /) -> str: ...


def parse(
    text: str,
    start: int = 0,
    end: int | None = None,
    *,
    config: ParserConfig | None = None,
) -> SequenceParser:
    """Create a parser for ``text[start:end]``.

    Args:
        text: The query string or form body.
        start: Index to start parsing at, inclusive.
        end: Index to stop parsing at, exclusive. Defaults to ``len(text)``.
        config: Parser settings. Defaults to ``ParserConfig()``.

    Raises:
        TypeError: If *text* is not a ``str``.
        ValueError: If *start* is negative, *end* is smaller than *start*,
            or *end* is larger than ``len(text)``.
    """
    if not isinstance(text, str):
        msg = f"Expected str, got {type(text).__name__}"
        raise TypeError(msg)
    if end is None:
        end = len(text)
    if start < 0:
        msg = f"{start} < 0"
        raise ValueError(msg)
    if end < start:
        msg = f"{end} < {start}"
        raise ValueError(msg)
    if end > len(text):
        msg = f"{end} > {len(text)}"
        raise ValueError(msg)
    return SequenceParser(text, start, end, config)


def parse_reader(reader: SupportsRead, *, config: ParserConfig | None = None) -> ReaderParser:
    """Create a parser that pulls parameters from *reader*.

    Any ``OSError`` raised by the reader during a terminal operation, or a
    ``UnicodeDecodeError`` from a text reader over undecodable bytes, is
    re-raised as ``SourceReadError``.
    """
    if reader is None:
        msg = "reader must not be None"
        raise TypeError(msg)
    return ReaderParser(reader, config)


class ParameterParser(ABC):
    """Base for both parsers: configuration, consumption, terminal operations."""

    __slots__ = ("_config", "_state")

    def __init__(self, config: ParserConfig | None = None) -> None:
        self._config = config or ParserConfig()
        self._state = ConsumptionState()

    @property
    def encoding(self) -> str:
        return self._config.encoding

    @property
    def consumed(self) -> bool:
        """Whether a terminal operation has already run."""
        return self._state.consumed

    def with_encoding(self, encoding: str) -> Self:
        """Set the character encoding used for ``%XX`` escapes (default UTF-8).

        This is an intermediate operation. After a terminal operation it
        has no effect.

        Raises:
            ValueError: If Python does not know *encoding*.
        """
        self._config = self._config.with_encoding(encoding)
        return self

    # -- Terminal operations --

    def to_dict(
        self, strategy: DuplicateNameStrategy = DuplicateNameStrategy.RAISE
    ) -> dict[str, str]:
        """Return the parameters as a name → value dict, in encounter order.

        Raises:
            ParseError: If a name or value is not valid percent-encoded text.
            DuplicateNameError: If a name repeats and *strategy* is ``RAISE``.
        """
        result: dict[str, str] = {}
        self.for_each(lambda name, value: strategy.add(name, value, result))
        return result

    def to_multi_dict(self) -> dict[str, list[str]]:
        """Return every value per name, names and values in encounter order.

        Raises:
            ParseError: If a name or value is not valid percent-encoded text.
        """
        result: dict[str, list[str]] = {}
        self.for_each(lambda name, value: result.setdefault(name, []).append(value))
        return result

    def for_each(self, action: Callable[[str, str], Any]) -> None:
        """Call ``action(name, value)`` for each parameter, in encounter order.

        Raises:
            TypeError: If *action* is not callable.
            ParseError: If a name or value is not valid percent-encoded text.
        """
        if not callable(action):
            msg = f"action must be callable, got {type(action).__name__}"
            raise TypeError(msg)
        if not self._state.claim():
            logger.debug("%s already consumed; for_each sees no parameters", type(self).__name__)
            return
        source = self._source()
        while source.try_advance(action):
            pass

    def stream(self) -> ParameterStream:
        """Return the parameters as a lazy ``ParameterStream``.

        A terminal operation on the stream (or any stream derived from it)
        consumes this parser. If the parser is already consumed the stream
        is empty.
        """
        from paramstream.stream import ParameterStream

        return ParameterStream(self._source(), self._state)

    # -- Internals --

    @abstractmethod
    def _source(self) -> PairSource: ...

    def _decode(self, text: str) -> str:
        try:
            return decode(text, self._config.encoding)
        except MalformedEncodingError as exc:
            msg = f"Cannot decode parameter text {text!r}: {exc}"
            raise ParseError(msg) from exc


class SequenceParser(ParameterParser):
    """Parses a ``str`` range by index search. Splittable."""

    __slots__ = ("_end", "_start", "_text")

    def __init__(self, text: str, start: int, end: int, config: ParserConfig | None = None) -> None:
        super().__init__(config)
        self._text = text
        self._start = start
        self._end = end

    def __repr__(self) -> str:
        return f"SequenceParser(start={self._start}, end={self._end}, encoding={self.encoding!r})"

    def _source(self) -> _SequenceSource:
        return _SequenceSource(self, self._start, self._end)


class _SequenceSource:
    """The remaining window ``[index, end)`` of a ``SequenceParser``'s text."""

    __slots__ = ("_end", "_index", "_parser")

    def __init__(self, parser: SequenceParser, index: int, end: int) -> None:
        self._parser = parser
        self._index = index
        self._end = end

    def try_advance(self, action: PairAction) -> bool:
        text = self._parser._text
        end = self._end
        index = self._index
        while index < end:
            segment_end = text.find("&", index, end)
            if segment_end == -1:
                segment_end = end
            if segment_end == index:
                # leading "&" or "&&": no parameter
                index += 1
                continue

            name_end = text.find("=", index, segment_end)
            if name_end == -1:
                name_text, value_text = text[index:segment_end], ""
            else:
                name_text, value_text = text[index:name_end], text[name_end + 1 : segment_end]

            self._index = segment_end + 1
            decode_text = self._parser._decode
            action(decode_text(name_text), decode_text(value_text))
            return True

        self._index = index
        return False

    def try_split(self) -> _SequenceSource | None:
        mid = (self._index + self._end) // 2
        boundary = self._parser._text.find("&", mid, self._end)
        if boundary == -1:
            return None
        prefix = _SequenceSource(self._parser, self._index, boundary)
        self._index = boundary + 1
        return prefix


class ReaderParser(ParameterParser):
    """Parses parameters pulled from a text reader. Never splits.

    The reader is read in chunks of ``ParserConfig.read_size`` characters,
    so unbuffered readers are not hit once per character. The in-progress
    name and value are collected in two reusable buffers.
    """

    __slots__ = ("_chunk", "_eof", "_name", "_pos", "_reader", "_value")

    def __init__(self, reader: SupportsRead, config: ParserConfig | None = None) -> None:
        super().__init__(config)
        self._reader = reader
        self._chunk = ""
        self._pos = 0
        self._eof = False
        self._name: list[str] = []
        self._value: list[str] = []

    def __repr__(self) -> str:
        return f"ReaderParser({self._reader!r}, encoding={self.encoding!r})"

    def _source(self) -> _ReaderSource:
        return _ReaderSource(self)

    def _fill(self) -> bool:
        """Load the next chunk. Returns ``False`` at end of input."""
        if self._eof:
            return False
        try:
            chunk = self._reader.read(self._config.read_size)
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Reading parameters failed: {exc}"
            raise SourceReadError(msg) from exc
        if not chunk:
            self._eof = True
            return False
        self._chunk = chunk
        self._pos = 0
        return True

    def _next_pair(self) -> tuple[str, str] | None:
        """Accumulate and decode the next non-empty segment.

        Returns ``None`` at end of input.
        """
        name, value = self._name, self._value
        current = name
        while self._pos < len(self._chunk) or self._fill():
            chunk, pos = self._chunk, self._pos
            if current is name:
                match = _NAME_DELIMITERS.search(chunk, pos)
                stop = match.start() if match else -1
            else:
                stop = chunk.find("&", pos)

            if stop == -1:
                current.append(chunk[pos:])
                self._pos = len(chunk)
                continue
            if stop > pos:
                current.append(chunk[pos:stop])
            self._pos = stop + 1

            if chunk[stop] == "=":
                current = value
            elif name or value or current is value:
                return self._close_segment()
            # else: leading "&" or "&&", nothing to emit

        # A lone "=" as the final segment still counts as a parameter.
        if name or value or current is value:
            return self._close_segment()
        return None

    def _close_segment(self) -> tuple[str, str]:
        name_text = "".join(self._name)
        value_text = "".join(self._value)
        self._name.clear()
        self._value.clear()
        return self._decode(name_text), self._decode(value_text)


class _ReaderSource:
    __slots__ = ("_parser",)

    def __init__(self, parser: ReaderParser) -> None:
        self._parser = parser

    def try_advance(self, action: PairAction) -> bool:
        pair = self._parser._next_pair()
        if pair is None:
            return False
        action(*pair)
        return True

    def try_split(self) -> None:
        return None
