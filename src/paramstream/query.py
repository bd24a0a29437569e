"""Immutable, already-parsed query parameters.

``QueryParams`` parses a query string once, eagerly, and then behaves like
``Mapping[str, str]`` (first value per name) with ``get_list`` for the rest.
Use it when a handler looks parameters up by name; use ``parse()`` and
streams when parameters are processed in one pass.

Usage::

    from paramstream import QueryParams

    q = QueryParams(b"q=free+threading&tag=a&tag=b&page=2")
    q["q"]                 # "free threading"
    q.get_list("tag")      # ["a", "b"]
    q.get_int("page", 1)   # 2

    tags = q.stream().filter(lambda name, value: name == "tag").count()
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from paramstream._internal.multimap import stream_values
from paramstream.builder import ParameterBuilder
from paramstream.parser import parse
from paramstream.stream import ParameterStream

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


class QueryParams(Mapping[str, str]):
    """Immutable query string parameters.

    Attributes:
        _data: Parameter name -> list of values, in encounter order.
        _raw: The query string the parameters came from.

    Raises ``ParseError`` at construction if the query string contains a
    malformed escape. Satisfies the ``MultiValueMapping`` protocol.
    """

    _data: dict[str, list[str]]
    _raw: str

    __slots__ = ("_data", "_raw")

    def __init__(self, query_string: bytes | str = b"", *, encoding: str = "utf-8") -> None:
        if isinstance(query_string, bytes):
            # Raw bytes in a query are latin-1 on the wire; escapes use *encoding*.
            query_string = query_string.decode("latin-1")
        object.__setattr__(self, "_raw", query_string)
        object.__setattr__(self, "_data", parse(query_string).with_encoding(encoding).to_multi_dict())

    @classmethod
    def from_stream(cls, stream: ParameterStream) -> QueryParams:
        """Collect a stream (consuming it) into a ``QueryParams``.

        ``raw`` is the re-encoded UTF-8 query string.
        """
        data = stream.to_multi_dict()
        builder = ParameterBuilder()
        for name, values in data.items():
            builder.with_parameters(name, values)
        params = cls.__new__(cls)
        object.__setattr__(params, "_raw", str(builder))
        object.__setattr__(params, "_data", data)
        return params

    @property
    def raw(self) -> str:
        return self._raw

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"QueryParams({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (a copy)."""
        return list(self._data.get(key, []))

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """Return value as int, or *default* if missing or not numeric."""
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def get_bool(self, key: str, default: bool | None = None) -> bool | None:
        """Return value as bool (``true``/``1``/``yes``/``on`` → True)."""
        value = self.get(key)
        if value is None:
            return default
        return value.lower() in _TRUE_VALUES

    def stream(self) -> ParameterStream:
        """Every parameter value as a fresh ``ParameterStream``.

        Unlike a parser, ``QueryParams`` can be streamed any number of times.
        """
        return stream_values(self)
