"""Query-string composition — the inverse of ``paramstream.parser``.

Usage::

    from paramstream import ParameterBuilder

    query = (
        ParameterBuilder()
        .with_parameter("q", "free threading")
        .with_parameters("tag", ["python", "web"])
        .with_parameter("page", 2)
    )
    str(query)
    # "q=free+threading&tag=python&tag=web&page=2"

Values for a name are grouped together, in the order names were first
added. Names and values are encoded with ``quote_plus`` (space → ``+``),
so ``parse(str(builder))`` gives back the same parameters.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, Self

from paramstream.codec import encode
from paramstream.config import check_encoding
from paramstream.errors import MissingValueError


class SupportsWrite(Protocol):
    def write(self, text: str, /) -> object: ...


class ParameterBuilder:
    """Accumulates name/value parameters and renders them as a query string."""

    __slots__ = ("_count", "_encoding", "_parameters")

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self._encoding = check_encoding(encoding)
        self._parameters: dict[str, list[object]] = {}
        self._count = 0

    def with_encoding(self, encoding: str) -> Self:
        """Set the character encoding for escapes (default UTF-8)."""
        self._encoding = check_encoding(encoding)
        return self

    def with_parameter(self, name: str, value: object) -> Self:
        """Add one value for *name*.

        Raises:
            MissingValueError: If *name* or *value* is ``None``.
        """
        _require_name(name)
        if value is None:
            msg = f"Value for parameter {name!r} must not be None"
            raise MissingValueError(msg)
        self._add(name, value)
        return self

    def with_parameters(self, name: str, values: Iterable[object]) -> Self:
        """Add every value in *values* for *name*.

        Values before a ``None`` are kept; the ``None`` raises
        ``MissingValueError``.
        """
        _require_name(name)
        for value in values:
            if value is None:
                msg = f"Value for parameter {name!r} must not be None"
                raise MissingValueError(msg)
            self._add(name, value)
        return self

    @property
    def count(self) -> int:
        """Total number of values added, across all names."""
        return self._count

    @property
    def has_parameters(self) -> bool:
        return self._count > 0

    def append_to(self, out: SupportsWrite) -> None:
        """Write the query string to *out* (anything with ``write(str)``).

        Errors raised by *out* propagate unchanged.
        """
        first = True
        for name, values in self._parameters.items():
            encoded_name = self._encoded(name)
            for value in values:
                if not first:
                    out.write("&")
                first = False
                out.write(encoded_name)
                out.write("=")
                out.write(self._encoded(value))

    def __str__(self) -> str:
        return "&".join(
            f"{self._encoded(name)}={self._encoded(value)}"
            for name, values in self._parameters.items()
            for value in values
        )

    def __repr__(self) -> str:
        return f"ParameterBuilder({str(self)!r})"

    def _add(self, name: str, value: object) -> None:
        self._parameters.setdefault(name, []).append(value)
        self._count += 1

    def _encoded(self, value: object) -> str:
        # bool before int: True is an int too
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, int):
            return str(value)
        return encode(str(value), self._encoding, errors="replace")


def _require_name(name: str) -> None:
    if name is None:
        msg = "Parameter name must not be None"
        raise MissingValueError(msg)
