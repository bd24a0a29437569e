"""Pair sources — the producers behind every ``ParameterStream``.

A source emits name/value pairs one at a time through ``try_advance`` and
may hand off part of its remaining work through ``try_split``. Splitting
is always optional: a source may decline (return ``None``) at any time,
including always, and a parallel stream then traverses it on one worker.

The parsers in ``paramstream.parser`` provide the text-backed sources.
This module holds the protocol and the in-memory sources used by
``ParameterStream.from_mapping()`` and friends.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any, Protocol, runtime_checkable

from paramstream.errors import MissingValueError

type PairAction = Callable[[str, str], Any]

_END = object()


@runtime_checkable
class PairSource(Protocol):
    """Anything that can produce name/value pairs, splittable or not."""

    def try_advance(self, action: PairAction) -> bool:
        """Call *action* with the next pair and return ``True``.

        Returns ``False`` (without calling *action*) when exhausted.
        """
        ...

    def try_split(self) -> PairSource | None:
        """Split off a prefix of the remaining pairs.

        The returned source covers pairs that come *before* everything this
        source still holds. Returns ``None`` when no split is possible.
        """
        ...


class _EntrySource:
    """A bisectable window over a mapping's entries.

    Entries are taken from the mapping on first use, not at construction,
    so building a stream never touches the data.
    """

    __slots__ = ("_end", "_entries", "_index", "_mapping")

    def __init__(
        self,
        mapping: Mapping[Any, Any],
        entries: list[tuple[Any, Any]] | None = None,
        index: int = 0,
        end: int = 0,
    ) -> None:
        self._mapping = mapping
        self._entries = entries
        self._index = index
        self._end = end

    def _load(self) -> list[tuple[Any, Any]]:
        if self._entries is None:
            self._entries = list(self._mapping.items())
            self._end = len(self._entries)
        return self._entries

    def _next_entry(self) -> tuple[Any, Any] | None:
        entries = self._load()
        if self._index >= self._end:
            return None
        entry = entries[self._index]
        self._index += 1
        return entry

    def _split_window(self) -> tuple[list[tuple[Any, Any]], int, int] | None:
        entries = self._load()
        remaining = self._end - self._index
        if remaining < 2:
            return None
        mid = self._index + remaining // 2
        window = (entries, self._index, mid)
        self._index = mid
        return window


class MappingSource(_EntrySource):
    """One value per name: ``{"q": "python", "page": "2"}``."""

    __slots__ = ()

    def try_advance(self, action: PairAction) -> bool:
        entry = self._next_entry()
        if entry is None:
            return False
        name, value = entry
        if name is None:
            msg = "Parameter name must not be None"
            raise MissingValueError(msg)
        if value is None:
            msg = f"Value for parameter {name!r} must not be None"
            raise MissingValueError(msg)
        action(name, value)
        return True

    def try_split(self) -> MappingSource | None:
        window = self._split_window()
        if window is None:
            return None
        entries, start, end = window
        return MappingSource(self._mapping, entries, start, end)


class ValuesSource(_EntrySource):
    """Several values per name: ``{"tag": ["a", "b"], "q": ("x",)}``.

    Values may be any iterable container (list, tuple, set, deque, ...).
    An empty container contributes no pairs.
    """

    __slots__ = ("_name", "_values")

    def __init__(
        self,
        mapping: Mapping[Any, Iterable[Any] | None],
        entries: list[tuple[Any, Any]] | None = None,
        index: int = 0,
        end: int = 0,
    ) -> None:
        super().__init__(mapping, entries, index, end)
        self._name: str = ""
        self._values: Iterator[Any] | None = None

    def try_advance(self, action: PairAction) -> bool:
        while True:
            if self._values is not None:
                value = next(self._values, _END)
                if value is not _END:
                    if value is None:
                        msg = f"Value for parameter {self._name!r} must not be None"
                        raise MissingValueError(msg)
                    action(self._name, value)
                    return True
                self._values = None

            entry = self._next_entry()
            if entry is None:
                return False
            name, values = entry
            if name is None:
                msg = "Parameter name must not be None"
                raise MissingValueError(msg)
            if values is None:
                msg = f"Values for parameter {name!r} must not be None"
                raise MissingValueError(msg)
            if isinstance(values, (str, bytes)):
                kind = type(values).__name__
                msg = f"Values for parameter {name!r} must be a collection, not {kind}"
                raise TypeError(msg)
            self._name = name
            self._values = iter(values)

    def try_split(self) -> ValuesSource | None:
        # Half-way through one name's values the prefix would no longer
        # precede what stays here.
        if self._values is not None:
            return None
        window = self._split_window()
        if window is None:
            return None
        entries, start, end = window
        return ValuesSource(self._mapping, entries, start, end)
