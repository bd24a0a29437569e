"""The cursor pair carried through a stream pipeline.

A traversal reuses one *borrowed* ``Pair`` for every element the source
produces: the source overwrites it in place on each advance, so a borrowed
pair is only valid until the next one is pulled. Stages that only inspect
and forward (filter, peek, map_name, map_value) pass it along as-is.

Stages that keep elements around (sorted, distinct) call ``snapshot()``
first. A snapshot is *owned*: never mutated again, safe to store, hashable
by ``(name, value)``. Every pair downstream of such a stage is owned.
"""

from __future__ import annotations


class Pair:
    """A name/value parameter, either borrowed (shared cursor) or owned."""

    __slots__ = ("name", "shared", "value")

    def __init__(self, name: str, value: str, *, shared: bool = False) -> None:
        self.name = name
        self.value = value
        self.shared = shared

    @classmethod
    def cursor(cls) -> Pair:
        """A fresh borrowed pair for one traversal."""
        return cls("", "", shared=True)

    def update(self, name: str, value: str) -> None:
        """Overwrite a borrowed pair with the next element.

        Used as the ``action`` passed to ``PairSource.try_advance``.
        """
        self.name = name
        self.value = value

    def snapshot(self) -> Pair:
        """Return an owned pair with the current contents."""
        if self.shared:
            return Pair(self.name, self.value)
        return self

    def with_name(self, name: str) -> Pair:
        if self.shared:
            self.name = name
            return self
        if name == self.name:
            return self
        return Pair(name, self.value)

    def with_value(self, value: str) -> Pair:
        if self.shared:
            self.value = value
            return self
        if value == self.value:
            return self
        return Pair(self.name, value)

    def as_tuple(self) -> tuple[str, str]:
        return (self.name, self.value)

    # Equality and hashing exist for distinct(); only owned pairs are stored.

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pair):
            return NotImplemented
        return self.name == other.name and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.name, self.value))

    def __repr__(self) -> str:
        kind = "borrowed" if self.shared else "owned"
        return f"Pair({self.name!r}, {self.value!r}, {kind})"
