"""Multi-valued parameter mappings as pair streams.

``MultiValueMapping`` is the read-only shape shared by ``QueryParams`` and
most frameworks' query/form objects: the first value through
``__getitem__``, every value through ``get_list``. ``stream_values()``
streams any such mapping, one pair per value, without copying it first.
"""

from collections.abc import Iterator, Mapping
from typing import Protocol, runtime_checkable

from paramstream.stream import ParameterStream


@runtime_checkable
class MultiValueMapping(Protocol):
    """A read-only string mapping where names can have multiple values."""

    def __getitem__(self, key: str) -> str: ...
    def __iter__(self) -> Iterator[str]: ...
    def __len__(self) -> int: ...
    def get_list(self, key: str) -> list[str]: ...


class _ValueLists(Mapping[str, list[str]]):
    """Presents a ``MultiValueMapping`` as ``{name: [values...]}``."""

    __slots__ = ("_params",)

    def __init__(self, params: MultiValueMapping) -> None:
        self._params = params

    def __getitem__(self, key: str) -> list[str]:
        if key not in self._params:
            raise KeyError(key)
        return self._params.get_list(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)


def stream_values(params: MultiValueMapping) -> ParameterStream:
    """Stream every value of *params*, names in iteration order.

    The mapping is read when a terminal operation runs, not here.
    """
    return ParameterStream.from_sequences(_ValueLists(params))
