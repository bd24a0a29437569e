"""Duplicate-name handling for single-valued parameter dicts."""

from enum import Enum

from paramstream.errors import DuplicateNameError


class DuplicateNameStrategy(Enum):
    """What ``to_dict()`` does when a parameter name occurs more than once.

    Only consulted when collapsing to ``dict[str, str]``;
    ``to_multi_dict()`` always keeps every value.
    """

    USE_FIRST = "use_first"
    """Keep the first value; later ones are ignored."""

    USE_LAST = "use_last"
    """Keep the last value; earlier ones are discarded."""

    RAISE = "raise"
    """Raise ``DuplicateNameError`` naming both values."""

    def add(self, name: str, value: str, target: dict[str, str]) -> None:
        """Store *name* → *value* in *target* according to this strategy."""
        match self:
            case DuplicateNameStrategy.USE_FIRST:
                target.setdefault(name, value)
            case DuplicateNameStrategy.USE_LAST:
                target[name] = value
            case DuplicateNameStrategy.RAISE:
                if name in target:
                    raise DuplicateNameError(name, target[name], value)
                target[name] = value
