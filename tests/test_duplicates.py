"""Tests for paramstream.duplicates — DuplicateNameStrategy."""

import pytest

from paramstream.duplicates import DuplicateNameStrategy
from paramstream.errors import DuplicateNameError


def _collect(strategy: DuplicateNameStrategy, pairs: list[tuple[str, str]]) -> dict[str, str]:
    target: dict[str, str] = {}
    for name, value in pairs:
        strategy.add(name, value, target)
    return target


PAIRS = [("a", "1"), ("b", "2"), ("a", "3")]


class TestDuplicateNameStrategy:
    def test_use_first(self) -> None:
        assert _collect(DuplicateNameStrategy.USE_FIRST, PAIRS) == {"a": "1", "b": "2"}

    def test_use_last(self) -> None:
        assert _collect(DuplicateNameStrategy.USE_LAST, PAIRS) == {"a": "3", "b": "2"}

    def test_raise(self) -> None:
        with pytest.raises(DuplicateNameError) as exc_info:
            _collect(DuplicateNameStrategy.RAISE, PAIRS)

        assert exc_info.value.name == "a"
        assert exc_info.value.existing == "1"
        assert exc_info.value.new == "3"

    def test_raise_without_duplicates(self) -> None:
        assert _collect(DuplicateNameStrategy.RAISE, PAIRS[:2]) == {"a": "1", "b": "2"}

    def test_insertion_order_kept_for_use_last(self) -> None:
        result = _collect(DuplicateNameStrategy.USE_LAST, PAIRS)

        assert list(result) == ["a", "b"]
