"""Tests for paramstream.sources — mapping-backed pair sources."""

import io

import pytest

from paramstream import parse, parse_reader
from paramstream.sources import MappingSource, PairSource, ValuesSource


def _drain(source: PairSource) -> list[tuple[str, str]]:
    collected: list[tuple[str, str]] = []
    while source.try_advance(lambda name, value: collected.append((name, value))):
        pass
    return collected


class TestProtocol:
    def test_all_sources_satisfy_protocol(self) -> None:
        for source in (
            MappingSource({}),
            ValuesSource({}),
            parse("a=1")._source(),
            parse_reader(io.StringIO("a=1"))._source(),
        ):
            assert isinstance(source, PairSource)


class TestMappingSource:
    def test_exhausted_source_returns_false(self) -> None:
        source = MappingSource({"a": "1"})

        assert _drain(source) == [("a", "1")]
        assert source.try_advance(lambda name, value: None) is False

    def test_split_halves(self) -> None:
        source = MappingSource({"a": "1", "b": "2", "c": "3", "d": "4"})
        prefix = source.try_split()

        assert prefix is not None
        assert _drain(prefix) == [("a", "1"), ("b", "2")]
        assert _drain(source) == [("c", "3"), ("d", "4")]

    def test_single_entry_does_not_split(self) -> None:
        assert MappingSource({"a": "1"}).try_split() is None


class TestValuesSource:
    def test_values_in_order(self) -> None:
        source = ValuesSource({"a": ["1", "2"], "b": (), "c": ("3",)})

        assert _drain(source) == [("a", "1"), ("a", "2"), ("c", "3")]

    def test_no_split_inside_values(self) -> None:
        source = ValuesSource({"a": ["1", "2"], "b": ["3"], "c": ["4"]})
        collected: list[tuple[str, str]] = []
        source.try_advance(lambda name, value: collected.append((name, value)))

        assert source.try_split() is None
        assert collected + _drain(source) == [("a", "1"), ("a", "2"), ("b", "3"), ("c", "4")]

    def test_split_between_names(self) -> None:
        source = ValuesSource({"a": ["1", "2"], "b": ["3"]})
        prefix = source.try_split()

        assert prefix is not None
        assert _drain(prefix) + _drain(source) == [("a", "1"), ("a", "2"), ("b", "3")]

    @pytest.mark.parametrize("values", ["abc", b"abc"])
    def test_string_values_rejected_when_reached(self, values: object) -> None:
        source = ValuesSource({"a": ["1"], "q": values})
        collected: list[tuple[str, str]] = []

        assert source.try_advance(lambda name, value: collected.append((name, value)))
        with pytest.raises(TypeError, match="'q' must be a collection"):
            source.try_advance(lambda name, value: collected.append((name, value)))
        assert collected == [("a", "1")]
