"""Property tests for parsing, splitting, and composing parameters."""

from __future__ import annotations

import io

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from paramstream import ParameterBuilder, ParserConfig, parse, parse_reader
from paramstream.codec import encode
from paramstream.sources import PairSource

# Well-formed raw text: no "%" so every segment decodes
raw_text = st.text(alphabet="ab=&+ é", max_size=60)

pair_lists = st.lists(st.tuples(st.text(max_size=8), st.text(max_size=8)), max_size=12)


def _drain(source: PairSource) -> list[tuple[str, str]]:
    collected: list[tuple[str, str]] = []
    while source.try_advance(lambda name, value: collected.append((name, value))):
        pass
    return collected


def _split_all(source: PairSource, depth: int) -> list[tuple[str, str]]:
    prefix = source.try_split() if depth > 0 else None
    if prefix is None:
        return _drain(source)
    return _split_all(prefix, depth - 1) + _split_all(source, depth - 1)


def _listed(text: str, start: int = 0, end: int | None = None) -> list[tuple[str, str]]:
    return list(parse(text, start, end).stream())


@given(text=raw_text)
def test_padding_with_delimiters_changes_nothing(text: str) -> None:
    padded = f"&&{text}&&"

    assert _listed(padded) == _listed(text)
    assert _listed(padded, 2, len(padded) - 2) == _listed(text)


@given(text=raw_text, depth=st.integers(min_value=0, max_value=6))
def test_split_traversal_matches_sequential(text: str, depth: int) -> None:
    assert _split_all(parse(text)._source(), depth) == _listed(text)


@given(text=raw_text, read_size=st.integers(min_value=1, max_value=8))
def test_reader_matches_sequence_parser(text: str, read_size: int) -> None:
    reader = parse_reader(io.StringIO(text), config=ParserConfig(read_size=read_size))

    assert list(reader.stream()) == _listed(text)


@given(pairs=pair_lists)
def test_builder_round_trip(pairs: list[tuple[str, str]]) -> None:
    builder = ParameterBuilder()
    expected: dict[str, list[str]] = {}
    for name, value in pairs:
        builder.with_parameter(name, value)
        expected.setdefault(name, []).append(value)

    parsed = parse(str(builder)).to_multi_dict()

    assert list(parsed.items()) == list(expected.items())


@given(pairs=pair_lists)
def test_encoded_pairs_parse_back_in_order(pairs: list[tuple[str, str]]) -> None:
    text = "&".join(f"{encode(name)}={encode(value)}" for name, value in pairs)

    assert _listed(text) == pairs


@settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(pairs=st.lists(st.tuples(st.text(max_size=4), st.text(max_size=4)), max_size=80))
def test_parallel_ordered_matches_sequential(pairs: list[tuple[str, str]]) -> None:
    text = "&".join(f"{encode(name)}={encode(value)}" for name, value in pairs)
    collected: list[tuple[str, str]] = []
    parse(text).stream().parallel().for_each_ordered(
        lambda name, value: collected.append((name, value))
    )

    assert collected == pairs


@pytest.mark.parametrize("encoding", ["utf-8", "latin-1"])
@given(value=st.text(alphabet=st.characters(max_codepoint=255), max_size=20))
def test_round_trip_with_encoding(encoding: str, value: str) -> None:
    builder = ParameterBuilder(encoding=encoding).with_parameter("v", value)

    assert parse(str(builder)).with_encoding(encoding).to_dict() == {"v": value}
