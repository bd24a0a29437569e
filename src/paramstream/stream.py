"""Lazy, chainable streams of name/value parameters.

A ``ParameterStream`` wraps a pair source (a parser, a mapping, or two
concatenated streams) and a tuple of intermediate stages. Intermediate
operations return a new stream and never touch the data; only a terminal
operation pulls pairs, decodes them, and runs the stages::

    from paramstream import parse

    ids = list(
        parse("id=3&id=1&q=x&id=3")
        .stream()
        .filter(lambda name, value: name == "id")
        .distinct()
        .map(lambda name, value: int(value))
    )
    # [3, 1]

Intermediate: ``filter``, ``map_name``, ``map_value``, ``distinct``,
``sorted``, ``peek``, ``limit``, ``skip``, ``sequential``, ``parallel``,
``unordered``.

Terminal: ``for_each``, ``for_each_ordered``, ``count``, ``any_match``,
``all_match``, ``none_match``, ``to_dict``, ``to_multi_dict``, iteration,
and ``map`` (whose lazy result is consumed by iterating it).

A stream is single-use and shares its consumption state with the parser
it came from and with every stream derived from it: once any of them ran
a terminal operation, the others are empty.

Parallel execution:
    A parallel terminal splits the source into leaves, runs the stages up
    to the first ``distinct``/``sorted``/``limit``/``skip`` on each leaf in
    the shared pool, merges the results (in encounter order unless
    ``unordered()``), and runs the remaining stages on the caller's thread.
    Sources that cannot split (``parse_reader``) run sequentially.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable, Collection, Iterator, Mapping, Sequence
from concurrent.futures import Future, as_completed
from dataclasses import dataclass, field, replace
from functools import partial
from typing import Any

from paramstream._internal import pool
from paramstream._internal.pair import Pair
from paramstream._internal.state import ConsumptionState
from paramstream.duplicates import DuplicateNameStrategy
from paramstream.errors import MissingValueError
from paramstream.sources import MappingSource, PairAction, PairSource, ValuesSource

logger = logging.getLogger("paramstream.stream")

type PairPredicate = Callable[[str, str], object]
type PairStages = tuple[Stage, ...]


@dataclass(frozen=True, slots=True)
class Stage:
    """One intermediate operation, applied to the iterator of pairs.

    ``stateful`` stages depend on more than the current element (they
    buffer, count, or deduplicate). In a parallel traversal they run on
    the caller's thread after the leaves are merged.
    """

    name: str
    apply: Callable[[Iterator[Pair]], Iterator[Pair]]
    stateful: bool = False


# -- Stage implementations --


def _filtered(predicate: PairPredicate, pairs: Iterator[Pair]) -> Iterator[Pair]:
    for pair in pairs:
        if predicate(pair.name, pair.value):
            yield pair


def _names_mapped(mapper: Callable[[str], str], pairs: Iterator[Pair]) -> Iterator[Pair]:
    for pair in pairs:
        yield pair.with_name(mapper(pair.name))


def _values_mapped(mapper: Callable[[str], str], pairs: Iterator[Pair]) -> Iterator[Pair]:
    for pair in pairs:
        yield pair.with_value(mapper(pair.value))


def _peeked(action: PairAction, pairs: Iterator[Pair]) -> Iterator[Pair]:
    for pair in pairs:
        action(pair.name, pair.value)
        yield pair


def _distinct(pairs: Iterator[Pair]) -> Iterator[Pair]:
    seen: set[Pair] = set()
    for pair in pairs:
        owned = pair.snapshot()
        if owned not in seen:
            seen.add(owned)
            yield owned


def _sorted(key: Callable[[Pair], Any], reverse: bool, pairs: Iterator[Pair]) -> Iterator[Pair]:
    yield from sorted((pair.snapshot() for pair in pairs), key=key, reverse=reverse)


def _limited(max_size: int, pairs: Iterator[Pair]) -> Iterator[Pair]:
    return itertools.islice(pairs, max_size)


def _skipped(n: int, pairs: Iterator[Pair]) -> Iterator[Pair]:
    return itertools.islice(pairs, n, None)


def _sort_key(
    name_key: Callable[[str], Any] | None,
    value_key: Callable[[str], Any] | None,
) -> Callable[[Pair], Any]:
    if name_key is None and value_key is None:
        return lambda pair: (pair.name, pair.value)
    if value_key is None:
        return lambda pair: name_key(pair.name)
    if name_key is None:
        return lambda pair: (pair.name, value_key(pair.value))
    return lambda pair: (name_key(pair.name), value_key(pair.value))


# -- Traversal --


def _traverse(source: PairSource) -> Iterator[Pair]:
    """Yield one borrowed cursor, refreshed by the source on every advance."""
    cursor = Pair.cursor()
    advance = source.try_advance
    update = cursor.update
    while advance(update):
        yield cursor


def _apply(stages: PairStages, pairs: Iterator[Pair]) -> Iterator[Pair]:
    for stage in stages:
        pairs = stage.apply(pairs)
    return pairs


def _split(source: PairSource, depth: int) -> list[PairSource]:
    """Recursively split *source* into leaves, in encounter order."""
    if depth <= 0:
        return [source]
    prefix = source.try_split()
    if prefix is None:
        return [source]
    return [*_split(prefix, depth - 1), *_split(source, depth - 1)]


def _merged(futures: list[Future[list[Pair]]], ordered: bool) -> Iterator[Pair]:
    try:
        completed = futures if ordered else as_completed(futures)
        for future in completed:
            yield from future.result()
    except Exception:
        logger.debug("Parallel leaf failed; cancelling pending leaves", exc_info=True)
        raise
    finally:
        for future in futures:
            future.cancel()


def _results[T](futures: list[Future[T]]) -> list[T]:
    """Wait for every leaf; the first failure (in encounter order) wins."""
    try:
        return [future.result() for future in futures]
    except Exception:
        logger.debug("Parallel leaf failed; cancelling pending leaves", exc_info=True)
        raise
    finally:
        for future in futures:
            future.cancel()


def _first_decisive(futures: list[Future[bool]]) -> bool:
    """Walk match leaves in encounter order up to the first decisive one.

    Failures in leaves after it are never raised.
    """
    try:
        return any(future.result() for future in futures)
    except Exception:
        logger.debug("Parallel leaf failed; cancelling pending leaves", exc_info=True)
        raise
    finally:
        for future in futures:
            future.cancel()


# -- Leaf tasks (run on the shared pool) --


def _collect_leaf(leaf: PairSource, stages: PairStages) -> list[Pair]:
    return [pair.snapshot() for pair in _apply(stages, _traverse(leaf))]


def _for_each_leaf(leaf: PairSource, stages: PairStages, action: PairAction) -> None:
    for pair in _apply(stages, _traverse(leaf)):
        action(pair.name, pair.value)


def _count_leaf(leaf: PairSource, stages: PairStages) -> int:
    return sum(1 for _ in _apply(stages, _traverse(leaf)))


class _Cutoff:
    """The lowest leaf index that has found a decisive pair.

    Leaves after it can stop; leaves before it still run to the end, so an
    error that precedes the decisive pair is raised exactly as it would be
    sequentially.
    """

    __slots__ = ("_index", "_lock")

    def __init__(self) -> None:
        self._index: int | None = None
        self._lock = threading.Lock()

    def passed(self, index: int) -> bool:
        with self._lock:
            return self._index is not None and self._index < index

    def decide(self, index: int) -> None:
        with self._lock:
            if self._index is None or index < self._index:
                self._index = index


def _match_leaf(
    leaf: PairSource,
    stages: PairStages,
    predicate: PairPredicate,
    decisive: bool,
    cutoff: _Cutoff,
    index: int,
) -> bool:
    """Look for a pair whose predicate result equals *decisive*."""
    for pair in _apply(stages, _traverse(leaf)):
        if cutoff.passed(index):
            return False
        if bool(predicate(pair.name, pair.value)) is decisive:
            cutoff.decide(index)
            return True
    return False


def _require_callable(value: object, what: str) -> None:
    if not callable(value):
        msg = f"{what} must be callable, got {type(value).__name__}"
        raise TypeError(msg)


def _require_count(n: int, what: str) -> None:
    if n < 0:
        msg = f"{what}: {n} < 0"
        raise ValueError(msg)


@dataclass(frozen=True, slots=True, eq=False)
class ParameterStream:
    """A lazy, single-use sequence of decoded name/value pairs.

    Obtain one from ``parse(...).stream()``, ``parse_reader(...).stream()``,
    ``ParameterStream.from_mapping()`` (and ``from_sequences`` /
    ``from_collections``), or ``ParameterStream.concat()``.

    Every intermediate method returns a new ``ParameterStream``; the
    original is unchanged but shares the same consumption state.
    """

    _source: PairSource
    _state: ConsumptionState = field(default_factory=ConsumptionState)
    _stages: PairStages = ()
    _parallel: bool = False
    _ordered: bool = True

    # -- Construction --

    @staticmethod
    def from_mapping(mapping: Mapping[str, str]) -> ParameterStream:
        """Stream ``{name: value}`` entries, one pair each.

        A ``None`` name or value raises ``MissingValueError`` when a
        terminal operation reaches it.
        """
        _require_mapping(mapping)
        return ParameterStream(MappingSource(mapping))

    @staticmethod
    def from_sequences(mapping: Mapping[str, Sequence[str]]) -> ParameterStream:
        """Stream ``{name: [value, ...]}`` entries, one pair per value.

        An empty sequence contributes nothing. A ``None`` name, sequence,
        or value raises ``MissingValueError`` when a terminal operation
        reaches it.
        """
        _require_mapping(mapping)
        return ParameterStream(ValuesSource(mapping))

    @staticmethod
    def from_collections(mapping: Mapping[str, Collection[str]]) -> ParameterStream:
        """Stream ``{name: collection}`` entries (sets, deques, ...), one pair per value.

        Same rules as ``from_sequences``; values come in the collection's
        own iteration order.
        """
        _require_mapping(mapping)
        return ParameterStream(ValuesSource(mapping))

    @staticmethod
    def concat(first: ParameterStream, second: ParameterStream) -> ParameterStream:
        """All of *first*'s pairs followed by all of *second*'s.

        Each side keeps its own stages and laziness. The result is parallel
        if either side is. Running it consumes both sides.
        """
        for stream in (first, second):
            if not isinstance(stream, ParameterStream):
                msg = f"Expected ParameterStream, got {type(stream).__name__}"
                raise TypeError(msg)
        source = _ConcatSource(_StreamSource(first), _StreamSource(second))
        return ParameterStream(source, _parallel=first._parallel or second._parallel)

    # -- Intermediate operations --

    def filter(self, predicate: PairPredicate) -> ParameterStream:
        """Keep pairs for which ``predicate(name, value)`` is truthy."""
        _require_callable(predicate, "predicate")
        return self._then(Stage("filter", partial(_filtered, predicate)))

    def map[R](self, mapper: Callable[[str, str], R]) -> Iterator[R]:
        """Turn each pair into ``mapper(name, value)``.

        Leaves the pair abstraction: the result is a lazy iterator, and
        iterating it is the terminal operation for this stream.
        """
        _require_callable(mapper, "mapper")
        return self._mapped(mapper)

    def map_name(self, mapper: Callable[[str], str]) -> ParameterStream:
        """Replace each name with ``mapper(name)``."""
        _require_callable(mapper, "mapper")
        return self._then(Stage("map_name", partial(_names_mapped, mapper)))

    def map_value(self, mapper: Callable[[str], str]) -> ParameterStream:
        """Replace each value with ``mapper(value)``."""
        _require_callable(mapper, "mapper")
        return self._then(Stage("map_value", partial(_values_mapped, mapper)))

    def distinct(self) -> ParameterStream:
        """Drop pairs equal (same name and value) to an earlier pair."""
        return self._then(Stage("distinct", _distinct, stateful=True))

    def sorted(
        self,
        name_key: Callable[[str], Any] | None = None,
        value_key: Callable[[str], Any] | None = None,
        *,
        reverse: bool = False,
    ) -> ParameterStream:
        """Sort the pairs.

        - ``sorted()`` orders by name, then value.
        - ``sorted(name_key)`` orders by ``name_key(name)`` only; pairs with
          equal keys keep their encounter order.
        - ``sorted(name_key, value_key)`` orders by both keys.

        Buffers every pair before emitting the first.
        """
        key = _sort_key(name_key, value_key)
        return self._then(Stage("sorted", partial(_sorted, key, reverse), stateful=True))

    def peek(self, action: PairAction) -> ParameterStream:
        """Call ``action(name, value)`` as each pair passes, without changing it."""
        _require_callable(action, "action")
        return self._then(Stage("peek", partial(_peeked, action)))

    def limit(self, max_size: int) -> ParameterStream:
        """Stop after *max_size* pairs. Raises ``ValueError`` if negative."""
        _require_count(max_size, "limit")
        return self._then(Stage("limit", partial(_limited, max_size), stateful=True))

    def skip(self, n: int) -> ParameterStream:
        """Drop the first *n* pairs. Raises ``ValueError`` if negative."""
        _require_count(n, "skip")
        return self._then(Stage("skip", partial(_skipped, n), stateful=True))

    @property
    def is_parallel(self) -> bool:
        return self._parallel

    def sequential(self) -> ParameterStream:
        return replace(self, _parallel=False)

    def parallel(self) -> ParameterStream:
        return replace(self, _parallel=True)

    def unordered(self) -> ParameterStream:
        """Allow a parallel traversal to merge leaves in completion order."""
        return replace(self, _ordered=False)

    # -- Terminal operations --

    def for_each(self, action: PairAction) -> None:
        """Call ``action(name, value)`` for each pair.

        When parallel, the action may run on worker threads and in any
        order. Use ``for_each_ordered`` when order matters.
        """
        _require_callable(action, "action")
        if not self._claim():
            return
        if self._fork(_for_each_leaf, action) is not None:
            return
        for pair in self._run():
            action(pair.name, pair.value)

    def for_each_ordered(self, action: PairAction) -> None:
        """Call ``action(name, value)`` for each pair, in encounter order.

        The action always runs on the caller's thread.
        """
        _require_callable(action, "action")
        if not self._claim():
            return
        for pair in self._run(ordered=True):
            action(pair.name, pair.value)

    def count(self) -> int:
        if not self._claim():
            return 0
        counts = self._fork(_count_leaf)
        if counts is not None:
            return sum(counts)
        return sum(1 for _ in self._run())

    def any_match(self, predicate: PairPredicate) -> bool:
        """Whether any pair satisfies *predicate*. Stops at the first match."""
        return self._match(predicate, decisive=True)

    def all_match(self, predicate: PairPredicate) -> bool:
        """Whether every pair satisfies *predicate*. Stops at the first miss."""
        return not self._match(predicate, decisive=False)

    def none_match(self, predicate: PairPredicate) -> bool:
        """Whether no pair satisfies *predicate*. Stops at the first match."""
        return not self._match(predicate, decisive=True)

    def to_dict(
        self, strategy: DuplicateNameStrategy = DuplicateNameStrategy.RAISE
    ) -> dict[str, str]:
        """Collect into a name → value dict; repeated names follow *strategy*."""
        result: dict[str, str] = {}
        self.for_each_ordered(lambda name, value: strategy.add(name, value, result))
        return result

    def to_multi_dict(self) -> dict[str, list[str]]:
        """Collect into a name → values dict, keeping every value."""
        result: dict[str, list[str]] = {}
        self.for_each_ordered(lambda name, value: result.setdefault(name, []).append(value))
        return result

    def __iter__(self) -> Iterator[tuple[str, str]]:
        for pair in self._pairs():
            yield pair.as_tuple()

    # -- Internals --

    def _then(self, stage: Stage) -> ParameterStream:
        return replace(self, _stages=(*self._stages, stage))

    def _claim(self) -> bool:
        if self._state.claim():
            return True
        logger.debug("Stream already consumed; terminal operation sees no parameters")
        return False

    def _pairs(self) -> Iterator[Pair]:
        if not self._claim():
            return iter(())
        return self._run()

    def _mapped[R](self, mapper: Callable[[str, str], R]) -> Iterator[R]:
        for pair in self._pairs():
            yield mapper(pair.name, pair.value)

    def _run(self, *, ordered: bool | None = None) -> Iterator[Pair]:
        """Evaluate the whole pipeline. The caller has claimed the stream."""
        if not self._parallel:
            return _apply(self._stages, _traverse(self._source))

        head, tail = self._split_stages()
        leaves = _split(self._source, pool.split_depth())
        if len(leaves) == 1:
            return _apply(self._stages, _traverse(leaves[0]))

        logger.debug("Parallel traversal over %d leaves (%d stages merged)", len(leaves), len(tail))
        executor = pool.shared_executor()
        futures = [executor.submit(_collect_leaf, leaf, head) for leaf in leaves]
        merge_in_order = self._ordered if ordered is None else ordered
        return _apply(tail, _merged(futures, merge_in_order))

    def _leaves(self, operation: str) -> list[PairSource] | None:
        """Split the source for a per-leaf terminal operation.

        Returns ``None`` when the traversal has to stay on the caller's
        thread: the stream is sequential, a stateful stage needs the merged
        sequence, or the source did not split.
        """
        if not self._parallel or any(stage.stateful for stage in self._stages):
            return None
        leaves = _split(self._source, pool.split_depth())
        if len(leaves) == 1:
            return None
        logger.debug("Parallel %s over %d leaves", operation, len(leaves))
        return leaves

    def _fork[T](self, task: Callable[..., T], *args: Any) -> list[T] | None:
        """Run *task* once per leaf on the shared pool, or ``None`` (see ``_leaves``)."""
        leaves = self._leaves(task.__name__.strip("_"))
        if leaves is None:
            return None
        executor = pool.shared_executor()
        return _results([executor.submit(task, leaf, self._stages, *args) for leaf in leaves])

    def _split_stages(self) -> tuple[PairStages, PairStages]:
        for index, stage in enumerate(self._stages):
            if stage.stateful:
                return self._stages[:index], self._stages[index:]
        return self._stages, ()

    def _match(self, predicate: PairPredicate, *, decisive: bool) -> bool:
        """Whether some pair's predicate result equals *decisive*."""
        _require_callable(predicate, "predicate")
        if not self._claim():
            return False
        leaves = self._leaves("match")
        if leaves is not None:
            search = partial(
                _match_leaf,
                stages=self._stages,
                predicate=predicate,
                decisive=decisive,
                cutoff=_Cutoff(),
            )
            executor = pool.shared_executor()
            return _first_decisive(
                [executor.submit(search, leaf, index=index) for index, leaf in enumerate(leaves)]
            )
        return any(bool(predicate(pair.name, pair.value)) is decisive for pair in self._run())


def _require_mapping(mapping: object) -> None:
    if mapping is None:
        msg = "mapping must not be None"
        raise MissingValueError(msg)


class _StreamSource:
    """Adapts one side of ``concat()`` to the pair-source protocol.

    The side is claimed when the concatenated stream is first traversed.
    Without stages its own source is used directly (and can split);
    otherwise its pipeline runs sequentially.
    """

    __slots__ = ("_opened", "_pairs", "_raw", "_stream")

    def __init__(self, stream: ParameterStream) -> None:
        self._stream = stream
        self._opened = False
        self._raw: PairSource | None = None
        self._pairs: Iterator[Pair] = iter(())

    def open(self) -> None:
        if self._opened:
            return
        self._opened = True
        stream = self._stream
        if not stream._claim():
            return
        if stream._stages:
            self._pairs = _apply(stream._stages, _traverse(stream._source))
        else:
            self._raw = stream._source

    def try_advance(self, action: PairAction) -> bool:
        self.open()
        if self._raw is not None:
            return self._raw.try_advance(action)
        pair = next(self._pairs, None)
        if pair is None:
            return False
        action(pair.name, pair.value)
        return True

    def try_split(self) -> PairSource | None:
        self.open()
        if self._raw is not None:
            return self._raw.try_split()
        return None


class _ConcatSource:
    """*first* then *second*; the first split hands off *first* whole."""

    __slots__ = ("_first", "_second")

    def __init__(self, first: _StreamSource, second: _StreamSource) -> None:
        self._first: _StreamSource | None = first
        self._second = second

    def _open(self) -> None:
        if self._first is not None:
            self._first.open()
        self._second.open()

    def try_advance(self, action: PairAction) -> bool:
        self._open()
        if self._first is not None:
            if self._first.try_advance(action):
                return True
            self._first = None
        return self._second.try_advance(action)

    def try_split(self) -> PairSource | None:
        self._open()
        if self._first is not None:
            first, self._first = self._first, None
            return first
        return self._second.try_split()
