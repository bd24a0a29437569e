"""Tests for paramstream._internal.pool — shared executor and split depth."""

import threading
from collections.abc import Iterator

import pytest

from paramstream import ParallelConfig, configure_pool
from paramstream._internal import pool


@pytest.fixture(autouse=True)
def _restore_pool() -> Iterator[None]:
    yield
    configure_pool(ParallelConfig())


class TestSharedExecutor:
    def test_reused(self) -> None:
        assert pool.shared_executor() is pool.shared_executor()

    def test_configure_replaces_executor(self) -> None:
        before = pool.shared_executor()
        configure_pool(ParallelConfig(max_workers=2))

        assert pool.shared_executor() is not before

    def test_worker_threads_named(self) -> None:
        configure_pool(ParallelConfig(max_workers=1))
        future = pool.shared_executor().submit(lambda: threading.current_thread().name)

        assert future.result().startswith("paramstream")


class TestSplitDepth:
    def test_configured(self) -> None:
        configure_pool(ParallelConfig(split_depth=5))

        assert pool.split_depth() == 5

    @pytest.mark.parametrize(("workers", "depth"), [(1, 2), (2, 3), (4, 4), (5, 5)])
    def test_derived_from_workers(self, workers: int, depth: int) -> None:
        configure_pool(ParallelConfig(max_workers=workers))

        assert pool.split_depth() == depth
