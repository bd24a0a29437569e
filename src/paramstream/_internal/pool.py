"""Shared worker pool for parallel streams.

Parallel terminal operations submit leaf traversals here instead of
creating threads of their own. The pool is created on first use and can be
replaced with ``configure_pool()``.

Free-threading safety:
    - Pool creation and replacement happen under ``_lock``
    - Submitted work never touches another leaf's cursor pair
"""

from __future__ import annotations

import math
import os
import threading
from concurrent.futures import ThreadPoolExecutor

from paramstream.config import ParallelConfig

_lock = threading.Lock()
_config = ParallelConfig()
_executor: ThreadPoolExecutor | None = None


def _worker_count(config: ParallelConfig) -> int:
    return config.max_workers or os.cpu_count() or 1


def shared_executor() -> ThreadPoolExecutor:
    """Return the shared executor, creating it on first use."""
    global _executor
    with _lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=_worker_count(_config),
                thread_name_prefix="paramstream",
            )
        return _executor


def split_depth() -> int:
    """How many times a parallel traversal may halve its source.

    Derived from the worker count unless configured: enough leaves for
    about four tasks per worker.
    """
    config = _config
    if config.split_depth:
        return config.split_depth
    return max(1, math.ceil(math.log2(_worker_count(config) * 4)))


def configure_pool(config: ParallelConfig) -> None:
    """Replace the shared pool settings.

    The current executor (if any) finishes its queued work and is shut
    down; the next parallel operation creates a new one.
    """
    global _config, _executor
    with _lock:
        old = _executor
        _config = config
        _executor = None
    if old is not None:
        old.shutdown(wait=True)
