"""Parser and parallel-execution configuration.

Both settings objects are frozen dataclasses; derive a changed copy with
``replace()`` or ``ParserConfig.with_encoding()``.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass, replace


@dataclass(frozen=True, slots=True)
class ParserConfig:
    """Per-parser settings. Immutable after creation.

    Override what you need::

        config = ParserConfig(encoding="latin-1")
        params = parse("name=caf%E9", config=config).to_dict()
    """

    # Character encoding for percent-escaped byte runs
    encoding: str = "utf-8"

    # Characters requested from a reader per read() call (incremental parser)
    read_size: int = 8192

    def __post_init__(self) -> None:
        check_encoding(self.encoding)
        if self.read_size < 1:
            msg = f"read_size must be positive, got {self.read_size}"
            raise ValueError(msg)

    def with_encoding(self, encoding: str) -> ParserConfig:
        """Return a copy using *encoding*. Unknown encodings raise ``ValueError``."""
        return replace(self, encoding=encoding)


@dataclass(frozen=True, slots=True)
class ParallelConfig:
    """Settings for the shared worker pool used by parallel streams."""

    max_workers: int = 0  # 0 = auto-detect from CPU count
    split_depth: int = 0  # 0 = derive from the worker count

    def __post_init__(self) -> None:
        if self.max_workers < 0:
            msg = f"max_workers must not be negative, got {self.max_workers}"
            raise ValueError(msg)
        if self.split_depth < 0:
            msg = f"split_depth must not be negative, got {self.split_depth}"
            raise ValueError(msg)


def check_encoding(encoding: str) -> str:
    """Return *encoding* if Python knows it, else raise ``ValueError``."""
    if encoding is None:
        msg = "encoding must not be None"
        raise ValueError(msg)
    try:
        codecs.lookup(encoding)
    except LookupError:
        msg = f"Unknown character encoding: {encoding!r}"
        raise ValueError(msg) from None
    return encoding
