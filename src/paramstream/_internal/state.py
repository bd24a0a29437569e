"""Single-owner consumption flag shared by a parser and its streams."""


class ConsumptionState:
    """Tracks whether a parser (and every stream built from it) was consumed.

    Exactly one terminal operation may claim it. Later terminal operations
    see ``claim()`` return ``False`` and produce an empty result.

    Not thread-safe: a parser or stream has one owner. Parallel
    streams claim once, on the calling thread, before any work is forked.
    """

    __slots__ = ("_consumed",)

    def __init__(self) -> None:
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    def claim(self) -> bool:
        """Mark as consumed. Returns ``False`` if already consumed."""
        if self._consumed:
            return False
        self._consumed = True
        return True
