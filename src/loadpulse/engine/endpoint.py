"""Best-effort shared slot for the current target endpoint."""

from __future__ import annotations


class EndpointSlot:
    """Holds the ``host:port`` used for the next request.

    ``load`` and ``store`` each replace or read a single reference to an
    immutable ``str``, so a reader never sees a torn value. Concurrent
    executors are not serialized: an update may be overwritten by another
    executor that read the slot earlier. The slot is a routing hint, not a
    correctness guarantee.
    """

    __slots__ = ("_value",)

    def __init__(self, initial: str) -> None:
        self._value = initial

    def load(self) -> str:
        return self._value

    def store(self, value: str) -> None:
        self._value = value

    def __repr__(self) -> str:
        return f"EndpointSlot({self._value!r})"
