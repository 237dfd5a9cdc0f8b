"""Thread-safe accumulator of request outcomes."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from loadpulse.engine.workload import RequestKind
from loadpulse.metrics.models import AggregateStats

if TYPE_CHECKING:
    from loadpulse.metrics.models import RequestOutcome


class ResultRecorder:
    """Shared accumulator for every outcome of a run.

    Executor tasks call ``record`` concurrently; the reporting stage reads
    a ``snapshot`` after all executors have joined. A ``threading.Lock``
    guards the counters and the result log together, so the recorder is
    safe both for asyncio tasks and for OS threads, and no observer ever
    sees a counter without its matching result.
    """

    def __init__(self) -> None:
        """Initialize an empty recorder."""
        self._lock = threading.Lock()
        self._results: list[RequestOutcome] = []
        self._counts: dict[tuple[RequestKind, bool], int] = {
            (RequestKind.POST, True): 0,
            (RequestKind.POST, False): 0,
            (RequestKind.GET, True): 0,
            (RequestKind.GET, False): 0,
        }
        self._total_latency_ms = 0.0

    def record(self, outcome: RequestOutcome) -> None:
        """Append an outcome and update its counter atomically.

        Args:
            outcome: The outcome to record.
        """
        with self._lock:
            self._results.append(outcome)
            self._counts[(outcome.work_item.kind, outcome.success)] += 1
            self._total_latency_ms += outcome.latency_ms

    def snapshot(self) -> AggregateStats:
        """Return a consistent copy of the counters and results."""
        with self._lock:
            return AggregateStats(
                total=len(self._results),
                successful_posts=self._counts[(RequestKind.POST, True)],
                failed_posts=self._counts[(RequestKind.POST, False)],
                successful_gets=self._counts[(RequestKind.GET, True)],
                failed_gets=self._counts[(RequestKind.GET, False)],
                total_latency_ms=self._total_latency_ms,
                results=tuple(self._results),
            )

    def __len__(self) -> int:
        """Return the number of recorded outcomes."""
        with self._lock:
            return len(self._results)
