"""Fixed-interval pacing for quota-mode workers."""

from __future__ import annotations

import asyncio
import time


class IntervalRateLimiter:
    """Async pacer allowing at most one acquisition per ``interval``.

    Each quota-mode worker owns one limiter, so aggregate throughput is
    bounded by ``workers / interval`` requests per second. The first
    ``acquire()`` returns immediately; each later call waits until
    ``interval`` seconds have passed since the previous slot. A caller that
    falls behind is not given a burst to catch up.
    """

    def __init__(self, interval: float) -> None:
        """Initialize the limiter.

        Args:
            interval: Seconds between slots. Must be positive.

        Raises:
            ValueError: If interval is not positive.
        """
        if interval <= 0:
            msg = f"interval must be positive, got {interval}"
            raise ValueError(msg)

        self._interval = interval
        self._next_slot: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait for the next slot and claim it."""
        async with self._lock:
            now = time.monotonic()
            if self._next_slot is not None and self._next_slot > now:
                await asyncio.sleep(self._next_slot - now)
                now = time.monotonic()
            self._next_slot = now + self._interval
