"""One-shot cooperative shutdown signal and its operator trigger."""

from __future__ import annotations

import asyncio
import contextlib
import threading
from enum import Enum
from typing import TYPE_CHECKING, cast

from loadpulse._internal.logging import get_logger

if TYPE_CHECKING:
    from typing import TextIO

logger = get_logger("engine.shutdown")

# Console input that fires the signal.
STOP_COMMANDS = frozenset({"q", "quit", "stop"})


class ShutdownReason(Enum):
    """Source that fired the shutdown signal."""

    DURATION_ELAPSED = "duration_elapsed"
    OPERATOR = "operator"
    SIGNAL = "signal"


class ShutdownSignal:
    """Broadcast cancellation token, fired at most once.

    The dispatcher, the quota-mode producer and every worker receive the
    same instance as a parameter and poll ``is_fired`` at their
    checkpoints. Firing never interrupts a request already on the wire.

    ``fire`` must be called from the event loop thread; other threads use
    ``fire_threadsafe``.
    """

    def __init__(self) -> None:
        """Initialize an unfired signal."""
        self._event = asyncio.Event()
        self._reason: ShutdownReason | None = None

    @property
    def is_fired(self) -> bool:
        """Return True once the signal has fired."""
        return self._reason is not None

    @property
    def reason(self) -> ShutdownReason | None:
        """Return the reason of the first fire, or None."""
        return self._reason

    def fire(self, reason: ShutdownReason) -> bool:
        """Fire the signal.

        Args:
            reason: Why the run is stopping.

        Returns:
            True if this call fired the signal, False if it had already
            fired (the first reason is kept).
        """
        if self._reason is not None:
            return False
        self._reason = reason
        self._event.set()
        logger.info("Shutdown signal fired: %s", reason.value, extra={"reason": reason.value})
        return True

    def fire_threadsafe(self, loop: asyncio.AbstractEventLoop, reason: ShutdownReason) -> None:
        """Schedule ``fire`` on ``loop`` from any thread."""
        loop.call_soon_threadsafe(self.fire, reason)

    async def wait(self) -> ShutdownReason:
        """Suspend until the signal fires and return its reason."""
        await self._event.wait()
        return cast(ShutdownReason, self._reason)


class ConsoleTrigger:
    """Fires ``OPERATOR`` shutdown when a stop command is read from a stream.

    Reading happens in a daemon thread so a blocked ``readline`` never
    holds up interpreter exit or the event loop.
    """

    def __init__(
        self,
        shutdown: ShutdownSignal,
        loop: asyncio.AbstractEventLoop,
        stream: TextIO,
    ) -> None:
        """Initialize the trigger.

        Args:
            shutdown: Signal to fire.
            loop: Event loop that owns ``shutdown``.
            stream: Line-oriented input, typically ``sys.stdin``.
        """
        self._shutdown = shutdown
        self._loop = loop
        self._stream = stream
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start the reader thread."""
        self._thread = threading.Thread(
            target=self._read_commands,
            name="loadpulse-console",
            daemon=True,
        )
        self._thread.start()

    def _read_commands(self) -> None:
        for line in self._stream:
            if line.strip().lower() in STOP_COMMANDS:
                logger.info("Operator requested stop")
                # The loop may already be closed if the run finished first.
                with contextlib.suppress(RuntimeError):
                    self._shutdown.fire_threadsafe(self._loop, ShutdownReason.OPERATOR)
                return
