"""Top-level load test orchestrator."""

from __future__ import annotations

import asyncio
import signal
import sys
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from loadpulse._internal.errors import EngineError, LoadPulseError
from loadpulse._internal.logging import get_logger
from loadpulse.client.http_client import HttpClient
from loadpulse.engine.dispatcher import DispatchMode, Dispatcher, IntervalParams, QuotaParams
from loadpulse.engine.endpoint import EndpointSlot
from loadpulse.engine.executor import RequestExecutor
from loadpulse.engine.shutdown import ConsoleTrigger, ShutdownReason, ShutdownSignal
from loadpulse.metrics.recorder import ResultRecorder
from loadpulse.reporting.verify import verify_server

if TYPE_CHECKING:
    from typing import TextIO

    from loadpulse._internal.config import RunConfig
    from loadpulse.metrics.models import AggregateStats
    from loadpulse.reporting.verify import VerificationResult

logger = get_logger("engine.runner")


def _install_uvloop() -> None:
    """Install uvloop as the default event loop policy if available.

    Falls back silently to the default asyncio event loop on Windows
    or if uvloop is not installed.
    """
    if sys.platform == "win32":
        return

    try:
        import uvloop

        uvloop.install()
        logger.debug("uvloop installed as event loop policy")
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")


def build_params(config: RunConfig, mode: DispatchMode) -> IntervalParams | QuotaParams:
    """Translate a validated configuration into dispatch parameters."""
    if mode is DispatchMode.INTERVAL:
        return IntervalParams(
            duration_seconds=config.duration,
            post_ratio=config.post_ratio,
            tick_interval=config.request_interval,
        )
    return QuotaParams(
        total_requests=config.total_requests,
        post_ratio=config.post_ratio,
        workers=config.worker_number,
        batch_size=config.batch_size,
        request_interval=config.request_interval,
    )


@dataclass(frozen=True)
class RunReport:
    """Everything the host process needs after a run.

    Attributes:
        stats: Aggregate statistics after all work joined.
        mode: Dispatch mode that was used.
        started_at: UTC wall-clock start of the run.
        duration_seconds: Monotonic duration of the dispatch phase.
        shutdown_reason: What fired the shutdown signal, if anything did.
        final_endpoint: Endpoint slot value when the run ended.
        verification: Server-side comparison, if requested and available.
    """

    stats: AggregateStats
    mode: DispatchMode
    started_at: datetime
    duration_seconds: float
    shutdown_reason: ShutdownReason | None
    final_endpoint: str
    verification: VerificationResult | None = None


class LoadTestRunner:
    """Wires configuration, HTTP client, dispatcher and verification.

    ``run()`` blocks until the dispatcher has drained, then releases the
    HTTP connection pool exactly once.

    Attributes:
        config: Validated run configuration.
        mode: Dispatch mode.
    """

    def __init__(
        self,
        config: RunConfig,
        mode: DispatchMode,
        *,
        seed: int | None = None,
        verify: bool = True,
        console_commands: bool = False,
        stdin: TextIO | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Validated configuration.
            mode: INTERVAL (bounded by duration) or QUOTA (bounded by count).
            seed: Seed for the dispatcher's random source.
            verify: Query the server for its message count after the run.
            console_commands: Fire an operator shutdown on ``q``/``stop``
                read from ``stdin``.
            stdin: Command stream. Defaults to ``sys.stdin``.
        """
        self.config = config
        self.mode = mode
        self._seed = seed
        self._verify = verify
        self._console_commands = console_commands
        self._stdin = stdin

    def run(self) -> RunReport:
        """Execute the load test and return the report.

        Runs until the duration elapses (INTERVAL), the quota is executed
        (QUOTA), or SIGINT/SIGTERM/an operator command fires the shutdown
        signal.

        Raises:
            EngineError: If the run fails unexpectedly.
        """
        _install_uvloop()
        return asyncio.run(self.run_async())

    async def run_async(self) -> RunReport:
        """Async body of ``run``; usable directly from a running loop."""
        params = build_params(self.config, self.mode)
        shutdown = ShutdownSignal()
        endpoint = EndpointSlot(self.config.base_url)
        recorder = ResultRecorder()
        started_at = datetime.now(UTC)

        logger.info(
            "Starting load test: mode=%s, endpoint=%s, post_ratio=%.2f",
            self.mode.value,
            self.config.base_url,
            self.config.post_ratio,
            extra={"mode": self.mode.value, "endpoint": self.config.base_url},
        )

        loop = asyncio.get_running_loop()
        installed = self._install_signal_handlers(loop, shutdown)
        if self._console_commands:
            ConsoleTrigger(shutdown, loop, self._stdin or sys.stdin).start()

        start = time.monotonic()
        verification: VerificationResult | None = None
        try:
            async with HttpClient.from_config(self.config) as client:
                dispatcher = Dispatcher(
                    RequestExecutor(client, recorder),
                    endpoint,
                    shutdown,
                    seed=self._seed,
                )
                stats = await dispatcher.run(self.mode, params)
                duration = time.monotonic() - start

                if self._verify:
                    verification = await verify_server(client, self.config.base_url, stats)
        except LoadPulseError:
            raise
        except Exception as exc:
            logger.exception("Load test failed")
            raise EngineError("Load test failed") from exc
        finally:
            if installed:
                self._remove_signal_handlers(loop)

        logger.info(
            "Load test completed: duration=%.1fs, total_requests=%d, avg_latency=%.2fms, "
            "error_rate=%.2f%%",
            duration,
            stats.total,
            stats.average_latency_ms,
            stats.error_rate * 100,
        )

        return RunReport(
            stats=stats,
            mode=self.mode,
            started_at=started_at,
            duration_seconds=duration,
            shutdown_reason=shutdown.reason,
            final_endpoint=endpoint.load(),
            verification=verification,
        )

    @staticmethod
    def _install_signal_handlers(
        loop: asyncio.AbstractEventLoop,
        shutdown: ShutdownSignal,
    ) -> bool:
        """Route SIGINT and SIGTERM to the shutdown signal.

        Returns:
            True if handlers were installed (not supported on Windows or
            outside the main thread).
        """
        if sys.platform == "win32":
            return False

        def _signal_handler() -> None:
            logger.info("Signal received, initiating graceful shutdown")
            shutdown.fire(ShutdownReason.SIGNAL)

        try:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, _signal_handler)
        except (RuntimeError, ValueError):
            logger.debug("Signal handlers unavailable outside the main thread")
            return False
        return True

    @staticmethod
    def _remove_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
        """Remove custom signal handlers, restoring defaults."""
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
