"""Dispatch engine: decides when requests fire and how many are in flight."""

from __future__ import annotations

import asyncio
import contextlib
import random
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from loadpulse._internal.errors import EngineError
from loadpulse._internal.logging import get_logger
from loadpulse.engine.rate_limiter import IntervalRateLimiter
from loadpulse.engine.shutdown import ShutdownReason
from loadpulse.engine.workload import WorkloadGenerator

if TYPE_CHECKING:
    from loadpulse.engine.endpoint import EndpointSlot
    from loadpulse.engine.executor import RequestExecutor
    from loadpulse.engine.shutdown import ShutdownSignal
    from loadpulse.engine.workload import WorkItem
    from loadpulse.metrics.models import AggregateStats

logger = get_logger("engine.dispatcher")

# Enqueued once per worker after the last job; a worker exits on reading it.
_CLOSED = None


class DispatchMode(Enum):
    """Selectable dispatch policy."""

    INTERVAL = "interval"
    QUOTA = "quota"


class DispatchState(Enum):
    """Lifecycle of a dispatcher run.

    INTERVAL: CREATED -> RUNNING -> DRAINING -> DONE
    QUOTA:    CREATED -> RUNNING -> DONE
    """

    CREATED = auto()
    RUNNING = auto()
    DRAINING = auto()
    DONE = auto()


class WorkerState(Enum):
    """Lifecycle of a quota-mode worker."""

    WAITING_FOR_JOB = auto()
    EXECUTING = auto()
    RATE_LIMIT_WAIT = auto()
    EXITED = auto()


@dataclass(frozen=True)
class IntervalParams:
    """Parameters for interval-driven dispatch.

    Attributes:
        duration_seconds: Wall-clock length of the run.
        post_ratio: Probability that a tick issues a POST.
        tick_interval: Seconds between ticks; one request per tick.
    """

    duration_seconds: float
    post_ratio: float
    tick_interval: float = 0.1

    def __post_init__(self) -> None:
        if self.duration_seconds <= 0:
            msg = f"duration_seconds must be positive, got {self.duration_seconds}"
            raise ValueError(msg)
        if self.tick_interval <= 0:
            msg = f"tick_interval must be positive, got {self.tick_interval}"
            raise ValueError(msg)
        if not 0.0 <= self.post_ratio <= 1.0:
            msg = f"post_ratio must be between 0 and 1, got {self.post_ratio}"
            raise ValueError(msg)

    @property
    def expected_ticks(self) -> int:
        """Return the number of ticks a run without early shutdown issues."""
        return int(self.duration_seconds / self.tick_interval)


@dataclass(frozen=True)
class QuotaParams:
    """Parameters for quota-driven worker-pool dispatch.

    Attributes:
        total_requests: Number of work items to enqueue.
        post_ratio: Exact POST fraction of each batch.
        workers: Number of concurrent workers.
        batch_size: Items generated and shuffled together.
        request_interval: Minimum seconds between two requests of a worker.
    """

    total_requests: int
    post_ratio: float
    workers: int
    batch_size: int = 10
    request_interval: float = 0.1

    def __post_init__(self) -> None:
        if self.total_requests <= 0:
            msg = f"total_requests must be positive, got {self.total_requests}"
            raise ValueError(msg)
        if self.workers <= 0:
            msg = f"workers must be positive, got {self.workers}"
            raise ValueError(msg)
        if self.batch_size <= 0:
            msg = f"batch_size must be positive, got {self.batch_size}"
            raise ValueError(msg)
        if self.request_interval <= 0:
            msg = f"request_interval must be positive, got {self.request_interval}"
            raise ValueError(msg)
        if not 0.0 <= self.post_ratio <= 1.0:
            msg = f"post_ratio must be between 0 and 1, got {self.post_ratio}"
            raise ValueError(msg)


class Dispatcher:
    """Runs a load test in one of two modes behind a single ``run`` call.

    The dispatcher owns the random source for work generation (seeded
    once per dispatcher, or injected), passes the shutdown signal
    explicitly to every task it spawns, and returns only after every
    spawned task has been joined.

    Attributes:
        executor: Executes and records each work item.
        endpoint: Shared best-effort endpoint slot.
        shutdown: Cooperative cancellation token for the run.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        endpoint: EndpointSlot,
        shutdown: ShutdownSignal,
        *,
        rng: random.Random | None = None,
        seed: int | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            executor: Request executor shared by all tasks.
            endpoint: Slot holding the current target endpoint.
            shutdown: Signal observed at every dispatch checkpoint.
            rng: Random source for work generation. Takes precedence
                over ``seed``.
            seed: Seed for a new random source when ``rng`` is omitted.
        """
        self.executor = executor
        self.endpoint = endpoint
        self.shutdown = shutdown
        self._generator = WorkloadGenerator(rng if rng is not None else random.Random(seed))  # noqa: S311

        self._state = DispatchState.CREATED
        self._worker_states: dict[int, WorkerState] = {}
        self._dispatched = 0
        self._skipped = 0

    @property
    def state(self) -> DispatchState:
        """Return the current run state."""
        return self._state

    @property
    def worker_states(self) -> dict[int, WorkerState]:
        """Return a copy of quota-mode worker states keyed by worker id."""
        return dict(self._worker_states)

    @property
    def dispatched(self) -> int:
        """Return the number of work items handed to the executor."""
        return self._dispatched

    @property
    def skipped(self) -> int:
        """Return the number of dequeued items dropped after shutdown."""
        return self._skipped

    async def run(self, mode: DispatchMode, params: IntervalParams | QuotaParams) -> AggregateStats:
        """Run to completion and return the aggregate statistics.

        Args:
            mode: Dispatch policy.
            params: ``IntervalParams`` for INTERVAL, ``QuotaParams`` for QUOTA.

        Returns:
            Snapshot of the recorder after all work has been joined.

        Raises:
            EngineError: If the dispatcher was already run, or ``params``
                does not match ``mode``.
        """
        if self._state is not DispatchState.CREATED:
            msg = f"Dispatcher can only run once (state: {self._state.name})"
            raise EngineError(msg)

        if mode is DispatchMode.INTERVAL and isinstance(params, IntervalParams):
            await self._run_interval(params)
        elif mode is DispatchMode.QUOTA and isinstance(params, QuotaParams):
            await self._run_quota(params)
        else:
            msg = f"{type(params).__name__} cannot drive {mode.value} mode"
            raise EngineError(msg)

        self._state = DispatchState.DONE
        stats = self.executor.recorder.snapshot()
        logger.info(
            "Dispatch finished: mode=%s, dispatched=%d, skipped=%d, recorded=%d",
            mode.value,
            self._dispatched,
            self._skipped,
            stats.total,
            extra={"mode": mode.value},
        )
        return stats

    async def _execute_one(self, item: WorkItem) -> None:
        """Execute one item and publish any endpoint change."""
        current = self.endpoint.load()
        new_endpoint, _outcome = await self.executor.execute(item, current)
        if new_endpoint != current:
            logger.debug("Endpoint changed: %s -> %s", current, new_endpoint)
            self.endpoint.store(new_endpoint)

    # ------------------------------------------------------------------
    # Mode A: interval-driven
    # ------------------------------------------------------------------

    async def _sleep_until(self, deadline: float) -> None:
        """Sleep until ``deadline`` or until the shutdown signal fires."""
        delay = deadline - time.monotonic()
        if delay <= 0:
            return
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self.shutdown.wait(), timeout=delay)

    async def _run_interval(self, params: IntervalParams) -> None:
        logger.info(
            "Starting interval dispatch: duration=%.1fs, tick=%.3fs, post_ratio=%.2f",
            params.duration_seconds,
            params.tick_interval,
            params.post_ratio,
            extra={"mode": DispatchMode.INTERVAL.value},
        )
        self._state = DispatchState.RUNNING
        start = time.monotonic()
        end = start + params.duration_seconds

        async with asyncio.TaskGroup() as group:
            tick = 1
            while not self.shutdown.is_fired:
                tick_time = start + tick * params.tick_interval
                if tick_time > end:
                    await self._sleep_until(end)
                    break
                await self._sleep_until(tick_time)
                if self.shutdown.is_fired:
                    break

                item = self._generator.sample(self._dispatched, params.post_ratio)
                group.create_task(self._execute_one(item), name=f"request-{item.sequence_index}")
                self._dispatched += 1
                tick += 1

            self.shutdown.fire(ShutdownReason.DURATION_ELAPSED)
            self._state = DispatchState.DRAINING
            logger.debug("Draining %d dispatched requests", self._dispatched)

    # ------------------------------------------------------------------
    # Mode B: quota-driven worker pool
    # ------------------------------------------------------------------

    async def _produce(self, queue: asyncio.Queue[WorkItem | None], params: QuotaParams) -> None:
        """Fill the queue in shuffled batches, then close it."""
        produced = 0
        try:
            while produced < params.total_requests and not self.shutdown.is_fired:
                size = min(params.batch_size, params.total_requests - produced)
                for item in self._generator.batch(size, params.post_ratio, start_index=produced):
                    if self.shutdown.is_fired:
                        break
                    await queue.put(item)
                    produced += 1
        finally:
            for _ in range(params.workers):
                queue.put_nowait(_CLOSED)
            logger.debug("Producer closed queue after %d items", produced)

    async def _work(
        self,
        worker_id: int,
        queue: asyncio.Queue[WorkItem | None],
        limiter: IntervalRateLimiter,
    ) -> None:
        """Consume jobs until the queue is closed.

        The first slot of ``limiter`` is claimed up front, so the first job
        runs as soon as it is dequeued and every later job waits out the
        pacing interval that follows the previous one.
        """
        await limiter.acquire()
        while True:
            self._worker_states[worker_id] = WorkerState.WAITING_FOR_JOB
            item = await queue.get()
            try:
                if item is _CLOSED:
                    self._worker_states[worker_id] = WorkerState.EXITED
                    return
                if self.shutdown.is_fired:
                    self._skipped += 1
                    continue

                self._worker_states[worker_id] = WorkerState.EXECUTING
                self._dispatched += 1
                await self._execute_one(item)

                if not self.shutdown.is_fired:
                    self._worker_states[worker_id] = WorkerState.RATE_LIMIT_WAIT
                    await limiter.acquire()
            finally:
                queue.task_done()

    async def _run_quota(self, params: QuotaParams) -> None:
        logger.info(
            "Starting quota dispatch: requests=%d, workers=%d, batch=%d, interval=%.3fs, "
            "post_ratio=%.2f",
            params.total_requests,
            params.workers,
            params.batch_size,
            params.request_interval,
            params.post_ratio,
            extra={"mode": DispatchMode.QUOTA.value},
        )
        self._state = DispatchState.RUNNING
        queue: asyncio.Queue[WorkItem | None] = asyncio.Queue(
            maxsize=params.total_requests + params.workers,
        )

        async with asyncio.TaskGroup() as group:
            for worker_id in range(params.workers):
                group.create_task(
                    self._work(worker_id, queue, IntervalRateLimiter(params.request_interval)),
                    name=f"worker-{worker_id}",
                )
            producer = group.create_task(self._produce(queue, params), name="producer")
            await producer
            # Every job and close marker is acknowledged, skipped ones included.
            await queue.join()

        if self._skipped:
            logger.info(
                "Skipped %d queued requests after shutdown (%s)",
                self._skipped,
                self.shutdown.reason.value if self.shutdown.reason else "unknown",
            )
