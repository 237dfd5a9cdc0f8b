"""Tests for the shutdown signal and console trigger."""

from __future__ import annotations

import asyncio
import io

import pytest

from loadpulse.engine.shutdown import ConsoleTrigger, ShutdownReason, ShutdownSignal


class TestShutdownSignal:
    def test_starts_unfired(self) -> None:
        shutdown = ShutdownSignal()
        assert not shutdown.is_fired
        assert shutdown.reason is None

    def test_first_fire_wins(self) -> None:
        shutdown = ShutdownSignal()
        assert shutdown.fire(ShutdownReason.OPERATOR) is True
        assert shutdown.fire(ShutdownReason.DURATION_ELAPSED) is False
        assert shutdown.fire(ShutdownReason.SIGNAL) is False
        assert shutdown.is_fired
        assert shutdown.reason is ShutdownReason.OPERATOR

    async def test_wait_returns_reason(self) -> None:
        shutdown = ShutdownSignal()
        waiter = asyncio.create_task(shutdown.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        shutdown.fire(ShutdownReason.SIGNAL)
        assert await asyncio.wait_for(waiter, timeout=1.0) is ShutdownReason.SIGNAL

    async def test_wait_after_fire_returns_immediately(self) -> None:
        shutdown = ShutdownSignal()
        shutdown.fire(ShutdownReason.OPERATOR)
        assert await asyncio.wait_for(shutdown.wait(), timeout=0.1) is ShutdownReason.OPERATOR

    async def test_many_readers_see_one_fire(self) -> None:
        shutdown = ShutdownSignal()
        waiters = [asyncio.create_task(shutdown.wait()) for _ in range(10)]
        shutdown.fire(ShutdownReason.DURATION_ELAPSED)
        reasons = await asyncio.wait_for(asyncio.gather(*waiters), timeout=1.0)
        assert set(reasons) == {ShutdownReason.DURATION_ELAPSED}

    async def test_fire_threadsafe(self) -> None:
        shutdown = ShutdownSignal()
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, shutdown.fire_threadsafe, loop, ShutdownReason.OPERATOR)
        assert await asyncio.wait_for(shutdown.wait(), timeout=1.0) is ShutdownReason.OPERATOR


class TestConsoleTrigger:
    @pytest.mark.parametrize("command", ["q\n", "quit\n", "  STOP \n"])
    async def test_stop_command_fires_operator(self, command: str) -> None:
        shutdown = ShutdownSignal()
        stream = io.StringIO(f"hello\n{command}")
        ConsoleTrigger(shutdown, asyncio.get_running_loop(), stream).start()

        assert await asyncio.wait_for(shutdown.wait(), timeout=2.0) is ShutdownReason.OPERATOR

    async def test_other_input_does_not_fire(self) -> None:
        shutdown = ShutdownSignal()
        stream = io.StringIO("status\nhelp\n")
        ConsoleTrigger(shutdown, asyncio.get_running_loop(), stream).start()

        await asyncio.sleep(0.1)
        assert not shutdown.is_fired
