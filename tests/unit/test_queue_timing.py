"""Timing tests for the rate limited queue on a real event loop."""

import asyncio

import pytest

from ratequeue.queue.manager import RateLimitedQueue

# Allowed scheduling jitter of the event loop (seconds)
TOLERANCE = 0.005


@pytest.mark.asyncio
class TestRateLimitedQueueTiming:
    """Test spacing of executions with LoopTimer."""

    async def test_executions_respect_interval(self, running_queue):
        """Test consecutive executions are at least one interval apart."""
        loop = asyncio.get_running_loop()
        timestamps = []
        ids = []

        futures = [
            running_queue.append(lambda i=i: (timestamps.append(loop.time()), ids.append(i)))
            for i in range(10)
        ]
        await asyncio.wait_for(asyncio.gather(*futures), timeout=5)

        assert ids == list(range(10))
        for earlier, later in zip(timestamps, timestamps[1:]):
            assert later - earlier >= running_queue.interval_seconds - TOLERANCE
        assert running_queue.is_empty()

    async def test_first_task_runs_without_delay(self, running_queue):
        """Test the first task of a fresh queue is not delayed by the interval."""
        loop = asyncio.get_running_loop()
        start = loop.time()

        executed_at = await asyncio.wait_for(running_queue.append(loop.time), timeout=1)

        assert executed_at - start < 0.04

    async def test_results_and_errors(self, running_queue):
        """Test futures settle with results and errors on the real loop."""

        def failing():
            raise LookupError("missing")

        ok = running_queue.append(lambda: "ok")
        bad = running_queue.append(failing)

        assert await asyncio.wait_for(ok, timeout=1) == "ok"
        with pytest.raises(LookupError):
            await asyncio.wait_for(bad, timeout=1)

    async def test_restart_skips_interval(self):
        """Test a restarted queue does not wait for the previous interval."""
        loop = asyncio.get_running_loop()
        q = RateLimitedQueue(1)
        q.start()
        await asyncio.wait_for(q.append(loop.time), timeout=1)

        q.stop()
        q.start()
        start = loop.time()
        executed_at = await asyncio.wait_for(q.append(loop.time), timeout=1)

        assert executed_at - start < 0.5
        q.stop()

    async def test_stop_halts_processing(self):
        """Test tasks armed before stop are not executed."""
        q = RateLimitedQueue(10)
        calls = []
        q.append(lambda: calls.append(1))
        q.append(lambda: calls.append(2))
        q.start()

        await asyncio.sleep(0.02)
        q.stop()
        await asyncio.sleep(0.2)

        assert calls == [1]
        assert q.get_queue_size() == 1
