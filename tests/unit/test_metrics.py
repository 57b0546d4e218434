"""Unit tests for Prometheus metrics collector."""

import pytest
from prometheus_client import REGISTRY

from ratequeue import metrics
from ratequeue.queue.manager import RateLimitedQueue


# Use a module-level fixture that runs once to create the collector
@pytest.fixture(scope="module")
def metrics_collector():
    """Get or create a metrics collector for testing.

    Prometheus metrics are registered globally and cannot be re-registered,
    so we use the singleton pattern and share one collector across all tests.
    """
    return metrics.get_metrics()


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetricsCollector:
    """Test MetricsCollector class."""

    def test_singleton(self, metrics_collector):
        """Test get_metrics returns the same collector."""
        assert metrics.get_metrics() is metrics_collector

    def test_collector_has_counters(self, metrics_collector):
        """Test MetricsCollector has task counters."""
        assert metrics_collector.tasks_submitted_total is not None
        assert metrics_collector.tasks_executed_total is not None
        assert metrics_collector.tasks_removed_total is not None

    def test_collector_has_gauges(self, metrics_collector):
        """Test MetricsCollector has queue gauges."""
        assert metrics_collector.queue_size is not None
        assert metrics_collector.queue_active is not None
        assert metrics_collector.task_wait_seconds is not None

    def test_record_executed(self, metrics_collector):
        """Test recording executions by outcome."""
        before = sample("ratequeue_tasks_executed_total", queue="unit", outcome="failure")
        metrics_collector.record_executed("unit", False, 0.5)
        after = sample("ratequeue_tasks_executed_total", queue="unit", outcome="failure")
        assert after == before + 1

    def test_record_removed_ignores_zero(self, metrics_collector):
        """Test recording zero removals leaves the counter untouched."""
        before = sample("ratequeue_tasks_removed_total", queue="unit-zero")
        metrics_collector.record_removed("unit-zero", 0)
        assert sample("ratequeue_tasks_removed_total", queue="unit-zero") == before

    def test_set_active(self, metrics_collector):
        """Test the active gauge."""
        metrics_collector.set_active("unit", True)
        assert sample("ratequeue_queue_active", queue="unit") == 1
        metrics_collector.set_active("unit", False)
        assert sample("ratequeue_queue_active", queue="unit") == 0


@pytest.mark.asyncio
class TestQueueMetrics:
    """Test the queue records metrics when enabled."""

    async def test_queue_records_activity(self, metrics_collector, manual_timer):
        """Test submissions, executions, removals and gauges are recorded."""
        q = RateLimitedQueue(1, timer=manual_timer, name="metrics-test", metrics_enabled=True)

        def noop():
            return None

        def failing():
            raise RuntimeError("x")

        q.append(lambda: 1)
        q.prepend(failing)
        q.append(noop)
        q.remove(noop)

        assert sample("ratequeue_tasks_submitted_total", queue="metrics-test", position="tail") == 2
        assert sample("ratequeue_tasks_submitted_total", queue="metrics-test", position="head") == 1
        assert sample("ratequeue_tasks_removed_total", queue="metrics-test") == 1
        assert sample("ratequeue_queue_size", queue="metrics-test") == 2

        q.start()
        assert sample("ratequeue_queue_active", queue="metrics-test") == 1
        manual_timer.advance(3)

        assert sample("ratequeue_tasks_executed_total", queue="metrics-test", outcome="success") == 1
        assert sample("ratequeue_tasks_executed_total", queue="metrics-test", outcome="failure") == 1
        assert sample("ratequeue_task_wait_seconds_count", queue="metrics-test") == 2
        assert sample("ratequeue_queue_size", queue="metrics-test") == 0

        q.stop()
        assert sample("ratequeue_queue_active", queue="metrics-test") == 0

    async def test_disabled_queue_records_nothing(self, metrics_collector, manual_timer):
        """Test metrics are opt-in."""
        q = RateLimitedQueue(1, timer=manual_timer, name="metrics-off")
        q.append(lambda: None)
        q.start()
        manual_timer.advance(0)

        assert REGISTRY.get_sample_value(
            "ratequeue_tasks_submitted_total", {"queue": "metrics-off", "position": "tail"}
        ) is None
        q.stop()

    async def test_prepend_on_empty_queue_counts_as_tail(self, metrics_collector, manual_timer):
        """Test the position label follows where the task actually landed."""
        q = RateLimitedQueue(1, timer=manual_timer, name="metrics-position", metrics_enabled=True)

        q.prepend(lambda: 1)
        q.prepend(lambda: 2)

        assert sample("ratequeue_tasks_submitted_total", queue="metrics-position", position="tail") == 1
        assert sample("ratequeue_tasks_submitted_total", queue="metrics-position", position="head") == 1
