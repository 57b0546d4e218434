"""Prometheus metrics collector."""

import logging
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


class MetricsCollector:
    """Collects and exposes Prometheus metrics for rate limited queues."""

    def __init__(self):
        """Initialize metrics."""

        # Submission and outcome counters
        self.tasks_submitted_total = Counter(
            "ratequeue_tasks_submitted_total",
            "Total tasks submitted to the queue",
            ["queue", "position"],
        )

        self.tasks_executed_total = Counter(
            "ratequeue_tasks_executed_total",
            "Total tasks executed by the queue",
            ["queue", "outcome"],
        )

        self.tasks_removed_total = Counter(
            "ratequeue_tasks_removed_total",
            "Total tasks removed from the queue before execution",
            ["queue"],
        )

        # Queue state
        self.queue_size = Gauge("ratequeue_queue_size", "Number of queued tasks", ["queue"])

        self.queue_active = Gauge(
            "ratequeue_queue_active", "Queue processing status (1=started, 0=stopped)", ["queue"]
        )

        # Latency
        self.task_wait_seconds = Histogram(
            "ratequeue_task_wait_seconds",
            "Time between task submission and execution in seconds",
            ["queue"],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 300.0],
        )

    def record_submitted(self, queue: str, position: str) -> None:
        """Record a submitted task."""
        self.tasks_submitted_total.labels(queue=queue, position=position).inc()

    def record_executed(self, queue: str, success: bool, wait_seconds: Optional[float] = None) -> None:
        """Record an executed task and how long it waited."""
        outcome = "success" if success else "failure"
        self.tasks_executed_total.labels(queue=queue, outcome=outcome).inc()
        if wait_seconds is not None:
            self.task_wait_seconds.labels(queue=queue).observe(max(0.0, wait_seconds))

    def record_removed(self, queue: str, count: int) -> None:
        """Record removed tasks."""
        if count > 0:
            self.tasks_removed_total.labels(queue=queue).inc(count)

    def update_queue_size(self, queue: str, size: int) -> None:
        """Update the queued task gauge."""
        self.queue_size.labels(queue=queue).set(size)

    def set_active(self, queue: str, active: bool) -> None:
        """Set queue processing status."""
        self.queue_active.labels(queue=queue).set(1 if active else 0)


# Global metrics collector instance
_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get or create global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
