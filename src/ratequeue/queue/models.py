"""
Data models for the rate limited queue.
"""
import asyncio
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


class SchedulerState(str, Enum):
    """Phases of the queue's scheduling engine."""
    IDLE = "idle"  # No wake-up armed
    ARMED = "armed"  # One wake-up pending
    EXECUTING = "executing"  # An operation is running


@dataclass
class TaskEntry:
    """An operation waiting in the queue to be executed."""

    operation: Callable[[], Any]
    future: asyncio.Future
    enqueued_at: float = 0.0
    task_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and debugging."""
        return {
            "task_id": self.task_id,
            "operation": getattr(self.operation, "__qualname__", repr(self.operation)),
            "enqueued_at": self.enqueued_at,
            "settled": self.future.done(),
        }


@dataclass
class QueueStats:
    """Statistics about a rate limited queue."""

    name: str
    queue_size: int
    active: bool
    state: SchedulerState
    max_calls_per_second: float
    interval_seconds: float
    tasks_submitted_total: int
    tasks_executed_total: int
    tasks_failed_total: int
    tasks_removed_total: int
    last_execution: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for reporting."""
        result = {
            "name": self.name,
            "queue_size": self.queue_size,
            "active": self.active,
            "state": self.state.value,
            "max_calls_per_second": self.max_calls_per_second,
            "interval_seconds": round(self.interval_seconds, 6),
            "tasks_submitted_total": self.tasks_submitted_total,
            "tasks_executed_total": self.tasks_executed_total,
            "tasks_failed_total": self.tasks_failed_total,
            "tasks_removed_total": self.tasks_removed_total,
        }
        if self.last_execution is not None:
            result["last_execution"] = self.last_execution
        return result
