"""
Rate limited task queue.

Provides the scheduling engine, its data models and the timers it runs on.
"""

from .manager import (
    InvalidRateError,
    RateLimitedQueue,
    RateQueueError,
    TaskRemovedError,
    validate_rate,
)
from .models import QueueStats, SchedulerState, TaskEntry
from .timer import LoopTimer, ManualTimer, ManualTimerHandle, TimerInterface

__all__ = [
    "InvalidRateError",
    "LoopTimer",
    "ManualTimer",
    "ManualTimerHandle",
    "QueueStats",
    "RateLimitedQueue",
    "RateQueueError",
    "SchedulerState",
    "TaskEntry",
    "TaskRemovedError",
    "TimerInterface",
    "validate_rate",
]
