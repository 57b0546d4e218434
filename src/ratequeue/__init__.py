"""ratequeue - rate limited queue of deferred operations for asyncio."""

from .config import QueueConfig
from .queue import (
    InvalidRateError,
    LoopTimer,
    ManualTimer,
    QueueStats,
    RateLimitedQueue,
    RateQueueError,
    SchedulerState,
    TaskRemovedError,
    TimerInterface,
)

__version__ = "1.0.0"

__all__ = [
    "InvalidRateError",
    "LoopTimer",
    "ManualTimer",
    "QueueConfig",
    "QueueStats",
    "RateLimitedQueue",
    "RateQueueError",
    "SchedulerState",
    "TaskRemovedError",
    "TimerInterface",
    "__version__",
]
