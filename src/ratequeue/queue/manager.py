"""
Rate limited queue for deferred operations.
"""
import asyncio
import decimal
import functools
import inspect
import logging
import math
import numbers
from collections import deque
from typing import TYPE_CHECKING, Any, Callable, Deque, Iterable, Optional

from ..metrics import MetricsCollector, get_metrics
from .models import QueueStats, SchedulerState, TaskEntry
from .timer import LoopTimer, TimerInterface

if TYPE_CHECKING:
    from ..config import QueueConfig

logger = logging.getLogger(__name__)


class RateQueueError(Exception):
    """Base class for errors raised by the rate limited queue."""

    pass


class InvalidRateError(RateQueueError, ValueError):
    """Raised when the configured calls-per-second rate is not a positive number."""

    pass


class TaskRemovedError(RateQueueError):
    """Set on the future of a task that was removed before it could execute."""

    pass


def validate_rate(max_calls_per_second: Any) -> float:
    """
    Validate a calls-per-second rate.

    Args:
        max_calls_per_second: Rate to validate

    Returns:
        The rate, unchanged

    Raises:
        InvalidRateError: If the rate is not a finite number greater than zero
    """
    if isinstance(max_calls_per_second, bool) or not isinstance(
        max_calls_per_second, (numbers.Real, decimal.Decimal)
    ):
        raise InvalidRateError(
            f"max_calls_per_second must be a number, got {max_calls_per_second!r}"
        )
    if not math.isfinite(max_calls_per_second) or max_calls_per_second <= 0:
        raise InvalidRateError(
            f"max_calls_per_second must be greater than zero, got {max_calls_per_second!r}"
        )
    return max_calls_per_second


class RateLimitedQueue:
    """
    Executes queued operations no faster than a fixed number of calls per second.

    A new queue is stopped; call start() to begin processing. Each submitted
    operation is wrapped in an asyncio.Future which is settled with the
    operation's return value (or raised exception) when the queue executes it.
    Operations run one at a time on the event loop, in queue order, and two
    consecutive executions are never closer together than 1 / rate seconds.

    Submission methods are synchronous but must be called while an event loop
    is running, since the returned futures belong to that loop.
    """

    def __init__(
        self,
        max_calls_per_second: float = 1.0,
        logger: Optional[Any] = None,
        *,
        timer: Optional[TimerInterface] = None,
        name: str = "default",
        cancel_removed: bool = False,
        resolve_awaitables: bool = False,
        metrics_enabled: bool = False,
    ):
        """
        Initialize the rate limited queue.

        Args:
            max_calls_per_second: Maximum executions per second. Values below 1
                mean less than one call per second, e.g. 1/3 for one call every
                three seconds.
            logger: Diagnostic logger exposing debug(message, *args)
                (default: this module's logger)
            timer: Clock and wake-up scheduler (default: the running event loop)
            name: Queue name used in logs and metric labels
            cancel_removed: Reject futures of removed tasks with TaskRemovedError
                instead of leaving them pending
            resolve_awaitables: If an operation returns an awaitable, settle the
                future with the awaitable's outcome instead of the object itself
            metrics_enabled: Record Prometheus metrics for this queue

        Raises:
            InvalidRateError: If max_calls_per_second is not greater than zero
        """
        self.max_calls_per_second = validate_rate(max_calls_per_second)
        self.name = name
        self.cancel_removed = cancel_removed
        self.resolve_awaitables = resolve_awaitables

        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._timer: TimerInterface = timer if timer is not None else LoopTimer()
        self._metrics: Optional[MetricsCollector] = get_metrics() if metrics_enabled else None

        self._entries: Deque[TaskEntry] = deque()
        self._active = False
        self._interval = 1.0 / float(max_calls_per_second)

        self._last_execution: Optional[float] = None
        self._pending_timer: Optional[Any] = None
        self._pending_token: Optional[object] = None
        self._pending_due: Optional[float] = None
        self._state = SchedulerState.IDLE

        # Statistics
        self._tasks_submitted = 0
        self._tasks_executed = 0
        self._tasks_failed = 0
        self._tasks_removed = 0

    @classmethod
    def from_config(
        cls,
        config: "QueueConfig",
        timer: Optional[TimerInterface] = None,
        logger: Optional[Any] = None,
        configure_logging: bool = False,
    ) -> "RateLimitedQueue":
        """
        Create a queue from a QueueConfig.

        Args:
            config: Queue configuration
            timer: Optional timer override
            logger: Optional diagnostic logger
            configure_logging: Also install the root log handler from
                config.log_level and config.log_format

        Returns:
            A stopped RateLimitedQueue
        """
        config.validate()
        if configure_logging:
            config.setup_logging()
        return cls(
            config.max_calls_per_second,
            logger,
            timer=timer,
            name=config.name,
            cancel_removed=config.cancel_removed,
            resolve_awaitables=config.resolve_awaitables,
            metrics_enabled=config.metrics_enabled,
        )

    @property
    def interval_seconds(self) -> float:
        """Minimum seconds between two consecutive executions."""
        return self._interval

    @property
    def interval_millis(self) -> float:
        """Minimum milliseconds between two consecutive executions."""
        return 1000.0 / float(self.max_calls_per_second)

    @property
    def state(self) -> SchedulerState:
        """Current phase of the scheduling engine."""
        return self._state

    @property
    def last_execution(self) -> Optional[float]:
        """Timer reading of the most recent execution, or None."""
        return self._last_execution

    # === Lifecycle ===

    def start(self) -> bool:
        """
        Start processing queued tasks.

        Returns:
            True if the queue was stopped and is now started, False if it
            was already running
        """
        if self._active:
            return False

        logger.info(
            f"Starting rate limited queue '{self.name}' "
            f"({self.max_calls_per_second} calls/s, {len(self._entries)} queued)"
        )
        self._active = True
        if self._metrics:
            self._metrics.set_active(self.name, True)

        self._update_task_schedule()
        return True

    def stop(self) -> bool:
        """
        Stop processing queued tasks.

        Queued tasks stay in the queue. The pending wake-up is cancelled and
        the last execution time is forgotten, so the first task after a
        restart runs immediately.

        Returns:
            True if the queue was started and is now stopped, False if it was
            already stopped
        """
        if not self._active:
            return False

        logger.info(f"Stopping rate limited queue '{self.name}' ({len(self._entries)} queued)")
        self._active = False
        self._disarm()
        self._last_execution = None
        if self._state is SchedulerState.ARMED:
            self._state = SchedulerState.IDLE

        if self._metrics:
            self._metrics.set_active(self.name, False)
        return True

    def is_started(self) -> bool:
        return self._active

    def is_stopped(self) -> bool:
        return not self.is_started()

    # === Queue mutation ===

    def add(self, operation: Callable[[], Any], to_tail: bool = True) -> asyncio.Future:
        """
        Add a task to the queue.

        The first task added to an empty queue is always appended.

        Args:
            operation: Zero-argument callable to execute
            to_tail: Append to the end of the queue if True, prepend otherwise

        Returns:
            Future settled when the task is executed

        Raises:
            TypeError: If operation is not callable
        """
        if not callable(operation):
            raise TypeError(f"operation must be callable, got {type(operation).__name__}")

        entry = TaskEntry(
            operation=operation,
            future=self._timer.create_future(),
            enqueued_at=self._timer.now(),
        )

        if to_tail or not self._entries:
            self._entries.append(entry)
            position = "tail"
        else:
            self._entries.appendleft(entry)
            position = "head"

        self._tasks_submitted += 1
        if self._metrics:
            self._metrics.record_submitted(self.name, position)
            self._metrics.update_queue_size(self.name, len(self._entries))

        self._update_task_schedule()
        return entry.future

    def append(self, operation: Callable[[], Any]) -> asyncio.Future:
        """
        Append a task to the end of the queue.

        Args:
            operation: Zero-argument callable to execute

        Returns:
            Future settled when the task is executed
        """
        return self.add(operation, True)

    def prepend(self, operation: Callable[[], Any]) -> asyncio.Future:
        """
        Insert a task at the head of the queue.

        Args:
            operation: Zero-argument callable to execute

        Returns:
            Future settled when the task is executed
        """
        return self.add(operation, False)

    def remove(self, operation: Callable[[], Any]) -> int:
        """
        Remove every queued occurrence of an operation.

        Entries are matched by identity. Futures of removed entries stay
        pending unless the queue was created with cancel_removed=True.

        Args:
            operation: The callable previously passed to add/append/prepend

        Returns:
            Number of removed entries
        """
        if self.is_empty():
            return 0

        removed = []
        for index in range(len(self._entries) - 1, -1, -1):
            if self._entries[index].operation is operation:
                removed.append(self._entries[index])
                del self._entries[index]

        self._handle_removed(removed)
        return len(removed)

    def discard(self, future: asyncio.Future) -> bool:
        """
        Remove the queued entry owning the given future.

        Args:
            future: Future returned by add/append/prepend

        Returns:
            True if an entry was removed, False if no queued entry owns it
        """
        for entry in self._entries:
            if entry.future is future:
                self._entries.remove(entry)
                self._handle_removed([entry])
                return True
        return False

    def is_empty(self) -> bool:
        """Return True if no tasks are queued."""
        return len(self._entries) == 0

    def is_not_empty(self) -> bool:
        return not self.is_empty()

    def get_queue_size(self) -> int:
        """Return the number of queued tasks."""
        return len(self._entries)

    def get_max_calls_per_second(self) -> float:
        return self.max_calls_per_second

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return (
            f"RateLimitedQueue(name={self.name!r}, max_calls_per_second={self.max_calls_per_second!r}, "
            f"size={len(self._entries)}, active={self._active})"
        )

    def estimate_wait_time(self, position: Optional[int] = None) -> float:
        """
        Estimate wait time based on queue position and rate limit.

        The estimate assumes the queue is running and nothing is prepended.

        Args:
            position: 1-based position in queue (if None, uses current queue size)

        Returns:
            Estimated wait time in seconds
        """
        if position is None:
            position = len(self._entries)

        if position <= 0:
            return 0.0

        if self._pending_due is not None:
            first_wait = max(0.0, self._pending_due - self._timer.now())
        else:
            first_wait = self._compute_wait()

        return first_wait + (position - 1) * self._interval

    def get_stats(self) -> QueueStats:
        """
        Get current queue statistics.

        Returns:
            Queue statistics
        """
        return QueueStats(
            name=self.name,
            queue_size=len(self._entries),
            active=self._active,
            state=self._state,
            max_calls_per_second=self.max_calls_per_second,
            interval_seconds=self._interval,
            tasks_submitted_total=self._tasks_submitted,
            tasks_executed_total=self._tasks_executed,
            tasks_failed_total=self._tasks_failed,
            tasks_removed_total=self._tasks_removed,
            last_execution=self._last_execution,
        )

    # === Scheduling ===

    def _update_task_schedule(self) -> None:
        """Arm a wake-up for the next task unless one is pending or nothing can run."""
        self._logger.debug(
            "RateLimitedQueue.update_task_schedule: %d queued, active=%s",
            len(self._entries),
            self._active,
        )

        if self.is_empty() or self.is_stopped():
            return

        if self._pending_timer is not None:
            return

        self._arm(self._compute_wait())

    def _compute_wait(self) -> float:
        """Seconds until the next execution is allowed."""
        if self._last_execution is None:
            return 0.0

        elapsed = self._timer.now() - self._last_execution
        if elapsed >= self._interval:
            return 0.0
        return max(0.0, self._interval - elapsed)

    def _arm(self, wait: float) -> None:
        self._logger.debug("RateLimitedQueue.schedule_next: %.3fs", wait)

        # Wake-ups carry a token so a cancelled or superseded one never executes
        token = object()
        self._pending_token = token
        self._pending_due = self._timer.now() + wait
        self._pending_timer = self._timer.call_later(wait, functools.partial(self._on_timer, token))
        self._state = SchedulerState.ARMED

    def _disarm(self) -> None:
        if self._pending_timer is not None:
            self._pending_timer.cancel()
        self._pending_timer = None
        self._pending_token = None
        self._pending_due = None

    def _on_timer(self, token: object) -> None:
        if token is not self._pending_token:
            return

        self._state = SchedulerState.EXECUTING
        try:
            self._process_next_task(self._timer.now())
        finally:
            # An operation may have stopped or restarted the queue; only clear our own arm
            if self._pending_token is token:
                self._pending_timer = None
                self._pending_token = None
                self._pending_due = None
            if self._state is SchedulerState.EXECUTING:
                self._state = (
                    SchedulerState.ARMED if self._pending_timer is not None else SchedulerState.IDLE
                )
            self._update_task_schedule()

    def _process_next_task(self, fired_at: float) -> None:
        self._logger.debug("RateLimitedQueue.process_next_task: %d queued", len(self._entries))

        # A wake-up that finds nothing to run does not count as an execution
        if not self._entries:
            return

        self._last_execution = fired_at
        entry = self._entries.popleft()
        self._tasks_executed += 1
        wait_seconds = fired_at - entry.enqueued_at

        try:
            result = entry.operation()
        except Exception as e:
            self._tasks_failed += 1
            logger.warning(
                f"Task {entry.task_id} in queue '{self.name}' failed: {e!r}",
                extra={"task_id": entry.task_id, "queue": self.name},
            )
            if self._metrics:
                self._metrics.record_executed(self.name, False, wait_seconds)
                self._metrics.update_queue_size(self.name, len(self._entries))
            self._reject(entry, e)
            return

        if self._metrics:
            self._metrics.record_executed(self.name, True, wait_seconds)
            self._metrics.update_queue_size(self.name, len(self._entries))

        if self.resolve_awaitables and inspect.isawaitable(result):
            self._chain_awaitable(entry, result)
            return

        self._logger.debug("Resolving queued task %s with %r", entry.task_id, result)
        self._resolve(entry, result)

    # === Settlement ===

    def _resolve(self, entry: TaskEntry, result: Any) -> None:
        if entry.future.done():
            self._logger.debug("Future of task %s already settled, dropping result", entry.task_id)
            return
        entry.future.set_result(result)

    def _reject(self, entry: TaskEntry, error: BaseException) -> None:
        if entry.future.done():
            self._logger.debug("Future of task %s already settled, dropping error", entry.task_id)
            return

        if isinstance(error, StopIteration):
            # Futures refuse StopIteration; wrap it like asyncio does for coroutines
            wrapped = RuntimeError(f"Task {entry.task_id} raised StopIteration")
            wrapped.__cause__ = error
            error = wrapped
        entry.future.set_exception(error)

    def _chain_awaitable(self, entry: TaskEntry, awaitable: Any) -> None:
        inner = asyncio.ensure_future(awaitable)

        def _copy_outcome(done: asyncio.Future) -> None:
            if done.cancelled():
                if not entry.future.done():
                    entry.future.cancel()
                return

            error = done.exception()
            if error is not None:
                self._reject(entry, error)
            else:
                self._logger.debug("Resolving queued task %s with %r", entry.task_id, done.result())
                self._resolve(entry, done.result())

        inner.add_done_callback(_copy_outcome)

    def _handle_removed(self, removed: Iterable[TaskEntry]) -> None:
        removed = list(removed)
        if not removed:
            return

        self._tasks_removed += len(removed)
        logger.debug(f"Removed {len(removed)} task(s) from queue '{self.name}'")

        if self._metrics:
            self._metrics.record_removed(self.name, len(removed))
            self._metrics.update_queue_size(self.name, len(self._entries))

        if not self.cancel_removed:
            return

        for entry in removed:
            self._reject(
                entry,
                TaskRemovedError(f"Task {entry.task_id} was removed from queue '{self.name}'"),
            )
