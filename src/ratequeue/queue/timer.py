"""Clock and timer implementations used by the queue scheduler."""

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class TimerInterface(ABC):
    """Abstract base class for the queue's time source and wake-up scheduler."""

    @abstractmethod
    def now(self) -> float:
        """
        Get the current monotonic time.

        Returns:
            Current time in seconds
        """
        pass

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> Any:
        """
        Schedule a one-shot callback.

        Args:
            delay: Seconds to wait before invoking the callback
            callback: Zero-argument callable to invoke

        Returns:
            A handle exposing cancel()
        """
        pass

    def create_future(self) -> asyncio.Future:
        """Create a future bound to the running event loop."""
        return asyncio.get_running_loop().create_future()


class LoopTimer(TimerInterface):
    """Timer backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Initialize the timer.

        Args:
            loop: Event loop to use (default: the loop running at call time)
        """
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def now(self) -> float:
        return self._get_loop().time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(0.0, delay), callback)

    def create_future(self) -> asyncio.Future:
        return self._get_loop().create_future()


class ManualTimerHandle:
    """Handle for a callback scheduled on a ManualTimer."""

    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        """Cancel the scheduled callback."""
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualTimer(TimerInterface):
    """
    Virtual clock for deterministic scheduling.

    Time only moves when advance() is called; callbacks that come due are
    invoked synchronously, in order of their due time.
    """

    def __init__(self, start: float = 0.0):
        """
        Initialize the manual timer.

        Args:
            start: Initial clock reading in seconds
        """
        self._now = start
        self._counter = itertools.count()
        self._scheduled: List[Tuple[float, int, ManualTimerHandle]] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimerHandle:
        handle = ManualTimerHandle(self._now + max(0.0, delay), callback)
        heapq.heappush(self._scheduled, (handle.when, next(self._counter), handle))
        return handle

    def pending(self) -> int:
        """Number of scheduled callbacks that have not fired or been cancelled."""
        return sum(1 for _, _, handle in self._scheduled if not handle.cancelled())

    def next_due(self) -> Optional[float]:
        """Due time of the earliest live callback, if any."""
        for when, _, handle in sorted(self._scheduled):
            if not handle.cancelled():
                return when
        return None

    def advance(self, seconds: float = 0.0) -> int:
        """
        Move the clock forward, firing every callback that comes due.

        Callbacks scheduled by other callbacks are fired too if they fall
        within the advanced window.

        Args:
            seconds: Amount of virtual time to advance

        Returns:
            Number of callbacks fired
        """
        if seconds < 0:
            raise ValueError("Cannot move a manual timer backwards")

        target = self._now + seconds
        fired = 0

        while self._scheduled and self._scheduled[0][0] <= target:
            when, _, handle = heapq.heappop(self._scheduled)
            if handle.cancelled():
                continue
            self._now = max(self._now, when)
            fired += 1
            handle.callback()

        self._now = target
        logger.debug(f"Manual timer advanced to {self._now:.3f}s ({fired} callbacks fired)")
        return fired
