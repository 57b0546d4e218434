"""Shared pytest fixtures for ratequeue tests."""

import logging
from typing import AsyncGenerator, Generator
from unittest.mock import Mock

import pytest
import pytest_asyncio

from ratequeue.queue.manager import RateLimitedQueue
from ratequeue.queue.timer import ManualTimer


@pytest.fixture(scope="function")
def manual_timer() -> ManualTimer:
    """Create a virtual clock starting at zero."""
    return ManualTimer()


@pytest.fixture(scope="function")
def debug_logger() -> Mock:
    """Create a mock diagnostic logger."""
    return Mock(spec=["debug"])


@pytest.fixture(scope="function")
def queue(manual_timer: ManualTimer) -> Generator[RateLimitedQueue, None, None]:
    """Create a stopped queue running on the manual timer (one call per second)."""
    q = RateLimitedQueue(1.0, timer=manual_timer, name="test")
    yield q
    q.stop()


@pytest.fixture(scope="function")
def fast_queue(manual_timer: ManualTimer) -> Generator[RateLimitedQueue, None, None]:
    """Create a stopped queue running on the manual timer (five calls per second)."""
    q = RateLimitedQueue(5.0, timer=manual_timer, name="fast")
    yield q
    q.stop()


@pytest_asyncio.fixture
async def running_queue() -> AsyncGenerator[RateLimitedQueue, None]:
    """Create a started queue on the real event loop (twenty calls per second)."""
    q = RateLimitedQueue(20.0, name="running")
    q.start()
    yield q
    q.stop()


@pytest.fixture(scope="function")
def restore_root_logger() -> Generator[logging.Logger, None, None]:
    """Restore root logger handlers and level after a test reconfigures logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers.clear()
    root.handlers.extend(handlers)
    root.setLevel(level)
