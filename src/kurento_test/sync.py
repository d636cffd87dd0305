"""
Synchronization helpers for waiting on asynchronous media events.

Media server events arrive on the client's reader thread; tests block on the
main thread until the expected event fires or a configured timeout expires.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class CountDownLatch:
    """One-shot gate released after count_down() has been called count times.

    Usage:
        eos_latch = CountDownLatch()
        player.add_end_of_stream_listener(lambda event: eos_latch.count_down())
        player.play()
        assert eos_latch.wait(timeout=60), "No EOS event"
    """

    def __init__(self, count: int = 1) -> None:
        if count < 0:
            raise ValueError("count must be >= 0")
        self._count = count
        self._condition = threading.Condition()

    @property
    def count(self) -> int:
        with self._condition:
            return self._count

    def count_down(self) -> None:
        """Decrement the count, releasing waiters when it reaches zero."""
        with self._condition:
            if self._count == 0:
                return
            self._count -= 1
            if self._count == 0:
                self._condition.notify_all()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the count reaches zero.

        Args:
            timeout: Maximum wait in seconds (None waits forever)

        Returns:
            True if released, False if the timeout expired first
        """
        with self._condition:
            return self._condition.wait_for(lambda: self._count == 0, timeout=timeout)


def wait_for_condition(
    condition_fn: Callable[[], bool],
    timeout_sec: float = 30,
    poll_interval_sec: float = 0.5,
    description: str = "condition",
) -> bool:
    """Wait for a condition to become true.

    Exceptions raised by condition_fn count as "not yet".

    Args:
        condition_fn: Callable that returns True when condition is met
        timeout_sec: Maximum wait time
        poll_interval_sec: Time between polls
        description: Description for logging

    Returns:
        True if condition was met, False if timeout
    """
    deadline = time.monotonic() + timeout_sec
    while True:
        try:
            if condition_fn():
                return True
        except Exception as e:
            logger.debug(f"Condition check failed: {e}")

        if time.monotonic() >= deadline:
            break
        time.sleep(poll_interval_sec)

    logger.warning(f"Timeout waiting for {description}")
    return False
