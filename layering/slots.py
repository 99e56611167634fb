"""Bounded pool of processing slots with a timed acquire."""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from layering.errors import QueueFullError


class SlotPool:
    """
    Caps how many pipeline runs execute at once.

    Waiting for a slot is bounded by ``queue_timeout`` seconds; a caller that
    cannot get one in time receives QueueFullError and decides whether to
    retry. Slots are released on every exit path of the ``slot()`` block.
    """

    def __init__(self, max_concurrent: int, queue_timeout: float,
                 logger: Optional[logging.Logger] = None):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self.queue_timeout = queue_timeout
        self.logger = logger or logging.getLogger(__name__)
        self._semaphore = threading.BoundedSemaphore(max_concurrent)
        self._lock = threading.Lock()
        self._active = 0

    @property
    def active(self) -> int:
        with self._lock:
            return self._active

    @contextmanager
    def slot(self) -> Iterator[None]:
        if not self._semaphore.acquire(timeout=self.queue_timeout):
            self.logger.warning(
                "no processing slot within %.1fs, %d/%d busy",
                self.queue_timeout, self.active, self.max_concurrent,
            )
            raise QueueFullError(self.queue_timeout)

        with self._lock:
            self._active += 1
        try:
            yield
        finally:
            with self._lock:
                self._active -= 1
            self._semaphore.release()
