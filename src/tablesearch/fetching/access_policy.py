import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator

logger = logging.getLogger(__name__)

class SourceAccessPolicy:
    """
        Bounds load on the source database.

        At most `max_concurrent` operations run at once, and consecutive
        dispatches are spaced at least `min_interval_ms` apart. Every
        component sharing one policy instance shares both budgets.
    """

    def __init__(
        self,
        max_concurrent: int = 2,
        min_interval_ms: int = 100,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if min_interval_ms < 0:
            raise ValueError("min_interval_ms must not be negative")

        self.max_concurrent = max_concurrent
        self.min_interval = min_interval_ms / 1000.0
        self._clock = clock
        self._sleep = sleep
        self._slots = threading.BoundedSemaphore(max_concurrent)
        self._dispatch_lock = threading.Lock()
        self._last_dispatch = None

    @classmethod
    def from_settings(cls, settings) -> "SourceAccessPolicy":
        return cls(
            max_concurrent=settings.MAX_CONCURRENT_CONNECTIONS,
            min_interval_ms=settings.QUERY_DELAY_MS
        )

    @contextmanager
    def slot(self) -> Iterator[None]:
        """Hold one slot for the duration of a source operation."""
        self._slots.acquire()
        try:
            self._wait_for_turn()
            yield
        finally:
            self._slots.release()

    def _wait_for_turn(self) -> None:
        # Reserve the next dispatch time under the lock, sleep outside it
        with self._dispatch_lock:
            now = self._clock()
            dispatch_at = now
            if self._last_dispatch is not None:
                dispatch_at = max(now, self._last_dispatch + self.min_interval)
            self._last_dispatch = dispatch_at

        delay = dispatch_at - now
        if delay > 0:
            logger.debug(f"Pacing source access for {delay * 1000:.0f}ms")
            self._sleep(delay)
