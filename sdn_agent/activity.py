"""Human-readable markers for operations in progress."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class ActivityTracker:
    """Thread-safe set of in-progress operation descriptions.

    Concurrent operations may carry the same description, so entries are
    counted rather than stored once.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Counter[str] = Counter()

    @contextmanager
    def blocking(self, details: str) -> Iterator[None]:
        """Mark an operation in progress for the duration of the block."""
        with self._lock:
            self._active[details] += 1
        logger.debug(f"Started: {details}")
        try:
            yield
        finally:
            with self._lock:
                self._active[details] -= 1
                if self._active[details] <= 0:
                    del self._active[details]
            logger.debug(f"Finished: {details}")

    def current(self) -> list[str]:
        with self._lock:
            return sorted(self._active)


_tracker: ActivityTracker | None = None


def get_activity_tracker() -> ActivityTracker:
    """Get the global activity tracker."""
    global _tracker
    if _tracker is None:
        _tracker = ActivityTracker()
    return _tracker
