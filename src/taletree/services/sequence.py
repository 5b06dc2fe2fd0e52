"""Monotonic sequence key generator helpers."""

from __future__ import annotations

import threading
from collections.abc import Callable

from taletree.db.time import wall_clock_micros


class SequenceClock:
    """Hybrid logical clock handing out strictly increasing integers.

    Keys track wall-clock microseconds so they stay roughly chronological
    across restarts, and step past the last issued key whenever the wall clock
    stalls or runs backwards. Uniqueness across processes is enforced by the
    store's sibling-key constraint; a collision there is retried with a fresh
    key.
    """

    def __init__(self, now: Callable[[], int] = wall_clock_micros) -> None:
        self._now = now
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        """Return the next key, strictly greater than every key issued before."""
        with self._lock:
            candidate = self._now()
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return candidate


_DEFAULT_CLOCK = SequenceClock()


def default_clock() -> SequenceClock:
    """Return the process-wide clock."""
    return _DEFAULT_CLOCK
