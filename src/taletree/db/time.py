# src/taletree/db/time.py
"""Clock sources shared by records, models and sequence keys."""

import time
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def wall_clock_micros() -> int:
    """Microseconds since the epoch; the physical half of a sequence key."""
    return time.time_ns() // 1_000
