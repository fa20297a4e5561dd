"""Time utilities shared by the domain services."""

import time
from collections.abc import Callable
from datetime import datetime

# Returns the current time as epoch milliseconds.
Clock = Callable[[], int]


def now_millis() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def format_duration(millis: int) -> str:
    """Format a duration as minutes and seconds.

    Args:
        millis: Duration in milliseconds. Negative values are treated as 0.

    Returns:
        String like "3m12s".
    """
    seconds = max(0, millis) // 1000
    return f"{seconds // 60}m{seconds % 60}s"


def format_local_time(millis: int) -> str:
    """Format an epoch timestamp as local 24h "HH:MM"."""
    return datetime.fromtimestamp(millis / 1000).strftime("%H:%M")
