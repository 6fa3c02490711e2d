"""
Timing helpers based on the monotonic clock.

Example:
    t = start()
    ...
    lg.info("started", extra={"after": since(t)})
"""

import time


def start() -> float:
    """Get the current monotonic time for timing measurements."""
    return time.monotonic()


def since(start_t: float) -> float:
    """Seconds elapsed since ``start_t`` (a value returned by :func:`start`)."""
    return time.monotonic() - start_t


def since_ms(start_t: float) -> int:
    """Whole milliseconds elapsed since ``start_t``."""
    return int(since(start_t) * 1000)
