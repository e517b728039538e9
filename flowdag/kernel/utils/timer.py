"""Timing helpers shared by the phase executor, engine and drivers."""

import time
from collections.abc import Generator
from contextlib import contextmanager


class Timer:
    """Tracks elapsed milliseconds and the wall-clock start time.

    Examples
    --------
    >>> with phase_timer() as t:
    ...     pass  # do work
    >>> assert t.duration_ms >= 0
    """

    __slots__ = ("_start", "started_at")

    def __init__(self) -> None:
        self._start = time.perf_counter()
        self.started_at = time.time()

    @property
    def duration_ms(self) -> float:
        """Elapsed time in milliseconds since the timer started."""
        return (time.perf_counter() - self._start) * 1000


@contextmanager
def phase_timer() -> Generator[Timer, None, None]:
    """Yield a ``Timer`` whose ``duration_ms`` is readable during or after the block."""
    yield Timer()
