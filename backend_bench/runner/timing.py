r"""
Timing utilities.

    from backend_bench.runner.timing import Timer

    with Timer() as t:
        do_something()
    print(f"Elapsed: {t.elapsed_ms}ms")
"""

import time
from collections.abc import Callable
from typing import Any

__all__ = ["Clock", "Timer"]

Clock = Callable[[], int]


class Timer:
    """Context manager for timing code blocks in nanoseconds.

    The clock is injectable so tests can drive it deterministically.
    """

    def __init__(self, *, clock: Clock = time.perf_counter_ns) -> None:
        self._clock = clock
        self._start: int = 0
        self._end: int = 0

    def __enter__(self) -> "Timer":
        self._start = self._clock()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self._end = self._clock()

    @property
    def elapsed_ns(self) -> int:
        """Elapsed time in nanoseconds."""
        return self._end - self._start

    @property
    def elapsed_ms(self) -> float:
        """Elapsed time in milliseconds."""
        return self.elapsed_ns / 1_000_000

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        return self.elapsed_ns / 1_000_000_000
