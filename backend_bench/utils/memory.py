"""Memory measurement utilities for benchmark workers."""

from __future__ import annotations

import psutil

__all__ = ["get_process_memory", "get_peak_memory"]


def get_process_memory() -> int:
    """Current resident set size (RSS) of this process in bytes."""
    return psutil.Process().memory_info().rss


def get_peak_memory() -> int | None:
    """Peak RSS in bytes where the platform reports it, else None.

    Windows reports the high-water mark through psutil (`peak_wset`),
    POSIX platforms through getrusage().
    """
    info = psutil.Process().memory_info()
    peak = getattr(info, "peak_wset", None)
    if peak is not None:
        return int(peak)

    try:
        import resource
    except ImportError:
        return None

    # ru_maxrss is kilobytes on Linux, bytes on macOS
    maxrss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    if psutil.MACOS:
        return int(maxrss)
    return int(maxrss) * 1024
