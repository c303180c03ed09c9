"""Utility modules for backend-bench."""

from backend_bench.utils.memory import get_peak_memory, get_process_memory

__all__ = [
    "get_peak_memory",
    "get_process_memory",
]
