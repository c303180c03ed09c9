r"""
Command-line interface for backend-bench.

    backend-bench run -B numpy,torch-cpu -b unary,matmul
    backend-bench report results/bench_20260101_120000.json -f csv
"""

from backend_bench.cli.main import app, main

__all__ = [
    "app",
    "main",
]
