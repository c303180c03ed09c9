r"""
Benchmark implementations for backend-bench.

Benchmarks are organized by category:
- elementwise: unary (tanh), binary (add), custom_gelu
- linalg: batched matmul
- transfer: device/host data round trip

    from backend_bench.benchmarks import BenchmarkRegistry

    bench = BenchmarkRegistry.create("unary", repeat_count=5)
"""

from backend_bench.benchmarks.base import BaseBenchmark, BenchmarkRegistry
from backend_bench.benchmarks.data import DataBenchmark
from backend_bench.benchmarks.elementwise import BinaryBenchmark, CustomGeluBenchmark, UnaryBenchmark
from backend_bench.benchmarks.matmul import MatmulBenchmark

__all__ = [
    # Base
    "BaseBenchmark",
    "BenchmarkRegistry",
    # Elementwise
    "BinaryBenchmark",
    "CustomGeluBenchmark",
    "UnaryBenchmark",
    # Linalg
    "MatmulBenchmark",
    # Transfer
    "DataBenchmark",
]
