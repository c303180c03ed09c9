r"""
Matrix multiplication benchmark.

    from backend_bench.benchmarks.matmul import MatmulBenchmark

    bench = MatmulBenchmark(shapes=((2, 64, 32), (2, 32, 16)))
"""

from typing import Any

from backend_bench.backends.base import BaseBackend
from backend_bench.benchmarks.base import BaseBenchmark, BenchmarkRegistry
from backend_bench.errors import ContractViolation
from backend_bench.types import Shape

__all__ = ["MatmulBenchmark"]


@BenchmarkRegistry.register("matmul", category="linalg")
class MatmulBenchmark(BaseBenchmark):
    """Benchmark batched matmul of [b, m, k] x [b, k, n]."""

    default_shapes = ((3, 1024, 2048), (3, 2048, 1024))

    def __init__(self, *, shapes: tuple[Shape, ...] | None = None, repeat_count: int | None = None) -> None:
        super().__init__(shapes=shapes, repeat_count=repeat_count)
        if len(self.input_shapes) != 2 or self.input_shapes[0][-1] != self.input_shapes[1][-2]:
            raise ContractViolation(
                f"matmul needs two shapes with matching inner dimension, got {list(self.input_shapes)}",
                benchmark_name="matmul",
            )

    @property
    def name(self) -> str:
        return "matmul"

    def prepare(self, backend: BaseBackend) -> Any:
        lhs_shape, rhs_shape = self.input_shapes
        return backend.random(lhs_shape), backend.random(rhs_shape)

    def execute(self, backend: BaseBackend, inputs: Any) -> None:
        lhs, rhs = inputs
        backend.matmul(lhs, rhs)
