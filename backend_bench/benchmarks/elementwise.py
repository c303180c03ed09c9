r"""
Element-wise benchmarks.

Measures single-op and fused-by-hand element-wise kernels.

    from backend_bench.benchmarks.elementwise import UnaryBenchmark

    bench = UnaryBenchmark(shapes=((8, 64, 64),), repeat_count=5)
    measurement = engine.measure(bench, backend)
"""

import math
from typing import Any

from backend_bench.backends.base import BaseBackend
from backend_bench.benchmarks.base import BaseBenchmark, BenchmarkRegistry

__all__ = ["BinaryBenchmark", "CustomGeluBenchmark", "UnaryBenchmark"]


@BenchmarkRegistry.register("unary", category="elementwise")
class UnaryBenchmark(BaseBenchmark):
    """Benchmark a unary element-wise op (tanh)."""

    default_shapes = ((32, 512, 1024),)

    @property
    def name(self) -> str:
        return "unary"

    def prepare(self, backend: BaseBackend) -> Any:
        return backend.random(self.input_shapes[0])

    def execute(self, backend: BaseBackend, inputs: Any) -> None:
        # Choice of tanh is arbitrary
        backend.tanh(inputs)


@BenchmarkRegistry.register("binary", category="elementwise")
class BinaryBenchmark(BaseBenchmark):
    """Benchmark a binary element-wise op (add)."""

    default_shapes = ((32, 512, 1024), (32, 512, 1024))

    @property
    def name(self) -> str:
        return "binary"

    def prepare(self, backend: BaseBackend) -> Any:
        lhs_shape, rhs_shape = self.input_shapes
        return backend.random(lhs_shape), backend.random(rhs_shape)

    def execute(self, backend: BaseBackend, inputs: Any) -> None:
        lhs, rhs = inputs
        backend.add(lhs, rhs)


@BenchmarkRegistry.register("custom_gelu", category="elementwise")
class CustomGeluBenchmark(BaseBenchmark):
    """Benchmark GELU composed from primitive ops: x * (1 + erf(x / sqrt(2))) / 2."""

    default_shapes = ((32, 512, 2048),)

    @property
    def name(self) -> str:
        return "custom_gelu"

    def prepare(self, backend: BaseBackend) -> Any:
        return backend.random(self.input_shapes[0])

    def execute(self, backend: BaseBackend, inputs: Any) -> None:
        gelu(backend, inputs)


def gelu(backend: BaseBackend, x: Any) -> Any:
    """Erf-based GELU built from backend primitives."""
    scaled = backend.div_scalar(x, math.sqrt(2.0))
    cdf = backend.add_scalar(backend.erf(scaled), 1.0)
    return backend.div_scalar(backend.mul(x, cdf), 2.0)
