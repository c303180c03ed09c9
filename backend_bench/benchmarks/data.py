r"""
Host/device transfer benchmark.

Each repeat copies a tensor to host memory and back onto the device.

    from backend_bench.benchmarks.data import DataBenchmark
"""

from typing import Any

from backend_bench.backends.base import BaseBackend
from backend_bench.benchmarks.base import BaseBenchmark, BenchmarkRegistry

__all__ = ["DataBenchmark"]


@BenchmarkRegistry.register("data", category="transfer")
class DataBenchmark(BaseBenchmark):
    """Benchmark a device -> host -> device round trip."""

    default_shapes = ((32, 512, 1024),)

    @property
    def name(self) -> str:
        return "data"

    def prepare(self, backend: BaseBackend) -> Any:
        return backend.random(self.input_shapes[0])

    def execute(self, backend: BaseBackend, inputs: Any) -> None:
        backend.from_host(backend.to_host(inputs))
