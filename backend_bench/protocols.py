r"""
Protocol definitions for numerical backends and benchmarks.

All backends must implement the Backend protocol.
All benchmarks must implement the Benchmark protocol.

    from backend_bench.protocols import Backend, Benchmark

    class MyBenchmark(Benchmark):
        ...
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from backend_bench.types import ResultSet, Shape

__all__ = [
    "Backend",
    "Benchmark",
    "PreparedInput",
    "ResultUploaderProtocol",
]

PreparedInput = Any


@runtime_checkable
class Backend(Protocol):
    """Protocol for numerical backends.

    A backend is an opaque compute capability bound to one device.
    Only `sync` is required by the measurement protocol; the tensor
    primitives used by individual benchmarks live on BaseBackend.
    """

    @property
    def backend_id(self) -> str:
        """Identity used to label results (e.g. "torch-cuda")."""
        ...

    @property
    def device(self) -> str:
        """Target device (e.g. "cpu", "cuda:0")."""
        ...

    def sync(self) -> None:
        """Block until all work issued to the device has completed."""
        ...


@runtime_checkable
class Benchmark(Protocol):
    """Protocol for benchmark workloads."""

    @property
    def name(self) -> str:
        """Stable, non-empty benchmark identifier."""
        ...

    @property
    def input_shapes(self) -> Sequence[Shape]:
        """Dimensioned inputs the workload requires."""
        ...

    @property
    def repeat_count(self) -> int:
        """Number of timed repeats (>= 1)."""
        ...

    def prepare(self, backend: Backend) -> PreparedInput:
        """Materialize inputs on the backend's device."""
        ...

    def execute(self, backend: Backend, inputs: PreparedInput) -> None:
        """Run one unit of the workload."""
        ...

    def sync(self, backend: Backend) -> None:
        """Wait for work issued by execute() to complete."""
        ...


@runtime_checkable
class ResultUploaderProtocol(Protocol):
    """Protocol for the external reporting path."""

    def upload(self, result_set: ResultSet, *, token: str | None = None) -> Any:
        """Deliver a finalized ResultSet, optionally authenticated."""
        ...
