r"""
Error taxonomy for benchmark execution and orchestration.

Cell-scoped errors carry the (benchmark, backend) identity of the cell
they belong to and convert into a CellFailure record for the ResultSet.

    from backend_bench.errors import ExecutionFailure

    try:
        engine.measure(benchmark, backend)
    except ExecutionFailure as e:
        collector.record_failure(e.to_failure())
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from backend_bench.types import CellFailure

__all__ = [
    "BenchError",
    "CellError",
    "ContractViolation",
    "ExecutionFailure",
    "IsolationFailure",
    "PreparationFailure",
    "SerializationFailure",
    "UploadFailure",
]


class BenchError(Exception):
    """Base exception for all backend-bench errors."""


class CellError(BenchError):
    """Error scoped to a single (benchmark, backend) cell.

    Attributes:
        benchmark_name: Benchmark of the failing cell (empty if unknown).
        backend_id: Backend of the failing cell (empty if unknown).
    """

    def __init__(self, message: str, *, benchmark_name: str = "", backend_id: str = "") -> None:
        super().__init__(message)
        self.benchmark_name = benchmark_name
        self.backend_id = backend_id

    @property
    def kind(self) -> str:
        """Taxonomy name used in failure records."""
        return type(self).__name__

    def to_failure(self) -> CellFailure:
        """Convert into a failure record for the ResultSet."""
        from backend_bench.types import CellFailure

        return CellFailure(
            benchmark_name=self.benchmark_name,
            backend_id=self.backend_id,
            kind=self.kind,
            reason=str(self),
        )


class ContractViolation(CellError, ValueError):
    """A benchmark implementation broke its contract (zero repeats, empty name)."""


class PreparationFailure(CellError):
    """Input preparation or backend initialization failed."""


class ExecutionFailure(CellError):
    """execute() or sync() failed during a timed repeat.

    Attributes:
        repeat_index: Zero-based repeat that failed.
    """

    def __init__(
        self,
        message: str,
        *,
        benchmark_name: str = "",
        backend_id: str = "",
        repeat_index: int = 0,
    ) -> None:
        super().__init__(message, benchmark_name=benchmark_name, backend_id=backend_id)
        self.repeat_index = repeat_index


class IsolationFailure(CellError):
    """The isolated child process could not run the cell to completion."""


class SerializationFailure(CellError):
    """A ResultSet could not be encoded or decoded."""


class UploadFailure(BenchError):
    """The upload collaborator rejected or could not deliver a ResultSet."""
