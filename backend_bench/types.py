r"""
Core types for cross-backend benchmarks.

    from backend_bench.types import BenchmarkSpec, Measurement

    spec = BenchmarkSpec(name="unary", input_shapes=((32, 512, 1024),), repeat_count=10)
    measurement = engine.measure(benchmark, backend)
    print(f"Median: {measurement.stats().median_ms:.3f}ms")
"""

import statistics
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from backend_bench.errors import ContractViolation

__all__ = [
    "BenchmarkSpec",
    "CellFailure",
    "CellKey",
    "EnvironmentInfo",
    "Measurement",
    "ResultSet",
    "Shape",
    "TimingStats",
]

Shape = tuple[int, ...]
CellKey = tuple[str, str]


@dataclass(frozen=True, slots=True)
class BenchmarkSpec:
    """Identity of a workload.

    Attributes:
        name: Stable benchmark identifier.
        input_shapes: Dimensioned inputs, for labeling only.
        repeat_count: Number of timed repeats (>= 1).
    """

    name: str
    input_shapes: tuple[Shape, ...]
    repeat_count: int

    def __post_init__(self) -> None:
        if not self.name:
            raise ContractViolation("Benchmark name must be non-empty")
        if not self.input_shapes:
            raise ContractViolation(
                f"Benchmark '{self.name}' declares no input shapes",
                benchmark_name=self.name,
            )
        if isinstance(self.repeat_count, bool) or not isinstance(self.repeat_count, int) or self.repeat_count < 1:
            raise ContractViolation(
                f"Benchmark '{self.name}' has invalid repeat count {self.repeat_count!r}; must be >= 1",
                benchmark_name=self.name,
            )

    @classmethod
    def from_benchmark(cls, benchmark: Any) -> "BenchmarkSpec":
        """Snapshot the identity of a Benchmark Contract implementation."""
        return cls(
            name=benchmark.name,
            input_shapes=tuple(tuple(int(d) for d in shape) for shape in benchmark.input_shapes),
            repeat_count=benchmark.repeat_count,
        )


@dataclass(frozen=True, slots=True)
class TimingStats:
    """Timing statistics derived from raw duration samples.

    Attributes:
        min_ns: Minimum execution time in nanoseconds.
        max_ns: Maximum execution time in nanoseconds.
        mean_ns: Mean execution time in nanoseconds.
        median_ns: Median execution time in nanoseconds.
        std_ns: Standard deviation in nanoseconds.
        p99_ns: 99th percentile in nanoseconds.
        iterations: Number of samples the stats were computed from.
    """

    min_ns: int
    max_ns: int
    mean_ns: float
    median_ns: float
    std_ns: float
    p99_ns: float
    iterations: int

    @classmethod
    def from_durations(cls, durations: Sequence[int], *, skip: int = 0) -> "TimingStats":
        """Compute statistics, optionally discounting the first `skip` samples."""
        if skip < 0:
            raise ValueError(f"skip must be >= 0, got {skip}")

        samples = list(durations[skip:])
        if not samples:
            return cls(
                min_ns=0,
                max_ns=0,
                mean_ns=0.0,
                median_ns=0.0,
                std_ns=0.0,
                p99_ns=0.0,
                iterations=0,
            )

        ordered = sorted(samples)
        n = len(ordered)
        p99_idx = min(int(n * 0.99), n - 1)

        return cls(
            min_ns=ordered[0],
            max_ns=ordered[-1],
            mean_ns=statistics.mean(samples),
            median_ns=statistics.median(samples),
            std_ns=statistics.stdev(samples) if n > 1 else 0.0,
            p99_ns=float(ordered[p99_idx]),
            iterations=n,
        )

    @property
    def mean_ms(self) -> float:
        """Mean execution time in milliseconds."""
        return self.mean_ns / 1_000_000

    @property
    def median_ms(self) -> float:
        """Median execution time in milliseconds."""
        return self.median_ns / 1_000_000

    @property
    def p99_ms(self) -> float:
        """99th percentile in milliseconds."""
        return self.p99_ns / 1_000_000

    @property
    def ops_per_second(self) -> float:
        """Operations per second based on mean time."""
        if self.mean_ns == 0:
            return float("inf")
        return 1_000_000_000 / self.mean_ns


@dataclass(frozen=True, slots=True)
class Measurement:
    """Timed samples for one (benchmark, backend) cell.

    Attributes:
        spec: Benchmark identity the samples belong to.
        backend_id: Backend identity string.
        durations: Elapsed nanoseconds per repeat, in execution order.
        device_sync_included: Whether each sample covers device completion.
        metadata: Free-form facts about the run (device, versions, memory).
    """

    spec: BenchmarkSpec
    backend_id: str
    durations: tuple[int, ...]
    device_sync_included: bool = True
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.durations) != self.spec.repeat_count:
            raise ContractViolation(
                f"Expected {self.spec.repeat_count} durations, got {len(self.durations)}",
                benchmark_name=self.spec.name,
                backend_id=self.backend_id,
            )
        if any(d < 0 for d in self.durations):
            raise ContractViolation(
                "Durations must be non-negative",
                benchmark_name=self.spec.name,
                backend_id=self.backend_id,
            )
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def key(self) -> CellKey:
        """ResultSet key: (benchmark name, backend id)."""
        return (self.spec.name, self.backend_id)

    def stats(self, *, skip: int = 0) -> TimingStats:
        """Summary statistics derived from the raw samples."""
        return TimingStats.from_durations(self.durations, skip=skip)


@dataclass(frozen=True, slots=True)
class CellFailure:
    """Failure record for one cell.

    Attributes:
        benchmark_name: Benchmark of the failed cell.
        backend_id: Backend of the failed cell.
        kind: Error taxonomy name (e.g. "ExecutionFailure").
        reason: Human-readable cause.
    """

    benchmark_name: str
    backend_id: str
    kind: str
    reason: str

    @property
    def key(self) -> CellKey:
        return (self.benchmark_name, self.backend_id)


@dataclass(frozen=True, slots=True)
class EnvironmentInfo:
    """Run metadata attached to a ResultSet at finalize time."""

    session_id: str = ""
    timestamp: str = ""
    hostname: str = ""
    git_revision: str = "unknown"
    platform: str = ""
    python_version: str = ""
    cpu: str = ""
    cpu_count: int = 0
    memory_gb: float = 0.0


@dataclass(frozen=True, slots=True)
class ResultSet:
    """Immutable aggregate of measurements, failures and run metadata.

    A key appears in at most one of `measurements` and `failures`.
    """

    measurements: Mapping[CellKey, Measurement] = field(default_factory=dict)
    failures: Mapping[CellKey, CellFailure] = field(default_factory=dict)
    environment: EnvironmentInfo = field(default_factory=EnvironmentInfo)

    def __post_init__(self) -> None:
        overlap = set(self.measurements) & set(self.failures)
        if overlap:
            raise ValueError(f"Cells recorded as both measured and failed: {sorted(overlap)}")
        object.__setattr__(self, "measurements", MappingProxyType(dict(self.measurements)))
        object.__setattr__(self, "failures", MappingProxyType(dict(self.failures)))

    @property
    def success_count(self) -> int:
        return len(self.measurements)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def get(self, benchmark_name: str, backend_id: str) -> Measurement | CellFailure | None:
        """Outcome for a cell, or None if the cell was never recorded."""
        key = (benchmark_name, backend_id)
        return self.measurements.get(key) or self.failures.get(key)
