r"""
Result collection and aggregation.

    from backend_bench.reporting.collector import ResultCollector

    collector = ResultCollector()
    collector.start_session(backends=["numpy"], benchmarks=["unary"])
    collector.record(measurement)
    result_set = collector.finalize()
"""

import logging
import platform
import socket
import subprocess
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime

import psutil

from backend_bench.types import CellFailure, CellKey, EnvironmentInfo, Measurement, ResultSet

__all__ = ["ResultCollector", "SessionInfo", "collect_environment", "get_git_revision"]

logger = logging.getLogger(__name__)


@dataclass
class SessionInfo:
    """Information about a benchmark session.

    Attributes:
        session_id: Unique session identifier.
        started_at: Session start timestamp.
        backends: Backend ids requested.
        benchmarks: Benchmark names requested.
    """

    session_id: str = ""
    started_at: str = ""
    backends: list[str] = field(default_factory=list)
    benchmarks: list[str] = field(default_factory=list)


def get_git_revision() -> str:
    """Commit hash of the working tree, or "unknown" outside a git checkout."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
            check=True,
        )
    except (OSError, subprocess.SubprocessError):
        return "unknown"
    return result.stdout.strip() or "unknown"


def collect_environment(session_id: str) -> EnvironmentInfo:
    """Snapshot host identity and hardware for a ResultSet."""
    return EnvironmentInfo(
        session_id=session_id,
        timestamp=datetime.now(UTC).isoformat(),
        hostname=socket.gethostname(),
        git_revision=get_git_revision(),
        platform=platform.system().lower(),
        python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        cpu=platform.processor() or platform.machine() or "unknown",
        cpu_count=psutil.cpu_count(logical=True) or 0,
        memory_gb=round(psutil.virtual_memory().total / (1024**3), 1),
    )


class ResultCollector:
    """Collects measurements and failures keyed by (benchmark, backend).

    Recording under an existing key replaces the previous outcome, so a
    re-run of a single cell overwrites rather than duplicates it.
    """

    def __init__(self) -> None:
        self._measurements: dict[CellKey, Measurement] = {}
        self._failures: dict[CellKey, CellFailure] = {}
        self._session = SessionInfo()

    def start_session(self, *, backends: list[str], benchmarks: list[str]) -> None:
        """Start a new benchmark session."""
        started_at = datetime.now(UTC)
        self._session = SessionInfo(
            session_id=f"bench_{started_at.strftime('%Y%m%d_%H%M%S')}",
            started_at=started_at.isoformat(),
            backends=list(backends),
            benchmarks=list(benchmarks),
        )

    def record(self, measurement: Measurement) -> None:
        """Add a measurement; last write wins for its cell."""
        key = measurement.key
        if key in self._measurements or key in self._failures:
            logger.debug("Overwriting previous outcome for %s", key)
        self._failures.pop(key, None)
        self._measurements[key] = measurement

    def record_failure(self, failure: CellFailure) -> None:
        """Add a failure record; last write wins for its cell."""
        key = failure.key
        self._measurements.pop(key, None)
        self._failures[key] = failure

    def merge(self, result_set: ResultSet) -> None:
        """Record every outcome of another ResultSet."""
        for measurement in result_set.measurements.values():
            self.record(measurement)
        for failure in result_set.failures.values():
            self.record_failure(failure)

    def finalize(self) -> ResultSet:
        """Stamp run metadata and return an immutable snapshot."""
        session_id = self._session.session_id or f"bench_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S')}"
        return ResultSet(
            measurements=dict(self._measurements),
            failures=dict(self._failures),
            environment=collect_environment(session_id),
        )

    @property
    def measurements(self) -> list[Measurement]:
        """All collected measurements."""
        return list(self._measurements.values())

    @property
    def failures(self) -> list[CellFailure]:
        """All collected failure records."""
        return list(self._failures.values())

    @property
    def session(self) -> SessionInfo:
        """Get session information."""
        return self._session

    def __len__(self) -> int:
        return len(self._measurements) + len(self._failures)

    def get_results_by_backend(self, backend_id: str) -> list[Measurement]:
        """Get measurements for a specific backend."""
        return [m for m in self._measurements.values() if m.backend_id == backend_id]

    def get_results_by_benchmark(self, benchmark: str) -> list[Measurement]:
        """Get measurements for a specific benchmark."""
        return [m for m in self._measurements.values() if m.spec.name == benchmark]

    def compute_comparisons(self, *, skip: int = 0) -> dict[str, dict[str, float]]:
        """Compute speedup comparisons across backends.

        Args:
            skip: Leading samples to discount as warm-up.

        Returns:
            Dict mapping benchmark name to dict of backend->speedup ratios
            (1.0 = fastest mean).
        """
        comparisons: dict[str, dict[str, float]] = {}

        benchmarks = {m.spec.name for m in self._measurements.values()}

        for bench in benchmarks:
            times: dict[str, float] = {}
            for m in self.get_results_by_benchmark(bench):
                stats = m.stats(skip=skip)
                if stats.iterations:
                    times[m.backend_id] = stats.mean_ns

            if not times:
                continue

            min_time = min(times.values())
            comparisons[bench] = {
                backend: round(min_time / t if t > 0 else 0.0, 2) for backend, t in times.items()
            }

        return comparisons
