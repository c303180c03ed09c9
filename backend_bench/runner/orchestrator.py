r"""
Cross-backend orchestrator.

Expands a selection matrix into (backend, benchmark) cells and runs each
cell in a fresh worker process, because backends cannot share a process.
Workers hand their ResultSet back through an atomically written file at
`<results_dir>/<backend_id>/<benchmark_name>.json`; the orchestrator
merges those into one ResultSet.

    from backend_bench.runner import Orchestrator, OrchestratorConfig, SelectionMatrix

    orchestrator = Orchestrator(config=OrchestratorConfig(cell_timeout=600))
    result = orchestrator.run(SelectionMatrix(["numpy", "torch-cuda"], ["unary", "matmul"]))
    print(f"{result.failure_count} of {len(result.cells)} combinations failed")
"""

import logging
import os
import signal
import subprocess
import sys
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import IntEnum, auto
from pathlib import Path

from backend_bench.backends.base import BackendRegistry
from backend_bench.config import ENV_PREFIX, get_results_dir
from backend_bench.errors import IsolationFailure, SerializationFailure
from backend_bench.reporting.collector import ResultCollector
from backend_bench.reporting.formats import read_result_set
from backend_bench.runner.timing import Timer
from backend_bench.types import CellFailure, CellKey, ResultSet

__all__ = [
    "Cell",
    "CellState",
    "Orchestrator",
    "OrchestratorConfig",
    "OrchestratorResult",
    "ProgressCallback",
    "SelectionMatrix",
    "SubprocessLauncher",
    "handoff_path",
]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str, str], None]

CANCELLED = "cancelled"


class CellState(IntEnum):
    """Lifecycle of a cell: PENDING -> LAUNCHED -> SUCCEEDED | FAILED."""

    PENDING = auto()
    LAUNCHED = auto()
    SUCCEEDED = auto()
    FAILED = auto()


@dataclass
class Cell:
    """One (backend, benchmark) combination.

    Attributes:
        backend_id: Backend to run.
        benchmark_name: Benchmark to run.
        state: Current lifecycle state.
        kind: Error taxonomy name when failed.
        reason: Failure cause when failed.
        returncode: Worker exit status, if it exited.
        duration_seconds: Wall-clock time of the worker process.
    """

    backend_id: str
    benchmark_name: str
    state: CellState = CellState.PENDING
    kind: str | None = None
    reason: str | None = None
    returncode: int | None = None
    duration_seconds: float = 0.0

    @property
    def key(self) -> CellKey:
        return (self.benchmark_name, self.backend_id)

    @property
    def ok(self) -> bool:
        return self.state == CellState.SUCCEEDED

    @property
    def finished(self) -> bool:
        return self.state in (CellState.SUCCEEDED, CellState.FAILED)

    def mark_launched(self) -> None:
        self._transition(CellState.LAUNCHED)

    def mark_succeeded(self) -> None:
        self._transition(CellState.SUCCEEDED)

    def mark_failed(self, kind: str, reason: str) -> None:
        self._transition(CellState.FAILED)
        self.kind = kind
        self.reason = reason

    def _transition(self, state: CellState) -> None:
        if self.finished:
            raise RuntimeError(f"Cell {self.key} already {self.state.name}")
        self.state = state


@dataclass(frozen=True)
class SelectionMatrix:
    """Requested backends x benchmarks. Duplicates are dropped, order kept."""

    backends: Sequence[str]
    benchmarks: Sequence[str]

    def __post_init__(self) -> None:
        object.__setattr__(self, "backends", tuple(dict.fromkeys(self.backends)))
        object.__setattr__(self, "benchmarks", tuple(dict.fromkeys(self.benchmarks)))

    @property
    def is_empty(self) -> bool:
        return not self.backends or not self.benchmarks

    def cells(self) -> list[Cell]:
        """Fresh PENDING cells, backend-major."""
        return [Cell(backend_id=b, benchmark_name=x) for b in self.backends for x in self.benchmarks]

    def __len__(self) -> int:
        return len(self.backends) * len(self.benchmarks)


def handoff_path(results_dir: Path, backend_id: str, benchmark_name: str) -> Path:
    """Well-known location of a cell's handoff artifact."""
    return results_dir / backend_id / f"{benchmark_name}.json"


class SubprocessLauncher:
    """Starts worker processes with one backend enabled.

    Worker stdout/stderr are inherited, so their output streams straight
    to the operator's terminal.

    Args:
        python: Interpreter for the worker.
        repeat_count: Repeat override forwarded to every worker.
        profile: Run profile forwarded through the environment.
        verbose: Forward --verbose to workers.
    """

    def __init__(
        self,
        *,
        python: str = sys.executable,
        repeat_count: int | None = None,
        profile: str | None = None,
        verbose: bool = False,
    ) -> None:
        self._python = python
        self._repeat_count = repeat_count
        self._profile = profile
        self._verbose = verbose

    def command(self, cell: Cell, handoff: Path) -> list[str]:
        """Worker command line for a cell."""
        cmd = [
            self._python,
            "-m",
            "backend_bench.runner.worker",
            "--backend",
            cell.backend_id,
            "--benchmark",
            cell.benchmark_name,
            "--output",
            str(handoff),
        ]
        if self._repeat_count is not None:
            cmd += ["--repeats", str(self._repeat_count)]
        if self._verbose:
            cmd.append("--verbose")
        return cmd

    def environment(self, cell: Cell) -> dict[str, str]:
        """Worker environment for a cell."""
        env = dict(os.environ)
        env[f"{ENV_PREFIX}BACKEND"] = cell.backend_id
        if self._profile:
            env[f"{ENV_PREFIX}PROFILE"] = self._profile
        return env

    def launch(self, cell: Cell, handoff: Path) -> subprocess.Popen[bytes]:
        """Start the worker; raises OSError if it cannot be spawned.

        Workers get their own session so a terminal Ctrl-C reaches only the
        orchestrator, which then terminates them through cancel().
        """
        return subprocess.Popen(self.command(cell, handoff), env=self.environment(cell), start_new_session=True)


@dataclass
class OrchestratorConfig:
    """Configuration for cell orchestration.

    Attributes:
        results_dir: Root of handoff artifacts.
        cell_timeout: Wall-clock seconds per cell (None = no timeout).
        max_workers: Cells run at once; cells on the same device never overlap.
        repeat_count: Repeat override forwarded to every worker.
        profile: Run profile name forwarded to every worker.
        terminate_grace_seconds: Wait after SIGTERM before SIGKILL.
        verbose: Run workers with debug logging.
    """

    results_dir: Path = field(default_factory=get_results_dir)
    cell_timeout: float | None = None
    max_workers: int = 1
    repeat_count: int | None = None
    profile: str | None = None
    terminate_grace_seconds: float = 5.0
    verbose: bool = False


@dataclass
class OrchestratorResult:
    """Outcome of an orchestrated run.

    Attributes:
        cells: Every cell with its final state.
        result_set: Merged measurements and failure records.
        started_at: Timestamp when run started.
        completed_at: Timestamp when run completed.
        cancelled: Whether the run was cancelled.
    """

    cells: list[Cell] = field(default_factory=list)
    result_set: ResultSet = field(default_factory=ResultSet)
    started_at: float = 0.0
    completed_at: float = 0.0
    cancelled: bool = False

    @property
    def duration_seconds(self) -> float:
        """Total duration in seconds."""
        return self.completed_at - self.started_at

    @property
    def success_count(self) -> int:
        return sum(1 for c in self.cells if c.ok)

    @property
    def failure_count(self) -> int:
        return sum(1 for c in self.cells if not c.ok)

    @property
    def exit_code(self) -> int:
        """0 = all cells succeeded, 1 = partial failure, 130 = cancelled."""
        if self.cancelled:
            return 130
        return 1 if self.failure_count else 0


class Orchestrator:
    """Runs every cell of a selection matrix in process isolation.

    Args:
        config: Orchestration settings.
        launcher: Starts worker processes (a SubprocessLauncher built from
            the config by default).
        resource_for: Maps a backend id to the exclusive device it occupies.
    """

    def __init__(
        self,
        *,
        config: OrchestratorConfig | None = None,
        launcher: SubprocessLauncher | None = None,
        resource_for: Callable[[str], str] = BackendRegistry.resource_for,
    ) -> None:
        self._config = config or OrchestratorConfig()
        self._launcher = launcher or SubprocessLauncher(
            repeat_count=self._config.repeat_count,
            profile=self._config.profile,
            verbose=self._config.verbose,
        )
        self._resource_for = resource_for
        self._progress_callback: ProgressCallback | None = None
        self._cancelled = threading.Event()
        self._procs: set[subprocess.Popen[bytes]] = set()
        self._procs_lock = threading.Lock()
        self._merge_lock = threading.Lock()

    def set_progress_callback(self, callback: ProgressCallback) -> None:
        """Set callback for progress updates: (backend, benchmark, status)."""
        self._progress_callback = callback

    def run(self, matrix: SelectionMatrix) -> OrchestratorResult:
        """Run all cells and merge their results.

        Raises:
            OSError: The results directory cannot be created.
        """
        result = OrchestratorResult(started_at=time.time())
        collector = ResultCollector()
        collector.start_session(backends=list(matrix.backends), benchmarks=list(matrix.benchmarks))

        if matrix.is_empty:
            logger.warning(
                "Empty selection (%d backends x %d benchmarks); nothing to run",
                len(matrix.backends),
                len(matrix.benchmarks),
            )
            result.result_set = collector.finalize()
            result.completed_at = time.time()
            return result

        self._config.results_dir.mkdir(parents=True, exist_ok=True)
        self._cancelled.clear()

        cells = matrix.cells()
        result.cells = cells
        locks = {self._resource_for(b): threading.Lock() for b in matrix.backends}

        logger.info("Running %d cells with up to %d workers", len(cells), self._config.max_workers)

        executor = ThreadPoolExecutor(max_workers=max(1, self._config.max_workers))
        try:
            futures = [
                executor.submit(self._run_cell, cell, locks[self._resource_for(cell.backend_id)], collector)
                for cell in cells
            ]
            for future in as_completed(futures):
                future.result()
        except KeyboardInterrupt:
            logger.warning("Interrupted; cancelling in-flight cells")
            self.cancel()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        for cell in cells:
            if not cell.finished:
                self._fail(cell, collector, IsolationFailure.__name__, CANCELLED)

        result.cancelled = self._cancelled.is_set()
        result.result_set = collector.finalize()
        result.completed_at = time.time()

        logger.info("Completed: %d succeeded, %d failed", result.success_count, result.failure_count)
        return result

    def cancel(self) -> None:
        """Stop launching cells and terminate running workers."""
        self._cancelled.set()
        with self._procs_lock:
            procs = list(self._procs)
        for proc in procs:
            self._terminate(proc)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _run_cell(self, cell: Cell, lock: threading.Lock, collector: ResultCollector) -> None:
        try:
            with lock:
                if self._cancelled.is_set():
                    self._fail(cell, collector, IsolationFailure.__name__, CANCELLED)
                    return

                handoff = handoff_path(self._config.results_dir, cell.backend_id, cell.benchmark_name)
                self._notify(cell, "running")

                failure: IsolationFailure | None = None
                with Timer() as timer:
                    handoff.unlink(missing_ok=True)
                    try:
                        cell.returncode = self._launch_and_wait(cell, handoff)
                    except IsolationFailure as e:
                        failure = e
                cell.duration_seconds = timer.elapsed_seconds

            if failure is not None:
                self._fail(cell, collector, failure.kind, str(failure))
                return
            self._collect(cell, handoff, collector)
        except Exception as e:
            if cell.finished:
                raise
            logger.exception("[%s] %s: unexpected error", cell.backend_id, cell.benchmark_name)
            self._fail(cell, collector, IsolationFailure.__name__, f"{type(e).__name__}: {e}")

    def _launch_and_wait(self, cell: Cell, handoff: Path) -> int:
        try:
            proc = self._launcher.launch(cell, handoff)
        except OSError as e:
            raise IsolationFailure(
                f"Could not launch worker: {e}",
                benchmark_name=cell.benchmark_name,
                backend_id=cell.backend_id,
            ) from e

        cell.mark_launched()
        with self._procs_lock:
            self._procs.add(proc)
        try:
            if self._cancelled.is_set():
                self._terminate(proc)
            return proc.wait(timeout=self._config.cell_timeout)
        except subprocess.TimeoutExpired as e:
            self._terminate(proc)
            raise IsolationFailure(
                f"Timed out after {self._config.cell_timeout}s",
                benchmark_name=cell.benchmark_name,
                backend_id=cell.backend_id,
            ) from e
        finally:
            with self._procs_lock:
                self._procs.discard(proc)

    def _collect(self, cell: Cell, handoff: Path, collector: ResultCollector) -> None:
        returncode = cell.returncode

        if returncode != 0 and self._cancelled.is_set():
            self._fail(cell, collector, IsolationFailure.__name__, CANCELLED)
            return

        artifact: ResultSet | None = None
        try:
            if handoff.exists():
                artifact = read_result_set(handoff)
        except SerializationFailure as e:
            self._fail(cell, collector, e.kind, f"Corrupt handoff artifact {handoff}: {e}")
            return
        except OSError as e:
            self._fail(cell, collector, IsolationFailure.__name__, f"Unreadable handoff artifact {handoff}: {e}")
            return

        if returncode != 0:
            reported = artifact.failures.get(cell.key) if artifact is not None else None
            if reported is not None:
                self._fail(cell, collector, reported.kind, reported.reason)
            else:
                self._fail(cell, collector, IsolationFailure.__name__, _describe_exit(returncode))
            return

        measurement = artifact.measurements.get(cell.key) if artifact is not None else None
        if measurement is None:
            self._fail(
                cell,
                collector,
                IsolationFailure.__name__,
                f"Worker exited cleanly but left no measurement at {handoff}",
            )
            return

        with self._merge_lock:
            collector.record(measurement)
        cell.mark_succeeded()
        self._notify(cell, "success")

    def _fail(self, cell: Cell, collector: ResultCollector, kind: str, reason: str) -> None:
        cell.mark_failed(kind, reason)
        logger.warning("[%s] %s failed: %s: %s", cell.backend_id, cell.benchmark_name, kind, reason)
        with self._merge_lock:
            collector.record_failure(
                CellFailure(
                    benchmark_name=cell.benchmark_name,
                    backend_id=cell.backend_id,
                    kind=kind,
                    reason=reason,
                )
            )
        self._notify(cell, "failed")

    def _terminate(self, proc: subprocess.Popen[bytes]) -> None:
        if proc.poll() is not None:
            return
        proc.terminate()
        try:
            proc.wait(timeout=self._config.terminate_grace_seconds)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()

    def _notify(self, cell: Cell, status: str) -> None:
        if self._progress_callback:
            try:
                self._progress_callback(cell.backend_id, cell.benchmark_name, status)
            except Exception:
                logger.exception("Progress callback failed for %s/%s", cell.backend_id, cell.benchmark_name)


def _describe_exit(returncode: int | None) -> str:
    if returncode is None:
        return "Worker did not exit"
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        return f"Worker terminated by signal {name}"
    return f"Worker exited with status {returncode}"
