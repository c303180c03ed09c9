r"""
Isolated cell worker.

Runs exactly one (backend, benchmark) cell in the current process and
writes its single-cell ResultSet to the handoff path. The orchestrator
starts one worker process per cell, so at most one native runtime is
ever initialized per process.

    python -m backend_bench.runner.worker --backend numpy --benchmark unary \
        --output results/numpy/unary.json

Exit status: 0 when the cell was measured, 1 when it failed (the failure
record is still written to the handoff path).
"""

import dataclasses
import logging
from pathlib import Path
from typing import Annotated

import typer

from backend_bench.backends import BackendRegistry
from backend_bench.benchmarks import BenchmarkRegistry
from backend_bench.config import ENV_PREFIX
from backend_bench.errors import CellError, PreparationFailure
from backend_bench.reporting.collector import ResultCollector
from backend_bench.reporting.formats import write_result_set
from backend_bench.runner.engine import MeasurementEngine
from backend_bench.types import Measurement
from backend_bench.utils.memory import get_peak_memory, get_process_memory

__all__ = ["app", "main", "run_cell"]

logger = logging.getLogger(__name__)


def run_cell(
    backend_id: str,
    benchmark_name: str,
    output: Path,
    *,
    repeat_count: int | None = None,
    engine: MeasurementEngine | None = None,
) -> int:
    """Measure one cell and write its ResultSet to `output`.

    Returns:
        Process exit status: 0 on success, 1 on a cell failure.
    """
    collector = ResultCollector()
    collector.start_session(backends=[backend_id], benchmarks=[benchmark_name])

    exit_code = 0
    try:
        measurement = _measure(backend_id, benchmark_name, repeat_count, engine or MeasurementEngine())
        collector.record(measurement)
    except CellError as e:
        e.benchmark_name = e.benchmark_name or benchmark_name
        e.backend_id = e.backend_id or backend_id
        logger.error("%s: %s", e.kind, e)
        collector.record_failure(e.to_failure())
        exit_code = 1

    write_result_set(output, collector.finalize())
    return exit_code


def _measure(
    backend_id: str,
    benchmark_name: str,
    repeat_count: int | None,
    engine: MeasurementEngine,
) -> Measurement:
    cell = {"benchmark_name": benchmark_name, "backend_id": backend_id}

    try:
        benchmark = BenchmarkRegistry.create(benchmark_name, repeat_count=repeat_count)
        backend = BackendRegistry.create(backend_id)
    except CellError:
        raise
    except ValueError as e:
        raise PreparationFailure(str(e), **cell) from e

    try:
        backend.connect()
    except Exception as e:
        raise PreparationFailure(f"Backend '{backend_id}' unavailable: {e}", **cell) from e

    try:
        measurement = engine.measure(benchmark, backend)
    finally:
        backend.disconnect()

    metadata = dict(measurement.metadata)
    metadata.update(
        backend_version=backend.version,
        asynchronous=backend.is_asynchronous,
        rss_bytes=get_process_memory(),
    )
    peak = get_peak_memory()
    if peak is not None:
        metadata["peak_rss_bytes"] = peak
    return dataclasses.replace(measurement, metadata=metadata)


app = typer.Typer(name="backend-bench-worker", add_completion=False)


@app.command()
def worker(
    backend: Annotated[str, typer.Option("--backend", envvar=f"{ENV_PREFIX}BACKEND", help="Backend id")],
    benchmark: Annotated[str, typer.Option("--benchmark", help="Benchmark name")],
    output: Annotated[Path, typer.Option("--output", help="Handoff artifact path")],
    repeats: Annotated[int | None, typer.Option("--repeats", help="Override repeat count")] = None,
    verbose: Annotated[bool, typer.Option("-v", "--verbose", help="Verbose output")] = False,
) -> None:
    """Run one benchmark on one backend and write the handoff artifact."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=f"[{backend}/{benchmark}] %(levelname)s %(name)s: %(message)s",
    )
    raise typer.Exit(run_cell(backend, benchmark, output, repeat_count=repeats))


def main() -> None:
    """Worker entry point."""
    app()


if __name__ == "__main__":
    main()
