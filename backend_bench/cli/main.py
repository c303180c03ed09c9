r"""
Command-line interface for backend-bench.

    backend-bench list
    backend-bench run -B numpy,torch-cpu -b unary,matmul --profile quick
    backend-bench report results/bench_20260101_120000.json -f csv --skip 2
    backend-bench auth <token>
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

if TYPE_CHECKING:
    from backend_bench.types import ResultSet

__all__ = ["app", "main"]

app = typer.Typer(
    name="backend-bench",
    help="Cross-backend benchmark harness for numerical libraries.",
    no_args_is_help=True,
)


def _split(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@app.command("list")
def list_() -> None:
    """List registered backends and benchmarks."""
    from backend_bench.backends import BackendRegistry
    from backend_bench.benchmarks import BenchmarkRegistry

    typer.echo("Available backends:")
    for name in BackendRegistry.list():
        typer.echo(f"  - {name} ({BackendRegistry.resource_for(name)})")

    typer.echo("\nAvailable benchmarks:")
    for name in BenchmarkRegistry.list():
        bench_cls = BenchmarkRegistry.get(name)
        category = getattr(bench_cls, "category", "general")
        typer.echo(f"  - {name} [{category}]")


@app.command()
def run(
    backends: Annotated[
        str | None, typer.Option("-B", "--backends", help="Backends to benchmark (comma-separated)")
    ] = None,
    benches: Annotated[
        str | None, typer.Option("-b", "--benches", help="Benchmarks to run (comma-separated)")
    ] = None,
    output: Annotated[Path | None, typer.Option("-o", "--output", help="Results directory")] = None,
    timeout: Annotated[
        float | None, typer.Option("--timeout", help="Timeout in seconds per backend/benchmark cell")
    ] = None,
    jobs: Annotated[int, typer.Option("-j", "--jobs", help="Cells to run at once")] = 1,
    repeats: Annotated[int | None, typer.Option("--repeats", help="Override repeat count")] = None,
    profile: Annotated[str | None, typer.Option("--profile", help="Profile: quick, default, thorough")] = None,
    upload: Annotated[bool, typer.Option("--upload", help="Upload the merged results")] = False,
    token: Annotated[str | None, typer.Option("--token", help="Bearer token for --upload")] = None,
    verbose: Annotated[bool, typer.Option("-v", "--verbose", help="Verbose output")] = False,
) -> None:
    """Run benchmarks on numerical backends, one process per cell."""
    from backend_bench.backends import BackendRegistry
    from backend_bench.benchmarks import BenchmarkRegistry
    from backend_bench.config import get_cell_timeout, get_profile, get_results_dir, get_upload_url
    from backend_bench.reporting import JsonExporter
    from backend_bench.runner import Orchestrator, OrchestratorConfig, SelectionMatrix

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    matrix = SelectionMatrix(_split(backends), _split(benches))
    if matrix.is_empty:
        typer.echo("No backends or benchmarks specified. Select at least one backend and one benchmark.")
        return

    unknown = [b for b in matrix.backends if BackendRegistry.get(b) is None]
    unknown += [b for b in matrix.benchmarks if BenchmarkRegistry.get(b) is None]
    if unknown:
        typer.echo(f"Error: Unknown backend or benchmark: {', '.join(unknown)}", err=True)
        raise typer.Exit(2)

    try:
        run_profile = get_profile(profile)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)

    upload_url = get_upload_url() if upload else None
    if upload and not upload_url:
        typer.echo("Error: --upload requires BACKEND_BENCH_UPLOAD_URL", err=True)
        raise typer.Exit(2)

    results_dir = output or get_results_dir()
    config = OrchestratorConfig(
        results_dir=results_dir,
        cell_timeout=timeout or get_cell_timeout() or run_profile.cell_timeout_seconds,
        max_workers=jobs,
        repeat_count=repeats,
        profile=run_profile.name,
        verbose=verbose,
    )

    if verbose:
        typer.echo(f"Backends: {', '.join(matrix.backends)}")
        typer.echo(f"Benchmarks: {', '.join(matrix.benchmarks)}")
        typer.echo(f"Profile: {run_profile.name} ({repeats or run_profile.repeat_count} repeats)")
        typer.echo(f"Output: {results_dir}")

    orchestrator = Orchestrator(config=config)

    def progress(backend: str, bench: str, status: str) -> None:
        typer.echo(f"  [{backend}] {bench}: {status}")

    orchestrator.set_progress_callback(progress)

    typer.echo(f"\nRunning {len(matrix)} cells...")
    try:
        result = orchestrator.run(matrix)
        path = results_dir / f"{result.result_set.environment.session_id}.json"
        JsonExporter().export(result.result_set, path)
    except OSError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)

    typer.echo(f"Exported JSON: {path}")

    for cell in result.cells:
        if not cell.ok:
            typer.echo(f"  FAILED [{cell.backend_id}] {cell.benchmark_name}: {cell.kind}: {cell.reason}", err=True)

    typer.echo(f"\nCompleted: {result.success_count} successful, {result.failure_count} failed")

    if upload_url:
        _upload(upload_url, result.result_set, token)

    raise typer.Exit(result.exit_code)


def _upload(url: str, result_set: "ResultSet", token: str | None) -> None:
    from backend_bench.config import get_token_cache_path
    from backend_bench.errors import UploadFailure
    from backend_bench.reporting import ResultUploader, TokenCache

    if token is None:
        token = TokenCache(get_token_cache_path()).load()

    try:
        ResultUploader(url).upload(result_set, token=token)
    except UploadFailure as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Uploaded results to {url}")


@app.command()
def report(
    results_path: Annotated[Path, typer.Argument(help="Path to results JSON file or directory")],
    format_: Annotated[str, typer.Option("-f", "--format", help="Output format: csv, json")] = "csv",
    output: Annotated[Path | None, typer.Option("-o", "--output", help="Output file path")] = None,
    skip: Annotated[int, typer.Option("--skip", help="Leading samples to discount as warm-up")] = 0,
    compare: Annotated[bool, typer.Option("--compare", help="Print speedups per benchmark")] = False,
) -> None:
    """Generate reports from a merged ResultSet."""
    from backend_bench.errors import SerializationFailure
    from backend_bench.reporting import CsvExporter, JsonExporter, ResultCollector, read_result_set
    from backend_bench.reporting.formats import BaseExporter

    if results_path.is_dir():
        json_files = list(results_path.glob("*.json"))
        if not json_files:
            typer.echo(f"No JSON files found in {results_path}", err=True)
            raise typer.Exit(1)
        results_path = max(json_files, key=lambda p: p.stat().st_mtime)

    if not results_path.exists():
        typer.echo(f"File not found: {results_path}", err=True)
        raise typer.Exit(1)

    exporter: BaseExporter
    if format_ == "csv":
        exporter = CsvExporter(skip=skip)
    elif format_ == "json":
        exporter = JsonExporter()
    else:
        typer.echo(f"Unknown format: {format_}", err=True)
        raise typer.Exit(1)

    try:
        result_set = read_result_set(results_path)
    except SerializationFailure as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if output is None:
        typer.echo(exporter.to_string(result_set))
    else:
        exporter.export(result_set, output)
        typer.echo(f"Generated report: {output}")

    if compare:
        collector = ResultCollector()
        collector.merge(result_set)
        comparisons = collector.compute_comparisons(skip=skip)
        if comparisons:
            typer.echo("\nPerformance Comparisons:")
            for bench, speedups in sorted(comparisons.items()):
                fastest = max(speedups.items(), key=lambda x: x[1])[0]
                typer.echo(f"  {bench}: fastest={fastest}")


@app.command()
def auth(
    token: Annotated[str, typer.Argument(help="Bearer token for result uploads")],
    cache: Annotated[Path | None, typer.Option("--cache", help="Token cache file")] = None,
) -> None:
    """Store an upload token in the local cache."""
    from backend_bench.config import get_token_cache_path
    from backend_bench.reporting import TokenCache

    token_cache = TokenCache(cache or get_token_cache_path())
    token_cache.save(token.strip())
    typer.echo(f"Token saved to {token_cache.path}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
