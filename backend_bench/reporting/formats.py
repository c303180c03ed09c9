r"""
ResultSet encoding, atomic persistence and export formats.

The JSON encoding carries raw duration samples only; summary statistics
are derived when reading. Files are written atomically: readers see the
previous complete artifact or the new complete artifact, never a partial one.

    from backend_bench.reporting.formats import read_result_set, write_result_set

    write_result_set(Path("results/numpy/unary.json"), result_set)
    result_set = read_result_set(Path("results/numpy/unary.json"))
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import asdict
from pathlib import Path
from typing import Any

from backend_bench.errors import SerializationFailure
from backend_bench.types import BenchmarkSpec, CellFailure, EnvironmentInfo, Measurement, ResultSet

__all__ = [
    "FORMAT_VERSION",
    "BaseExporter",
    "CsvExporter",
    "JsonExporter",
    "deserialize",
    "read_result_set",
    "serialize",
    "write_atomic",
    "write_result_set",
]

FORMAT_VERSION = 1


def serialize(result_set: ResultSet) -> bytes:
    """Encode a ResultSet as UTF-8 JSON."""
    try:
        return json.dumps(_result_set_to_dict(result_set), indent=2).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationFailure(f"Cannot encode ResultSet: {e}") from e


def deserialize(data: bytes) -> ResultSet:
    """Decode bytes produced by serialize().

    Raises:
        SerializationFailure: The payload is not a valid ResultSet encoding.
    """
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SerializationFailure(f"Malformed ResultSet payload: {e}") from e

    if not isinstance(payload, dict):
        raise SerializationFailure("ResultSet payload must be a JSON object")

    version = payload.get("format_version")
    if version != FORMAT_VERSION:
        raise SerializationFailure(f"Unsupported ResultSet format version {version!r}")

    try:
        measurements = [_measurement_from_dict(m) for m in payload["measurements"]]
        failures = [_failure_from_dict(f) for f in payload["failures"]]
        environment = EnvironmentInfo(**payload.get("environment", {}))
        return ResultSet(
            measurements={m.key: m for m in measurements},
            failures={f.key: f for f in failures},
            environment=environment,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise SerializationFailure(f"Invalid ResultSet content: {e}") from e


def write_atomic(path: Path, data: bytes) -> None:
    """Create or replace `path` with `data` via a same-directory rename."""
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp = tempfile.NamedTemporaryFile(
        mode="wb",
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    tmp_path = Path(tmp.name)
    try:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp.close()
        os.replace(tmp_path, path)
    except BaseException:
        tmp.close()
        tmp_path.unlink(missing_ok=True)
        raise


def write_result_set(path: Path, result_set: ResultSet) -> None:
    """Serialize and atomically write a ResultSet."""
    write_atomic(path, serialize(result_set))


def read_result_set(path: Path) -> ResultSet:
    """Read and decode a ResultSet file."""
    return deserialize(path.read_bytes())


def _result_set_to_dict(result_set: ResultSet) -> dict[str, Any]:
    return {
        "format_version": FORMAT_VERSION,
        "environment": asdict(result_set.environment),
        "measurements": [_measurement_to_dict(m) for m in result_set.measurements.values()],
        "failures": [
            {
                "benchmark": f.benchmark_name,
                "backend": f.backend_id,
                "kind": f.kind,
                "reason": f.reason,
            }
            for f in result_set.failures.values()
        ],
    }


def _measurement_to_dict(measurement: Measurement) -> dict[str, Any]:
    return {
        "benchmark": measurement.spec.name,
        "input_shapes": [list(shape) for shape in measurement.spec.input_shapes],
        "repeat_count": measurement.spec.repeat_count,
        "backend": measurement.backend_id,
        "durations_ns": list(measurement.durations),
        "device_sync_included": measurement.device_sync_included,
        "metadata": dict(measurement.metadata),
    }


def _measurement_from_dict(data: dict[str, Any]) -> Measurement:
    durations = data["durations_ns"]
    if not all(isinstance(d, int) and not isinstance(d, bool) for d in durations):
        raise ValueError("durations_ns must contain integers")

    spec = BenchmarkSpec(
        name=data["benchmark"],
        input_shapes=tuple(tuple(int(d) for d in shape) for shape in data["input_shapes"]),
        repeat_count=data["repeat_count"],
    )
    return Measurement(
        spec=spec,
        backend_id=data["backend"],
        durations=tuple(durations),
        device_sync_included=bool(data["device_sync_included"]),
        metadata=dict(data.get("metadata", {})),
    )


def _failure_from_dict(data: dict[str, Any]) -> CellFailure:
    return CellFailure(
        benchmark_name=data["benchmark"],
        backend_id=data["backend"],
        kind=data["kind"],
        reason=data["reason"],
    )


class BaseExporter(ABC):
    """Base class for result exporters."""

    @abstractmethod
    def export(self, result_set: ResultSet, path: str | Path) -> None:
        """Export results to file."""
        ...

    @abstractmethod
    def to_string(self, result_set: ResultSet) -> str:
        """Export results to string."""
        ...


class JsonExporter(BaseExporter):
    """Export results in the lossless JSON encoding."""

    def export(self, result_set: ResultSet, path: str | Path) -> None:
        """Export results to JSON file."""
        write_result_set(Path(path), result_set)

    def to_string(self, result_set: ResultSet) -> str:
        """Export results to JSON string."""
        return serialize(result_set).decode("utf-8")


class CsvExporter(BaseExporter):
    """Export one summary row per cell with statistics derived from raw samples.

    Args:
        skip: Leading samples per cell to discount as warm-up.
    """

    def __init__(self, *, skip: int = 0) -> None:
        self._skip = skip

    def export(self, result_set: ResultSet, path: str | Path) -> None:
        """Export results to CSV file."""
        write_atomic(Path(path), self.to_string(result_set).encode("utf-8"))

    def to_string(self, result_set: ResultSet) -> str:
        """Export results to CSV string."""
        lines = ["session_id,benchmark,backend,status,samples,mean_ms,median_ms,min_ms,max_ms,p99_ms,error"]

        session_id = result_set.environment.session_id

        for key in sorted(set(result_set.measurements) | set(result_set.failures)):
            measurement = result_set.measurements.get(key)
            if measurement is not None:
                stats = measurement.stats(skip=self._skip)
                row = [
                    session_id,
                    key[0],
                    key[1],
                    "SUCCEEDED",
                    str(stats.iterations),
                    f"{stats.mean_ms:.3f}",
                    f"{stats.median_ms:.3f}",
                    f"{stats.min_ns / 1_000_000:.3f}",
                    f"{stats.max_ns / 1_000_000:.3f}",
                    f"{stats.p99_ms:.3f}",
                    "",
                ]
            else:
                failure = result_set.failures[key]
                row = [session_id, key[0], key[1], "FAILED", "0", "", "", "", "", "", self._escape(failure.reason)]
            lines.append(",".join(row))

        return "\n".join(lines)

    def _escape(self, value: str) -> str:
        if any(c in value for c in ',"\n'):
            return '"' + value.replace('"', '""').replace("\n", " ") + '"'
        return value
