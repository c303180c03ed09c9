r"""
Shared pytest fixtures for backend-bench tests.
"""

import os
from typing import Any

import pytest

from backend_bench.backends.base import BackendRegistry, BaseBackend
from backend_bench.types import BenchmarkSpec, CellFailure, EnvironmentInfo, Measurement, ResultSet


class FakeBackend(BaseBackend):
    """Pure-Python backend that records every primitive call."""

    registry_name = "fake"

    def __init__(self, *, device: str | None = None, fail_connect: bool = False) -> None:
        super().__init__(device=device)
        self.calls: list[str] = []
        self.sync_count = 0
        self.fail_connect = fail_connect

    def connect(self) -> None:
        if self.fail_connect:
            raise RuntimeError("no such device")
        self._connected = True

    def sync(self) -> None:
        self.sync_count += 1
        self.calls.append("sync")

    def _op(self, name: str, value: Any) -> Any:
        self.calls.append(name)
        return value

    def random(self, shape):
        self._require_connected()
        return self._op("random", ("tensor", tuple(shape)))

    def tanh(self, x):
        return self._op("tanh", x)

    def erf(self, x):
        return self._op("erf", x)

    def add(self, x, y):
        return self._op("add", x)

    def mul(self, x, y):
        return self._op("mul", x)

    def matmul(self, x, y):
        return self._op("matmul", x)

    def add_scalar(self, x, value):
        return self._op("add_scalar", x)

    def mul_scalar(self, x, value):
        return self._op("mul_scalar", x)

    def div_scalar(self, x, value):
        return self._op("div_scalar", x)

    def to_host(self, x):
        return self._op("to_host", x)

    def from_host(self, data):
        return self._op("from_host", data)


class ScriptedBenchmark:
    """Benchmark Contract implementation with injectable failures."""

    def __init__(
        self,
        *,
        name: str = "scripted",
        input_shapes: tuple = ((4, 4),),
        repeat_count: int = 3,
        fail_prepare: bool = False,
        fail_execute_at: int | None = None,
        fail_sync_at: int | None = None,
        events: list | None = None,
    ) -> None:
        self.name = name
        self.input_shapes = input_shapes
        self.repeat_count = repeat_count
        self.fail_prepare = fail_prepare
        self.fail_execute_at = fail_execute_at
        self.fail_sync_at = fail_sync_at
        self.events = events if events is not None else []
        self.prepare_calls = 0
        self.execute_calls = 0
        self.sync_calls = 0

    def prepare(self, backend):
        self.prepare_calls += 1
        self.events.append("prepare")
        if self.fail_prepare:
            raise RuntimeError("out of memory")
        return "inputs"

    def execute(self, backend, inputs):
        index = self.execute_calls
        self.execute_calls += 1
        self.events.append("execute")
        if self.fail_execute_at == index:
            raise RuntimeError("kernel launch failed")

    def sync(self, backend):
        index = self.sync_calls
        self.sync_calls += 1
        self.events.append("sync")
        if self.fail_sync_at == index:
            raise RuntimeError("device lost")


class SteppingClock:
    """Deterministic nanosecond clock returning scripted readings."""

    def __init__(self, readings: list[int], events: list | None = None) -> None:
        self._readings = iter(readings)
        self.events = events

    def __call__(self) -> int:
        if self.events is not None:
            self.events.append("clock")
        return next(self._readings)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop BACKEND_BENCH_* variables leaking in from the environment or .env."""
    for key in list(os.environ):
        if key.startswith("BACKEND_BENCH_"):
            monkeypatch.delenv(key)


@pytest.fixture
def fake_backend() -> FakeBackend:
    backend = FakeBackend()
    backend.connect()
    return backend


@pytest.fixture
def registered_fake(monkeypatch: pytest.MonkeyPatch) -> type[FakeBackend]:
    """FakeBackend registered as "fake" for the duration of a test."""
    monkeypatch.setitem(BackendRegistry._backends, "fake", FakeBackend)
    return FakeBackend


@pytest.fixture
def sample_spec() -> BenchmarkSpec:
    return BenchmarkSpec(name="unary", input_shapes=((32, 512, 1024),), repeat_count=3)


@pytest.fixture
def sample_measurement(sample_spec: BenchmarkSpec) -> Measurement:
    return Measurement(
        spec=sample_spec,
        backend_id="numpy",
        durations=(3_000_000, 1_000_000, 2_000_000),
        metadata={"device": "cpu"},
    )


@pytest.fixture
def sample_failure() -> CellFailure:
    return CellFailure(
        benchmark_name="unary",
        backend_id="torch-cuda",
        kind="PreparationFailure",
        reason="Backend 'torch-cuda' unavailable: CUDA is not available",
    )


@pytest.fixture
def sample_result_set(sample_measurement: Measurement, sample_failure: CellFailure) -> ResultSet:
    return ResultSet(
        measurements={sample_measurement.key: sample_measurement},
        failures={sample_failure.key: sample_failure},
        environment=EnvironmentInfo(session_id="bench_20260101_120000", hostname="bench-host"),
    )


@pytest.fixture
def make_benchmark() -> type[ScriptedBenchmark]:
    return ScriptedBenchmark


@pytest.fixture
def make_clock() -> type[SteppingClock]:
    return SteppingClock
