r"""
Base benchmark implementation.

A benchmark declares what it measures (name, input shapes, repeat count)
and how: prepare() builds inputs once, execute() is the timed unit of work,
sync() waits for the device. Timing itself belongs to the MeasurementEngine.

    from backend_bench.benchmarks.base import BaseBenchmark, BenchmarkRegistry

    @BenchmarkRegistry.register("my_bench", category="elementwise")
    class MyBenchmark(BaseBenchmark):
        ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from backend_bench.backends.base import BaseBackend
from backend_bench.config import get_profile
from backend_bench.types import BenchmarkSpec, Shape

__all__ = ["BaseBenchmark", "BenchmarkRegistry"]


class BenchmarkRegistry:
    """Registry for benchmark implementations."""

    _benchmarks: dict[str, type[BaseBenchmark]] = {}

    @classmethod
    def register(cls, name: str, *, category: str = "general") -> Any:
        """Decorator to register a benchmark class."""

        def decorator(benchmark_cls: type[BaseBenchmark]) -> type[BaseBenchmark]:
            benchmark_cls.category = category
            cls._benchmarks[name] = benchmark_cls
            return benchmark_cls

        return decorator

    @classmethod
    def get(cls, name: str) -> type[BaseBenchmark] | None:
        """Get benchmark class by name."""
        return cls._benchmarks.get(name)

    @classmethod
    def list(cls) -> list[str]:
        """List registered benchmark names."""
        return list(cls._benchmarks.keys())

    @classmethod
    def by_category(cls, category: str) -> list[str]:
        """List benchmarks in a category."""
        return [name for name, bench in cls._benchmarks.items() if bench.category == category]

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> BaseBenchmark:
        """Create benchmark instance by name."""
        bench_cls = cls.get(name)
        if bench_cls is None:
            valid = ", ".join(cls.list()) or "none"
            msg = f"Unknown benchmark '{name}'. Registered: {valid}"
            raise ValueError(msg)
        return bench_cls(**kwargs)


class BaseBenchmark(ABC):
    """Base class for benchmark implementations.

    Subclasses set `default_shapes` and implement prepare() and execute().
    execute() must be idempotent for a given prepared input: results are
    discarded so every repeat costs the same.
    """

    category: str = "general"
    default_shapes: tuple[Shape, ...] = ()

    def __init__(self, *, shapes: tuple[Shape, ...] | None = None, repeat_count: int | None = None) -> None:
        self._shapes = tuple(tuple(s) for s in shapes) if shapes is not None else self.default_shapes
        self._repeat_count = repeat_count if repeat_count is not None else get_profile().repeat_count

    @property
    @abstractmethod
    def name(self) -> str:
        """Benchmark name."""
        ...

    @property
    def description(self) -> str:
        """Human-readable description."""
        return self.__class__.__doc__ or self.name

    @property
    def input_shapes(self) -> tuple[Shape, ...]:
        return self._shapes

    @property
    def repeat_count(self) -> int:
        return self._repeat_count

    @property
    def spec(self) -> BenchmarkSpec:
        """Validated identity snapshot of this benchmark."""
        return BenchmarkSpec.from_benchmark(self)

    @abstractmethod
    def prepare(self, backend: BaseBackend) -> Any:
        """Materialize inputs on the backend's device (untimed)."""
        ...

    @abstractmethod
    def execute(self, backend: BaseBackend, inputs: Any) -> None:
        """Run one unit of the workload (timed)."""
        ...

    def sync(self, backend: BaseBackend) -> None:
        """Wait for device completion (timed, after execute)."""
        backend.sync()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name}, shapes={list(self._shapes)}, repeats={self._repeat_count})"
