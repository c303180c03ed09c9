r"""
Measurement engine: the fixed timing protocol for one (benchmark, backend) cell.

    prepare -> repeat(start, execute, sync, end) -> Measurement

sync() sits inside the timed window for every backend. On synchronous
backends it is a no-op, so the protocol is identical across execution
models and samples from queued devices measure completed work.

    from backend_bench.runner.engine import MeasurementEngine

    measurement = MeasurementEngine().measure(benchmark, backend)
"""

import gc
import logging
import time
from backend_bench.errors import BenchError, ExecutionFailure, PreparationFailure
from backend_bench.protocols import Backend, Benchmark, PreparedInput
from backend_bench.runner.timing import Clock, Timer
from backend_bench.types import BenchmarkSpec, Measurement

__all__ = ["MeasurementEngine"]

logger = logging.getLogger(__name__)


class MeasurementEngine:
    """Drives one benchmark through the measurement protocol.

    Args:
        clock: Monotonic nanosecond clock.
        collect_garbage: Disable the GC inside the timed window and
            collect between repeats.
    """

    def __init__(self, *, clock: Clock = time.perf_counter_ns, collect_garbage: bool = True) -> None:
        self._clock = clock
        self._collect_garbage = collect_garbage

    def measure(self, benchmark: Benchmark, backend: Backend) -> Measurement:
        """Run the protocol and return one Measurement.

        Raises:
            ContractViolation: The benchmark declares zero repeats, an empty
                name or no input shapes. Raised before any timed call.
            PreparationFailure: prepare() raised.
            ExecutionFailure: execute() or sync() raised; no partial
                samples are returned.
        """
        spec = BenchmarkSpec.from_benchmark(benchmark)
        backend_id = backend.backend_id

        logger.debug("Preparing %s on %s (%s)", spec.name, backend_id, backend.device)
        try:
            inputs = benchmark.prepare(backend)
        except BenchError:
            raise
        except Exception as e:
            msg = f"prepare() failed for {spec.name} on {backend_id}: {e}"
            raise PreparationFailure(msg, benchmark_name=spec.name, backend_id=backend_id) from e

        durations = self._run_repeats(benchmark, backend, spec, inputs)

        logger.debug("Measured %s on %s: %d samples", spec.name, backend_id, len(durations))
        return Measurement(
            spec=spec,
            backend_id=backend_id,
            durations=tuple(durations),
            device_sync_included=True,
            metadata={"device": backend.device},
        )

    def _run_repeats(
        self,
        benchmark: Benchmark,
        backend: Backend,
        spec: BenchmarkSpec,
        inputs: PreparedInput,
    ) -> list[int]:
        durations: list[int] = []

        for index in range(spec.repeat_count):
            gc_was_enabled = gc.isenabled()
            if self._collect_garbage:
                gc.disable()
            try:
                with Timer(clock=self._clock) as timer:
                    benchmark.execute(backend, inputs)
                    benchmark.sync(backend)
            except Exception as e:
                msg = f"Repeat {index + 1}/{spec.repeat_count} of {spec.name} on {backend.backend_id} failed: {e}"
                raise ExecutionFailure(
                    msg,
                    benchmark_name=spec.name,
                    backend_id=backend.backend_id,
                    repeat_index=index,
                ) from e
            finally:
                if self._collect_garbage and gc_was_enabled:
                    gc.enable()

            durations.append(timer.elapsed_ns)

            if self._collect_garbage:
                gc.collect()

        return durations
