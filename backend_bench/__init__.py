r"""
backend-bench: Cross-backend benchmark harness for numerical libraries.

Runs the same tensor workloads (elementwise, matmul, host/device transfer)
on NumPy and PyTorch devices, one isolated process per backend and
benchmark, and merges raw timing samples into a single ResultSet.

    from backend_bench import Orchestrator, SelectionMatrix

    result = Orchestrator().run(SelectionMatrix(["numpy", "torch-cpu"], ["unary", "matmul"]))
    for key, measurement in result.result_set.measurements.items():
        print(key, measurement.stats().median_ms)
"""

from backend_bench.config import DEFAULT_PROFILE, PROFILES, RunProfile, get_profile
from backend_bench.runner import Orchestrator, OrchestratorConfig, SelectionMatrix
from backend_bench.types import BenchmarkSpec, CellFailure, Measurement, ResultSet, TimingStats

__all__ = [
    "BenchmarkSpec",
    "CellFailure",
    "DEFAULT_PROFILE",
    "Measurement",
    "Orchestrator",
    "OrchestratorConfig",
    "PROFILES",
    "ResultSet",
    "RunProfile",
    "SelectionMatrix",
    "TimingStats",
    "get_profile",
]

__version__ = "0.1.0"
