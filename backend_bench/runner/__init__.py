r"""
Benchmark runner and orchestration.

Measures single cells in-process with the MeasurementEngine and runs a
whole selection matrix with one isolated worker process per cell.

    from backend_bench.runner import Orchestrator, SelectionMatrix

    orchestrator = Orchestrator()
    result = orchestrator.run(SelectionMatrix(["numpy"], ["unary", "binary"]))
"""

from backend_bench.runner.engine import MeasurementEngine
from backend_bench.runner.orchestrator import (
    Cell,
    CellState,
    Orchestrator,
    OrchestratorConfig,
    OrchestratorResult,
    SelectionMatrix,
    SubprocessLauncher,
    handoff_path,
)
from backend_bench.runner.timing import Timer

__all__ = [
    "Cell",
    "CellState",
    "MeasurementEngine",
    "Orchestrator",
    "OrchestratorConfig",
    "OrchestratorResult",
    "SelectionMatrix",
    "SubprocessLauncher",
    "Timer",
    "handoff_path",
]
