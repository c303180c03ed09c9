r"""
NumPy CPU backend.

Executes eagerly on the host, so sync() is a no-op.

Requires: pip install numpy

Environment variables:
    BACKEND_BENCH_NUMPY_SEED: Seed for input generation (default: 0)

    from backend_bench.backends.numpy import NumpyBackend

    backend = NumpyBackend()
    backend.connect()
"""

from typing import Any

from backend_bench.backends.base import BackendRegistry, BaseBackend
from backend_bench.config import get_env
from backend_bench.types import Shape

__all__ = ["NumpyBackend"]

# Abramowitz and Stegun 7.1.26, absolute error below 1.5e-7
_ERF_P = 0.3275911
_ERF_COEFFS = (0.254829592, -0.284496736, 1.421413741, -1.453152027, 1.061405429)


@BackendRegistry.register("numpy")
class NumpyBackend(BaseBackend):
    """NumPy backend running on the CPU."""

    default_device = "cpu"

    def __init__(self, *, device: str | None = None, seed: int | None = None) -> None:
        super().__init__(device=device)
        self._np: Any = None
        self._rng: Any = None
        self._seed = seed if seed is not None else int(get_env("NUMPY_SEED", default="0") or 0)

    @property
    def version(self) -> str:
        if self._np is None:
            return "unknown"
        return self._np.__version__

    def connect(self) -> None:
        try:
            import numpy as np
        except ImportError as e:
            msg = "numpy package not installed. Install with: pip install 'backend-bench[numpy]'"
            raise ImportError(msg) from e

        if self.device != "cpu":
            raise RuntimeError(f"NumPy only supports the cpu device, got '{self.device}'")

        self._np = np
        self._rng = np.random.default_rng(self._seed)
        self._connected = True

    def disconnect(self) -> None:
        self._rng = None
        self._connected = False

    def random(self, shape: Shape) -> Any:
        self._require_connected()
        return self._rng.random(shape, dtype=self._np.float32)

    def tanh(self, x: Any) -> Any:
        return self._np.tanh(x)

    def erf(self, x: Any) -> Any:
        # numpy ships no erf ufunc; evaluate the rational approximation with array ops
        np = self._np
        a = np.abs(x)
        t = 1.0 / (1.0 + _ERF_P * a)
        poly = _ERF_COEFFS[-1] * t
        for coeff in reversed(_ERF_COEFFS[:-1]):
            poly = t * (poly + coeff)
        y = 1.0 - poly * np.exp(-(a * a))
        return np.copysign(y, x).astype(x.dtype, copy=False)

    def add(self, x: Any, y: Any) -> Any:
        return self._np.add(x, y)

    def mul(self, x: Any, y: Any) -> Any:
        return self._np.multiply(x, y)

    def matmul(self, x: Any, y: Any) -> Any:
        return self._np.matmul(x, y)

    def add_scalar(self, x: Any, value: float) -> Any:
        return x + x.dtype.type(value)

    def mul_scalar(self, x: Any, value: float) -> Any:
        return x * x.dtype.type(value)

    def div_scalar(self, x: Any, value: float) -> Any:
        return x / x.dtype.type(value)

    def to_host(self, x: Any) -> Any:
        return self._np.array(x, copy=True)

    def from_host(self, data: Any) -> Any:
        return self._np.array(data, dtype=self._np.float32, copy=True)
