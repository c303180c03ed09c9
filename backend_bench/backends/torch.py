r"""
PyTorch backends for CPU, CUDA and Apple MPS devices.

CUDA and MPS queue kernels asynchronously; their sync() drains the device
queue so that timed samples cover completed work, not enqueue time.

Requires: pip install torch

Environment variables:
    BACKEND_BENCH_TORCH_SEED: Seed for input generation (default: 0)
    BACKEND_BENCH_TORCH_DTYPE: Tensor dtype name (default: float32)

    from backend_bench.backends.torch import TorchCudaBackend

    backend = TorchCudaBackend(device="cuda:1")
    backend.connect()
"""

import logging
from typing import Any

from backend_bench.backends.base import BackendRegistry, BaseBackend
from backend_bench.config import get_env
from backend_bench.types import Shape

__all__ = ["TorchBackend", "TorchCpuBackend", "TorchCudaBackend", "TorchMpsBackend"]

logger = logging.getLogger(__name__)


class TorchBackend(BaseBackend):
    """Shared PyTorch implementation; subclasses pick the device."""

    def __init__(self, *, device: str | None = None, seed: int | None = None, dtype: str | None = None) -> None:
        super().__init__(device=device)
        self._torch: Any = None
        self._generator: Any = None
        self._dtype: Any = None
        self._seed = seed if seed is not None else int(get_env("TORCH_SEED", default="0") or 0)
        self._dtype_name = dtype or get_env("TORCH_DTYPE", default="float32") or "float32"

    @property
    def name(self) -> str:
        return "torch"

    @property
    def version(self) -> str:
        if self._torch is None:
            return "unknown"
        return self._torch.__version__

    def connect(self) -> None:
        try:
            import torch
        except ImportError as e:
            msg = "torch package not installed. Install with: pip install 'backend-bench[torch]'"
            raise ImportError(msg) from e

        self._torch = torch
        self._check_device_available()
        self._dtype = getattr(torch, self._dtype_name)
        self._generator = torch.Generator(device=self.device)
        self._generator.manual_seed(self._seed)
        self._connected = True

    def disconnect(self) -> None:
        if self._connected:
            try:
                self.sync()
            except Exception as e:
                logger.warning("Device sync failed on disconnect from %s: %s", self.device, e)
        self._generator = None
        self._connected = False

    def _check_device_available(self) -> None:
        """Raise RuntimeError if the target device is missing."""
        return None

    def random(self, shape: Shape) -> Any:
        self._require_connected()
        return self._torch.rand(shape, generator=self._generator, dtype=self._dtype, device=self.device)

    def tanh(self, x: Any) -> Any:
        return self._torch.tanh(x)

    def erf(self, x: Any) -> Any:
        return self._torch.erf(x)

    def add(self, x: Any, y: Any) -> Any:
        return self._torch.add(x, y)

    def mul(self, x: Any, y: Any) -> Any:
        return self._torch.mul(x, y)

    def matmul(self, x: Any, y: Any) -> Any:
        return self._torch.matmul(x, y)

    def add_scalar(self, x: Any, value: float) -> Any:
        return x + value

    def mul_scalar(self, x: Any, value: float) -> Any:
        return x * value

    def div_scalar(self, x: Any, value: float) -> Any:
        return x / value

    def to_host(self, x: Any) -> Any:
        return x.to("cpu", copy=True)

    def from_host(self, data: Any) -> Any:
        if isinstance(data, self._torch.Tensor):
            return data.to(device=self.device, dtype=self._dtype, copy=True)
        return self._torch.as_tensor(data, dtype=self._dtype, device=self.device)


@BackendRegistry.register("torch-cpu")
class TorchCpuBackend(TorchBackend):
    """PyTorch on the CPU (eager, synchronous)."""

    default_device = "cpu"


@BackendRegistry.register("torch-cuda")
class TorchCudaBackend(TorchBackend):
    """PyTorch on an NVIDIA GPU."""

    default_device = "cuda:0"
    is_asynchronous = True

    def _check_device_available(self) -> None:
        if not self._torch.cuda.is_available():
            raise RuntimeError("CUDA is not available")

    def sync(self) -> None:
        self._torch.cuda.synchronize(self.device)


@BackendRegistry.register("torch-mps")
class TorchMpsBackend(TorchBackend):
    """PyTorch on Apple Metal (MPS)."""

    default_device = "mps"
    is_asynchronous = True

    def _check_device_available(self) -> None:
        if not self._torch.backends.mps.is_available():
            raise RuntimeError("MPS is not available")

    def sync(self) -> None:
        self._torch.mps.synchronize()
