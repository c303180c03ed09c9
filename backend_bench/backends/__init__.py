r"""
Numerical backends for backend-bench.

Each backend implements the Backend protocol on top of BaseBackend.
Importing this package registers every backend without importing
any native library.

    from backend_bench.backends import BackendRegistry

    backend = BackendRegistry.create("torch-cuda")
    backend.connect()
"""

from backend_bench.backends.base import BackendRegistry, BaseBackend
from backend_bench.backends.numpy import NumpyBackend
from backend_bench.backends.torch import TorchBackend, TorchCpuBackend, TorchCudaBackend, TorchMpsBackend

__all__ = [
    "BackendRegistry",
    "BaseBackend",
    "NumpyBackend",
    "TorchBackend",
    "TorchCpuBackend",
    "TorchCudaBackend",
    "TorchMpsBackend",
]
