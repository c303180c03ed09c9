r"""
Tests for backend_bench.backends module.
"""

import math
import sys

import pytest

from backend_bench.backends import (
    BackendRegistry,
    BaseBackend,
    NumpyBackend,
    TorchCpuBackend,
    TorchCudaBackend,
    TorchMpsBackend,
)
from backend_bench.protocols import Backend


class TestBackendRegistry:
    def test_registry_has_backends(self):
        backends = BackendRegistry.list()
        assert "numpy" in backends
        assert "torch-cpu" in backends
        assert "torch-cuda" in backends
        assert "torch-mps" in backends

    def test_get_backend_class(self):
        backend_cls = BackendRegistry.get("numpy")
        assert backend_cls is NumpyBackend
        assert issubclass(backend_cls, BaseBackend)

    def test_get_unknown_backend(self):
        assert BackendRegistry.get("unknown") is None

    def test_create_backend_unknown(self):
        with pytest.raises(ValueError, match="Unknown backend"):
            BackendRegistry.create("unknown")

    def test_create_does_not_import_native_runtime(self):
        backend = BackendRegistry.create("torch-cuda")
        assert not backend.connected
        assert backend.version == "unknown"

    def test_resource_for(self):
        assert BackendRegistry.resource_for("numpy") == "cpu"
        assert BackendRegistry.resource_for("torch-cpu") == "cpu"
        assert BackendRegistry.resource_for("torch-cuda") == "cuda:0"
        assert BackendRegistry.resource_for("torch-mps") == "mps"
        assert BackendRegistry.resource_for("unknown") == "unknown"


class TestBaseBackend:
    def test_base_backend_is_abstract(self):
        with pytest.raises(TypeError):
            BaseBackend()  # type: ignore

    def test_backend_repr(self):
        backend = TorchCudaBackend()
        assert "torch-cuda" in repr(backend)
        assert "disconnected" in repr(backend)

    def test_satisfies_backend_protocol(self, fake_backend):
        assert isinstance(fake_backend, Backend)

    def test_identity(self):
        backend = TorchCudaBackend(device="cuda:1")
        assert backend.backend_id == "torch-cuda"
        assert backend.name == "torch"
        assert backend.device == "cuda:1"
        assert backend.is_asynchronous is True

    def test_synchronous_backends(self):
        assert NumpyBackend.is_asynchronous is False
        assert TorchCpuBackend.is_asynchronous is False
        assert TorchMpsBackend.is_asynchronous is True

    def test_random_requires_connection(self):
        with pytest.raises(RuntimeError, match="not connected"):
            NumpyBackend().random((2, 2))


class TestNumpyBackend:
    @pytest.fixture
    def backend(self):
        pytest.importorskip("numpy")
        backend = NumpyBackend(seed=7)
        backend.connect()
        yield backend
        backend.disconnect()

    def test_connect(self, backend):
        assert backend.connected
        assert backend.version != "unknown"

    def test_random_is_float32_in_unit_interval(self, backend):
        x = backend.random((4, 8))
        assert x.shape == (4, 8)
        assert str(x.dtype) == "float32"
        assert float(x.min()) >= 0.0
        assert float(x.max()) < 1.0

    def test_seed_is_reproducible(self, backend):
        other = NumpyBackend(seed=7)
        other.connect()
        assert (backend.random((3,)) == other.random((3,))).all()

    def test_erf_matches_math(self, backend):
        import numpy as np

        x = np.array([-3.0, -1.0, -0.1, 0.0, 0.5, 2.0, 6.0], dtype=np.float32)
        result = backend.erf(x)
        assert result.dtype == np.float32
        assert result.shape == x.shape
        for got, value in zip(result, x):
            assert float(got) == pytest.approx(math.erf(float(value)), abs=1e-6)

    def test_erf_keeps_batched_shape(self, backend):
        x = backend.random((2, 3, 4))
        assert backend.erf(x).shape == (2, 3, 4)

    def test_batched_matmul_shape(self, backend):
        out = backend.matmul(backend.random((3, 4, 5)), backend.random((3, 5, 2)))
        assert out.shape == (3, 4, 2)

    def test_host_round_trip_copies(self, backend):
        x = backend.random((2, 2))
        y = backend.from_host(backend.to_host(x))
        assert (x == y).all()
        assert y is not x

    def test_non_cpu_device_rejected(self):
        pytest.importorskip("numpy")
        with pytest.raises(RuntimeError, match="cpu"):
            NumpyBackend(device="cuda:0").connect()


class TestTorchBackends:
    def test_torch_cpu(self):
        pytest.importorskip("torch")
        backend = TorchCpuBackend(seed=3)
        backend.connect()
        try:
            x = backend.random((2, 3))
            assert tuple(x.shape) == (2, 3)
            assert backend.to_host(backend.tanh(x)).shape == (2, 3)
        finally:
            backend.disconnect()

    def test_host_round_trip_stays_in_torch(self):
        torch = pytest.importorskip("torch")
        backend = TorchCpuBackend(seed=3)
        backend.connect()
        try:
            x = backend.random((2, 3))
            host = backend.to_host(x)
            y = backend.from_host(host)
            assert isinstance(host, torch.Tensor)
            assert host.device.type == "cpu"
            assert torch.equal(x, y)
            assert y.data_ptr() != x.data_ptr()
        finally:
            backend.disconnect()

    def test_disconnect_survives_failed_sync(self, monkeypatch, caplog):
        backend = TorchCudaBackend()
        backend._connected = True

        def faulted_sync():
            raise RuntimeError("CUDA error: an illegal memory access was encountered")

        monkeypatch.setattr(backend, "sync", faulted_sync)
        backend.disconnect()

        assert not backend.connected
        assert "illegal memory access" in caplog.text

    def test_cuda_unavailable_raises_on_connect(self):
        torch = pytest.importorskip("torch")
        if torch.cuda.is_available():
            pytest.skip("CUDA is available")
        with pytest.raises(RuntimeError, match="CUDA is not available"):
            TorchCudaBackend().connect()

    def test_missing_torch_raises_import_error(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "torch", None)
        with pytest.raises(ImportError, match="backend-bench\\[torch\\]"):
            TorchCpuBackend().connect()
