r"""
Base backend implementation and registry.

Backends wrap one numerical library bound to one device. Native libraries
are imported in connect(), never at module import, so the registry can be
listed and queried without initializing any runtime.

    from backend_bench.backends.base import BaseBackend, BackendRegistry

    @BackendRegistry.register("mylib")
    class MyBackend(BaseBackend):
        def connect(self) -> None:
            ...
"""

from abc import ABC, abstractmethod
from typing import Any

from backend_bench.types import Shape

__all__ = ["BackendRegistry", "BaseBackend"]


class BackendRegistry:
    """Registry for numerical backends."""

    _backends: dict[str, type["BaseBackend"]] = {}

    @classmethod
    def register(cls, name: str) -> Any:
        """Decorator to register a backend class under a backend id."""

        def decorator(backend_cls: type["BaseBackend"]) -> type["BaseBackend"]:
            backend_cls.registry_name = name
            cls._backends[name] = backend_cls
            return backend_cls

        return decorator

    @classmethod
    def get(cls, name: str) -> type["BaseBackend"] | None:
        """Get backend class by id."""
        return cls._backends.get(name)

    @classmethod
    def list(cls) -> list[str]:
        """List registered backend ids."""
        return list(cls._backends.keys())

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> "BaseBackend":
        """Create backend instance by id."""
        backend_cls = cls.get(name)
        if backend_cls is None:
            valid = ", ".join(cls.list()) or "none"
            msg = f"Unknown backend '{name}'. Registered: {valid}"
            raise ValueError(msg)
        return backend_cls(**kwargs)

    @classmethod
    def resource_for(cls, name: str) -> str:
        """Exclusive hardware resource a backend occupies.

        Unknown ids map to themselves so they only conflict with
        cells of the same backend.
        """
        backend_cls = cls.get(name)
        if backend_cls is None:
            return name
        return backend_cls.default_device


class BaseBackend(ABC):
    """Base class for numerical backends.

    Subclasses implement the tensor primitives benchmarks are built from.
    Synchronous backends inherit the no-op sync(); asynchronous backends
    must override it to drain the device queue.
    """

    registry_name: str = ""
    default_device: str = "cpu"
    is_asynchronous: bool = False
    _connected: bool = False

    def __init__(self, *, device: str | None = None) -> None:
        self._device = device or self.default_device
        self._connected = False

    @property
    def name(self) -> str:
        """Library name."""
        return self.registry_name or self.__class__.__name__

    @property
    def backend_id(self) -> str:
        """Identity used to label results."""
        return self.registry_name or self.name

    @property
    def device(self) -> str:
        return self._device

    @property
    def version(self) -> str:
        """Library version string."""
        return "unknown"

    @property
    def connected(self) -> bool:
        """Whether the native runtime has been initialized."""
        return self._connected

    @abstractmethod
    def connect(self) -> None:
        """Import the native library and initialize the device."""
        ...

    def disconnect(self) -> None:
        """Release the device."""
        self._connected = False

    def sync(self) -> None:
        """Block until all issued work has completed (no-op when synchronous)."""
        return None

    @abstractmethod
    def random(self, shape: Shape) -> Any:
        """Tensor of the given shape with values drawn from [0, 1)."""
        ...

    @abstractmethod
    def tanh(self, x: Any) -> Any: ...

    @abstractmethod
    def erf(self, x: Any) -> Any: ...

    @abstractmethod
    def add(self, x: Any, y: Any) -> Any: ...

    @abstractmethod
    def mul(self, x: Any, y: Any) -> Any: ...

    @abstractmethod
    def matmul(self, x: Any, y: Any) -> Any:
        """Batched matrix multiplication over the last two dimensions."""
        ...

    @abstractmethod
    def add_scalar(self, x: Any, value: float) -> Any: ...

    @abstractmethod
    def mul_scalar(self, x: Any, value: float) -> Any: ...

    @abstractmethod
    def div_scalar(self, x: Any, value: float) -> Any: ...

    @abstractmethod
    def to_host(self, x: Any) -> Any:
        """Copy a device tensor into a host-side array."""
        ...

    @abstractmethod
    def from_host(self, data: Any) -> Any:
        """Copy a host-side array onto the device."""
        ...

    def _require_connected(self) -> None:
        if not self._connected:
            raise RuntimeError(f"Backend '{self.backend_id}' is not connected")

    def __repr__(self) -> str:
        status = "connected" if self._connected else "disconnected"
        return f"{self.__class__.__name__}({self.backend_id}, {self.device}, {status})"
