"""Backend driver abstractions."""
from __future__ import annotations

import enum
import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

import numpy as np

from permtest.core.models import ElementKind, ModeLabel, ScaleValue, TensorDescriptor

_context_ids = itertools.count(1)


class Status(enum.Enum):
    """Return codes of device-side calls."""

    SUCCESS = "success"
    NOT_INITIALIZED = "not_initialized"
    INVALID_VALUE = "invalid_value"
    NOT_SUPPORTED = "not_supported"
    EXECUTION_FAILED = "execution_failed"
    INTERNAL_ERROR = "internal_error"


@dataclass
class BackendContext:
    """Session handle returned by ``create_context``."""

    backend: str
    ident: int = field(default_factory=lambda: next(_context_ids))
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DeviceBuffer:
    """Opaque device allocation. Drivers decide what ``storage`` holds."""

    element_count: int
    kind: ElementKind
    storage: Any = None


class BackendDriver:
    """Base interface for backend drivers.

    A driver owns everything device-specific: context creation, tensor
    descriptors, memory transfers, the permutation kernel, and the capability
    predicates the case controller consults before running a case.
    """

    name: str = ""
    supported_kinds: Sequence[ElementKind] = (ElementKind.FLOAT16, ElementKind.FLOAT32)
    max_elements: Optional[int] = None

    def capability_supported(self, kind: ElementKind) -> bool:
        return kind in self.supported_kinds

    def size_feasible(self, shape: Sequence[int]) -> bool:
        if self.max_elements is None:
            return True
        count = 1
        for extent in shape:
            count *= int(extent)
        return count <= self.max_elements

    def create_context(self) -> BackendContext:
        return BackendContext(backend=self.name)

    def destroy_context(self, context: BackendContext) -> None:
        return None

    def describe_tensor(
        self,
        context: BackendContext,
        rank: int,
        extents: Sequence[int],
        kind: ElementKind,
        op: str = "identity",
    ) -> TensorDescriptor:
        if rank != len(extents):
            raise ValueError(f"Rank {rank} does not match extents {tuple(extents)}")
        return TensorDescriptor(rank=rank, extents=tuple(int(e) for e in extents), kind=kind, op=op)

    def allocate(self, element_count: int, kind: ElementKind) -> DeviceBuffer:
        raise NotImplementedError

    def copy_host_to_device(self, buffer: DeviceBuffer, host: np.ndarray) -> None:
        raise NotImplementedError

    def copy_device_to_host(self, buffer: DeviceBuffer) -> np.ndarray:
        raise NotImplementedError

    def permute(
        self,
        context: BackendContext,
        scale: ScaleValue,
        src: DeviceBuffer,
        src_desc: TensorDescriptor,
        src_modes: Sequence[ModeLabel],
        dst: DeviceBuffer,
        dst_desc: TensorDescriptor,
        dst_modes: Sequence[ModeLabel],
        compute: ElementKind,
        stream: int = 0,
    ) -> Status:
        raise NotImplementedError

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "BackendDriver":
        return cls()


class BackendManager:
    """Registry for backend drivers keyed by name."""

    def __init__(self) -> None:
        self._drivers: Dict[str, BackendDriver] = {}

    def register(self, driver: BackendDriver, *, replace: bool = False) -> None:
        if driver.name in self._drivers and not replace:
            raise ValueError(f"Backend '{driver.name}' already registered")
        self._drivers[driver.name] = driver

    def get_driver(self, name: str) -> BackendDriver:
        try:
            return self._drivers[name]
        except KeyError:
            available = ", ".join(sorted(self._drivers)) or "<none>"
            raise KeyError(f"No backend registered with name {name!r} (available: {available})") from None

    def drivers(self) -> Iterable[BackendDriver]:
        return tuple(self._drivers.values())

    def names(self) -> Iterable[str]:
        return tuple(self._drivers.keys())


def parse_kinds(values: Optional[Iterable[Any]], default: Sequence[ElementKind]) -> tuple[ElementKind, ...]:
    if values is None:
        return tuple(default)
    return tuple(ElementKind.parse(value) for value in values)


backend_manager = BackendManager()
