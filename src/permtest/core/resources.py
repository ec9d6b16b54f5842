"""Host and device buffers used by a permutation case."""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

from .models import ElementKind

if TYPE_CHECKING:  # pragma: no cover
    from permtest.backends.base import BackendDriver, DeviceBuffer


class PermutationResource:
    """Owns A, B and reference buffers on both sides of a backend.

    Buffers are reallocated only when the element count or kind changes;
    the input is refilled with uniform values in [-1, 1) on every setup.
    """

    def __init__(self, driver: "BackendDriver", *, low: float = -1.0, high: float = 1.0) -> None:
        self._driver = driver
        self._low = low
        self._high = high
        self._kind: Optional[ElementKind] = None
        self._count = 0
        self._host_a: Optional[np.ndarray] = None
        self._host_b: Optional[np.ndarray] = None
        self._host_reference: Optional[np.ndarray] = None
        self._device_a: Optional["DeviceBuffer"] = None
        self._device_b: Optional["DeviceBuffer"] = None
        self._device_reference: Optional["DeviceBuffer"] = None

    @property
    def driver(self) -> "BackendDriver":
        return self._driver

    def setup_storage(
        self,
        shape: Sequence[int],
        kind: ElementKind,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        count = 1
        for extent in shape:
            count *= int(extent)
        if count != self._count or kind is not self._kind or self._device_a is None:
            self._allocate(count, kind)
        rng = rng or np.random.default_rng()
        self._host_a = rng.uniform(self._low, self._high, size=count).astype(kind.dtype)
        self._host_b.fill(0)
        self._host_reference.fill(0)
        self._driver.copy_host_to_device(self._device_a, self._host_a)
        self._driver.copy_host_to_device(self._device_b, self._host_b)

    def _allocate(self, count: int, kind: ElementKind) -> None:
        self._kind = kind
        self._count = count
        self._host_b = np.zeros(count, dtype=kind.dtype)
        self._host_reference = np.zeros(count, dtype=kind.dtype)
        self._device_a = self._driver.allocate(count, kind)
        self._device_b = self._driver.allocate(count, kind)
        self._device_reference = self._driver.allocate(count, kind)

    def host_a(self) -> np.ndarray:
        return self._require(self._host_a)

    def host_b(self) -> np.ndarray:
        return self._require(self._host_b)

    def host_reference(self) -> np.ndarray:
        return self._require(self._host_reference)

    def device_a(self) -> "DeviceBuffer":
        return self._require(self._device_a)

    def device_b(self) -> "DeviceBuffer":
        return self._require(self._device_b)

    def device_reference(self) -> "DeviceBuffer":
        return self._require(self._device_reference)

    def copy_b_to_host(self) -> None:
        np.copyto(self.host_b(), self._driver.copy_device_to_host(self.device_b()))

    def copy_reference_to_device(self) -> None:
        self._driver.copy_host_to_device(self.device_reference(), self.host_reference())

    def get_current_matrix_element(self) -> int:
        return self._count

    def _require(self, value):
        if value is None:
            raise RuntimeError("setup_storage() must be called before accessing buffers")
        return value
