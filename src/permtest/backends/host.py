"""Simulated accelerator that keeps device memory in NumPy arrays."""
from __future__ import annotations

import logging
import string
from typing import Any, Iterable, Mapping, Optional, Sequence

import numpy as np

from permtest.core.models import ElementKind, ModeLabel, ScaleValue, TensorDescriptor

from .base import BackendContext, BackendDriver, DeviceBuffer, Status, parse_kinds

logger = logging.getLogger("permtest.backend")


class HostBackendDriver(BackendDriver):
    """Backend whose permutation kernel is ``numpy.einsum`` over mode subscripts."""

    name = "host"

    def __init__(
        self,
        *,
        name: Optional[str] = None,
        supported_kinds: Optional[Iterable[Any]] = None,
        max_elements: Optional[int] = None,
    ) -> None:
        if name:
            self.name = name
        self.supported_kinds = parse_kinds(supported_kinds, BackendDriver.supported_kinds)
        self.max_elements = max_elements

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "HostBackendDriver":
        max_elements = config.get("max_elements")
        return cls(
            name=config.get("name"),
            supported_kinds=config.get("dtypes"),
            max_elements=int(max_elements) if max_elements is not None else None,
        )

    def create_context(self) -> BackendContext:
        context = super().create_context()
        logger.debug("[%s] context %d created", self.name, context.ident)
        return context

    def allocate(self, element_count: int, kind: ElementKind) -> DeviceBuffer:
        return DeviceBuffer(
            element_count=element_count,
            kind=kind,
            storage=np.zeros(element_count, dtype=kind.dtype),
        )

    def copy_host_to_device(self, buffer: DeviceBuffer, host: np.ndarray) -> None:
        data = np.asarray(host, dtype=buffer.kind.dtype).reshape(-1)
        if data.size != buffer.element_count:
            raise ValueError(
                f"Host buffer has {data.size} elements, device buffer expects {buffer.element_count}"
            )
        np.copyto(buffer.storage, data)

    def copy_device_to_host(self, buffer: DeviceBuffer) -> np.ndarray:
        return np.array(buffer.storage, copy=True)

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
        logger.info(
            "[%s] permute: alpha=%s (%s) A%s %s -> B%s %s compute=%s stream=%s",
            self.name,
            scale.value,
            scale.kind.value,
            list(src_modes),
            list(src_desc.extents),
            list(dst_modes),
            list(dst_desc.extents),
            compute.value,
            stream,
        )
        status = self._validate(scale, src, src_desc, src_modes, dst, dst_desc, dst_modes, compute)
        if status is not Status.SUCCESS:
            return status
        subscripts = _einsum_subscripts(src_modes, dst_modes)
        tensor = src.storage.reshape(src_desc.extents, order="F").astype(compute.dtype)
        permuted = np.einsum(subscripts, tensor)
        scaled = np.multiply(permuted, scale.value, dtype=compute.dtype)
        dst.storage[...] = scaled.reshape(-1, order="F").astype(dst_desc.kind.dtype)
        logger.debug("[%s] permute: wrote %d elements", self.name, dst.element_count)
        return Status.SUCCESS

    def _validate(
        self,
        scale: ScaleValue,
        src: DeviceBuffer,
        src_desc: TensorDescriptor,
        src_modes: Sequence[ModeLabel],
        dst: DeviceBuffer,
        dst_desc: TensorDescriptor,
        dst_modes: Sequence[ModeLabel],
        compute: ElementKind,
    ) -> Status:
        if not (self.capability_supported(src_desc.kind) and self.capability_supported(compute)):
            logger.error("[%s] permute: datatype not supported", self.name)
            return Status.NOT_SUPPORTED
        if scale.kind is not compute:
            logger.error("[%s] permute: alpha encoded as %s, compute is %s", self.name, scale.kind.value, compute.value)
            return Status.INVALID_VALUE
        if len(src_modes) != src_desc.rank or len(dst_modes) != dst_desc.rank:
            logger.error("[%s] permute: mode count does not match descriptor rank", self.name)
            return Status.INVALID_VALUE
        if sorted(src_modes) != sorted(dst_modes) or len(set(src_modes)) != len(src_modes):
            logger.error("[%s] permute: output modes are not a permutation of input modes", self.name)
            return Status.INVALID_VALUE
        extents = dict(zip(src_modes, src_desc.extents))
        if tuple(extents[mode] for mode in dst_modes) != tuple(dst_desc.extents):
            logger.error("[%s] permute: output extents do not match input extents", self.name)
            return Status.INVALID_VALUE
        if src.element_count != src_desc.element_count or dst.element_count != dst_desc.element_count:
            logger.error("[%s] permute: buffer sizes do not match descriptors", self.name)
            return Status.INVALID_VALUE
        return Status.SUCCESS


def _einsum_subscripts(src_modes: Sequence[ModeLabel], dst_modes: Sequence[ModeLabel]) -> str:
    letters = {mode: string.ascii_letters[index] for index, mode in enumerate(src_modes)}
    source = "".join(letters[mode] for mode in src_modes)
    target = "".join(letters[mode] for mode in dst_modes)
    return f"{source}->{target}"
