"""Host reference for ``B = alpha * permute(A)`` using NumPy only.

Buffers are flat and column-major: the first mode of a descriptor varies
fastest in memory.
"""
from __future__ import annotations

from typing import Sequence

import numpy as np

from .models import ElementKind, ModeLabel, ScaleValue, TensorDescriptor


def permute_reference(
    scale: ScaleValue,
    src: np.ndarray,
    src_desc: TensorDescriptor,
    src_modes: Sequence[ModeLabel],
    dst: np.ndarray,
    dst_desc: TensorDescriptor,
    dst_modes: Sequence[ModeLabel],
    compute: ElementKind,
) -> None:
    """Write the permuted and scaled copy of ``src`` into ``dst``."""

    axes = permutation_axes(src_modes, dst_modes)
    expected_extents = tuple(src_desc.extents[axis] for axis in axes)
    if tuple(dst_desc.extents) != expected_extents:
        raise ValueError(
            f"Output extents {tuple(dst_desc.extents)} do not match permuted input {expected_extents}"
        )
    if src.size != src_desc.element_count or dst.size != dst_desc.element_count:
        raise ValueError(
            f"Buffer sizes ({src.size}, {dst.size}) do not match descriptors "
            f"({src_desc.element_count}, {dst_desc.element_count})"
        )
    tensor = np.asarray(src).reshape(src_desc.extents, order="F")
    permuted = np.transpose(tensor, axes).astype(compute.dtype)
    scaled = np.multiply(permuted, scale.value, dtype=compute.dtype)
    flat = scaled.reshape(-1, order="F").astype(dst_desc.kind.dtype)
    np.copyto(dst, flat.reshape(dst.shape))


def permutation_axes(src_modes: Sequence[ModeLabel], dst_modes: Sequence[ModeLabel]) -> tuple[int, ...]:
    if sorted(src_modes) != sorted(dst_modes):
        raise ValueError(f"Modes {tuple(dst_modes)} are not a permutation of {tuple(src_modes)}")
    return tuple(list(src_modes).index(mode) for mode in dst_modes)
