"""Mode label resolution for 4-D permutation cases."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np

from permtest.errors import ConfigurationError

from .models import DataTypePair, ModeLabel, TestCase

# Physical order of the input tensor: {n, c, w, h}.
MODE_LABELS: Tuple[ModeLabel, ...] = ("n", "c", "w", "h")
RANK = len(MODE_LABELS)


@dataclass(frozen=True)
class ModeResolution:
    """Mode sequences and extents for the input (A) and output (B) tensors."""

    mode_a: Tuple[ModeLabel, ...]
    mode_b: Tuple[ModeLabel, ...]
    extents: Dict[ModeLabel, int]
    extent_a: Tuple[int, ...]
    extent_b: Tuple[int, ...]


def validate_case(case: TestCase) -> DataTypePair:
    """Check parameter cardinalities and return the parsed datatype pair."""

    _validate_shape(case.shape)
    _validate_permutation(case.permutation)
    return DataTypePair.parse(case.data_types)


def resolve_modes(shape: Sequence[int], permutation: Sequence[int]) -> ModeResolution:
    lengths = _validate_shape(shape)
    axes = _validate_permutation(permutation)
    mode_a = MODE_LABELS
    mode_b = tuple(mode_a[axis] for axis in axes)
    extents = dict(zip(mode_a, lengths))
    return ModeResolution(
        mode_a=mode_a,
        mode_b=mode_b,
        extents=extents,
        extent_a=project_extents(extents, mode_a),
        extent_b=project_extents(extents, mode_b),
    )


def project_extents(extents: Dict[ModeLabel, int], modes: Sequence[ModeLabel]) -> Tuple[int, ...]:
    missing = [mode for mode in modes if mode not in extents]
    if missing:
        raise ConfigurationError(f"No extent registered for mode(s) {missing}")
    return tuple(extents[mode] for mode in modes)


def _validate_shape(shape: Sequence[int]) -> Tuple[int, ...]:
    if len(shape) != RANK:
        raise ConfigurationError(
            f"Shape must have {RANK} extents ordered {{n, c, w, h}}, got {tuple(shape)}"
        )
    extents = tuple(_as_int(extent, "Extents", shape) for extent in shape)
    if any(extent < 1 for extent in extents):
        raise ConfigurationError(f"Extents must be positive integers, got {tuple(shape)}")
    return extents


def _validate_permutation(permutation: Sequence[int]) -> Tuple[int, ...]:
    if len(permutation) != RANK:
        raise ConfigurationError(
            f"Permutation must have {RANK} entries, got {tuple(permutation)}"
        )
    axes = tuple(_as_int(axis, "Permutation entries", permutation) for axis in permutation)
    if sorted(axes) != list(range(RANK)):
        raise ConfigurationError(
            f"Permutation {tuple(permutation)} is not a permutation of {tuple(range(RANK))}"
        )
    return axes


def _as_int(value: object, what: str, values: Sequence[object]) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigurationError(f"{what} must be integers, got {tuple(values)}")
    return int(value)
