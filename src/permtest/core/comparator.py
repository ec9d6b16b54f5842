"""Utilities for comparing device outputs with reference buffers."""
from __future__ import annotations

from typing import Optional

import numpy as np

from .models import ElementKind, Tolerance, Verdict


def compare(
    device: np.ndarray,
    reference: np.ndarray,
    kind: ElementKind,
    tolerance: Optional[Tolerance] = None,
    element_count: Optional[int] = None,
) -> Verdict:
    """Reduce element-wise relative error to a pass/fail verdict.

    ``passed`` is true iff the maximum of ``|d - r| / max(|r|, epsilon)`` is
    strictly below ``tolerance.relative``. The maximum is always reported.
    """

    tolerance = tolerance or kind.default_tolerance()
    act = np.asarray(device).reshape(-1)
    exp = np.asarray(reference).reshape(-1)
    if element_count is not None:
        if act.size < element_count or exp.size < element_count:
            return _size_mismatch(act.size, exp.size, element_count)
        act = act[:element_count]
        exp = exp[:element_count]
    elif act.size != exp.size:
        return _size_mismatch(act.size, exp.size, exp.size)
    if act.size == 0:
        return Verdict(passed=True, max_relative_error=0.0, total=0)

    rel = relative_errors(act, exp, tolerance.epsilon)
    flat_index = int(np.argmax(rel))
    max_rel = float(rel[flat_index])
    mismatched = int(np.count_nonzero(rel >= tolerance.relative))
    return Verdict(
        passed=max_rel < tolerance.relative,
        max_relative_error=max_rel,
        total=int(act.size),
        mismatched=mismatched,
        max_error_index=flat_index,
        device_value=float(act[flat_index]),
        reference_value=float(exp[flat_index]),
    )


def relative_errors(device: np.ndarray, reference: np.ndarray, epsilon: float) -> np.ndarray:
    act = device.astype(np.float64)
    exp = reference.astype(np.float64)
    with np.errstate(invalid="ignore", over="ignore"):
        diff = np.abs(act - exp)
        denom = np.maximum(np.abs(exp), epsilon)
        rel = diff / denom
    same = (act == exp) | (np.isnan(act) & np.isnan(exp))
    rel = np.where(same, 0.0, rel)
    return np.where(np.isnan(rel), np.inf, rel)


def _size_mismatch(actual: int, expected: int, count: int) -> Verdict:
    return Verdict(
        passed=False,
        max_relative_error=float("inf"),
        total=count,
        mismatched=count,
        detail=f"size mismatch: device {actual}, reference {expected}, compared {count}",
    )
