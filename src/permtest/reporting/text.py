"""Plain-text case reports: captured backend log plus optional element dumps."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from permtest.core.models import ElementKind


def should_emit(
    *,
    skipped: bool,
    passed: bool,
    omit_skipped: bool,
    omit_failed: bool,
    omit_passed: bool,
) -> bool:
    """Each omission flag suppresses only the cases of its own classification."""

    failed = not skipped and not passed
    passed = not skipped and passed
    return (
        (not skipped or not omit_skipped)
        and (not failed or not omit_failed)
        and (not passed or not omit_passed)
    )


def format_elements(values: np.ndarray, kind: ElementKind, count: int) -> str:
    return ", ".join(kind.format_element(value) for value in np.asarray(values).reshape(-1)[:count])


def render_case_report(
    header: str,
    log_text: str,
    *,
    kind: ElementKind,
    print_elements: bool = False,
    tensors: Sequence[tuple[str, np.ndarray]] = (),
    element_count: int = 0,
) -> str:
    parts = [header.rstrip("\n") + "\n", log_text]
    if print_elements:
        for label, values in tensors:
            parts.append(f"Tensor {label} elements ({element_count}):\n")
            parts.append(format_elements(values, kind, element_count))
            parts.append("\n")
    return "".join(parts)
