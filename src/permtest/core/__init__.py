"""Core models and helpers exposed at the package level."""
from .comparator import compare
from .models import (
    DataTypePair,
    ElementKind,
    RunState,
    ScaleValue,
    TensorDescriptor,
    TestCase,
    Tolerance,
    ToleranceTable,
    Verdict,
)
from .modes import MODE_LABELS, ModeResolution, resolve_modes, validate_case
from .references import permute_reference
from .results import CaseResult

__all__ = [
    "CaseResult",
    "DataTypePair",
    "ElementKind",
    "MODE_LABELS",
    "ModeResolution",
    "RunState",
    "ScaleValue",
    "TensorDescriptor",
    "TestCase",
    "Tolerance",
    "ToleranceTable",
    "Verdict",
    "compare",
    "permute_reference",
    "resolve_modes",
    "validate_case",
]
