"""Core dataclasses shared across permtest subsystems."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from permtest.errors import ConfigurationError

ModeLabel = str
LogLevel = Union[int, str]


class ElementKind(enum.Enum):
    """Closed set of element types the harness knows how to validate."""

    FLOAT16 = "float16"
    FLOAT32 = "float32"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.value)

    @property
    def bits(self) -> int:
        return self.dtype.itemsize * 8

    def default_tolerance(self) -> "Tolerance":
        info = np.finfo(self.dtype)
        return Tolerance(relative=10.0 * float(info.eps), epsilon=float(info.tiny))

    def format_element(self, value: Any) -> str:
        if self is ElementKind.FLOAT16:
            return f"{float(value):.4g}"
        return f"{float(value):.7g}"

    @classmethod
    def parse(cls, value: Union[str, "ElementKind"]) -> "ElementKind":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        aliases = {"f16": "float16", "half": "float16", "f32": "float32", "float": "float32"}
        text = aliases.get(text, text)
        try:
            return cls(text)
        except ValueError as exc:
            supported = ", ".join(kind.value for kind in cls)
            raise ConfigurationError(
                f"Unsupported element datatype '{value}'. Supported: {supported}"
            ) from exc


@dataclass(frozen=True)
class DataTypePair:
    """Element type of A/B plus the type the kernel computes in."""

    element: ElementKind
    compute: ElementKind

    @classmethod
    def parse(cls, values: Union["DataTypePair", Sequence[Any]]) -> "DataTypePair":
        if isinstance(values, cls):
            return values
        if isinstance(values, str) or len(values) != 2:
            raise ConfigurationError(
                f"Datatype pair must have exactly 2 entries (element, compute), got {values!r}"
            )
        return cls(element=ElementKind.parse(values[0]), compute=ElementKind.parse(values[1]))

    def __iter__(self) -> Iterator[ElementKind]:
        yield self.element
        yield self.compute

    def label(self) -> str:
        return f"{self.element.value},{self.compute.value}"


@dataclass(frozen=True)
class Tolerance:
    """Relative error threshold and the floor used for the denominator."""

    relative: float
    epsilon: float

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]], default: "Tolerance") -> "Tolerance":
        if not data:
            return default
        return cls(
            relative=float(data.get("rel", data.get("relative", default.relative))),
            epsilon=float(data.get("epsilon", default.epsilon)),
        )


@dataclass(frozen=True)
class ToleranceTable:
    """Per element kind tolerances; kinds not overridden use their defaults."""

    overrides: Mapping[ElementKind, Tolerance] = field(default_factory=dict)

    def for_kind(self, kind: ElementKind) -> Tolerance:
        return self.overrides.get(kind) or kind.default_tolerance()

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "ToleranceTable":
        overrides: Dict[ElementKind, Tolerance] = {}
        for name, raw in (data or {}).items():
            kind = ElementKind.parse(name)
            overrides[kind] = Tolerance.from_mapping(raw, kind.default_tolerance())
        return cls(overrides=overrides)


@dataclass(frozen=True)
class ScaleValue:
    """Scalar alpha stored as the raw bits of its compute kind."""

    kind: ElementKind
    bits: int

    @classmethod
    def encode(cls, value: float, kind: ElementKind) -> "ScaleValue":
        raw = np.array(value, dtype=kind.dtype).tobytes()
        return cls(kind=kind, bits=int.from_bytes(raw, "little"))

    @property
    def value(self) -> np.generic:
        raw = self.bits.to_bytes(self.kind.dtype.itemsize, "little")
        return np.frombuffer(raw, dtype=self.kind.dtype)[0]

    def __float__(self) -> float:
        return float(self.value)


@dataclass(frozen=True)
class TensorDescriptor:
    """Shape and element type of a dense tensor on the device."""

    rank: int
    extents: Tuple[int, ...]
    kind: ElementKind
    op: str = "identity"

    @property
    def element_count(self) -> int:
        count = 1
        for extent in self.extents:
            count *= int(extent)
        return count


@dataclass(frozen=True)
class TestCase:
    """One parameterized permutation case."""

    __test__ = False

    data_types: Sequence[Any]
    shape: Sequence[int]
    permutation: Sequence[int]
    scale: float = 1.0
    log_level: LogLevel = "INFO"
    name: Optional[str] = None

    def identifier(self) -> str:
        dtypes = ",".join(str(getattr(d, "value", d)) for d in self.data_types)
        shape = "x".join(str(dim) for dim in self.shape)
        perm = "".join(str(axis) for axis in self.permutation)
        base = f"permute[{dtypes}]({shape})/p{perm}/a{self.scale:g}"
        return f"{self.name}:{base}" if self.name else base


@dataclass(frozen=True)
class Verdict:
    """Comparison outcome for one case."""

    passed: bool
    max_relative_error: float
    total: int = 0
    mismatched: int = 0
    max_error_index: Optional[int] = None
    device_value: Optional[float] = None
    reference_value: Optional[float] = None
    detail: Optional[str] = None


@dataclass
class RunState:
    """Mutable per-case flags owned by the case controller."""

    run_flag: bool = True
    print_elements: bool = False
    skip_reason: Optional[str] = None

    def reset(self) -> None:
        self.run_flag = True
        self.print_elements = False
        self.skip_reason = None
