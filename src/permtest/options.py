"""Process-wide reporting options."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Mapping, Optional, TextIO


@dataclass
class HarnessOptions:
    """Report filtering and output destinations shared by every case."""

    omit_cout: bool = False
    omit_skipped: bool = False
    omit_failed: bool = False
    omit_passed: bool = False
    print_elements: bool = False
    output_path: Optional[str] = None
    _stream: Optional[TextIO] = field(default=None, init=False, repr=False, compare=False)

    _instance: ClassVar[Optional["HarnessOptions"]] = None

    @classmethod
    def instance(cls) -> "HarnessOptions":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def configure(cls, options: Optional["HarnessOptions"] = None, **values: Any) -> "HarnessOptions":
        """Replace the process-wide instance, closing any open output stream."""

        if cls._instance is not None and cls._instance is not options:
            cls._instance.close()
        cls._instance = options if options is not None else cls(**values)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        if cls._instance is not None:
            cls._instance.close()
        cls._instance = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "HarnessOptions":
        data = data or {}
        output = data.get("output")
        return cls(
            omit_cout=bool(data.get("omit_cout", False)),
            omit_skipped=bool(data.get("omit_skipped", False)),
            omit_failed=bool(data.get("omit_failed", False)),
            omit_passed=bool(data.get("omit_passed", False)),
            print_elements=bool(data.get("print_elements", False)),
            output_path=str(output) if output else None,
        )

    def ostream(self) -> Optional[TextIO]:
        """Auxiliary output stream, opened on first use; ``None`` when unset."""

        if self.output_path is None:
            return None
        if self._stream is None or self._stream.closed:
            path = Path(self.output_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            self._stream = path.open("w", encoding="utf-8")
        return self._stream

    def close(self) -> None:
        if self._stream is not None and not self._stream.closed:
            self._stream.close()
        self._stream = None
