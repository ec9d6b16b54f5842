"""Data models for YAML run plans."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from permtest.core.models import TestCase, ToleranceTable


@dataclass(frozen=True)
class ExecutionPlan:
    cases: Sequence[TestCase]
    backend: Mapping[str, Any] = field(default_factory=dict)
    seed: int = 0
    fail_fast: bool = False
    tolerances: ToleranceTable = field(default_factory=ToleranceTable)
    options: Mapping[str, Any] = field(default_factory=dict)
    plan_dir: Optional[Path] = None

    def backend_label(self) -> str:
        return str(self.backend.get("name") or self.backend.get("type") or "host")
