"""Result data structures produced by the case controller and runner."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from permtest.errors import PermtestError, ValidationMismatch

from .models import TestCase, Verdict

PASSED = "passed"
FAILED = "failed"
SKIPPED = "skipped"
ERROR = "error"


@dataclass
class CaseResult:
    """Outcome of executing a single permutation case."""

    case: TestCase
    status: str
    verdict: Optional[Verdict] = None
    log_text: str = ""
    error: Optional[str] = None
    skip_reason: Optional[str] = None
    seed: Optional[int] = None

    @property
    def passed(self) -> bool:
        return self.status == PASSED

    @property
    def skipped(self) -> bool:
        return self.status == SKIPPED

    @property
    def failed(self) -> bool:
        return self.status == FAILED

    @property
    def max_relative_error(self) -> float:
        return self.verdict.max_relative_error if self.verdict else 0.0

    def expect_passed(self) -> None:
        """Raise unless the case passed or was skipped."""

        if self.status == FAILED:
            raise ValidationMismatch(self.max_relative_error, self.case.identifier())
        if self.status == ERROR:
            raise PermtestError(f"{self.case.identifier()}: {self.error}")
