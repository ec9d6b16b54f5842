"""Reporter interface definitions."""
from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence

from permtest.core.results import CaseResult

if TYPE_CHECKING:  # pragma: no cover
    from permtest.plan.models import ExecutionPlan


class Reporter:
    """Interface for run-level output renderers."""

    def on_start(self, plan: ExecutionPlan) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def on_case_result(self, result: CaseResult, index: int, total: int) -> None:  # pragma: no cover
        raise NotImplementedError

    def on_complete(self, results: Sequence[CaseResult]) -> None:  # pragma: no cover
        raise NotImplementedError


class ReportManager:
    """Dispatches lifecycle callbacks to multiple reporters."""

    def __init__(self, reporters: Sequence[Reporter]) -> None:
        self._reporters = list(reporters)

    def start(self, plan: ExecutionPlan) -> None:
        for reporter in self._reporters:
            reporter.on_start(plan)

    def handle_result(self, result: CaseResult, index: int, total: int) -> None:
        for reporter in self._reporters:
            reporter.on_case_result(result, index, total)

    def complete(self, results: Sequence[CaseResult]) -> None:
        for reporter in self._reporters:
            reporter.on_complete(results)

    def reporters(self) -> List[Reporter]:
        return list(self._reporters)


def summarize(results: Sequence[CaseResult]) -> dict[str, int]:
    """Counts per status; skipped cases are kept out of passed/failed."""

    counts = {"total": len(results), "passed": 0, "failed": 0, "skipped": 0, "errors": 0}
    for result in results:
        key = "errors" if result.status == "error" else result.status
        counts[key] += 1
    return counts
