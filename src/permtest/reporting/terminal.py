"""Terminal reporter rendering per-case status lines and failure details."""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

import click

from permtest.core.results import CaseResult
from permtest.options import HarnessOptions

from .base import Reporter
from .text import should_emit

if TYPE_CHECKING:  # pragma: no cover
    from permtest.plan.models import ExecutionPlan


STATUS_COLORS = {
    "passed": "green",
    "failed": "red",
    "skipped": "blue",
    "error": "yellow",
}


class TerminalReporter(Reporter):
    """Human-readable reporter that streams to stdout.

    Status lines obey the same omission flags as the per-case reports.
    """

    def __init__(self, *, use_color: bool = True, options: Optional[HarnessOptions] = None) -> None:
        self._use_color = use_color
        self._options = options
        self._failures: list[tuple[int, CaseResult]] = []

    @property
    def options(self) -> HarnessOptions:
        return self._options or HarnessOptions.instance()

    def on_start(self, plan: "ExecutionPlan") -> None:
        self._failures.clear()
        click.echo(
            self._styled(
                f"Starting run: {len(plan.cases)} case(s) on {plan.backend_label()} "
                f"seed={plan.seed} fail_fast={plan.fail_fast}",
                force_color="cyan",
            )
        )

    def on_case_result(self, result: CaseResult, index: int, total: int) -> None:
        if result.status in ("failed", "error"):
            self._failures.append((index, result))
        if result.status != "error" and not self._visible(result):
            return
        identifier = result.case.identifier()
        status_text = self._styled(result.status.upper(), force_color=STATUS_COLORS.get(result.status))
        suffix = ""
        if result.verdict is not None:
            suffix = f" (max_rel={result.verdict.max_relative_error:.3e})"
        elif result.skip_reason:
            suffix = f" ({result.skip_reason})"
        click.echo(f"[{index}/{total}] {identifier} -> {status_text}{suffix}")

    def on_complete(self, results: Sequence[CaseResult]) -> None:
        failures = [(i, r) for i, r in self._failures if r.status == "error" or self._visible(r)]
        if failures:
            click.echo(self._styled("Failure details:", force_color="red"))
            for index, result in failures:
                click.echo(f"  [{index}] {result.case.identifier()} -> {result.status}")
                self._print_failure_details(result, indent="    ")

    def _visible(self, result: CaseResult) -> bool:
        options = self.options
        return should_emit(
            skipped=result.skipped,
            passed=result.passed,
            omit_skipped=options.omit_skipped,
            omit_failed=options.omit_failed,
            omit_passed=options.omit_passed,
        )

    def _styled(self, text: str, *, force_color: str | None = None) -> str:
        if not self._use_color or not force_color:
            return text
        return click.style(text, fg=force_color)

    def _print_failure_details(self, result: CaseResult, *, indent: str = "    ") -> None:
        case = result.case
        seed_text = result.seed if result.seed is not None else "?"
        click.echo(
            f"{indent}dtypes={','.join(str(getattr(d, 'value', d)) for d in case.data_types)} "
            f"shape={tuple(case.shape)} permutation={tuple(case.permutation)} "
            f"scale={case.scale} seed={seed_text}"
        )
        verdict = result.verdict
        if verdict is None:
            click.echo(f"{indent}error: {result.error}")
            return
        click.echo(f"{indent}Max relative error: {verdict.max_relative_error:.6e}")
        if verdict.detail:
            click.echo(f"{indent}detail: {verdict.detail}")
        if verdict.max_error_index is not None:
            click.echo(
                f"{indent}mismatched {verdict.mismatched}/{verdict.total} "
                f"device={verdict.device_value} reference={verdict.reference_value} "
                f"at element {verdict.max_error_index}"
            )
