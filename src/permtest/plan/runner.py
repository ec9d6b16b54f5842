"""Executor for YAML run plans."""
from __future__ import annotations

from typing import List, Optional, Sequence

from colorama import Fore, Style, init as colorama_init

from permtest.backends import BackendDriver, build_driver
from permtest.core.results import CaseResult
from permtest.core.runner import TestRunner
from permtest.errors import ConfigurationError
from permtest.options import HarnessOptions
from permtest.reporting.base import Reporter, ReportManager, summarize
from permtest.reporting.json_reporter import JsonReporter
from permtest.reporting.terminal import TerminalReporter

from .models import ExecutionPlan


def run_plan(
    plan: ExecutionPlan,
    *,
    report_format: str = "terminal",
    report_path: Optional[str] = None,
    use_color: bool = True,
    driver: Optional[BackendDriver] = None,
) -> int:
    """Execute the plan; returns process exit code (0 success, 1 failures)."""

    colorama_init()
    reporters = _build_reporters(report_format, report_path, use_color)
    options = HarnessOptions.configure(HarnessOptions.from_mapping(plan.options))
    driver = driver or build_driver(plan.backend)
    manager = ReportManager(reporters)
    runner = TestRunner(
        driver,
        seed=plan.seed,
        fail_fast=plan.fail_fast,
        options=options,
        tolerances=plan.tolerances,
    )
    try:
        manager.start(plan)
        results = runner.run(plan.cases, on_result=manager.handle_result)
        manager.complete(results)
    finally:
        options.close()
    failures = sum(1 for r in results if r.status in {"failed", "error"})
    if report_format == "terminal":
        _print_summary(results, use_color=use_color)
    return 0 if failures == 0 else 1


def _build_reporters(report_format: str, report_path: Optional[str], use_color: bool) -> List[Reporter]:
    if report_format == "terminal":
        return [TerminalReporter(use_color=use_color)]
    if report_format == "json":
        if not report_path:
            raise ConfigurationError("report_path is required when report_format is 'json'")
        return [JsonReporter(path=report_path)]
    raise ConfigurationError(f"Unknown report format '{report_format}' (expected terminal or json)")


def _print_summary(results: Sequence[CaseResult], *, use_color: bool = True) -> None:
    counts = summarize(results)
    failures = counts["failed"] + counts["errors"]
    summary_color = (Fore.GREEN if failures == 0 else Fore.RED) if use_color else ""
    reset = Style.RESET_ALL if use_color else ""
    print(
        f"{summary_color}Summary{reset}: total={counts['total']} passed={counts['passed']} "
        f"failed={counts['failed']} skipped={counts['skipped']} errors={counts['errors']}"
    )
