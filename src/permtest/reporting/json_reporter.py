"""JSON reporter emitting structured execution results."""
from __future__ import annotations

import datetime as dt
import json
import math
import pathlib
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

import click
from jsonschema import validate

from permtest.core.results import CaseResult

from .base import Reporter, summarize
from .schema import JSON_SCHEMA_V1, SCHEMA_VERSION

if TYPE_CHECKING:  # pragma: no cover
    from permtest.plan.models import ExecutionPlan


class JsonReporter(Reporter):
    """Writes every case (unfiltered) to a JSON file validated against the schema."""

    def __init__(self, path: str) -> None:
        self._path = pathlib.Path(path)
        self._records: list[Dict[str, Any]] = []
        self._plan: ExecutionPlan | None = None

    def on_start(self, plan: "ExecutionPlan") -> None:
        self._plan = plan
        self._records.clear()

    def on_case_result(self, result: CaseResult, index: int, total: int) -> None:
        self._records.append(_case_to_dict(result))

    def on_complete(self, results: Sequence[CaseResult]) -> None:
        if self._plan is None:
            return
        summary: Dict[str, Any] = dict(summarize(results))
        summary["backend"] = self._plan.backend_label()
        summary["seed"] = self._plan.seed
        payload = {
            "schema_version": SCHEMA_VERSION,
            "generated_at": dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
            "summary": summary,
            "cases": self._records,
        }
        validate(instance=payload, schema=JSON_SCHEMA_V1)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem protection
            raise RuntimeError(f"Failed to write JSON report to {self._path}: {exc}") from exc
        click.echo(f"JSON report written to {self._path}")


def _case_to_dict(result: CaseResult) -> Dict[str, Any]:
    case = result.case
    record: Dict[str, Any] = {
        "id": case.identifier(),
        "status": result.status,
        "dtypes": [str(getattr(d, "value", d)) for d in case.data_types],
        "shape": [int(dim) for dim in case.shape],
        "permutation": [int(axis) for axis in case.permutation],
        "scale": float(case.scale),
        "seed": result.seed,
    }
    if result.error:
        record["error"] = result.error
    if result.skip_reason:
        record["skip_reason"] = result.skip_reason
    verdict = result.verdict
    if verdict is not None:
        record["verdict"] = {
            "passed": verdict.passed,
            "max_relative_error": _finite_or_none(verdict.max_relative_error),
            "mismatched": verdict.mismatched,
            "total": verdict.total,
            "max_error_index": verdict.max_error_index,
            "device_value": _finite_or_none(verdict.device_value),
            "reference_value": _finite_or_none(verdict.reference_value),
        }
    return record


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None or not math.isfinite(value):
        return None
    return float(value)
