"""YAML loader and validation for run plans."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping

import yaml
from jsonschema import Draft7Validator

from permtest.core.models import TestCase, ToleranceTable
from permtest.errors import ConfigurationError

from .models import ExecutionPlan

_INT_LIST = {"type": "array", "items": {"type": "integer"}}

PLAN_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["cases"],
    "additionalProperties": False,
    "properties": {
        "seed": {"type": "integer", "minimum": 0},
        "fail_fast": {"type": "boolean"},
        "backend": {
            "type": "object",
            "properties": {
                "type": {"type": "string"},
                "name": {"type": "string"},
                "dtypes": {"type": "array", "items": {"type": "string"}},
                "max_elements": {"type": "integer", "minimum": 1},
                "workdir": {"type": "string"},
                "env": {"type": "object"},
            },
        },
        "tolerances": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "rel": {"type": "number", "exclusiveMinimum": 0},
                    "relative": {"type": "number", "exclusiveMinimum": 0},
                    "epsilon": {"type": "number", "exclusiveMinimum": 0},
                },
            },
        },
        "options": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "omit_cout": {"type": "boolean"},
                "omit_skipped": {"type": "boolean"},
                "omit_failed": {"type": "boolean"},
                "omit_passed": {"type": "boolean"},
                "print_elements": {"type": "boolean"},
                "output": {"type": "string"},
            },
        },
        "cases": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["dtypes", "shape", "permutation"],
                "additionalProperties": False,
                "properties": {
                    "name": {"type": "string"},
                    "dtypes": {"type": "array", "items": {"type": "string"}},
                    "shape": _INT_LIST,
                    "permutation": _INT_LIST,
                    "scale": {"type": "number"},
                    "log_level": {"type": ["string", "integer"]},
                },
            },
        },
    },
}

_validator = Draft7Validator(PLAN_SCHEMA)


def load_plan(path: str) -> ExecutionPlan:
    """Load and validate a plan file."""

    plan_path = Path(path).expanduser().resolve()
    raw = yaml.safe_load(plan_path.read_text(encoding="utf-8")) or {}
    return parse_plan(raw, plan_path.parent)


def parse_plan(raw: Any, base: Path) -> ExecutionPlan:
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Plan file must contain a mapping at the top level")
    errors = sorted(_validator.iter_errors(raw), key=lambda e: list(e.path))
    if errors:
        messages = "; ".join(f"{'/'.join(map(str, err.path)) or 'root'}: {err.message}" for err in errors)
        raise ConfigurationError(f"Plan schema validation failed: {messages}")
    options = dict(raw.get("options") or {})
    if options.get("output"):
        options["output"] = str(_resolve(base, options["output"]))
    return ExecutionPlan(
        cases=tuple(_parse_case(entry) for entry in raw["cases"]),
        backend=_parse_backend(raw.get("backend"), base),
        seed=int(raw.get("seed", 0)),
        fail_fast=bool(raw.get("fail_fast", False)),
        tolerances=ToleranceTable.from_mapping(raw.get("tolerances")),
        options=options,
        plan_dir=base,
    )


def _parse_case(entry: Mapping[str, Any]) -> TestCase:
    return TestCase(
        name=entry.get("name"),
        data_types=tuple(entry["dtypes"]),
        shape=tuple(int(dim) for dim in entry["shape"]),
        permutation=tuple(int(axis) for axis in entry["permutation"]),
        scale=float(entry.get("scale", 1.0)),
        log_level=entry.get("log_level", "INFO"),
    )


def _parse_backend(raw: Any, base: Path) -> Dict[str, Any]:
    backend = dict(raw or {"type": "host"})
    if "workdir" in backend:
        backend["workdir"] = str(_resolve(base, backend["workdir"]))
    return backend


def _resolve(base: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else (base / path).resolve()
