from __future__ import annotations

import json
import sys
import textwrap
from pathlib import Path

import pytest

from permtest.backends import HostBackendDriver
from permtest.errors import ConfigurationError
from permtest.plan import load_plan, parse_plan, run_plan


class DriftDriver(HostBackendDriver):
    """Backend whose output is off by a relative 1e-3."""

    name = "drift"

    def permute(self, context, scale, src, src_desc, src_modes, dst, dst_desc, dst_modes, compute, stream=0):
        status = super().permute(
            context, scale, src, src_desc, src_modes, dst, dst_desc, dst_modes, compute, stream
        )
        dst.storage *= dst.storage.dtype.type(1.001)
        return status


def _write_plan(tmp_path: Path, extra: str = "") -> Path:
    plan = tmp_path / "plan.yaml"
    plan.write_text(
        textwrap.dedent(
            """
            seed: 3
            backend:
              type: host
              dtypes: [float32]
            cases:
              - name: reverse
                dtypes: [float32, float32]
                shape: [2, 3, 4, 5]
                permutation: [3, 2, 1, 0]
              - name: identity
                dtypes: [float32, float32]
                shape: [4, 1, 2, 2]
                permutation: [0, 1, 2, 3]
                scale: 2.0
              - name: half
                dtypes: [float16, float16]
                shape: [1, 2, 2, 1]
                permutation: [1, 0, 3, 2]
            """
        )
        + extra,
        encoding="utf-8",
    )
    return plan


def test_run_plan_terminal_output(tmp_path, capsys) -> None:
    plan = load_plan(str(_write_plan(tmp_path)))
    exit_code = run_plan(plan, use_color=False)
    assert exit_code == 0
    out = capsys.readouterr().out
    assert "Starting run: 3 case(s) on host seed=3" in out
    assert "[PASSED] reverse:permute[float32,float32](2x3x4x5)/p3210/a1" in out
    assert "[SKIPPED] half:" in out
    assert "[1/3] reverse:permute[float32,float32](2x3x4x5)/p3210/a1 -> PASSED" in out
    assert "Summary: total=3 passed=2 failed=0 skipped=1 errors=0" in out


def test_run_plan_returns_one_on_failure(tmp_path, capsys) -> None:
    plan = load_plan(str(_write_plan(tmp_path)))
    exit_code = run_plan(plan, use_color=False, driver=DriftDriver(supported_kinds=["float32"]))
    assert exit_code == 1
    out = capsys.readouterr().out
    assert "[FAILED] reverse:" in out
    assert "Max relative error:" in out
    assert "Failure details:" in out
    assert "failed=2" in out


def test_run_plan_tolerance_override_accepts_drift(tmp_path, capsys) -> None:
    plan = load_plan(str(_write_plan(tmp_path, "tolerances:\n  float32: {rel: 0.01}\n")))
    assert run_plan(plan, use_color=False, driver=DriftDriver(supported_kinds=["float32"])) == 0


def test_run_plan_omit_flags_and_output_file(tmp_path, capsys) -> None:
    extra = "options:\n  omit_cout: true\n  omit_skipped: true\n  output: reports/run.log\n"
    plan = load_plan(str(_write_plan(tmp_path, extra)))
    assert run_plan(plan, use_color=False) == 0
    out = capsys.readouterr().out
    assert "[PASSED]" not in out
    assert "SKIPPED" not in out
    assert "Summary:" in out
    log = (tmp_path / "reports" / "run.log").read_text(encoding="utf-8")
    assert log.count("[PASSED]") == 2
    assert "[SKIPPED]" not in log
    assert "[permtest.backend][INFO]" in log


def test_run_plan_json_report(tmp_path, capsys) -> None:
    plan = load_plan(str(_write_plan(tmp_path)))
    report_path = tmp_path / "out" / "report.json"
    exit_code = run_plan(plan, report_format="json", report_path=str(report_path))
    assert exit_code == 0
    payload = json.loads(report_path.read_text(encoding="utf-8"))
    assert payload["schema_version"] == "1.0.0"
    assert payload["generated_at"].endswith("Z")
    assert payload["summary"] == {
        "total": 3,
        "passed": 2,
        "failed": 0,
        "skipped": 1,
        "errors": 0,
        "backend": "host",
        "seed": 3,
    }
    statuses = [case["status"] for case in payload["cases"]]
    assert statuses == ["passed", "passed", "skipped"]
    assert payload["cases"][0]["verdict"]["max_relative_error"] == 0.0
    assert "verdict" not in payload["cases"][2]
    assert "float16" in payload["cases"][2]["skip_reason"]
    assert "JSON report written to" in capsys.readouterr().out


def test_run_plan_json_requires_path(tmp_path) -> None:
    plan = load_plan(str(_write_plan(tmp_path)))
    with pytest.raises(ConfigurationError):
        run_plan(plan, report_format="json")
    with pytest.raises(ConfigurationError):
        run_plan(plan, report_format="xml")


def test_run_plan_with_command_backend(tmp_path, capsys) -> None:
    script = tmp_path / "copy.py"
    script.write_text(
        textwrap.dedent(
            """
            import sys

            import numpy as np

            src, dst, dtype, extents, modes_a, modes_b = sys.argv[1:]
            shape = tuple(int(e) for e in extents.split(","))
            a = np.fromfile(src, dtype=dtype).reshape(shape, order="F")
            b = np.transpose(a, [modes_a.index(m) for m in modes_b])
            b.reshape(-1, order="F").tofile(dst)
            """
        ),
        encoding="utf-8",
    )
    raw = {
        "backend": {
            "type": "command",
            "name": "copy-kernel",
            "workdir": ".",
            "command": [sys.executable, str(script), "{input}", "{output}", "{dtype}", "{extents_a}", "{modes_a}", "{modes_b}"],
        },
        "cases": [
            {"dtypes": ["float32", "float32"], "shape": [2, 3, 4, 5], "permutation": [1, 2, 3, 0]},
            {"dtypes": ["float16", "float16"], "shape": [2, 2, 2, 2], "permutation": [3, 1, 0, 2]},
        ],
    }
    plan = parse_plan(raw, tmp_path)
    assert run_plan(plan, use_color=False) == 0
    out = capsys.readouterr().out
    assert "on copy-kernel" in out
    assert "passed=2" in out
