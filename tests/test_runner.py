from __future__ import annotations

import pytest

from permtest.backends import HostBackendDriver, Status
from permtest.core import TestCase
from permtest.core.runner import TestRunner
from permtest.errors import ConfigurationError, PermtestError
from permtest.options import HarnessOptions


class OffsetDriver(HostBackendDriver):
    """Backend that adds one to every output element."""

    name = "offset"

    def permute(self, context, scale, src, src_desc, src_modes, dst, dst_desc, dst_modes, compute, stream=0):
        status = super().permute(
            context, scale, src, src_desc, src_modes, dst, dst_desc, dst_modes, compute, stream
        )
        dst.storage += dst.storage.dtype.type(1)
        return status


class BrokenDriver(HostBackendDriver):
    name = "broken"

    def permute(self, *args, **kwargs):
        return Status.INTERNAL_ERROR


def _cases() -> list[TestCase]:
    return [
        TestCase(data_types=("float32", "float32"), shape=(2, 3, 4, 5), permutation=(3, 2, 1, 0)),
        TestCase(data_types=("float16", "float16"), shape=(1, 4, 2, 3), permutation=(1, 0, 2, 3), scale=0.25),
        TestCase(data_types=("float32", "float32"), shape=(3, 1, 1, 2), permutation=(2, 3, 1, 0), scale=-1.5),
    ]


def _options() -> HarnessOptions:
    return HarnessOptions(omit_cout=True)


def test_runner_executes_cases_successfully() -> None:
    runner = TestRunner(HostBackendDriver(), seed=0, options=_options())
    results = runner.run(_cases())
    assert [r.status for r in results] == ["passed", "passed", "passed"]
    assert all(r.seed is not None for r in results)
    assert all(r.verdict.mismatched == 0 for r in results)


def test_runner_records_skips_and_failures() -> None:
    runner = TestRunner(OffsetDriver(supported_kinds=["float32"]), seed=1, options=_options())
    results = runner.run(_cases())
    assert [r.status for r in results] == ["failed", "skipped", "failed"]
    assert results[0].verdict.mismatched == results[0].verdict.total


def test_runner_same_seed_is_deterministic() -> None:
    first = TestRunner(OffsetDriver(), seed=7, options=_options()).run(_cases())
    second = TestRunner(OffsetDriver(), seed=7, options=_options()).run(_cases())
    assert [r.seed for r in first] == [r.seed for r in second]
    assert [r.max_relative_error for r in first] == [r.max_relative_error for r in second]
    other = TestRunner(OffsetDriver(), seed=8, options=_options()).run(_cases())
    assert [r.seed for r in other] != [r.seed for r in first]


def test_runner_records_backend_failure_as_error() -> None:
    runner = TestRunner(BrokenDriver(), options=_options())
    results = runner.run(_cases())
    assert [r.status for r in results] == ["error"] * 3
    assert "permute failed with status INTERNAL_ERROR" in results[0].error
    with pytest.raises(PermtestError):
        results[0].expect_passed()


def test_runner_fail_fast_stops_after_first_failure() -> None:
    runner = TestRunner(OffsetDriver(), fail_fast=True, options=_options())
    results = runner.run(_cases())
    assert len(results) == 1
    assert results[0].failed


def test_runner_propagates_configuration_errors() -> None:
    cases = _cases() + [TestCase(data_types=("float32",), shape=(1, 1, 1, 1), permutation=(0, 1, 2, 3))]
    runner = TestRunner(HostBackendDriver(), options=_options())
    with pytest.raises(ConfigurationError):
        runner.run(cases)


def test_runner_reports_progress_callback() -> None:
    seen: list[tuple[str, int, int]] = []
    runner = TestRunner(HostBackendDriver(), options=_options())
    runner.run(_cases(), on_result=lambda result, index, total: seen.append((result.status, index, total)))
    assert seen == [("passed", 1, 3), ("passed", 2, 3), ("passed", 3, 3)]
