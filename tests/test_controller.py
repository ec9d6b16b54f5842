from __future__ import annotations

import itertools

import numpy as np
import numpy.testing as npt
import pytest

from permtest.backends import HostBackendDriver, Status
from permtest.core import TestCase, resolve_modes
from permtest.core.controller import CaseState, PermutationCaseController
from permtest.core.models import DataTypePair, ElementKind
from permtest.errors import BackendFailure, ConfigurationError, ValidationMismatch
from permtest.options import HarnessOptions


class PerturbingDriver(HostBackendDriver):
    """Host backend that corrupts the first output element."""

    name = "perturb"

    def permute(self, context, scale, src, src_desc, src_modes, dst, dst_desc, dst_modes, compute, stream=0):
        status = super().permute(
            context, scale, src, src_desc, src_modes, dst, dst_desc, dst_modes, compute, stream
        )
        dst.storage[0] = dst.storage[0] + dst.storage.dtype.type(0.5)
        return status


class FailingDriver(HostBackendDriver):
    name = "failing"

    def permute(self, *args, **kwargs):
        return Status.EXECUTION_FAILED


def _case(**overrides) -> TestCase:
    values = dict(
        data_types=("float32", "float32"),
        shape=(2, 3, 4, 5),
        permutation=(3, 2, 1, 0),
        scale=1.0,
    )
    values.update(overrides)
    return TestCase(**values)


def _controller(driver=None, **options) -> PermutationCaseController:
    return PermutationCaseController(driver or HostBackendDriver(), options=HarnessOptions(**options))


def test_reverse_permutation_passes_exactly() -> None:
    case = _case()
    assert resolve_modes(case.shape, case.permutation).extent_b == (5, 4, 3, 2)
    controller = _controller(omit_cout=True)
    result = controller.run(case, np.random.default_rng(0))
    assert result.passed
    assert result.verdict.max_relative_error == 0.0
    assert result.verdict.max_relative_error < ElementKind.FLOAT32.default_tolerance().relative
    assert controller.state is CaseState.DONE
    result.expect_passed()


def test_identity_scale_doubles_every_element() -> None:
    controller = _controller(omit_cout=True)
    result = controller.run(_case(permutation=(0, 1, 2, 3), scale=2.0), np.random.default_rng(1))
    assert result.passed
    resource = controller.resource
    npt.assert_array_equal(resource.host_b(), resource.host_a() * np.float32(2.0))


def test_deviation_fails_with_nonzero_error() -> None:
    controller = _controller(PerturbingDriver(), omit_cout=True)
    result = controller.run(_case(permutation=(0, 1, 2, 3), scale=2.0), np.random.default_rng(1))
    assert result.failed
    assert result.max_relative_error > 0.0
    assert "Max relative error" in result.error
    with pytest.raises(ValidationMismatch, match="Max relative error"):
        result.expect_passed()


def test_half_precision_case_runs_with_half_tolerance() -> None:
    controller = _controller(omit_cout=True)
    result = controller.run(
        _case(data_types=("float16", "float16"), permutation=(2, 0, 3, 1), scale=0.5),
        np.random.default_rng(3),
    )
    assert result.passed


def test_unsupported_datatype_is_skipped_and_reported(capsys) -> None:
    driver = HostBackendDriver(supported_kinds=("float32",))
    controller = _controller(driver)
    result = controller.run(_case(data_types=("float16", "float16")))
    assert result.skipped
    assert result.verdict is None
    assert not result.passed and not result.failed
    assert "float16" in result.skip_reason
    out = capsys.readouterr().out
    assert "[SKIPPED]" in out
    result.expect_passed()


def test_unsupported_compute_type_is_skipped() -> None:
    driver = HostBackendDriver(supported_kinds=("float32",))
    result = _controller(driver, omit_cout=True).run(_case(data_types=("float32", "float16")))
    assert result.skipped


def test_infeasible_size_is_skipped() -> None:
    driver = HostBackendDriver(max_elements=100)
    result = _controller(driver, omit_cout=True).run(_case())
    assert result.skipped
    assert "not feasible" in result.skip_reason


def test_skipped_case_hidden_with_omit_skipped(capsys) -> None:
    driver = HostBackendDriver(supported_kinds=("float32",))
    _controller(driver, omit_skipped=True).run(_case(data_types=("float16", "float32")))
    assert capsys.readouterr().out == ""


def _run_classified(classification: str, **options) -> None:
    if classification == "skipped":
        driver = HostBackendDriver(supported_kinds=("float16",))
    elif classification == "failed":
        driver = PerturbingDriver()
    else:
        driver = HostBackendDriver()
    result = _controller(driver, **options).run(_case(), np.random.default_rng(5))
    assert result.status == classification


@pytest.mark.parametrize("classification", ["passed", "failed", "skipped"])
@pytest.mark.parametrize("flags", list(itertools.product([False, True], repeat=3)))
def test_report_emitted_iff_matching_flag_unset(classification, flags, capsys) -> None:
    omit_skipped, omit_failed, omit_passed = flags
    _run_classified(
        classification,
        omit_skipped=omit_skipped,
        omit_failed=omit_failed,
        omit_passed=omit_passed,
    )
    suppressed = {"skipped": omit_skipped, "failed": omit_failed, "passed": omit_passed}[classification]
    out = capsys.readouterr().out
    assert (f"[{classification.upper()}]" in out) is (not suppressed)


def test_report_contains_captured_backend_log(capsys) -> None:
    _controller().run(_case())
    out = capsys.readouterr().out
    assert "[PASSED]" in out
    assert "[permtest.backend][INFO] [host] permute:" in out


def test_log_capture_is_reset_between_cases() -> None:
    controller = _controller(omit_cout=True)
    first = controller.run(_case())
    second = controller.run(_case(permutation=(1, 0, 3, 2)))
    assert first.log_text.count("permute:") == 1
    assert second.log_text.count("permute:") == 1
    assert "'c', 'n', 'h', 'w'" in second.log_text


def test_log_level_off_captures_nothing() -> None:
    result = _controller(omit_cout=True).run(_case(log_level="off"))
    assert result.passed
    assert result.log_text == ""


def test_print_elements_dumps_both_tensors(capsys) -> None:
    _controller(print_elements=True).run(_case(shape=(1, 1, 2, 2)))
    out = capsys.readouterr().out
    assert "Tensor A elements (4):" in out
    assert "Tensor B elements (4):" in out


def test_report_written_to_auxiliary_stream(tmp_path, capsys) -> None:
    output = tmp_path / "reports" / "permute.log"
    options = HarnessOptions(omit_cout=True, output_path=str(output))
    controller = PermutationCaseController(HostBackendDriver(), options=options)
    controller.run(_case())
    options.close()
    assert capsys.readouterr().out == ""
    assert "[PASSED]" in output.read_text(encoding="utf-8")


def test_backend_failure_aborts_case(capsys) -> None:
    controller = _controller(FailingDriver())
    with pytest.raises(BackendFailure, match="permute failed with status EXECUTION_FAILED"):
        controller.run(_case())
    assert controller.state is CaseState.CONFIGURED
    assert capsys.readouterr().out == ""


def test_configuration_error_is_not_a_skip() -> None:
    controller = _controller(omit_cout=True)
    with pytest.raises(ConfigurationError):
        controller.run(_case(shape=(2, 3, 4)))
    with pytest.raises(ConfigurationError):
        controller.run(_case(permutation=(0, 0, 1, 2)))


def test_run_kernel_requires_set_up() -> None:
    controller = _controller()
    assert controller.state is CaseState.CREATED
    with pytest.raises(RuntimeError):
        controller.run_kernel()


def test_explicit_lifecycle_transitions() -> None:
    controller = _controller(omit_cout=True)
    controller.set_up(_case(shape=(1, 3, 1, 5)), np.random.default_rng(0))
    assert controller.state is CaseState.CONFIGURED
    assert controller.run_state.run_flag
    verdict = controller.run_kernel()
    assert controller.state is CaseState.EXECUTED
    assert verdict.passed
    controller.report()
    assert controller.state is CaseState.REPORTED
    controller.tear_down()
    assert controller.state is CaseState.DONE


def test_uses_process_options_when_none_given(capsys) -> None:
    HarnessOptions.configure(omit_passed=True)
    PermutationCaseController(HostBackendDriver()).run(_case())
    assert capsys.readouterr().out == ""


def test_parsed_datatype_pair_runs_and_reports(capsys) -> None:
    case = _case(data_types=DataTypePair(ElementKind.FLOAT32, ElementKind.FLOAT32))
    result = _controller().run(case, np.random.default_rng(0))
    assert result.passed
    assert list(case.data_types) == [ElementKind.FLOAT32, ElementKind.FLOAT32]
    assert case.identifier() == "permute[float32,float32](2x3x4x5)/p3210/a1"
    assert "[PASSED] permute[float32,float32](2x3x4x5)/p3210/a1" in capsys.readouterr().out


@pytest.mark.parametrize("permutation", [(0, 1.5, 2, 3), (0, 1.0, 2, 3), (0, False, 2, 3)])
def test_non_integer_permutation_is_configuration_error(permutation, capsys) -> None:
    controller = _controller()
    with pytest.raises(ConfigurationError):
        controller.run(_case(permutation=permutation))
    assert controller.state is CaseState.CREATED
    assert capsys.readouterr().out == ""


@pytest.mark.parametrize("log_level", ["chatty", True])
def test_unknown_log_level_is_configuration_error(log_level) -> None:
    controller = _controller(omit_cout=True)
    with pytest.raises(ConfigurationError, match="Unknown log level"):
        controller.run(_case(log_level=log_level))
