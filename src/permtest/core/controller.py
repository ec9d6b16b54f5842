"""Case controller: set up, run, validate and report one permutation case."""
from __future__ import annotations

import enum
import threading
from typing import Optional, TextIO

import click
import numpy as np

from permtest.backends.base import BackendContext, BackendDriver, Status
from permtest.errors import BackendFailure, CapabilityUnsupported
from permtest.logs import LogCapture, parse_log_level
from permtest.options import HarnessOptions
from permtest.reporting.text import render_case_report, should_emit

from .comparator import compare
from .models import DataTypePair, RunState, ScaleValue, TestCase, ToleranceTable, Verdict
from .modes import resolve_modes, validate_case
from .references import permute_reference
from .resources import PermutationResource
from .results import ERROR, FAILED, PASSED, SKIPPED, CaseResult

# Only one case may hold the backend logger at a time.
_CASE_GATE = threading.Lock()


class CaseState(enum.Enum):
    CREATED = "created"
    CONFIGURED = "configured"
    SKIPPED = "skipped"
    EXECUTED = "executed"
    REPORTED = "reported"
    DONE = "done"


class PermutationCaseController:
    """Drives one case through ``set_up -> run_kernel -> report -> tear_down``.

    The controller depends on the backend only through :class:`BackendDriver`;
    capability and size checks are delegated to the driver so each backend
    family decides what it can run.
    """

    def __init__(
        self,
        driver: BackendDriver,
        *,
        resource: Optional[PermutationResource] = None,
        options: Optional[HarnessOptions] = None,
        tolerances: Optional[ToleranceTable] = None,
    ) -> None:
        self._driver = driver
        self._resource = resource or PermutationResource(driver)
        self._options = options
        self._tolerances = tolerances or ToleranceTable()
        self.run_state = RunState()
        self.log = LogCapture()
        self.reset()

    def reset(self) -> None:
        self.state = CaseState.CREATED
        self.handle: Optional[BackendContext] = None
        self.run_state.reset()
        self.validation_result = False
        self.max_relative_error = 0.0
        self.verdict: Optional[Verdict] = None
        self._case: Optional[TestCase] = None
        self._types: Optional[DataTypePair] = None

    @property
    def resource(self) -> PermutationResource:
        return self._resource

    @property
    def options(self) -> HarnessOptions:
        return self._options or HarnessOptions.instance()

    def check_device(self, data_types: DataTypePair) -> bool:
        return self._driver.capability_supported(data_types.element) and self._driver.capability_supported(
            data_types.compute
        )

    def check_sizes(self, case: TestCase) -> bool:
        return self._driver.size_feasible(case.shape)

    def set_up(self, case: TestCase, rng: Optional[np.random.Generator] = None) -> None:
        self.reset()
        self.log.clear()
        types = validate_case(case)
        self.log.setLevel(parse_log_level(case.log_level))
        self._case = case
        self._types = types
        try:
            if not self.check_device(types):
                raise CapabilityUnsupported(
                    f"{types.label()} is not supported by backend '{self._driver.name}'"
                )
            if not self.check_sizes(case):
                raise CapabilityUnsupported(
                    f"shape {tuple(case.shape)} is not feasible on backend '{self._driver.name}'"
                )
        except CapabilityUnsupported as exc:
            self.run_state.run_flag = False
            self.run_state.skip_reason = str(exc)
        else:
            self._resource.setup_storage(case.shape, types.element, rng)
        self.run_state.print_elements = self.options.print_elements
        self.state = CaseState.CONFIGURED

    def run_kernel(self) -> Optional[Verdict]:
        if self.state is not CaseState.CONFIGURED:
            raise RuntimeError(f"run_kernel() called in state {self.state.value}")
        if not self.run_state.run_flag:
            self.state = CaseState.SKIPPED
            return None
        with self.log.capture():
            verdict = self._execute()
        self.verdict = verdict
        self.validation_result = verdict.passed
        self.max_relative_error = verdict.max_relative_error
        self.state = CaseState.EXECUTED
        return verdict

    def _execute(self) -> Verdict:
        case, types = self._case, self._types
        assert case is not None and types is not None
        driver, resource = self._driver, self._resource

        # B_{modeB} = alpha * IDENTITY(A_{modeA})
        modes = resolve_modes(case.shape, case.permutation)
        self.handle = driver.create_context()
        try:
            desc_a = driver.describe_tensor(self.handle, len(modes.mode_a), modes.extent_a, types.element)
            desc_b = driver.describe_tensor(self.handle, len(modes.mode_b), modes.extent_b, types.element)
            scale = ScaleValue.encode(case.scale, types.compute)
            status = driver.permute(
                self.handle,
                scale,
                resource.device_a(),
                desc_a,
                modes.mode_a,
                resource.device_b(),
                desc_b,
                modes.mode_b,
                types.compute,
                stream=0,
            )
            _check("permute", status)
            resource.copy_b_to_host()
            permute_reference(
                scale,
                resource.host_a(),
                desc_a,
                modes.mode_a,
                resource.host_reference(),
                desc_b,
                modes.mode_b,
                types.compute,
            )
            resource.copy_reference_to_device()
            return compare(
                driver.copy_device_to_host(resource.device_b()),
                driver.copy_device_to_host(resource.device_reference()),
                types.element,
                self._tolerances.for_kind(types.element),
                element_count=resource.get_current_matrix_element(),
            )
        finally:
            driver.destroy_context(self.handle)
            self.handle = None

    def render_results(self, omit_skipped: bool, omit_failed: bool, omit_passed: bool) -> Optional[str]:
        skipped = not self.run_state.run_flag
        if not should_emit(
            skipped=skipped,
            passed=self.validation_result,
            omit_skipped=omit_skipped,
            omit_failed=omit_failed,
            omit_passed=omit_passed,
        ):
            return None
        assert self._case is not None and self._types is not None
        identifier = self._case.identifier()
        if skipped:
            header = f"[SKIPPED] {identifier}: {self.run_state.skip_reason}"
        elif self.validation_result:
            header = f"[PASSED] {identifier}"
        else:
            header = f"[FAILED] {identifier}: Max relative error: {self.max_relative_error}"
        tensors = ()
        if self.run_state.print_elements and not skipped:
            tensors = (("A", self._resource.host_a()), ("B", self._resource.host_b()))
        return render_case_report(
            header,
            self.log.text(),
            kind=self._types.element,
            print_elements=self.run_state.print_elements,
            tensors=tensors,
            element_count=self._resource.get_current_matrix_element(),
        )

    def report_results(self, stream: TextIO, omit_skipped: bool, omit_failed: bool, omit_passed: bool) -> None:
        text = self.render_results(omit_skipped, omit_failed, omit_passed)
        if text:
            stream.write(text)

    def report(self) -> None:
        if self.state not in (CaseState.SKIPPED, CaseState.EXECUTED):
            raise RuntimeError(f"report() called in state {self.state.value}")
        options = self.options
        flags = (options.omit_skipped, options.omit_failed, options.omit_passed)
        if not options.omit_cout:
            text = self.render_results(*flags)
            if text:
                click.echo(text, nl=False)
        stream = options.ostream()
        if stream is not None:
            self.report_results(stream, *flags)
            stream.flush()
        self.state = CaseState.REPORTED

    def result(self, seed: Optional[int] = None) -> CaseResult:
        assert self._case is not None
        if not self.run_state.run_flag:
            return CaseResult(
                case=self._case,
                status=SKIPPED,
                log_text=self.log.text(),
                skip_reason=self.run_state.skip_reason,
                seed=seed,
            )
        status = PASSED if self.validation_result else FAILED
        error = None if self.validation_result else f"Max relative error: {self.max_relative_error}"
        return CaseResult(
            case=self._case,
            status=status,
            verdict=self.verdict,
            log_text=self.log.text(),
            error=error,
            seed=seed,
        )

    def tear_down(self) -> None:
        self.state = CaseState.DONE

    def run(
        self,
        case: TestCase,
        rng: Optional[np.random.Generator] = None,
        *,
        seed: Optional[int] = None,
    ) -> CaseResult:
        """Run the whole lifecycle; backend failures propagate as :class:`BackendFailure`."""

        with _CASE_GATE:
            self.set_up(case, rng)
            self.run_kernel()
            self.report()
            result = self.result(seed)
            self.tear_down()
        return result

    def error_result(self, case: TestCase, exc: BaseException, seed: Optional[int] = None) -> CaseResult:
        return CaseResult(case=case, status=ERROR, log_text=self.log.text(), error=str(exc), seed=seed)


def _check(call: str, status: Status) -> None:
    if status is not Status.SUCCESS:
        raise BackendFailure(call, status.name)
