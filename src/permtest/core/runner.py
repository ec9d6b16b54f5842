"""Sequential runner over a collection of permutation cases."""
from __future__ import annotations

from typing import Callable, List, Optional, Sequence

import numpy as np

from permtest.backends.base import BackendDriver
from permtest.errors import BackendFailure
from permtest.options import HarnessOptions

from .controller import PermutationCaseController
from .models import TestCase, ToleranceTable
from .results import CaseResult


class TestRunner:
    """Executes cases one at a time with per-case seeds drawn from ``seed``.

    Configuration errors propagate and stop the run. Backend failures abort
    only the current case, which is recorded with status ``error``.
    """

    __test__ = False

    def __init__(
        self,
        driver: BackendDriver,
        *,
        seed: int = 0,
        fail_fast: bool = False,
        options: Optional[HarnessOptions] = None,
        tolerances: Optional[ToleranceTable] = None,
    ) -> None:
        self._seed = seed
        self._fail_fast = fail_fast
        self._controller = PermutationCaseController(driver, options=options, tolerances=tolerances)

    @property
    def controller(self) -> PermutationCaseController:
        return self._controller

    def run(
        self,
        cases: Sequence[TestCase],
        *,
        on_result: Optional[Callable[[CaseResult, int, int], None]] = None,
    ) -> List[CaseResult]:
        results: List[CaseResult] = []
        master_rng = np.random.default_rng(self._seed)
        total = len(cases)
        for index, case in enumerate(cases, start=1):
            case_seed = int(master_rng.integers(0, 2**32 - 1))
            result = self.run_case(case, case_seed)
            results.append(result)
            if on_result:
                on_result(result, index, total)
            if self._fail_fast and not (result.passed or result.skipped):
                break
        return results

    def run_case(self, case: TestCase, seed: int) -> CaseResult:
        rng = np.random.default_rng(seed)
        try:
            return self._controller.run(case, rng, seed=seed)
        except BackendFailure as exc:
            return self._controller.error_result(case, exc, seed)
