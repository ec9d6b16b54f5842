"""Plan loading and execution."""

from .loader import load_plan, parse_plan
from .models import ExecutionPlan
from .runner import run_plan

__all__ = [
    "ExecutionPlan",
    "load_plan",
    "parse_plan",
    "run_plan",
]
