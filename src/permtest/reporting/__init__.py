"""Reporting exports."""
from .base import ReportManager, Reporter, summarize
from .json_reporter import JsonReporter
from .terminal import TerminalReporter
from .text import render_case_report, should_emit

__all__ = [
    "ReportManager",
    "Reporter",
    "JsonReporter",
    "TerminalReporter",
    "render_case_report",
    "should_emit",
    "summarize",
]
