"""Exception hierarchy used across permtest."""
from __future__ import annotations

from typing import Optional


class PermtestError(Exception):
    """Base class for all permtest errors."""


class ConfigurationError(PermtestError, ValueError):
    """Malformed case parameters; fatal to the whole invocation."""


class CapabilityUnsupported(PermtestError):
    """The active backend cannot run the requested precision or size."""


class BackendFailure(PermtestError, RuntimeError):
    """A device-side call returned a non-success status."""

    def __init__(self, call: str, status: object, message: Optional[str] = None) -> None:
        self.call = call
        self.status = status
        text = f"{call} failed with status {status}"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)


class BackendUnavailable(BackendFailure):
    """The accelerator could not be initialized."""

    def __init__(self, message: str) -> None:
        super().__init__("create_context", "NOT_INITIALIZED", message)


class ValidationMismatch(PermtestError, AssertionError):
    """Device output disagrees with the reference beyond tolerance."""

    def __init__(self, max_relative_error: float, identifier: str = "") -> None:
        self.max_relative_error = max_relative_error
        prefix = f"{identifier}: " if identifier else ""
        super().__init__(f"{prefix}Max relative error: {max_relative_error}")
