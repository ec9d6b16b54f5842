"""Dynamic import of user-supplied drivers and plugins."""
from __future__ import annotations

import importlib
from typing import Any

from permtest.errors import ConfigurationError


def import_string(path: str) -> Any:
    """Resolve ``package.module:attr`` (or ``package.module.attr``) to an object."""

    module_name, sep, attr = path.partition(":")
    if not sep:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ConfigurationError(f"Invalid import path '{path}', expected 'module:attr'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Could not import module '{module_name}': {exc}") from exc
    if not hasattr(module, attr):
        raise ConfigurationError(f"Module '{module_name}' has no attribute '{attr}'")
    return getattr(module, attr)
