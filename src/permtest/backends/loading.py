"""Driver construction from plan configuration."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Type

from permtest.errors import ConfigurationError
from permtest.utils import import_string

from .base import BackendDriver, BackendManager, backend_manager
from .command import CommandBackendDriver
from .host import HostBackendDriver

BUILTIN_DRIVER_TYPES: Dict[str, Type[BackendDriver]] = {
    "host": HostBackendDriver,
    "command": CommandBackendDriver,
}


def register_builtin_backends(manager: Optional[BackendManager] = None) -> None:
    """Register the default host driver (idempotent)."""

    manager = manager or backend_manager
    if HostBackendDriver.name not in manager.names():
        manager.register(HostBackendDriver())


def build_driver(config: Optional[Mapping[str, Any]], manager: Optional[BackendManager] = None) -> BackendDriver:
    """Return a driver for ``config``.

    ``config`` may name a registered driver (``{"name": "host"}``), a
    built-in driver type, or a ``module:Class`` path to a custom
    :class:`BackendDriver` subclass.
    """

    manager = manager or backend_manager
    if not config:
        return manager.get_driver(HostBackendDriver.name)
    driver_type = config.get("type")
    if driver_type is None:
        name = config.get("name", HostBackendDriver.name)
        return manager.get_driver(str(name))
    cls = BUILTIN_DRIVER_TYPES.get(str(driver_type))
    if cls is None:
        obj = import_string(str(driver_type))
        if not isinstance(obj, type) or not issubclass(obj, BackendDriver):
            raise ConfigurationError(f"Backend type '{driver_type}' is not a BackendDriver subclass")
        cls = obj
    return cls.from_config(config)
