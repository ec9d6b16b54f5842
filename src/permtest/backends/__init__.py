"""Backend interface exports."""
from .base import BackendContext, BackendDriver, BackendManager, DeviceBuffer, Status, backend_manager
from .command import CommandBackendDriver
from .host import HostBackendDriver
from .loading import build_driver, register_builtin_backends

__all__ = [
    "BackendContext",
    "BackendDriver",
    "BackendManager",
    "DeviceBuffer",
    "Status",
    "backend_manager",
    "CommandBackendDriver",
    "HostBackendDriver",
    "build_driver",
    "register_builtin_backends",
]
