from permtest.backends import HostBackendDriver, backend_manager


def register() -> None:
    """Register a host backend that only runs single precision cases."""

    driver = HostBackendDriver(name="host-fp32", supported_kinds=("float32",), max_elements=4096)
    backend_manager.register(driver, replace=True)
