"""Per-case capture of backend log records."""
from __future__ import annotations

import contextlib
import io
import logging
from typing import Iterator, Optional, Union

from permtest.errors import ConfigurationError

BACKEND_LOGGER = "permtest.backend"
LOG_FORMAT = "[%(name)s][%(levelname)s] %(message)s"

_OFF = logging.CRITICAL + 10


def parse_log_level(value: Union[int, str, None]) -> int:
    """Map a case's log level to a ``logging`` level; ``"off"`` disables capture."""

    if value is None:
        return logging.INFO
    if isinstance(value, bool):
        raise ConfigurationError(f"Unknown log level {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lower() in {"off", "none"}:
        return _OFF
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level '{value}'")
    return level


class LogCapture(logging.Handler):
    """Handler that appends formatted records to an in-memory buffer.

    One instance belongs to one case controller; it is attached to the
    backend logger only while that controller executes a case.
    """

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level)
        self._buffer = io.StringIO()
        self.setFormatter(logging.Formatter(LOG_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._buffer.write(self.format(record) + "\n")
        except Exception:  # pragma: no cover - logging contract
            self.handleError(record)

    def text(self) -> str:
        return self._buffer.getvalue()

    def clear(self) -> None:
        self._buffer = io.StringIO()

    @contextlib.contextmanager
    def capture(self, logger_name: str = BACKEND_LOGGER) -> Iterator["LogCapture"]:
        logger = logging.getLogger(logger_name)
        previous: Optional[int] = logger.level
        logger.addHandler(self)
        if logger.getEffectiveLevel() > self.level:
            logger.setLevel(self.level)
        try:
            yield self
        finally:
            logger.removeHandler(self)
            logger.setLevel(previous)
