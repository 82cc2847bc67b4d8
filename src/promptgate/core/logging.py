"""Default Logger implementation backed by the standard logging module."""

import logging
from typing import Any


class StdlibLogger:
    """Adapts the Logger protocol (msg + key/value context) onto logging.Logger."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @staticmethod
    def _format(msg: str, kv: dict) -> str:
        details = " ".join(f"{k}={v}" for k, v in kv.items())
        return f"{msg} {details}" if details else msg

    def info(self, msg: str, **kv: Any) -> None:
        self._logger.info(self._format(msg, kv))

    def warn(self, msg: str, **kv: Any) -> None:
        self._logger.warning(self._format(msg, kv))

    def error(self, msg: str, **kv: Any) -> None:
        self._logger.error(self._format(msg, kv))


def get_logger(name: str) -> StdlibLogger:
    """Return a structured logger for the given module name."""
    return StdlibLogger(logging.getLogger(name))
