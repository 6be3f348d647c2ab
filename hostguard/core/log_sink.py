"""
HostGuard - Injected logging capability.

Components that report progress to an operator take a LogSink instead of
reaching for a shared logger. The default sink forwards to the standard
logging module.
"""

import logging
from typing import Optional, Protocol


class LogSink(Protocol):
    """Line-oriented informational and error channels."""

    def info(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class LoggingSink:
    """LogSink backed by a logging.Logger, optionally tagging lines with a job name."""

    def __init__(self, logger: Optional[logging.Logger] = None, prefix: Optional[str] = None) -> None:
        self._logger = logger or logging.getLogger("hostguard")
        self._prefix = f"[{prefix}] " if prefix else ""

    def info(self, message: str) -> None:
        self._logger.info("%s%s", self._prefix, message)

    def error(self, message: str) -> None:
        self._logger.error("%sERROR: %s", self._prefix, message)

    def child(self, prefix: str) -> "LoggingSink":
        """Return a sink writing to the same logger with a different tag."""
        return LoggingSink(self._logger, prefix)
