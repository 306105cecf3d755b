"""
Structured logging for the reminder service.

Every record is emitted as one JSON object so that scheduler failures can be
traced by user, session, medication and error class.
"""

import json
import logging
import os
import sys
from typing import Any

from medreminder.utils.clock import utc_now


class StructuredLogger:
    """Structured logger that writes JSON lines to stdout."""

    def __init__(self, name: str, level: int = None):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            level: Logging level (defaults to LOG_LEVEL or INFO)
        """
        self.logger = logging.getLogger(name)
        if level is None:
            level = logging.getLevelName(os.environ.get("LOG_LEVEL", "INFO").upper())
            if not isinstance(level, int):
                level = logging.INFO
        self.logger.setLevel(level)

        # Prevent adding handlers multiple times
        if not self.logger.handlers:
            self._setup_handlers()

    def _setup_handlers(self):
        """Set up the console handler."""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        self.logger.addHandler(console_handler)

    def _build(self, level: int, message: str, **kwargs: Any) -> str:
        log_data = {
            "timestamp": utc_now().isoformat(),
            "level": logging.getLevelName(level),
            "message": message,
            "service": self.logger.name,
        }
        log_data.update(kwargs)
        return json.dumps(log_data, ensure_ascii=False, default=str)

    def _log_structured(self, level: int, message: str, **kwargs: Any):
        """
        Log a structured message.

        Args:
            level: Logging level
            message: Log message
            **kwargs: Additional structured data
        """
        if self.logger.isEnabledFor(level):
            self.logger.log(level, self._build(level, message, **kwargs))

    def debug(self, message: str, **kwargs: Any):
        self._log_structured(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any):
        self._log_structured(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any):
        self._log_structured(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any):
        self._log_structured(logging.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs: Any):
        self._log_structured(logging.CRITICAL, message, **kwargs)

    def exception(self, message: str, **kwargs: Any):
        """Log an error with the active traceback attached."""
        if self.logger.isEnabledFor(logging.ERROR):
            kwargs["exception"] = True
            self.logger.exception(self._build(logging.ERROR, message, **kwargs))


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger for the given module or component.

    Args:
        name: Logger name

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(name)
