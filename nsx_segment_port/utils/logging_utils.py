"""
Logging utilities for the segment port client.

Provides a readable console formatter, a root logger setup for applications
embedding the client, and timing of remote exchanges.  Importing the package
never configures logging; call :func:`setup_logging` from the application.
"""

import logging
import sys
import time
from datetime import datetime
from typing import Any, Optional

PACKAGE_LOGGER = "nsx_segment_port"


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for different log levels."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname, '')
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        level_str = f"{color}{record.levelname:8}{self.RESET}"
        location = f"{record.module}.{record.funcName}" if record.funcName != '<module>' else record.module
        message = record.getMessage()

        extras = []
        for key in ['segment_id', 'port_id', 'status_code', 'duration_ms']:
            if hasattr(record, key):
                value = getattr(record, key)
                if key == 'duration_ms':
                    extras.append(f"duration={value:.1f}ms")
                elif key == 'status_code':
                    extras.append(f"status={value}")
                else:
                    extras.append(f"{key}={value}")

        extra_str = f" [{', '.join(extras)}]" if extras else ""

        return f"{timestamp} | {level_str} | {location:30} | {message}{extra_str}"


def setup_logging(level: str = "INFO") -> None:
    """
    Set up console logging on the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter())
    handler.setLevel(getattr(logging, level.upper()))

    root.setLevel(getattr(logging, level.upper()))
    root.addHandler(handler)

    # httpx logs every request at INFO, which duplicates our own request logs
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)


def set_debug(debug: bool) -> None:
    """Switch the package logger between DEBUG and INFO."""
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if debug else logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger by name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class LogTimer:
    """
    Context manager for timing a remote exchange with automatic logging.

    Usage:
        with LogTimer(logger, "GET segment port", segment_id=sid) as timer:
            response = await http.send(request)
            timer.set_status(response.status_code)
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        level: int = logging.DEBUG,
        **context: Any,
    ):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.context = {k: v for k, v in context.items() if v is not None}
        self.start_time: Optional[float] = None
        self.status_code: Optional[int] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.log(self.level, f"Starting: {self.operation}", extra=dict(self.context))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = (time.perf_counter() - self.start_time) * 1000

        extra = dict(self.context)
        extra['duration_ms'] = duration_ms
        if self.status_code is not None:
            extra['status_code'] = self.status_code

        if exc_type is not None:
            self.logger.error(f"Failed: {self.operation} - {exc_val}", extra=extra)
        else:
            self.logger.log(self.level, f"Completed: {self.operation}", extra=extra)

        return False

    def set_status(self, status_code: int) -> None:
        """Record the HTTP status for the completion log."""
        self.status_code = status_code
