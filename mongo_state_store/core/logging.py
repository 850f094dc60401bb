"""Logging configuration for the MongoDB migration state store."""

from __future__ import annotations

import logging
import sys
import time
from typing import Any

ROOT_LOGGER_NAME = "mongo_state_store"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure and return the library logger.

    Not called on import; applications opt in.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)

    if logger.handlers:
        return logger

    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)


class LogContext:
    """Logs start, completion (with duration) and failure of an operation."""

    def __init__(self, logger: logging.Logger, operation: str, **context: Any) -> None:
        self.logger = logger
        self.operation = operation
        self.context = context
        self._started: float | None = None

    @property
    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        return time.monotonic() - self._started

    def __enter__(self) -> "LogContext":
        self._started = time.monotonic()
        self.logger.info(f"Starting {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> bool:
        if exc_type is not None:
            self.logger.error(
                f"Failed {self.operation} after {self.elapsed:.2f}s: {exc_val}",
                extra=self.context,
                exc_info=True,
            )
        else:
            self.logger.info(f"Completed {self.operation} in {self.elapsed:.2f}s", extra=self.context)
        return False
