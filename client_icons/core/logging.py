"""
Logging configuration module for the icon auto-assignment engine.

This module provides clean, configurable logging setup for the CLI
scripts and for host applications embedding the engine.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Optional, Generator
from enum import Enum


class LogLevel(Enum):
    """Enumeration of available logging levels."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class UserMode(Enum):
    """User mode enumeration for different logging configurations."""

    TECHNICAL = "technical"
    BUSINESS = "business"
    SILENT = "silent"


class LoggingConfig:
    """
    Centralized logging configuration class.

    Provides different logging setups for different types of users:
    - Technical users: Detailed logs with timestamps, thread and module names
    - Business users: Clean, minimal logs focused on results
    - Silent mode: Only critical errors
    """

    CONFIGURATIONS = {
        UserMode.TECHNICAL: {
            "level": LogLevel.INFO,
            "format": "%(asctime)s - %(levelname)s - %(threadName)s - %(name)s - %(message)s",
            "description": "🔧 Technical mode: Detailed logging enabled",
        },
        UserMode.BUSINESS: {
            "level": LogLevel.WARNING,
            "format": "%(levelname)s: %(message)s",
            "description": "👔 Business user mode: Clean, minimal logging",
        },
        UserMode.SILENT: {
            "level": LogLevel.ERROR,
            "format": "ERROR: %(message)s",
            "description": "🔇 Silent mode: Only critical errors shown",
        },
    }

    # Root of every logger created with logging.getLogger(__name__) in this package
    PACKAGE_LOGGER = "client_icons"

    def __init__(self, mode: UserMode = UserMode.BUSINESS):
        """
        Initialize logging configuration.

        Args:
            mode: User mode (TECHNICAL, BUSINESS, or SILENT)
        """
        self.mode = mode
        self.config = self.CONFIGURATIONS[mode]
        self._is_configured = False

    def setup_logging(self, force_reconfigure: bool = True) -> logging.Logger:
        """
        Set up logging based on the configured mode.

        Args:
            force_reconfigure: Whether to force reconfiguration of existing loggers

        Returns:
            Configured package logger
        """
        if force_reconfigure:
            for handler in logging.root.handlers[:]:
                logging.root.removeHandler(handler)

        logging.basicConfig(
            level=self.config["level"].value,
            format=self.config["format"],
            handlers=[logging.StreamHandler(sys.stdout)],
            force=force_reconfigure,
        )

        self._suppress_noisy_loggers()

        logger = logging.getLogger(self.PACKAGE_LOGGER)
        logger.setLevel(self.config["level"].value)
        logger.debug(self.config["description"])

        self._is_configured = True
        return logger

    def _suppress_noisy_loggers(self):
        """Suppress verbose logging from third-party libraries."""
        noisy_loggers = [
            "sqlalchemy.engine",
            "sqlalchemy.pool",
            "alembic",
        ]

        for logger_name in noisy_loggers:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    @classmethod
    def quick_setup(cls, mode: UserMode = UserMode.BUSINESS) -> logging.Logger:
        """Quick setup method for immediate use."""
        config = cls(mode)
        return config.setup_logging()


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Set up logging with simple verbose/quiet toggle.

    Args:
        verbose: If True, use technical mode; if False, use business mode

    Returns:
        Configured logger
    """
    mode = UserMode.TECHNICAL if verbose else UserMode.BUSINESS
    return LoggingConfig.quick_setup(mode)


class ExecutionTimer:
    """
    Context manager for timing code execution.

    Integrates with the logging system to show timing information.
    """

    def __init__(
        self,
        name: str = "Operation",
        logger: Optional[logging.Logger] = None,
        show_start: bool = True,
        show_end: bool = True,
    ):
        self.name = name
        self.logger = logger or logging.getLogger(__name__)
        self.show_start = show_start
        self.show_end = show_end
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.monotonic()
        if self.show_start:
            self.logger.info(f"⏱️  Starting: {self.name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.monotonic()
        elapsed = self.end_time - self.start_time

        if exc_type is None:
            if self.show_end:
                self.logger.info(
                    f"✅ Completed: {self.name} in {self._format_duration(elapsed)}"
                )
        else:
            self.logger.error(f"❌ Failed: {self.name} after {self._format_duration(elapsed)}")

    def _format_duration(self, seconds: float) -> str:
        """Format duration in a human-readable way."""
        if seconds < 1:
            return f"{seconds * 1000:.0f}ms"
        elif seconds < 60:
            return f"{seconds:.2f}s"
        elif seconds < 3600:
            minutes = int(seconds // 60)
            remaining_seconds = seconds % 60
            return f"{minutes}m {remaining_seconds:.1f}s"
        else:
            hours = int(seconds // 3600)
            remaining_minutes = int((seconds % 3600) // 60)
            return f"{hours}h {remaining_minutes}m"

    @property
    def elapsed_time(self) -> Optional[float]:
        """Get elapsed time if timing is complete."""
        if self.start_time is not None and self.end_time is not None:
            return self.end_time - self.start_time
        return None


@contextmanager
def time_operation(
    name: str,
    logger: Optional[logging.Logger] = None,
    show_start: bool = True,
    show_end: bool = True,
) -> Generator[ExecutionTimer, None, None]:
    """
    Context manager for timing operations.

    Example:
        with time_operation("Re-evaluating icon 12", logger) as timer:
            ...
        elapsed = timer.elapsed_time
    """
    timer = ExecutionTimer(name, logger, show_start, show_end)
    with timer:
        yield timer


__all__ = [
    "LoggingConfig",
    "UserMode",
    "LogLevel",
    "ExecutionTimer",
    "time_operation",
    "setup_logging",
]
