# pdp_engine/utils/logger.py
"""Logging utilities for the pdp_engine package.

This module provides centralized logging configuration with a structured
line format, optional rotating log files and timer helpers.
"""

import logging
import logging.handlers
import sys
import json
import time
from pathlib import Path
from typing import Optional, Dict, Any, Union
from datetime import datetime
import threading

from .exceptions import FileOperationError

ROOT_LOGGER_NAME = 'pdp_engine'


class PDPEngineFormatter(logging.Formatter):
    """Formatter producing one structured line per record.

    Includes timestamp, level, logger name and, when present, the
    ``context`` and ``duration`` attributes attached through ``extra``.
    """

    def __init__(self, include_context: bool = True) -> None:
        """Initialize formatter.

        Args:
            include_context: Whether to include context fields in output
        """
        self.include_context = include_context
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record.

        Args:
            record: Log record to format

        Returns:
            Formatted log string
        """
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        level = record.levelname
        module = record.name
        message = record.getMessage()

        context_str = ""
        if self.include_context and hasattr(record, 'context'):
            context_str = f" | Context: {json.dumps(record.context, default=str)}"

        perf_str = ""
        if hasattr(record, 'duration'):
            perf_str = f" | Duration: {record.duration:.3f}s"

        return f"[{timestamp}] {level:8s} | {module:28s} | {message}{context_str}{perf_str}"


class PerformanceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds named timers."""

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None) -> None:
        """Initialize performance adapter.

        Args:
            logger: Base logger instance
            extra: Additional context to include in all log messages
        """
        super().__init__(logger, extra or {})
        self._timers: Dict[str, float] = {}

    def process(self, msg: Any, kwargs: Any) -> Any:
        # Keep caller-supplied extra instead of replacing it with self.extra
        extra = dict(self.extra)
        extra.update(kwargs.get('extra') or {})
        kwargs['extra'] = extra
        return msg, kwargs

    def start_timer(self, name: str) -> None:
        """Start a named timer.

        Args:
            name: Timer name for later reference
        """
        self._timers[name] = time.perf_counter()
        self.debug(f"Timer '{name}' started", extra={'context': {'timer_action': 'start', 'timer_name': name}})

    def stop_timer(self, name: str) -> float:
        """Stop a named timer and return duration.

        Args:
            name: Timer name to stop

        Returns:
            Duration in seconds

        Raises:
            ValueError: If timer was not started
        """
        if name not in self._timers:
            raise ValueError(f"Timer '{name}' was not started")

        duration = time.perf_counter() - self._timers.pop(name)

        self.info(f"Timer '{name}' completed (Duration: {duration:.3f}s)", extra={
            'context': {'timer_action': 'stop', 'timer_name': name},
            'duration': duration
        })

        return duration


class PDPEngineLogger:
    """Centralized logger management for pdp_engine.

    Owns the package root logger and hands out child loggers, optionally
    wrapped in a :class:`PerformanceLoggerAdapter`.
    """

    _loggers: Dict[str, logging.Logger] = {}
    _configured: bool = False
    _lock = threading.Lock()

    @classmethod
    def configure(
        cls,
        level: Union[str, int] = logging.WARNING,
        log_file: Optional[Union[str, Path]] = None,
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        format_style: str = "detailed",
        include_console: bool = True,
        force: bool = False
    ) -> None:
        """Configure package-wide logging settings.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Optional log file path
            max_file_size: Maximum log file size before rotation
            backup_count: Number of backup files to keep
            format_style: Formatting style ('simple' or 'detailed')
            include_console: Whether to include console output
            force: Reconfigure even if logging was configured before
        """
        with cls._lock:
            if cls._configured and not force:
                return

            if isinstance(level, str):
                level = getattr(logging, level.upper())

            root_logger = logging.getLogger(ROOT_LOGGER_NAME)
            root_logger.setLevel(level)
            root_logger.handlers.clear()

            formatter = PDPEngineFormatter(include_context=format_style == "detailed")

            if include_console:
                console_handler = logging.StreamHandler(sys.stdout)
                console_handler.setLevel(level)
                console_handler.setFormatter(formatter)
                root_logger.addHandler(console_handler)

            if log_file:
                try:
                    log_path = Path(log_file)
                    log_path.parent.mkdir(parents=True, exist_ok=True)

                    file_handler = logging.handlers.RotatingFileHandler(
                        log_path,
                        maxBytes=max_file_size,
                        backupCount=backup_count,
                        encoding='utf-8'
                    )
                    file_handler.setLevel(level)
                    file_handler.setFormatter(formatter)
                    root_logger.addHandler(file_handler)

                except OSError as e:
                    raise FileOperationError(
                        f"Failed to create log file handler: {log_file}",
                        error_code="LOG_FILE_SETUP_FAILED",
                        context={'log_file': str(log_file), 'error': str(e)}
                    ) from e

            cls._configured = True

    @classmethod
    def get_logger(
        cls,
        name: str,
        with_performance: bool = False
    ) -> Union[logging.Logger, PerformanceLoggerAdapter]:
        """Get a logger instance for the specified module.

        Args:
            name: Logger name (typically __name__)
            with_performance: Whether to return performance-enhanced logger

        Returns:
            Logger instance, optionally with performance tracking
        """
        if not cls._configured:
            cls.configure()

        if not name.startswith(ROOT_LOGGER_NAME):
            if name == '__main__':
                name = f'{ROOT_LOGGER_NAME}.main'
            else:
                name = f'{ROOT_LOGGER_NAME}.{name}'

        if name not in cls._loggers:
            cls._loggers[name] = logging.getLogger(name)
        logger = cls._loggers[name]

        if with_performance:
            return PerformanceLoggerAdapter(logger)

        return logger

    @classmethod
    def set_level(cls, level: Union[str, int]) -> None:
        """Change logging level for all package loggers.

        Args:
            level: New logging level
        """
        if isinstance(level, str):
            level = getattr(logging, level.upper())

        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(level)

        for handler in root_logger.handlers:
            handler.setLevel(level)


def get_logger(name: str, with_performance: bool = False) -> Union[logging.Logger, PerformanceLoggerAdapter]:
    """Get a logger instance for the specified module.

    Args:
        name: Logger name (typically __name__)
        with_performance: Whether to return performance-enhanced logger

    Returns:
        Logger instance, optionally with performance tracking

    Example:
        >>> from pdp_engine.utils.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Grid built")
    """
    return PDPEngineLogger.get_logger(name, with_performance)


def configure_logging(
    level: Union[str, int] = logging.WARNING,
    log_file: Optional[Union[str, Path]] = None,
    **kwargs: Any
) -> None:
    """Configure package-wide logging settings.

    Args:
        level: Logging level
        log_file: Optional log file path
        **kwargs: Additional configuration options

    Example:
        >>> from pdp_engine.utils.logger import configure_logging
        >>> configure_logging(level="INFO", log_file="logs/pdp.log", force=True)
    """
    PDPEngineLogger.configure(level=level, log_file=log_file, **kwargs)


def set_log_level(level: Union[str, int]) -> None:
    """Change logging level for all package loggers."""
    PDPEngineLogger.set_level(level)


class temporary_log_level:
    """Context manager for temporary log level changes.

    Example:
        >>> with temporary_log_level("DEBUG"):
        ...     partial(model, X, ["x"])
    """

    def __init__(self, level: Union[str, int]) -> None:
        if isinstance(level, str):
            level = getattr(logging, level.upper())
        self.temp_level = level
        self.original_level: Optional[int] = None

    def __enter__(self) -> None:
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.original_level = root_logger.level
        PDPEngineLogger.set_level(self.temp_level)

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.original_level is not None:
            PDPEngineLogger.set_level(self.original_level)
