"""
Safe logging adapter for structlog/stdlib compatibility.
Provides a consistent interface for the disaster recovery engine, whether the
wrapped logger is a structlog logger or a standard library logger.
"""

from typing import Any, Optional
import logging
import sys

import structlog


_LEVEL_ALIASES = {
    "warn": "warning",
    "fatal": "critical",
}


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure structlog for the process.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ...)
        json_logs: Render JSON lines instead of the console renderer
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


class SafeLogger:
    """
    Safe logging adapter that handles both structlog and stdlib logging gracefully.
    Prevents kwarg issues with stdlib loggers by converting context to an extra dict.
    """

    def __init__(self, logger: Any):
        self._logger = logger
        self._is_structlog = hasattr(logger, 'bind')

    def _log(self, log_level: str, event: str, **kwargs) -> None:
        """
        Internal method to handle logging with proper formatting.

        Args:
            log_level: Log level (debug, info, warning, error, critical)
            event: Event name/message
            **kwargs: Additional context fields
        """
        if self._is_structlog:
            getattr(self._logger, log_level)(event, **kwargs)
            return

        special_kwargs = {}
        for key in ['exc_info', 'stack_info', 'stacklevel']:
            if key in kwargs:
                special_kwargs[key] = kwargs.pop(key)

        extra_dict = dict(kwargs.pop('extra', {}) or {})

        # Remaining kwargs go under 'fields' to avoid LogRecord attribute clashes
        if kwargs:
            extra_dict['fields'] = kwargs

        getattr(self._logger, log_level)(event, extra=extra_dict, **special_kwargs)

    def bind(self, **kwargs) -> 'SafeLogger':
        """
        Bind context to logger if structlog, otherwise return self.

        Args:
            **kwargs: Context to bind

        Returns:
            New SafeLogger with bound context (structlog) or self (stdlib)
        """
        if self._is_structlog:
            return SafeLogger(self._logger.bind(**kwargs))
        return self

    def debug(self, event: str, **kwargs) -> None:
        """Log a debug message with optional context."""
        self._log('debug', event, **kwargs)

    def info(self, event: str, **kwargs) -> None:
        """Log an info message with optional context."""
        self._log('info', event, **kwargs)

    def warning(self, event: str, **kwargs) -> None:
        """Log a warning message with optional context."""
        self._log('warning', event, **kwargs)

    def error(self, event: str, **kwargs) -> None:
        """Log an error message with optional context."""
        self._log('error', event, **kwargs)

    def critical(self, event: str, **kwargs) -> None:
        """Log a critical message with optional context."""
        self._log('critical', event, **kwargs)

    def log(self, level: str, message: str, category: Optional[str] = None, **metadata) -> None:
        """
        Log with a dynamic level name and a category.

        This is the logger contract consumed by the recovery orchestrator:
        ``log(level, message, category, metadata)``.

        Args:
            level: debug, info, warn/warning, error or critical
            message: Human readable message
            category: Logical category (e.g. "disaster-recovery")
            **metadata: Additional context fields
        """
        level_name = _LEVEL_ALIASES.get(level.lower(), level.lower())
        if level_name not in ('debug', 'info', 'warning', 'error', 'critical'):
            level_name = 'info'
        if category:
            metadata['category'] = category
        self._log(level_name, message, **metadata)

    # Alias warn to warning for compatibility
    warn = warning


def get_safe_logger(name: Optional[str] = None) -> SafeLogger:
    """
    Get a safe logger instance backed by structlog.

    Args:
        name: Optional logger name

    Returns:
        SafeLogger instance
    """
    logger = structlog.get_logger(name) if name else structlog.get_logger()
    return SafeLogger(logger)
