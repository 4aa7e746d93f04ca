"""
Structured logger used by the Dispatcher and the dump adapter.

Keyword arguments become record fields; sensitive values (tokens,
passwords, Authorization headers) are masked before they reach a handler.
"""

import logging
from typing import Any, List, Optional

from .config import LoggingConfig, LogLevel
from .formatters import get_formatter
from .filters import RequestIdFilter, StaticFieldsFilter
from .handlers import create_console_handler, create_file_handler
from ...utils.sanitizer import mask_sensitive_data


class FetchLogger:
    """
    Logger with field-style calls.

    Example:
        >>> logger = FetchLogger(LoggingConfig.create(level="DEBUG", format="json"))
        >>> logger.info("Request completed", method="GET", status_code=200)
    """

    def __init__(self, config: Optional[LoggingConfig] = None):
        self.config = config or LoggingConfig()
        self.name = self.config.logger_name
        self._closed = False
        self._handlers: List[logging.Handler] = []

        level = self._get_level(self.config.level)

        self._logger = logging.getLogger(self.name)
        self._logger.setLevel(level)
        self._logger.propagate = False

        # Reconfiguring the same name replaces the previous handlers
        for handler in self._logger.handlers[:]:
            self._logger.removeHandler(handler)
            handler.close()

        filters = []
        if self.config.enable_request_id:
            filters.append(RequestIdFilter())
        if self.config.extra_fields:
            filters.append(StaticFieldsFilter(self.config.extra_fields))

        formatter = get_formatter(self.config.format.value)

        if self.config.enable_console:
            self._handlers.append(create_console_handler(level, formatter, filters))

        if self.config.enable_file and self.config.file_path:
            self._handlers.append(create_file_handler(
                file_path=self.config.file_path,
                level=level,
                formatter=formatter,
                max_bytes=self.config.max_bytes,
                backup_count=self.config.backup_count,
                filters=filters
            ))

        for handler in self._handlers:
            self._logger.addHandler(handler)

    @staticmethod
    def _get_level(level: LogLevel) -> int:
        return getattr(logging, level.value)

    def is_enabled_for(self, level: int) -> bool:
        return not self._closed and self._logger.isEnabledFor(level)

    def log(self, level: int, message: str, **kwargs: Any) -> None:
        """Log `message` at a numeric level with masked fields."""
        if self._closed:
            return
        self._logger.log(level, message, extra=mask_sensitive_data(kwargs))

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log(logging.ERROR, message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        if self._closed:
            return
        self._logger.exception(message, extra=mask_sensitive_data(kwargs))

    def close(self) -> None:
        """
        Flush and close the handlers this logger installed. Idempotent.
        """
        if self._closed:
            return

        for handler in self._handlers:
            try:
                handler.flush()
                handler.close()
            except (OSError, ValueError):
                # Stream already closed
                pass
            self._logger.removeHandler(handler)

        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


_default_logger: Optional[FetchLogger] = None


def get_logger(config: Optional[LoggingConfig] = None) -> FetchLogger:
    """
    Shared logger instance; `config` is only used on the first call.
    """
    global _default_logger

    if _default_logger is None:
        _default_logger = FetchLogger(config)

    return _default_logger


def configure_logging(config: LoggingConfig) -> FetchLogger:
    """Replace the shared logger with one built from `config`."""
    global _default_logger
    if _default_logger is not None:
        _default_logger.close()
    _default_logger = FetchLogger(config)
    return _default_logger
