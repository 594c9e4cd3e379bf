"""
Central logging configuration for PropCare.
Provides setup functions and logger management.
"""

import logging

from ...config import settings
from .context import LogContextFilter
from .file_logger import FileLogger, configure_external_loggers, setup_file_logging
from .formatter import build_console_handler

ROOT_LOGGER_NAME = "propcare_backend"


class LoggingConfig:
    """Central logging configuration manager."""

    def __init__(self):
        self.file_logger: FileLogger | None = None
        self.context_filter: LogContextFilter | None = None
        self._is_configured = False

    def setup(
        self,
        log_to_file: bool = True,
        log_level: str = "INFO",
        log_file_path: str = "logs/app.log",
        use_json_format: bool = True,
        max_bytes: int = 50 * 1024 * 1024,
        backup_count: int = 5,
    ) -> logging.Logger:
        """
        Set up application logging.

        Args:
            log_to_file: Whether to enable file logging
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
            log_file_path: Path to the log file
            use_json_format: Whether to use JSON formatting
            max_bytes: Maximum file size before rotation
            backup_count: Number of backup files to keep

        Returns:
            Configured main logger instance
        """
        if self._is_configured:
            return get_logger()

        self.context_filter = LogContextFilter()
        main_logger = get_logger()
        main_logger.setLevel(getattr(logging, log_level.upper()))
        main_logger.handlers = []

        handler: logging.Handler | None = None
        if log_to_file:
            self.file_logger = setup_file_logging(
                log_file_path=log_file_path,
                log_level=log_level,
                use_json_format=use_json_format,
                max_bytes=max_bytes,
                backup_count=backup_count,
            )
            if self.file_logger:
                handler = self.file_logger.get_queue_handler()

        if handler is None:
            handler = build_console_handler(log_level, use_json_format)

        handler.addFilter(self.context_filter)
        main_logger.addHandler(handler)
        main_logger.propagate = False
        configure_external_loggers(handler)

        self._is_configured = True
        return main_logger

    def shutdown(self) -> None:
        """Shutdown logging gracefully."""
        if self.file_logger:
            self.file_logger.stop()
            self.file_logger = None
        self._is_configured = False


# Global logging configuration instance
_logging_config = LoggingConfig()


def setup_logging() -> logging.Logger:
    """Set up logging from the loaded settings."""
    return _logging_config.setup(
        log_to_file=settings.log_to_file,
        log_level=settings.log_level,
        log_file_path=settings.log_file_path,
        use_json_format=settings.log_format.lower() == "json",
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
    )


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a logger instance under the application namespace.

    Module names already inside the package (``propcare_backend.x.y``) are
    used as-is; anything else is prefixed.
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def shutdown_logging() -> None:
    """Shutdown logging gracefully."""
    _logging_config.shutdown()
