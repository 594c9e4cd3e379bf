"""
File logging configuration with queue-based writing and rotation.
Provides non-blocking file logging with automatic rotation.
"""

import logging
import os
import queue
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler

from .formatter import build_console_handler, build_formatter


class FileLogger:
    """Queue-based file logger with rotation capabilities."""

    def __init__(
        self,
        log_file_path: str = "logs/app.log",
        max_bytes: int = 50 * 1024 * 1024,  # 50MB
        backup_count: int = 5,
        log_level: str = "INFO",
        use_json_format: bool = True,
    ):
        self.log_file_path = log_file_path
        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self.log_level = log_level
        self.use_json_format = use_json_format
        self._log_queue: queue.Queue = queue.Queue()
        self._listener: QueueListener | None = None
        self._queue_handler: QueueHandler | None = None

        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

    def setup_file_handler(self) -> RotatingFileHandler:
        """Set up rotating file handler with appropriate formatter."""
        file_handler = RotatingFileHandler(
            self.log_file_path, maxBytes=self.max_bytes, backupCount=self.backup_count
        )
        file_handler.setLevel(getattr(logging, self.log_level.upper()))
        file_handler.setFormatter(build_formatter(self.use_json_format))
        return file_handler

    def start_queue_listener(self, handlers: list[logging.Handler]) -> None:
        """Start the queue listener with provided handlers."""
        self._listener = QueueListener(
            self._log_queue, *handlers, respect_handler_level=True
        )
        self._listener.start()

    def get_queue_handler(self) -> QueueHandler:
        """Get the queue handler for adding to loggers."""
        if self._queue_handler is None:
            self._queue_handler = QueueHandler(self._log_queue)
            self._queue_handler.setLevel(getattr(logging, self.log_level.upper()))
        return self._queue_handler

    def stop(self) -> None:
        """Stop the queue listener gracefully."""
        if self._listener:
            self._listener.stop()
            self._listener = None


def setup_file_logging(
    log_file_path: str = "logs/app.log",
    log_level: str = "INFO",
    use_json_format: bool = True,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 5,
) -> FileLogger | None:
    """
    Set up file logging with queue-based writing.

    Returns:
        FileLogger instance, or None if the log file could not be opened
    """
    try:
        file_logger = FileLogger(
            log_file_path=log_file_path,
            max_bytes=max_bytes,
            backup_count=backup_count,
            log_level=log_level,
            use_json_format=use_json_format,
        )
        file_logger.start_queue_listener(
            [
                build_console_handler(log_level, use_json_format),
                file_logger.setup_file_handler(),
            ]
        )
        return file_logger

    except OSError as e:
        logging.error(f"Failed to setup file logging: {e}")
        return None


def configure_external_loggers(handler: logging.Handler) -> None:
    """Route external library loggers through our handler."""
    external_loggers = {
        "sqlalchemy": logging.WARNING,
        "aiosqlite": logging.WARNING,
        "asyncmy": logging.WARNING,
        "uvicorn": logging.INFO,
        "fastapi": logging.INFO,
    }

    for logger_name, level in external_loggers.items():
        ext_logger = logging.getLogger(logger_name)
        ext_logger.handlers.clear()
        ext_logger.addHandler(handler)
        ext_logger.propagate = False
        ext_logger.setLevel(level)

    logging.captureWarnings(True)
    warnings_logger = logging.getLogger("py.warnings")
    warnings_logger.handlers.clear()
    warnings_logger.addHandler(handler)
    warnings_logger.propagate = False
    warnings_logger.setLevel(logging.WARNING)
