"""Logging infrastructure for the PropCare backend."""

from .context import (
    LogContextFilter,
    RequestContextMiddleware,
    get_actor_id,
    get_transaction_id,
    set_actor_id,
    set_transaction_id,
)
from .file_logger import FileLogger, configure_external_loggers, setup_file_logging
from .logger_config import get_logger, setup_logging, shutdown_logging

__all__ = [
    "FileLogger",
    "setup_file_logging",
    "configure_external_loggers",
    "get_logger",
    "setup_logging",
    "shutdown_logging",
    "LogContextFilter",
    "RequestContextMiddleware",
    "get_actor_id",
    "get_transaction_id",
    "set_actor_id",
    "set_transaction_id",
]
