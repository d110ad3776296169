"""
Centralized logging configuration for the print server.

This module provides thread-aware logging with automatic thread context
in all log messages. Queue lookups and job cleanup run on worker threads
of the serving layer, so every line says which thread produced it.

Features:
    - Automatic thread name and ID in all log messages
    - Console output on stderr (always enabled)
    - Rotating file log when system.conf names a LogFile
    - Mapping from the LogLevel directive to logging levels
    - Helper functions for getting loggers with consistent naming

Log Format:
    2026-10-18 10:15:30 [INFO    ] [MainThread] print_server.services.queue_registry - Loading printers from "/etc/ippserver/print".
    2026-10-18 10:15:31 [DEBUG   ] [JobCleanup] print_server.services.cleanup_service - Cleaning old jobs.

Usage:
    # At server startup, once system.conf has been read
    from logging_config import setup_logging, get_logger, level_for

    setup_logging(log_level=level_for(config.log_level), log_file=config.log_file)

    # In modules
    logger = get_logger(__name__)
    logger.info("This message includes thread context automatically")
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from models.server_config import LogLevel


APP_LOGGER_NAME = "print_server"

_LEVELS = {
    LogLevel.ERROR: logging.ERROR,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}


# =============================================================================
# THREAD CONTEXT FILTER
# =============================================================================

class ThreadContextFilter(logging.Filter):
    """
    Stamp each record with the emitting thread.

    Adds ``thread_name`` ("MainThread", "JobCleanup", a serving worker) and
    ``thread_id``. Never drops a record.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        thread = threading.current_thread()
        record.thread_name = thread.name
        record.thread_id = thread.ident or threading.get_ident()
        return True


# =============================================================================
# LOGGING SETUP
# =============================================================================

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# LogFile rotation
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def level_for(log_level: LogLevel) -> int:
    """
    Translate a LogLevel directive value to a logging level.

    Args:
        log_level: Value parsed from the LogLevel directive

    Returns:
        logging.ERROR, logging.INFO or logging.DEBUG
    """
    return _LEVELS[log_level]


def _attach(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(ThreadContextFilter())
    logger.addHandler(handler)


def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Configure server logging with thread context.

    Called once with defaults at startup, then again after system.conf has
    been read so that LogLevel and LogFile take effect. Each call replaces
    the handlers installed by the previous one.

    Handlers:
        - stderr, always; this is the operator-facing stream
        - a rotating file when log_file is given (LogFile directive)

    Args:
        app_name: Name of the root logger (default: "print_server")
        log_level: Minimum log level (default: INFO)
        log_file: Log file path, or None to log to stderr only

    Returns:
        Configured root logger instance

    Example:
        setup_logging(log_level=level_for(LogLevel.DEBUG), log_file="/var/log/ippserver.log")
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    _attach(logger, logging.StreamHandler(sys.stderr), log_level)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _attach(
            logger,
            RotatingFileHandler(
                filename=log_path,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
            ),
            log_level,
        )
        logger.info(f'Logging to "{log_path}".')

    logger.debug(f"Log level is {logging.getLevelName(log_level)}.")
    return logger


# =============================================================================
# LOGGER FACTORY FUNCTIONS
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger with the application namespace.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance with thread context support

    Example:
        # In services/queue_registry.py
        logger = get_logger(__name__)
        # Logger name: "print_server.services.queue_registry"
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"

    return logging.getLogger(name)


def set_thread_name(name: str) -> None:
    """
    Set the name of the current thread.

    This name appears in log messages in the [thread_name] field.

    Args:
        name: Thread name to display in logs
    """
    threading.current_thread().name = name
