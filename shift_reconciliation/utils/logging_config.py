"""
Logging configuration - Logging setup for reconciliation runs.
Implements structured logging with file and console handlers.
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Optional

from config.constants import LOG_FORMAT, LOG_DATE_FORMAT


ROOT_LOGGER_NAME = "shift_reconciliation"


def setup_logging(log_level: str = "INFO",
                  log_dir: Optional[str] = "logs",
                  log_file: str = "shift_reconciliation.log",
                  max_file_size: int = 10 * 1024 * 1024,  # 10MB
                  backup_count: int = 5,
                  console_output: bool = True) -> logging.Logger:
    """
    Set up logging for the package logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files; None disables the file handler
        log_file: Name of the log file
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of backup files to keep
        console_output: Whether to output logs to console

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Clear any existing handlers
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(
        fmt=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT
    )

    log_file_path = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

        # File handler with rotation
        log_file_path = os.path.join(log_dir, log_file)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file_path,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)  # File gets all messages
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.info(f"Logging initialized - Level: {log_level}, File: {log_file_path or 'disabled'}")

    return logger


def configure_third_party_loggers(level: str = "WARNING") -> None:
    """
    Configure logging levels for third-party libraries to reduce noise.

    Args:
        level: Logging level to set for third-party libraries
    """
    third_party_loggers = [
        'pandas',
        'numpy',
    ]

    for logger_name in third_party_loggers:
        logging.getLogger(logger_name).setLevel(getattr(logging, level.upper()))


class TimedOperation:
    """
    Context manager for timing operations and logging performance.
    """

    def __init__(self, logger: logging.Logger, operation_name: str,
                 log_entry: bool = True, log_exit: bool = True):
        self.logger = logger
        self.operation_name = operation_name
        self.log_entry = log_entry
        self.log_exit = log_exit
        self.start_time = None
        self.duration = None

    def __enter__(self):
        self.start_time = datetime.now()
        if self.log_entry:
            self.logger.info(f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        end_time = datetime.now()
        self.duration = (end_time - self.start_time).total_seconds()

        if exc_type is not None:
            self.logger.error(f"Failed {self.operation_name} after {self.duration:.2f}s: {exc_val}")
        elif self.log_exit:
            self.logger.info(f"Completed {self.operation_name} in {self.duration:.2f}s")
