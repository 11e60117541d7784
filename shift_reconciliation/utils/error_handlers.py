"""
Error handling utilities - Custom exceptions and graceful error handling.
Fatal pipeline errors carry an exit code so the CLI can report them consistently.
"""

import sys
import functools
import logging
from typing import Any, Callable, Dict, List, Optional
from enum import Enum


class ExitCode(Enum):
    """Exit codes for the application"""
    SUCCESS = 0
    GENERAL_ERROR = 1
    DATA_ERROR = 2
    CONFIG_ERROR = 3
    FILE_NOT_FOUND = 4
    VALIDATION_ERROR = 5
    MAPPING_ERROR = 6


class ReconciliationError(Exception):
    """Base exception class for the shift reconciliation engine"""

    def __init__(self, message: str, exit_code: ExitCode = ExitCode.GENERAL_ERROR,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code
        self.details = details or {}

    def __str__(self):
        base_msg = super().__str__()
        if self.details:
            details_str = ", ".join([f"{k}={v}" for k, v in self.details.items()])
            return f"{base_msg} (Details: {details_str})"
        return base_msg


class DataIngestionError(ReconciliationError):
    """Exception raised while reading CSV content"""

    def __init__(self, message: str, line_number: Optional[int] = None, **kwargs):
        details = kwargs
        if line_number:
            details['line_number'] = line_number

        super().__init__(message, ExitCode.DATA_ERROR, details)


class MissingColumnError(DataIngestionError):
    """A required canonical column is absent from the CSV header"""

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"Missing required column: {column}")


class EmptyCsvError(DataIngestionError):
    """The CSV has no header or no data rows"""

    def __init__(self, message: str = "CSV file is empty or has no data rows"):
        super().__init__(message)


class DataValidationError(ReconciliationError):
    """Exception raised when a present value cannot be interpreted"""

    def __init__(self, message: str, invalid_value: Optional[str] = None, **kwargs):
        details = kwargs
        self.invalid_value = invalid_value

        super().__init__(message, ExitCode.VALIDATION_ERROR, details)


class InvalidTimeFormatError(DataValidationError):
    """A clock time on an otherwise-present row is unparseable"""

    def __init__(self, value: str):
        super().__init__(f"Invalid time format: {value}", invalid_value=value)


class InvalidDateFormatError(DataValidationError):
    """A shift date is not an ISO YYYY-MM-DD date"""

    def __init__(self, value: str):
        super().__init__(f"Invalid date format: {value}", invalid_value=value)


class ColumnMappingError(ReconciliationError):
    """Exception raised when CSV columns cannot be mapped to the canonical schema"""

    def __init__(self, message: str, unmapped_fields: Optional[List[str]] = None, **kwargs):
        self.unmapped_fields = unmapped_fields or []
        details = kwargs
        if self.unmapped_fields:
            details['unmapped_fields'] = ", ".join(self.unmapped_fields)

        super().__init__(message, ExitCode.MAPPING_ERROR, details)


class ConfigurationError(ReconciliationError):
    """Exception raised for configuration-related errors"""

    def __init__(self, message: str, config_key: Optional[str] = None,
                 config_value: Optional[Any] = None, **kwargs):
        details = kwargs
        if config_key:
            details['config_key'] = config_key
        if config_value:
            details['config_value'] = config_value

        super().__init__(message, ExitCode.CONFIG_ERROR, details)


def handle_exceptions(exit_on_error: bool = True,
                      log_traceback: bool = True,
                      default_exit_code: ExitCode = ExitCode.GENERAL_ERROR):
    """
    Decorator for comprehensive exception handling.

    Args:
        exit_on_error: Whether to exit the application on unhandled exceptions
        log_traceback: Whether to log the full traceback
        default_exit_code: Default exit code for unhandled exceptions
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger("shift_reconciliation.error_handler")

            try:
                return func(*args, **kwargs)

            except ReconciliationError as e:
                logger.error(f"Application error in {func.__name__}: {str(e)}")

                if log_traceback:
                    logger.debug(f"Traceback for {func.__name__}:", exc_info=True)

                if exit_on_error:
                    logger.critical(f"Exiting with code {e.exit_code.value}")
                    sys.exit(e.exit_code.value)
                else:
                    raise

            except FileNotFoundError as e:
                error_msg = f"File not found in {func.__name__}: {str(e)}"
                logger.error(error_msg)

                if log_traceback:
                    logger.debug(f"Traceback for {func.__name__}:", exc_info=True)

                if exit_on_error:
                    logger.critical(f"Exiting with code {ExitCode.FILE_NOT_FOUND.value}")
                    sys.exit(ExitCode.FILE_NOT_FOUND.value)
                else:
                    raise ReconciliationError(error_msg, ExitCode.FILE_NOT_FOUND)

            except KeyboardInterrupt:
                logger.info("Operation interrupted by user")
                if exit_on_error:
                    sys.exit(130)  # Standard exit code for SIGINT
                else:
                    raise

            except Exception as e:
                error_msg = f"Unexpected error in {func.__name__}: {str(e)}"
                logger.error(error_msg)

                if log_traceback:
                    logger.error(f"Full traceback for {func.__name__}:", exc_info=True)

                if exit_on_error:
                    logger.critical(f"Exiting with code {default_exit_code.value}")
                    sys.exit(default_exit_code.value)
                else:
                    raise ReconciliationError(error_msg, default_exit_code)

        return wrapper
    return decorator
