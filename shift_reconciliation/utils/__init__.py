"""
Utility modules for shift reconciliation.

This package contains cross-cutting utility modules that provide common functionality
across different components of the reconciliation engine.
"""

from .error_handlers import (
    ReconciliationError,
    DataIngestionError,
    MissingColumnError,
    EmptyCsvError,
    DataValidationError,
    InvalidTimeFormatError,
    InvalidDateFormatError,
    ColumnMappingError,
    ConfigurationError,
)
from .logging_config import setup_logging, TimedOperation

__all__ = [
    # Error handling
    "ReconciliationError",
    "DataIngestionError",
    "MissingColumnError",
    "EmptyCsvError",
    "DataValidationError",
    "InvalidTimeFormatError",
    "InvalidDateFormatError",
    "ColumnMappingError",
    "ConfigurationError",
    # Logging
    "setup_logging",
    "TimedOperation",
]
