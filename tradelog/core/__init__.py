"""
Tradelog Core Module

Error codes and the exception hierarchy shared by every module.
"""

from .errors import (
    ConfigurationError,
    DataError,
    DataIntegrityError,
    ErrorCategory,
    ErrorCode,
    ErrorCodes,
    ErrorSeverity,
    TradeLogError,
    ValidationError,
    create_error_response,
    wrap_exception,
)

__all__ = [
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorCode",
    "ErrorCodes",
    "TradeLogError",
    "ValidationError",
    "DataError",
    "DataIntegrityError",
    "ConfigurationError",
    "create_error_response",
    "wrap_exception",
]
