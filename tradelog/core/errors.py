"""
Tradelog Error Handling Module

Coded errors for the write boundary (creating and editing exits) and for
inconsistent stored data found by the analytics core.

Every error carries an ErrorCode from the ErrorCodes registry. The code's
string form (e.g. ``VALIDATION_1002``) is stable and safe to show to
clients and to use as a metric label.
"""

import logging
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Tuple, Type

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    VALIDATION = "VALIDATION"
    DATA = "DATA"
    CONFIG = "CONFIG"
    SYSTEM = "SYSTEM"


class ErrorSeverity(IntEnum):
    """Severity; values are the stdlib logging levels used by TradeLogError.log()."""

    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


@dataclass(frozen=True)
class ErrorCode:
    """One registry entry."""

    number: int
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    recovery_hint: str = ""

    def __str__(self) -> str:
        return f"{self.category.value}_{self.number}"


class ErrorCodes:
    """
    Registry of tradelog error codes.

    1xxx validation, 2xxx data, 3xxx configuration, 9xxx internal.
    """

    VALIDATION_INVALID_VALUE = ErrorCode(
        1001,
        ErrorCategory.VALIDATION,
        ErrorSeverity.INFO,
        message="Field value is invalid",
        user_message="One of the values is not valid.",
        recovery_hint="Prices and fees must be non-negative, quantities positive.",
    )
    VALIDATION_EXIT_QUANTITY_EXCEEDED = ErrorCode(
        1002,
        ErrorCategory.VALIDATION,
        ErrorSeverity.INFO,
        message="Exit quantity exceeds remaining position size",
        user_message="Exit quantity cannot exceed the remaining position size.",
        recovery_hint="Reduce the exit quantity or edit an existing exit.",
    )
    VALIDATION_NO_REMAINING_QUANTITY = ErrorCode(
        1003,
        ErrorCategory.VALIDATION,
        ErrorSeverity.INFO,
        message="Trade has no remaining quantity to exit",
        user_message="This position is already fully exited.",
        recovery_hint="Edit or delete an existing exit instead.",
    )
    VALIDATION_TRADE_MISMATCH = ErrorCode(
        1004,
        ErrorCategory.VALIDATION,
        ErrorSeverity.WARNING,
        message="Exit does not belong to this trade",
        user_message="The exit refers to a different trade.",
        recovery_hint="Check the trade identifier on the exit.",
    )

    DATA_NOT_FOUND = ErrorCode(
        2001,
        ErrorCategory.DATA,
        ErrorSeverity.INFO,
        message="Requested record not found",
        user_message="The requested record is not available.",
        recovery_hint="Verify the identifier is correct.",
    )
    DATA_INVALID_FORMAT = ErrorCode(
        2002,
        ErrorCategory.DATA,
        ErrorSeverity.WARNING,
        message="Record format is invalid or unexpected",
        user_message="The stored record could not be read.",
        recovery_hint="Check the record for missing or malformed fields.",
    )
    DATA_INTEGRITY_VIOLATION = ErrorCode(
        2003,
        ErrorCategory.DATA,
        ErrorSeverity.ERROR,
        message="Exited quantity exceeds trade quantity",
        user_message="This trade's exits add up to more than its size.",
        recovery_hint="Edit or delete the exits so they sum to at most the trade quantity.",
    )

    CONFIG_INVALID = ErrorCode(
        3001,
        ErrorCategory.CONFIG,
        ErrorSeverity.CRITICAL,
        message="Invalid analytics configuration",
        user_message="The analytics settings are not valid.",
        recovery_hint="Check TRADELOG_* environment variables.",
    )

    SYSTEM_INTERNAL_ERROR = ErrorCode(
        9001,
        ErrorCategory.SYSTEM,
        ErrorSeverity.CRITICAL,
        message="Internal error",
        user_message="Something went wrong.",
        recovery_hint="Try again or report the problem.",
    )


# =============================================================================
# Exceptions
# =============================================================================


class TradeLogError(Exception):
    """
    Base exception for tradelog.

    Subclasses only choose a default code; pass an explicit ErrorCode to
    narrow it (e.g. ValidationError(ErrorCodes.VALIDATION_TRADE_MISMATCH)).

    Attributes:
        error_code: Registry entry
        detail: Specifics appended to the registry message
        context: Identifiers of the records involved (trade_id, exit_id, ...)
        original_error: Lower-level exception this one was raised from
    """

    default_code: ErrorCode = ErrorCodes.SYSTEM_INTERNAL_ERROR

    def __init__(
        self,
        error_code: Optional[ErrorCode] = None,
        detail: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ):
        self.error_code = error_code or self.default_code
        self.detail = detail
        self.context = dict(context or {})
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.technical_message)

    @property
    def code(self) -> str:
        return str(self.error_code)

    @property
    def category(self) -> ErrorCategory:
        return self.error_code.category

    @property
    def severity(self) -> ErrorSeverity:
        return self.error_code.severity

    @property
    def user_message(self) -> str:
        if not self.detail:
            return self.error_code.user_message
        return f"{self.error_code.user_message} ({self.detail})"

    @property
    def technical_message(self) -> str:
        head = f"[{self.code}] {self.error_code.message}"
        return f"{head}: {self.detail}" if self.detail else head

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        """
        Client-facing representation.

        With include_debug, also the technical message, context and the
        formatted traceback of original_error.
        """
        data: Dict[str, Any] = {
            "code": self.code,
            "category": self.category.value,
            "message": self.user_message,
            "recovery_hint": self.error_code.recovery_hint,
            "timestamp": self.timestamp.isoformat(),
        }
        if include_debug:
            data["debug"] = {
                "technical_message": self.technical_message,
                "context": self.context,
                "cause": self._format_cause(),
            }
        return data

    def _format_cause(self) -> Optional[str]:
        if self.original_error is None:
            return None
        err = self.original_error
        return "".join(traceback.format_exception(type(err), err, err.__traceback__))

    def log(self) -> None:
        """Log at the level given by the code's severity."""
        logger.log(
            int(self.severity),
            self.technical_message,
            extra={"ctx_error_code": self.code, "ctx_context": self.context},
        )


class ValidationError(TradeLogError):
    """Rejected write: invalid exit or trade input."""

    default_code = ErrorCodes.VALIDATION_INVALID_VALUE


class DataError(TradeLogError):
    """Stored record missing or unreadable."""

    default_code = ErrorCodes.DATA_NOT_FOUND


class DataIntegrityError(DataError):
    """A trade's exits add up to more than its quantity."""

    default_code = ErrorCodes.DATA_INTEGRITY_VIOLATION


class ConfigurationError(TradeLogError):
    default_code = ErrorCodes.CONFIG_INVALID


# =============================================================================
# Helpers
# =============================================================================

_WRAPPED: Tuple[Tuple[Type[BaseException], ErrorCode], ...] = (
    (KeyError, ErrorCodes.DATA_NOT_FOUND),
    (TypeError, ErrorCodes.DATA_INVALID_FORMAT),
    (ValueError, ErrorCodes.VALIDATION_INVALID_VALUE),
)


def wrap_exception(
    exception: BaseException,
    default_code: ErrorCode = ErrorCodes.SYSTEM_INTERNAL_ERROR,
) -> TradeLogError:
    """
    Convert any exception into a TradeLogError.

    TradeLogErrors pass through unchanged. KeyError, TypeError and
    ValueError get data/validation codes; anything else gets default_code.
    """
    if isinstance(exception, TradeLogError):
        return exception

    error_code = next(
        (code for exc_type, code in _WRAPPED if isinstance(exception, exc_type)),
        default_code,
    )
    return TradeLogError(error_code, detail=str(exception), original_error=exception)


def create_error_response(error: TradeLogError, debug_mode: bool = False) -> Dict[str, Any]:
    """Failure envelope for a presentation layer: success flag, no data, the error."""
    return {
        "success": False,
        "data": None,
        "error": error.to_dict(include_debug=debug_mode),
    }


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
