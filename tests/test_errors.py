"""Tests for the error code registry and exception hierarchy."""

import pytest

from tradelog.core.errors import (
    ConfigurationError,
    DataError,
    DataIntegrityError,
    ErrorCategory,
    ErrorCodes,
    TradeLogError,
    ValidationError,
    create_error_response,
    wrap_exception,
)


class TestErrorCodes:
    def test_code_string(self):
        assert str(ErrorCodes.VALIDATION_EXIT_QUANTITY_EXCEEDED) == "VALIDATION_1002"
        assert str(ErrorCodes.DATA_INTEGRITY_VIOLATION) == "DATA_2003"


class TestTradeLogError:
    """Tests for TradeLogError and its subclasses."""

    def test_messages(self):
        error = ValidationError(
            ErrorCodes.VALIDATION_EXIT_QUANTITY_EXCEEDED,
            detail="Exit quantity 5 exceeds remaining 4",
        )

        assert error.code == "VALIDATION_1002"
        assert error.category is ErrorCategory.VALIDATION
        assert error.user_message.endswith("(Exit quantity 5 exceeds remaining 4)")
        assert error.technical_message.startswith("[VALIDATION_1002]")
        assert str(error) == error.technical_message

    def test_default_codes(self):
        assert ValidationError().error_code is ErrorCodes.VALIDATION_INVALID_VALUE
        assert DataError().error_code is ErrorCodes.DATA_NOT_FOUND
        assert DataIntegrityError().error_code is ErrorCodes.DATA_INTEGRITY_VIOLATION
        assert ConfigurationError().error_code is ErrorCodes.CONFIG_INVALID

    def test_hierarchy(self):
        assert issubclass(DataIntegrityError, DataError)
        assert issubclass(DataError, TradeLogError)
        assert issubclass(ValidationError, TradeLogError)

    def test_to_dict(self):
        error = DataError(detail="Exit e9 not found", context={"exit_id": "e9"})

        d = error.to_dict()
        assert d["code"] == "DATA_2001"
        assert d["category"] == "DATA"
        assert "debug" not in d

        debug = error.to_dict(include_debug=True)
        assert debug["debug"]["context"] == {"exit_id": "e9"}

    def test_cause_in_debug_output(self):
        try:
            raise ValueError("boom")
        except ValueError as e:
            error = TradeLogError(original_error=e)

        assert error.error_code is ErrorCodes.SYSTEM_INTERNAL_ERROR
        assert "ValueError: boom" in error.to_dict(include_debug=True)["debug"]["cause"]

    def test_log(self, caplog):
        error = DataIntegrityError(detail="exits exceed quantity")
        with caplog.at_level("DEBUG", logger="tradelog.core.errors"):
            error.log()

        assert caplog.records[-1].levelname == "ERROR"
        assert caplog.records[-1].ctx_error_code == "DATA_2003"


class TestErrorUtilities:
    def test_create_error_response(self):
        response = create_error_response(ValidationError())

        assert response["success"] is False
        assert response["data"] is None
        assert response["error"]["code"] == "VALIDATION_1001"

    @pytest.mark.parametrize(
        "exception,expected",
        [
            (KeyError("x"), ErrorCodes.DATA_NOT_FOUND),
            (TypeError("x"), ErrorCodes.DATA_INVALID_FORMAT),
            (ValueError("x"), ErrorCodes.VALIDATION_INVALID_VALUE),
            (RuntimeError("x"), ErrorCodes.SYSTEM_INTERNAL_ERROR),
        ],
    )
    def test_wrap_exception(self, exception, expected):
        assert wrap_exception(exception).error_code is expected

    def test_wrap_passes_through(self):
        error = DataError()
        assert wrap_exception(error) is error


    def test_debug_response_has_no_cause_without_original(self):
        response = create_error_response(DataError(detail="Exit e9 not found"), debug_mode=True)
        assert response["error"]["debug"]["cause"] is None


class TestSeverity:
    @pytest.mark.parametrize(
        "error,level",
        [
            (ValidationError(ErrorCodes.VALIDATION_EXIT_QUANTITY_EXCEEDED), "INFO"),
            (ValidationError(ErrorCodes.VALIDATION_TRADE_MISMATCH), "WARNING"),
            (ConfigurationError(), "CRITICAL"),
        ],
    )
    def test_log_level_follows_severity(self, error, level, caplog):
        with caplog.at_level("DEBUG", logger="tradelog.core.errors"):
            error.log()
        assert caplog.records[-1].levelname == level
