"""Tests for trade status derivation and exit mutations."""

from datetime import date

import pytest

from tradelog.config.metrics import MetricNames, get_metrics
from tradelog.core.errors import (
    DataError,
    DataIntegrityError,
    ErrorCodes,
    ValidationError,
)
from tradelog.journal.lifecycle import (
    add_exit,
    derive_trade_status,
    remove_exit,
    update_exit,
    validate_exit,
)
from tradelog.journal.models import TradeStatus


# =============================================================================
# Status Derivation Tests
# =============================================================================


class TestDeriveTradeStatus:
    """Tests for derive_trade_status."""

    def test_full_exit_closes(self, make_trade, make_exit):
        exits = [
            make_exit("e1", price=105.0, quantity=4.0, exit_date=date(2026, 2, 1)),
            make_exit("e2", price=95.0, quantity=6.0, exit_date=date(2026, 2, 9)),
        ]
        update = derive_trade_status(make_trade(), exits)

        assert update.status is TradeStatus.CLOSED
        assert update.remaining_quantity == 0.0
        assert update.exit_price == pytest.approx(99.0)
        assert update.exit_date == date(2026, 2, 9)
        assert update.average_exit_price == pytest.approx(99.0)

    def test_last_exit_by_date_not_input_order(self, make_trade, make_exit):
        exits = [
            make_exit("e1", quantity=5.0, exit_date=date(2026, 3, 10)),
            make_exit("e2", quantity=5.0, exit_date=date(2026, 3, 5)),
        ]
        assert derive_trade_status(make_trade(), exits).exit_date == date(2026, 3, 10)

    def test_partial_exit_stays_open(self, make_trade, make_exit):
        trade = make_trade(exit_price=110.0, exit_date=date(2026, 2, 1))
        update = derive_trade_status(trade, [make_exit(quantity=4.0)])

        assert update.status is TradeStatus.OPEN
        assert update.remaining_quantity == 6.0
        assert update.exit_price is None
        assert update.exit_date is None

    def test_no_exits_keeps_legacy_close(self, make_trade):
        trade = make_trade(exit_price=110.0, exit_date=date(2026, 2, 1))
        update = derive_trade_status(trade)

        assert update.status is TradeStatus.CLOSED
        assert update.exit_price == 110.0
        assert update.exit_date == date(2026, 2, 1)

    def test_no_exits_open(self, make_trade):
        update = derive_trade_status(make_trade(), [])

        assert update.status is TradeStatus.OPEN
        assert update.remaining_quantity == 10.0

    def test_over_exit_raises(self, make_trade, make_exit):
        with pytest.raises(DataIntegrityError):
            derive_trade_status(make_trade(), [make_exit(quantity=11.0)])


# =============================================================================
# Exit Validation Tests
# =============================================================================


class TestValidateExit:
    """Tests for validate_exit."""

    def _code(self, exc_info):
        return exc_info.value.error_code

    def test_valid_exit(self, make_trade, make_exit):
        validate_exit(make_trade(), make_exit(quantity=10.0))

    def test_quantity_exceeds_remaining(self, make_trade, make_exit):
        trade = make_trade(exits=[make_exit("e1", quantity=6.0)])

        with pytest.raises(ValidationError) as exc_info:
            validate_exit(trade, make_exit("e2", quantity=5.0))

        assert self._code(exc_info) is ErrorCodes.VALIDATION_EXIT_QUANTITY_EXCEEDED
        assert exc_info.value.context["remaining_quantity"] == 4.0

    def test_nothing_remaining(self, make_trade, make_exit):
        trade = make_trade(exits=[make_exit("e1", quantity=10.0)])

        with pytest.raises(ValidationError) as exc_info:
            validate_exit(trade, make_exit("e2", quantity=1.0))

        assert self._code(exc_info) is ErrorCodes.VALIDATION_NO_REMAINING_QUANTITY

    def test_legacy_closed_trade_has_nothing_remaining(self, closed_trade, make_exit):
        with pytest.raises(ValidationError) as exc_info:
            validate_exit(closed_trade, make_exit(price=90.0, quantity=4.0))

        assert self._code(exc_info) is ErrorCodes.VALIDATION_NO_REMAINING_QUANTITY
        assert exc_info.value.context["exited_quantity"] == 10.0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"quantity": 0.0},
            {"quantity": -1.0},
            {"price": -5.0},
            {"fees": -1.0},
            {"fees": float("nan")},
            {"quantity": float("nan")},
        ],
    )
    def test_invalid_values(self, make_trade, make_exit, overrides):
        with pytest.raises(ValidationError) as exc_info:
            validate_exit(make_trade(), make_exit(**overrides))

        assert self._code(exc_info) is ErrorCodes.VALIDATION_INVALID_VALUE

    def test_trade_mismatch(self, make_trade, make_exit):
        with pytest.raises(ValidationError) as exc_info:
            validate_exit(make_trade(), make_exit(trade_id="other"))

        assert self._code(exc_info) is ErrorCodes.VALIDATION_TRADE_MISMATCH

    def test_replacing_exit_releases_its_quantity(self, make_trade, make_exit):
        trade = make_trade(exits=[make_exit("e1", quantity=10.0)])
        validate_exit(trade, make_exit("e1", quantity=8.0), replacing_exit_id="e1")

    def test_rejections_are_counted(self, make_trade, make_exit):
        with pytest.raises(ValidationError):
            validate_exit(make_trade(), make_exit(quantity=11.0))

        counter = get_metrics().get_counter(
            MetricNames.EXITS_REJECTED_TOTAL,
            labels={"reason": str(ErrorCodes.VALIDATION_EXIT_QUANTITY_EXCEEDED)},
        )
        assert counter == 1


# =============================================================================
# Exit Mutation Tests
# =============================================================================


class TestExitMutations:
    """Tests for add_exit, update_exit and remove_exit."""

    def test_add_partial_exit(self, make_trade, make_exit):
        trade = make_trade()
        updated = add_exit(trade, make_exit(quantity=4.0))

        assert updated.status is TradeStatus.OPEN
        assert updated.remaining_quantity == 6.0
        assert len(updated.exits) == 1
        # input untouched
        assert trade.exits == []
        assert trade.remaining_quantity is None

    def test_add_closing_exit(self, make_trade, make_exit):
        trade = add_exit(make_trade(), make_exit("e1", price=105.0, quantity=4.0))
        trade = add_exit(
            trade, make_exit("e2", price=95.0, quantity=6.0, exit_date=date(2026, 2, 20))
        )

        assert trade.status is TradeStatus.CLOSED
        assert trade.remaining_quantity == 0.0
        assert trade.exit_price == pytest.approx(99.0)
        assert trade.exit_date == date(2026, 2, 20)
        assert get_metrics().get_counter(MetricNames.EXITS_ACCEPTED_TOTAL) == 2

    def test_add_rejects_without_truncating(self, make_trade, make_exit):
        trade = add_exit(make_trade(), make_exit("e1", quantity=8.0))

        with pytest.raises(ValidationError):
            add_exit(trade, make_exit("e2", quantity=5.0))
        assert sum(e.quantity for e in trade.exits) == 8.0

    def test_add_to_legacy_closed_trade_keeps_close(self, closed_trade, make_exit):
        with pytest.raises(ValidationError):
            add_exit(closed_trade, make_exit(price=90.0, quantity=4.0))

        assert closed_trade.status is TradeStatus.CLOSED
        assert closed_trade.exit_price == 110.0
        assert closed_trade.exits == []

    def test_add_attaches_trade_and_user(self, make_trade, make_exit):
        updated = add_exit(make_trade(), make_exit(trade_id="", quantity=2.0))

        assert updated.exits[0].trade_id == "t1"
        assert updated.exits[0].user_id == "user-1"

    def test_update_reopens(self, make_trade, make_exit):
        trade = add_exit(make_trade(), make_exit("e1", quantity=4.0))
        trade = add_exit(trade, make_exit("e2", quantity=6.0))
        assert trade.status is TradeStatus.CLOSED

        updated = update_exit(trade, make_exit("e2", quantity=5.0))

        assert updated.status is TradeStatus.OPEN
        assert updated.remaining_quantity == 1.0
        assert updated.exit_price is None
        assert updated.exit_date is None
        assert [e.id for e in updated.exits] == ["e1", "e2"]

    def test_update_exceeding(self, make_trade, make_exit):
        trade = add_exit(make_trade(), make_exit("e1", quantity=4.0))
        trade = add_exit(trade, make_exit("e2", quantity=6.0))

        with pytest.raises(ValidationError) as exc_info:
            update_exit(trade, make_exit("e1", quantity=5.0))
        assert exc_info.value.error_code is ErrorCodes.VALIDATION_EXIT_QUANTITY_EXCEEDED

    def test_update_unknown_exit(self, make_trade, make_exit):
        with pytest.raises(DataError) as exc_info:
            update_exit(make_trade(), make_exit("missing", quantity=1.0))
        assert exc_info.value.error_code is ErrorCodes.DATA_NOT_FOUND

    def test_remove_reopens(self, make_trade, make_exit):
        trade = add_exit(make_trade(), make_exit("e1", quantity=4.0))
        trade = add_exit(trade, make_exit("e2", quantity=6.0))

        updated = remove_exit(trade, "e2")

        assert updated.status is TradeStatus.OPEN
        assert updated.remaining_quantity == 6.0
        assert updated.exit_price is None
        assert len(trade.exits) == 2

    def test_remove_last_exit(self, make_trade, make_exit):
        trade = add_exit(make_trade(), make_exit("e1", quantity=10.0))
        assert trade.status is TradeStatus.CLOSED

        updated = remove_exit(trade, "e1")

        assert updated.status is TradeStatus.OPEN
        assert updated.remaining_quantity == 10.0
        assert updated.exit_price is None
        assert updated.exit_date is None

    def test_remove_unknown_exit(self, make_trade):
        with pytest.raises(DataError) as exc_info:
            remove_exit(make_trade(), "missing")
        assert exc_info.value.error_code is ErrorCodes.DATA_NOT_FOUND
