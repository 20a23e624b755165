"""Tests for exit aggregation."""

import pytest

from tradelog.analytics.exits import ExitSummary, aggregate_exits
from tradelog.core.errors import DataIntegrityError, ErrorCodes


class TestAggregateExits:
    """Tests for aggregate_exits."""

    def test_weighted_average_exit_price(self, make_trade, make_exit):
        trade = make_trade(
            exits=[
                make_exit("e1", price=105.0, quantity=4.0),
                make_exit("e2", price=95.0, quantity=6.0),
            ]
        )
        summary = aggregate_exits(trade)

        assert summary.total_exited_quantity == 10.0
        assert summary.average_exit_price == pytest.approx(99.0)
        assert summary.remaining_quantity == 0.0
        assert summary.exit_count == 2
        assert summary.is_fully_exited

    def test_no_exits(self, make_trade):
        summary = aggregate_exits(make_trade())

        assert summary.total_exited_quantity == 0
        assert summary.average_exit_price is None
        assert summary.total_exit_fees == 0
        assert summary.remaining_quantity == 10.0
        assert not summary.is_fully_exited

    def test_partial_exit_leaves_remainder(self, make_trade, make_exit):
        trade = make_trade(exits=[make_exit(quantity=3.0, fees=1.5)])
        summary = aggregate_exits(trade)

        assert summary.remaining_quantity == 7.0
        assert summary.total_exit_fees == 1.5
        assert not summary.is_fully_exited

    def test_explicit_exits_override_trade_exits(self, make_trade, make_exit):
        trade = make_trade(exits=[make_exit(quantity=10.0)])
        summary = aggregate_exits(trade, [make_exit(quantity=2.0, price=120.0)])

        assert summary.total_exited_quantity == 2.0
        assert summary.average_exit_price == 120.0

    def test_over_exit_raises(self, make_trade, make_exit):
        """A negative remainder is surfaced, never clamped."""
        trade = make_trade(
            exits=[make_exit("e1", quantity=8.0), make_exit("e2", quantity=4.0)]
        )
        with pytest.raises(DataIntegrityError) as exc_info:
            aggregate_exits(trade)

        assert exc_info.value.error_code is ErrorCodes.DATA_INTEGRITY_VIOLATION
        assert exc_info.value.context["exited_quantity"] == 12.0

    def test_float_noise_counts_as_fully_exited(self, make_trade, make_exit):
        trade = make_trade(
            quantity=0.3,
            exits=[make_exit("e1", quantity=0.1), make_exit("e2", quantity=0.2)],
        )
        summary = aggregate_exits(trade)

        assert summary.remaining_quantity == 0.0
        assert summary.is_fully_exited

    def test_to_dict(self):
        summary = ExitSummary(
            total_exited_quantity=4.0,
            average_exit_price=105.0,
            total_exit_fees=1.0,
            remaining_quantity=6.0,
            exit_count=1,
        )
        d = summary.to_dict()
        assert d["totalExitedQuantity"] == 4.0
        assert d["averageExitPrice"] == 105.0
        assert d["remainingQuantity"] == 6.0
