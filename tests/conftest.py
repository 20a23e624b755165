"""
Shared test fixtures for tradelog test suite.
"""

from datetime import date

import pytest

from tradelog.config.metrics import get_metrics
from tradelog.config.settings import get_settings
from tradelog.journal.models import Trade, TradeExit, TradeStatus, TradeType


@pytest.fixture(autouse=True)
def reset_state(monkeypatch):
    """Fresh metrics and settings for every test."""
    for name in (
        "TRADELOG_INITIAL_CAPITAL",
        "TRADELOG_DEFAULT_TOTAL_CAPITAL",
        "TRADELOG_RISK_FALLBACK_RATIO",
        "TRADELOG_MONTHLY_WINDOW_MONTHS",
        "TRADELOG_DRAWDOWN_LOW_THRESHOLD",
        "TRADELOG_DRAWDOWN_MODERATE_THRESHOLD",
        "TRADELOG_LOG_LEVEL",
        "TRADELOG_LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)
    get_metrics().reset()
    get_settings.cache_clear()
    yield
    get_metrics().reset()
    get_settings.cache_clear()


@pytest.fixture
def make_trade():
    """Factory for trades; long AAPL 10 @ 100 entered 2026-01-05 by default."""

    def _make(**overrides):
        values = {
            "id": "t1",
            "user_id": "user-1",
            "symbol": "AAPL",
            "type": TradeType.LONG,
            "entry_date": date(2026, 1, 5),
            "entry_price": 100.0,
            "quantity": 10.0,
        }
        values.update(overrides)
        if "status" not in overrides and values.get("exit_price") is not None:
            values["status"] = TradeStatus.CLOSED
        return Trade(**values)

    return _make


@pytest.fixture
def make_exit():
    """Factory for exits on trade t1."""

    def _make(exit_id="e1", price=110.0, quantity=10.0, exit_date=date(2026, 2, 2), **overrides):
        values = {
            "id": exit_id,
            "trade_id": "t1",
            "exit_date": exit_date,
            "exit_price": price,
            "quantity": quantity,
        }
        values.update(overrides)
        return TradeExit(**values)

    return _make


@pytest.fixture
def closed_trade(make_trade):
    """Long 100 -> 110, 10 shares, 5 in fees."""
    return make_trade(exit_price=110.0, exit_date=date(2026, 1, 20), fees=5.0)


@pytest.fixture
def equity_trades(make_trade):
    """Three closed trades with P&Ls +100, -300, +50."""
    return [
        make_trade(id="t1", entry_date=date(2026, 1, 1), exit_price=110.0, exit_date=date(2026, 1, 1)),
        make_trade(id="t2", entry_date=date(2026, 1, 2), exit_price=70.0, exit_date=date(2026, 1, 2)),
        make_trade(id="t3", entry_date=date(2026, 1, 3), exit_price=105.0, exit_date=date(2026, 1, 3)),
    ]
