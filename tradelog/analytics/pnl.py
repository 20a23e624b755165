"""
Profit/Loss Module

Realized P&L for a single trade, long or short, from either the itemized
exits or the legacy single-exit fields.

Currency P&L is net of fees; percentage P&L reflects the price move only.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from ..config.metrics import MetricNames, get_metrics
from ..core.errors import DataIntegrityError
from ..journal.models import Trade, TradeExit
from .exits import aggregate_exits

logger = logging.getLogger(__name__)


@dataclass
class PnLResult:
    """Signed realized P&L of one trade."""

    amount: float  # currency, net of fees
    percent: float  # price move relative to entry, fees excluded

    @property
    def is_win(self) -> bool:
        return self.amount > 0

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "percent": self.percent}


def _finite(value: float) -> float:
    """Replace NaN/Infinity with 0 so they never reach presentation."""
    return float(value) if np.isfinite(value) else 0.0


def is_malformed(trade: Trade) -> bool:
    """
    Structurally valid but inconsistent trade.

    Such trades contribute nothing to read-side analytics.
    """
    if trade.quantity < 0:
        return True
    if trade.entry_price is not None and trade.entry_price < 0:
        return True
    try:
        aggregate_exits(trade)
    except DataIntegrityError:
        return True
    return any(e.quantity < 0 or e.exit_price < 0 for e in trade.exits)


def _neutralize(trade: Trade) -> None:
    get_metrics().increment_counter(MetricNames.MALFORMED_TRADES_TOTAL)
    logger.warning(
        f"Trade {trade.id} ({trade.symbol}) is inconsistent; counting it as zero P&L",
        extra={"ctx_trade_id": trade.id},
    )


def calculate_exit_pnl(trade: Trade, trade_exit: TradeExit) -> float:
    """
    Signed P&L of a single exit, net of that exit's fees.

    Returns 0 when the trade has no usable entry price.
    """
    if not trade.entry_price:
        return 0.0
    move = trade.type.sign * (trade_exit.exit_price - trade.entry_price)
    return _finite(move * trade_exit.quantity - (trade_exit.fees or 0.0))


def calculate_pnl(trade: Trade) -> float:
    """
    Realized currency P&L of a trade.

    With exits, the sum of each exit's P&L net of its fees. Otherwise the
    legacy exit price against the full quantity, net of the trade's fees.
    Open trades without exit data return 0.
    """
    if not trade.entry_price or trade.quantity == 0:
        return 0.0
    if is_malformed(trade):
        _neutralize(trade)
        return 0.0

    if trade.has_exits:
        return _finite(sum(calculate_exit_pnl(trade, e) for e in trade.exits))

    if trade.exit_price is not None:
        move = trade.type.sign * (trade.exit_price - trade.entry_price)
        return _finite(move * trade.quantity - (trade.fees or 0.0))

    return 0.0


def resolve_exit_price(trade: Trade) -> Optional[float]:
    """Average exit price for multi-exit trades, else the legacy exit price."""
    if trade.has_exits:
        if is_malformed(trade):
            return None
        return aggregate_exits(trade).average_exit_price
    return trade.exit_price


def calculate_pnl_percent(trade: Trade) -> float:
    """
    Price move relative to entry, in percent, direction-adjusted.

    Fees are excluded. Multi-exit trades use the
    volume-weighted average exit price.
    """
    if not trade.entry_price or trade.quantity == 0:
        return 0.0
    if is_malformed(trade):
        return 0.0

    exit_price = resolve_exit_price(trade)
    if exit_price is None:
        return 0.0

    move = trade.type.sign * (exit_price - trade.entry_price)
    return _finite(move / trade.entry_price * 100)


def calculate_trade_pnl(trade: Trade) -> PnLResult:
    """Currency and percentage P&L of a trade."""
    return PnLResult(
        amount=calculate_pnl(trade),
        percent=calculate_pnl_percent(trade),
    )


def calculate_position_value(trade: Trade) -> float:
    """Entry cost of the full position."""
    if not trade.entry_price or not trade.quantity:
        return 0.0
    return trade.entry_price * trade.quantity


def calculate_position_size_percent(trade: Trade, total_capital: float) -> float:
    """Entry cost of the position as a percentage of total capital."""
    if not total_capital or total_capital <= 0:
        return 0.0
    return _finite(calculate_position_value(trade) / total_capital * 100)
