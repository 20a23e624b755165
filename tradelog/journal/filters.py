"""
Trade List Filters

Narrow a trade collection by entry-date window, symbol, strategy, status
and realized outcome. Date windows are relative to an explicit reference
date so results do not depend on the clock.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import List, Optional, Sequence

import pandas as pd

from ..analytics.pnl import calculate_pnl
from .models import Trade, TradeStatus

logger = logging.getLogger(__name__)


class DateRange(Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class ProfitRange(Enum):
    ALL = "all"
    PROFIT = "profit"
    LOSS = "loss"


@dataclass
class TradeFilter:
    """Filter criteria; None or ALL means no restriction."""

    date_range: DateRange = DateRange.ALL
    symbol: Optional[str] = None
    strategy: Optional[str] = None
    status: Optional[TradeStatus] = None
    profit_range: ProfitRange = ProfitRange.ALL


def date_range_start(date_range: DateRange, as_of: date) -> Optional[date]:
    """First entry date inside the window, or None for ALL."""
    if date_range is DateRange.TODAY:
        return as_of
    if date_range is DateRange.WEEK:
        return as_of - timedelta(days=7)
    if date_range is DateRange.MONTH:
        return (pd.Timestamp(as_of) - pd.DateOffset(months=1)).date()
    if date_range is DateRange.YEAR:
        return (pd.Timestamp(as_of) - pd.DateOffset(years=1)).date()
    return None


def _matches_profit(trade: Trade, profit_range: ProfitRange) -> bool:
    if profit_range is ProfitRange.ALL:
        return True
    pnl = calculate_pnl(trade)
    if profit_range is ProfitRange.PROFIT:
        return pnl > 0
    return pnl < 0


def filter_trades(
    trades: Sequence[Trade],
    criteria: Optional[TradeFilter] = None,
    as_of: Optional[date] = None,
) -> List[Trade]:
    """
    Apply filter criteria, preserving input order.

    Args:
        trades: Trades to filter
        criteria: TradeFilter (no filtering if None)
        as_of: Reference date for date windows (today if None)

    Returns:
        Matching trades
    """
    if criteria is None:
        return list(trades)
    if as_of is None:
        as_of = date.today()

    start = date_range_start(criteria.date_range, as_of)
    symbol = criteria.symbol.strip().upper() if criteria.symbol else None

    result = []
    for trade in trades:
        if start is not None and not (start <= trade.entry_date <= as_of):
            continue
        if symbol and trade.symbol != symbol:
            continue
        if criteria.strategy and trade.strategy != criteria.strategy:
            continue
        if criteria.status is not None and trade.status is not criteria.status:
            continue
        if not _matches_profit(trade, criteria.profit_range):
            continue
        result.append(trade)

    logger.debug(f"Filtered {len(trades)} trades down to {len(result)}")
    return result
