"""
Performance Analytics Module

Folds per-trade P&L across a trade collection: equity curve, drawdown
series and summary, win rate, monthly breakdown, best/worst trades and
per-strategy results.

All functions are total: malformed trades count as zero P&L and empty
inputs produce zeroed results.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..config.logging import log_performance
from ..config.settings import AnalyticsSettings, get_settings
from ..journal.models import Trade
from .pnl import calculate_pnl, calculate_pnl_percent, resolve_exit_price

logger = logging.getLogger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class EquityPoint:
    """Account equity after one trade."""

    date: date
    equity: float
    pnl: float
    trade_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "equity": self.equity,
            "pnl": self.pnl,
            "tradeId": self.trade_id,
        }


@dataclass
class DrawdownPoint:
    """Drawdown from the running peak after one trade."""

    date: date
    equity: float
    peak: float
    drawdown: float  # percent, >= 0
    trade_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "equity": self.equity,
            "peak": self.peak,
            "drawdown": self.drawdown,
            "tradeId": self.trade_id,
        }


@dataclass
class DrawdownStats:
    """
    Drawdown summary.

    recovery_period is counted in trades (points), longest_drawdown_period
    in calendar days.
    """

    max_drawdown: float = 0.0
    max_drawdown_date: Optional[date] = None
    recovery_period: int = 0
    current_drawdown: float = 0.0
    longest_drawdown_period: int = 0
    average_drawdown: float = 0.0
    risk_level: str = "Low"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "maxDrawdown": self.max_drawdown,
            "maxDrawdownDate": (
                self.max_drawdown_date.isoformat() if self.max_drawdown_date else None
            ),
            "recoveryPeriod": self.recovery_period,
            "currentDrawdown": self.current_drawdown,
            "longestDrawdownPeriod": self.longest_drawdown_period,
            "averageDrawdown": self.average_drawdown,
            "riskLevel": self.risk_level,
        }


@dataclass
class DrawdownAnalysis:
    """Drawdown series plus summary."""

    points: List[DrawdownPoint] = field(default_factory=list)
    stats: DrawdownStats = field(default_factory=DrawdownStats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "points": [p.to_dict() for p in self.points],
            "stats": self.stats.to_dict(),
        }


@dataclass
class MonthlyPerformance:
    """Aggregates for one calendar month, keyed by exit date."""

    month: str  # YYYY-MM
    label: str  # e.g. "Mar 2026"
    pnl: float
    pnl_percent: float
    win_rate: float
    trade_count: int
    average_return: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "label": self.label,
            "pnl": self.pnl,
            "pnlPercent": self.pnl_percent,
            "winRate": self.win_rate,
            "tradeCount": self.trade_count,
            "averageReturn": self.average_return,
        }


@dataclass
class TradeReturn:
    """Reference to a trade together with its realized return."""

    trade_id: str
    symbol: str
    percent: float
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tradeId": self.trade_id,
            "symbol": self.symbol,
            "percent": self.percent,
            "amount": self.amount,
        }


@dataclass
class BestWorstTrades:
    best: Optional[TradeReturn] = None
    worst: Optional[TradeReturn] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best": self.best.to_dict() if self.best else None,
            "worst": self.worst.to_dict() if self.worst else None,
        }


@dataclass
class StrategyPerformance:
    """Closed-trade results for one strategy."""

    strategy: str
    trade_count: int
    wins: int
    win_rate: float
    pnl: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "tradeCount": self.trade_count,
            "wins": self.wins,
            "winRate": self.win_rate,
            "pnl": self.pnl,
        }


@dataclass
class StopLossRange:
    """Spread of stop distances, as percent of entry price."""

    minimum: float = 0.0
    maximum: float = 0.0
    count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"min": self.minimum, "max": self.maximum, "count": self.count}


UNSPECIFIED_STRATEGY = "Unspecified"


# =============================================================================
# Equity & Drawdown
# =============================================================================


def _chronological(trades: Sequence[Trade]) -> List[Trade]:
    # sorted() is stable, so same-day trades keep their input order
    return sorted(trades, key=lambda t: t.entry_date)


def calculate_equity_curve(
    trades: Sequence[Trade],
    initial_capital: Optional[float] = None,
) -> List[EquityPoint]:
    """
    Running equity, one point per trade in entry-date order.

    Gaps between trades are not interpolated.
    """
    if initial_capital is None:
        initial_capital = get_settings().initial_capital

    equity = float(initial_capital)
    points = []
    for trade in _chronological(trades):
        pnl = calculate_pnl(trade)
        equity += pnl
        points.append(
            EquityPoint(date=trade.entry_date, equity=equity, pnl=pnl, trade_id=trade.id)
        )
    return points


def classify_drawdown_risk(
    max_drawdown: float,
    settings: Optional[AnalyticsSettings] = None,
) -> str:
    """Low / Moderate / High band for a max drawdown percentage."""
    settings = settings or get_settings()
    if max_drawdown <= settings.drawdown_low_threshold:
        return "Low"
    if max_drawdown <= settings.drawdown_moderate_threshold:
        return "Moderate"
    return "High"


@log_performance(threshold_ms=250)
def calculate_drawdown(
    trades: Sequence[Trade],
    initial_capital: Optional[float] = None,
    settings: Optional[AnalyticsSettings] = None,
) -> DrawdownAnalysis:
    """
    Drawdown series and summary from the equity curve.

    The peak starts at initial capital. A drawdown episode starts at the
    first trade below the peak and closes at the trade that sets a new
    peak; its length is the calendar days between their entry dates.

    Args:
        trades: Trades in any order
        initial_capital: Starting equity (settings.initial_capital if None)
        settings: Source of the risk-level thresholds

    Returns:
        DrawdownAnalysis
    """
    settings = settings or get_settings()
    if initial_capital is None:
        initial_capital = settings.initial_capital

    curve = calculate_equity_curve(trades, initial_capital)
    if not curve:
        return DrawdownAnalysis()

    peak = float(initial_capital)
    episode_start: Optional[date] = None
    longest_period = 0
    max_drawdown = 0.0
    max_index: Optional[int] = None
    points: List[DrawdownPoint] = []

    for i, point in enumerate(curve):
        if point.equity > peak:
            peak = point.equity
            if episode_start is not None:
                duration = (point.date - episode_start).days
                longest_period = max(longest_period, duration)
                episode_start = None

        if peak > 0 and point.equity < peak:
            drawdown = (peak - point.equity) / peak * 100
        else:
            drawdown = 0.0

        if drawdown > 0 and episode_start is None:
            episode_start = point.date

        if drawdown > max_drawdown:
            max_drawdown = drawdown
            max_index = i

        points.append(
            DrawdownPoint(
                date=point.date,
                equity=point.equity,
                peak=peak,
                drawdown=drawdown,
                trade_id=point.trade_id,
            )
        )

    recovery_period = 0
    if max_index is not None:
        for j in range(max_index + 1, len(points)):
            if points[j].drawdown == 0:
                recovery_period = j - max_index
                break

    in_drawdown = [p.drawdown for p in points if p.drawdown > 0]
    average_drawdown = float(np.mean(in_drawdown)) if in_drawdown else 0.0

    stats = DrawdownStats(
        max_drawdown=max_drawdown,
        max_drawdown_date=points[max_index].date if max_index is not None else None,
        recovery_period=recovery_period,
        current_drawdown=points[-1].drawdown,
        longest_drawdown_period=longest_period,
        average_drawdown=average_drawdown,
        risk_level=classify_drawdown_risk(max_drawdown, settings),
    )

    logger.debug(
        f"Drawdown over {len(points)} trades: max {max_drawdown:.2f}%",
        extra={"ctx_trade_count": len(points)},
    )
    return DrawdownAnalysis(points=points, stats=stats)


def equity_curve_to_frame(points: Sequence[EquityPoint]) -> pd.DataFrame:
    """Equity curve as a DataFrame indexed by date."""
    columns = ["equity", "pnl", "trade_id"]
    if not points:
        return pd.DataFrame(columns=columns, index=pd.DatetimeIndex([], name="date"))

    df = pd.DataFrame(
        {
            "date": pd.to_datetime([p.date for p in points]),
            "equity": [p.equity for p in points],
            "pnl": [p.pnl for p in points],
            "trade_id": [p.trade_id for p in points],
        }
    )
    return df.set_index("date")


# =============================================================================
# Win Rate
# =============================================================================


def _counts(trade: Trade) -> bool:
    # Zero-quantity trades stay out of every denominator
    return trade.is_closed and trade.quantity > 0


def calculate_win_rate(trades: Sequence[Trade]) -> float:
    """Percentage of closed trades with positive P&L; 0 when none are closed."""
    closed = [t for t in trades if _counts(t)]
    if not closed:
        return 0.0
    wins = sum(1 for t in closed if calculate_pnl(t) > 0)
    return wins / len(closed) * 100


# =============================================================================
# Monthly Breakdown
# =============================================================================


def calculate_monthly_performance(
    trades: Sequence[Trade],
    initial_capital: Optional[float] = None,
    as_of: Optional[date] = None,
    months: Optional[int] = None,
) -> List[MonthlyPerformance]:
    """
    Trailing monthly breakdown ending at the month of as_of.

    Trades are bucketed by exit_date; trades without one are excluded.
    Every month in the window is returned, oldest first, including
    months with no trades.

    Args:
        trades: Trades in any order
        initial_capital: Base for pnl_percent (settings.initial_capital if None)
        as_of: Reference date for the window (today if None)
        months: Window length (settings.monthly_window_months if None)
    """
    settings = get_settings()
    if initial_capital is None:
        initial_capital = settings.initial_capital
    if months is None:
        months = settings.monthly_window_months
    if as_of is None:
        as_of = date.today()

    end = pd.Period(as_of, freq="M")
    window = [end - offset for offset in range(months - 1, -1, -1)]

    buckets: Dict[pd.Period, List[Trade]] = {period: [] for period in window}
    for trade in trades:
        if trade.exit_date is None:
            continue
        period = pd.Period(trade.exit_date, freq="M")
        if period in buckets:
            buckets[period].append(trade)

    results = []
    for period in window:
        month_trades = buckets[period]
        pnl = float(sum(calculate_pnl(t) for t in month_trades))
        closed = [t for t in month_trades if _counts(t)]
        wins = sum(1 for t in closed if calculate_pnl(t) > 0)

        results.append(
            MonthlyPerformance(
                month=period.strftime("%Y-%m"),
                label=period.strftime("%b %Y"),
                pnl=pnl,
                pnl_percent=pnl / initial_capital * 100 if initial_capital > 0 else 0.0,
                win_rate=wins / len(closed) * 100 if closed else 0.0,
                trade_count=len(closed),
                average_return=pnl / len(closed) if closed else 0.0,
            )
        )
    return results


# =============================================================================
# Best/Worst & Strategies
# =============================================================================


def find_best_worst_trades(trades: Sequence[Trade]) -> BestWorstTrades:
    """
    Closed trades with the highest and lowest percentage return.

    Multi-exit trades are ranked by their average exit price.
    """
    candidates = [
        TradeReturn(
            trade_id=t.id,
            symbol=t.symbol,
            percent=calculate_pnl_percent(t),
            amount=calculate_pnl(t),
        )
        for t in trades
        if t.is_closed and t.entry_price and resolve_exit_price(t) is not None
    ]
    if not candidates:
        return BestWorstTrades()

    return BestWorstTrades(
        best=max(candidates, key=lambda r: r.percent),
        worst=min(candidates, key=lambda r: r.percent),
    )


def calculate_strategy_performance(trades: Sequence[Trade]) -> List[StrategyPerformance]:
    """Closed-trade count, wins, win rate and P&L per strategy, best first."""
    rows = [
        {
            "strategy": t.strategy or UNSPECIFIED_STRATEGY,
            "pnl": calculate_pnl(t),
        }
        for t in trades
        if _counts(t)
    ]
    if not rows:
        return []

    df = pd.DataFrame(rows)
    df["win"] = df["pnl"] > 0
    grouped = (
        df.groupby("strategy", sort=False)
        .agg(trade_count=("pnl", "size"), wins=("win", "sum"), pnl=("pnl", "sum"))
        .reset_index()
        .sort_values("pnl", ascending=False, kind="mergesort")
    )

    return [
        StrategyPerformance(
            strategy=row.strategy,
            trade_count=int(row.trade_count),
            wins=int(row.wins),
            win_rate=int(row.wins) / int(row.trade_count) * 100,
            pnl=float(row.pnl),
        )
        for row in grouped.itertuples(index=False)
    ]


def calculate_stop_loss_range(trades: Sequence[Trade]) -> StopLossRange:
    """Tightest and widest stop distance among closed trades with a stop."""
    distances = [
        abs(t.stop_loss - t.entry_price) / t.entry_price * 100
        for t in trades
        if t.is_closed and t.stop_loss is not None and t.entry_price
    ]
    if not distances:
        return StopLossRange()
    return StopLossRange(
        minimum=float(np.min(distances)),
        maximum=float(np.max(distances)),
        count=len(distances),
    )
