"""
Portfolio Analyzer Module

High-level journal analytics combining P&L, risk/reward, drawdown,
exposure and monthly performance into one summary. Trades come from the
caller or from an injected TradeDataProvider.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from ..config.logging import journal_context
from ..config.metrics import MetricNames, get_metrics, measure_time
from ..config.settings import AnalyticsSettings, get_settings
from ..core.errors import ConfigurationError
from ..journal.models import Trade
from ..journal.provider import TradeDataProvider
from .exposure import (
    ExposureSummary,
    StopLossStats,
    calculate_exposure,
    calculate_stop_loss_effectiveness,
)
from .performance import (
    BestWorstTrades,
    DrawdownAnalysis,
    EquityPoint,
    MonthlyPerformance,
    StopLossRange,
    StrategyPerformance,
    calculate_drawdown,
    calculate_equity_curve,
    calculate_monthly_performance,
    calculate_stop_loss_range,
    calculate_strategy_performance,
    calculate_win_rate,
    find_best_worst_trades,
)
from .risk_reward import calculate_average_risk_reward

logger = logging.getLogger(__name__)


@dataclass
class PortfolioSummary:
    """Summary of journal analytics."""

    as_of: date
    initial_capital: float
    final_equity: float
    total_pnl: float
    trade_count: int
    closed_trades: int
    open_trades: int
    win_rate: float
    average_risk_reward: float
    equity_curve: List[EquityPoint] = field(default_factory=list)
    drawdown: DrawdownAnalysis = field(default_factory=DrawdownAnalysis)
    exposure: Optional[ExposureSummary] = None
    stop_loss: StopLossStats = field(default_factory=StopLossStats)
    stop_loss_range: StopLossRange = field(default_factory=StopLossRange)
    monthly: List[MonthlyPerformance] = field(default_factory=list)
    best_worst: BestWorstTrades = field(default_factory=BestWorstTrades)
    strategies: List[StrategyPerformance] = field(default_factory=list)

    @property
    def total_return_percent(self) -> float:
        if self.initial_capital <= 0:
            return 0.0
        return self.total_pnl / self.initial_capital * 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "asOf": self.as_of.isoformat(),
            "initialCapital": self.initial_capital,
            "finalEquity": self.final_equity,
            "totalPnl": self.total_pnl,
            "totalReturnPercent": self.total_return_percent,
            "tradeCount": self.trade_count,
            "closedTrades": self.closed_trades,
            "openTrades": self.open_trades,
            "winRate": self.win_rate,
            "averageRiskReward": self.average_risk_reward,
            "equityCurve": [p.to_dict() for p in self.equity_curve],
            "drawdown": self.drawdown.to_dict(),
            "exposure": self.exposure.to_dict() if self.exposure else None,
            "stopLoss": self.stop_loss.to_dict(),
            "stopLossRange": self.stop_loss_range.to_dict(),
            "monthly": [m.to_dict() for m in self.monthly],
            "bestWorst": self.best_worst.to_dict(),
            "strategies": [s.to_dict() for s in self.strategies],
        }


class PortfolioAnalyzer:
    """
    Analyze a trading journal.

    Pure over its inputs: the provider, when given, is only used to fetch
    trades and user settings in analyze_user().
    """

    def __init__(
        self,
        provider: Optional[TradeDataProvider] = None,
        settings: Optional[AnalyticsSettings] = None,
    ):
        """
        Initialize portfolio analyzer.

        Args:
            provider: TradeDataProvider for analyze_user()
            settings: Analytics settings (cached environment settings if None)
        """
        self.provider = provider
        self.settings = settings or get_settings()
        logger.info("PortfolioAnalyzer initialized")

    @measure_time(MetricNames.ANALYSIS_DURATION_MS)
    def analyze(
        self,
        trades: Sequence[Trade],
        initial_capital: Optional[float] = None,
        as_of: Optional[date] = None,
        total_capital: Optional[float] = None,
        max_risk_amount: Optional[float] = None,
    ) -> PortfolioSummary:
        """
        Perform full journal analysis.

        Args:
            trades: Trades with their exits attached
            initial_capital: Starting equity for curve and drawdown
            as_of: Reference date for the monthly window (today if None)
            total_capital: Capital for exposure percentages
            max_risk_amount: Per-trade loss limit for flagging open positions

        Returns:
            PortfolioSummary with all analytics
        """
        if initial_capital is None:
            initial_capital = self.settings.initial_capital
        if total_capital is None:
            total_capital = self.settings.default_total_capital
        if as_of is None:
            as_of = date.today()

        metrics = get_metrics()
        metrics.increment_counter(MetricNames.ANALYSIS_RUNS_TOTAL)
        metrics.increment_counter(MetricNames.TRADES_ANALYZED_TOTAL, len(trades))

        equity_curve = calculate_equity_curve(trades, initial_capital)
        drawdown = calculate_drawdown(trades, initial_capital, self.settings)
        total_pnl = float(sum(p.pnl for p in equity_curve))
        closed = sum(1 for t in trades if t.is_closed)

        summary = PortfolioSummary(
            as_of=as_of,
            initial_capital=initial_capital,
            final_equity=equity_curve[-1].equity if equity_curve else initial_capital,
            total_pnl=total_pnl,
            trade_count=len(trades),
            closed_trades=closed,
            open_trades=len(trades) - closed,
            win_rate=calculate_win_rate(trades),
            average_risk_reward=calculate_average_risk_reward(
                trades, self.settings.risk_fallback_ratio
            ),
            equity_curve=equity_curve,
            drawdown=drawdown,
            exposure=calculate_exposure(trades, total_capital, max_risk_amount),
            stop_loss=calculate_stop_loss_effectiveness(trades),
            stop_loss_range=calculate_stop_loss_range(trades),
            monthly=calculate_monthly_performance(
                trades,
                initial_capital,
                as_of,
                self.settings.monthly_window_months,
            ),
            best_worst=find_best_worst_trades(trades),
            strategies=calculate_strategy_performance(trades),
        )

        metrics.set_gauge(MetricNames.MAX_DRAWDOWN_PERCENT, drawdown.stats.max_drawdown)
        logger.info(
            f"Analyzed {len(trades)} trades: P&L {total_pnl:.2f}, "
            f"win rate {summary.win_rate:.1f}%, "
            f"max drawdown {drawdown.stats.max_drawdown:.2f}%"
        )
        return summary

    def analyze_user(self, user_id: str, as_of: Optional[date] = None) -> PortfolioSummary:
        """
        Fetch a user's trades and settings through the provider and analyze.

        Raises:
            ConfigurationError: If the analyzer has no provider
        """
        if self.provider is None:
            raise ConfigurationError(detail="PortfolioAnalyzer has no trade provider")

        with journal_context(user_id=user_id, provider=self.provider.name):
            trades = self.provider.get_trades(user_id)
            user_settings = self.provider.get_user_settings(user_id)
            logger.debug(f"Analyzing {len(trades)} trades for user {user_id}")
            return self.analyze(
                trades,
                initial_capital=user_settings.total_capital,
                as_of=as_of,
                total_capital=user_settings.total_capital,
                max_risk_amount=user_settings.max_risk_amount(),
            )

