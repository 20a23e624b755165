"""
Trade Analytics Module

Exit aggregation, realized P&L, risk/reward, drawdown, exposure and
monthly performance over a collection of trades.
"""

from .exits import ExitSummary, aggregate_exits
from .exposure import (
    ExposureSummary,
    PositionExposure,
    StopLossStats,
    calculate_exposure,
    calculate_stop_loss_effectiveness,
)
from .performance import (
    BestWorstTrades,
    DrawdownAnalysis,
    DrawdownPoint,
    DrawdownStats,
    EquityPoint,
    MonthlyPerformance,
    StopLossRange,
    StrategyPerformance,
    TradeReturn,
    calculate_drawdown,
    calculate_equity_curve,
    calculate_monthly_performance,
    calculate_stop_loss_range,
    calculate_strategy_performance,
    calculate_win_rate,
    equity_curve_to_frame,
    find_best_worst_trades,
)
from .pnl import (
    PnLResult,
    calculate_exit_pnl,
    calculate_pnl,
    calculate_pnl_percent,
    calculate_position_size_percent,
    calculate_position_value,
    calculate_trade_pnl,
)
from .portfolio_analyzer import PortfolioAnalyzer, PortfolioSummary
from .risk_reward import (
    RiskRewardResult,
    calculate_average_risk_reward,
    calculate_potential_loss,
    calculate_reward,
    calculate_risk,
    calculate_risk_reward_ratio,
    evaluate_risk_reward,
    format_ratio,
)

__all__ = [
    # Main analyzer
    "PortfolioAnalyzer",
    "PortfolioSummary",
    # Exits
    "ExitSummary",
    "aggregate_exits",
    # P&L
    "PnLResult",
    "calculate_exit_pnl",
    "calculate_pnl",
    "calculate_pnl_percent",
    "calculate_trade_pnl",
    "calculate_position_value",
    "calculate_position_size_percent",
    # Risk/reward
    "RiskRewardResult",
    "calculate_risk",
    "calculate_reward",
    "calculate_risk_reward_ratio",
    "evaluate_risk_reward",
    "format_ratio",
    "calculate_average_risk_reward",
    "calculate_potential_loss",
    # Performance
    "EquityPoint",
    "DrawdownPoint",
    "DrawdownStats",
    "DrawdownAnalysis",
    "MonthlyPerformance",
    "TradeReturn",
    "BestWorstTrades",
    "StrategyPerformance",
    "StopLossRange",
    "calculate_equity_curve",
    "calculate_drawdown",
    "calculate_win_rate",
    "calculate_monthly_performance",
    "find_best_worst_trades",
    "calculate_strategy_performance",
    "calculate_stop_loss_range",
    "equity_curve_to_frame",
    # Exposure
    "ExposureSummary",
    "PositionExposure",
    "StopLossStats",
    "calculate_exposure",
    "calculate_stop_loss_effectiveness",
]
