"""
tradelog - trade journal analytics.

Realized P&L, risk/reward, drawdown, exposure and monthly performance for
a personal trading journal, plus validation of exit mutations.
"""

from .analytics import (
    PortfolioAnalyzer,
    PortfolioSummary,
    aggregate_exits,
    calculate_drawdown,
    calculate_equity_curve,
    calculate_exposure,
    calculate_monthly_performance,
    calculate_pnl,
    calculate_pnl_percent,
    calculate_risk_reward_ratio,
    calculate_stop_loss_effectiveness,
    calculate_trade_pnl,
    calculate_win_rate,
    find_best_worst_trades,
    format_ratio,
)
from .config.settings import AnalyticsSettings, get_settings
from .core.errors import (
    ConfigurationError,
    DataError,
    DataIntegrityError,
    TradeLogError,
    ValidationError,
)
from .journal.filters import TradeFilter, filter_trades
from .journal.lifecycle import add_exit, derive_trade_status, remove_exit, update_exit, validate_exit
from .journal.models import Market, Trade, TradeExit, TradeStatus, TradeType
from .journal.provider import InMemoryTradeProvider, TradeDataProvider, UserSettings

__version__ = "0.1.0"

__all__ = [
    # Records
    "Trade",
    "TradeExit",
    "TradeType",
    "TradeStatus",
    "Market",
    # Lifecycle
    "derive_trade_status",
    "validate_exit",
    "add_exit",
    "update_exit",
    "remove_exit",
    # Analytics
    "PortfolioAnalyzer",
    "PortfolioSummary",
    "aggregate_exits",
    "calculate_pnl",
    "calculate_pnl_percent",
    "calculate_trade_pnl",
    "calculate_risk_reward_ratio",
    "format_ratio",
    "calculate_equity_curve",
    "calculate_drawdown",
    "calculate_win_rate",
    "calculate_exposure",
    "calculate_stop_loss_effectiveness",
    "calculate_monthly_performance",
    "find_best_worst_trades",
    # Data access
    "TradeDataProvider",
    "InMemoryTradeProvider",
    "UserSettings",
    "TradeFilter",
    "filter_trades",
    # Configuration & errors
    "AnalyticsSettings",
    "get_settings",
    "TradeLogError",
    "ValidationError",
    "DataError",
    "DataIntegrityError",
    "ConfigurationError",
]
