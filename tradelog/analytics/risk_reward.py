"""
Risk/Reward Module

Risk (entry vs stop-loss), reward (entry vs best exit, legacy exit or
take-profit target) and their ratio. Ratios are always positive multiples,
displayed as "1:X".
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import numpy as np

from ..config.settings import get_settings
from ..journal.models import Trade, TradeType

logger = logging.getLogger(__name__)


@dataclass
class RiskRewardResult:
    """Risk, reward and their ratio for one trade."""

    risk: Optional[float]
    reward: float
    ratio: Optional[float]
    used_fallback: bool = False

    @property
    def formatted(self) -> str:
        return format_ratio(self.ratio)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk": self.risk,
            "reward": self.reward,
            "ratio": self.ratio,
            "usedFallback": self.used_fallback,
            "formatted": self.formatted,
        }


def calculate_risk(trade: Trade) -> Optional[float]:
    """Distance from entry to stop-loss, or None without both prices."""
    if not trade.entry_price or trade.stop_loss is None:
        return None
    return abs(trade.entry_price - trade.stop_loss)


def calculate_reward(trade: Trade) -> float:
    """
    Reward in price terms, by priority:

    1. best exit in the favorable direction (max for long, min for short)
    2. legacy exit price
    3. take-profit target
    4. 0
    """
    if not trade.entry_price:
        return 0.0

    if trade.has_exits:
        prices = [e.exit_price for e in trade.exits]
        best = max(prices) if trade.type is TradeType.LONG else min(prices)
        return abs(best - trade.entry_price)

    if trade.exit_price is not None:
        return abs(trade.exit_price - trade.entry_price)

    if trade.take_profit is not None:
        return abs(trade.take_profit - trade.entry_price)

    return 0.0


def evaluate_risk_reward(
    trade: Trade,
    fallback_ratio: Optional[float] = None,
) -> RiskRewardResult:
    """
    Evaluate risk, reward and ratio for a trade.

    Without a stop-loss, risk is assumed to be reward × fallback_ratio
    (settings.risk_fallback_ratio when not given).

    Args:
        trade: Trade to evaluate
        fallback_ratio: Risk as a fraction of reward when there is no stop

    Returns:
        RiskRewardResult with ratio None when risk or reward is not positive
    """
    if fallback_ratio is None:
        fallback_ratio = get_settings().risk_fallback_ratio

    reward = calculate_reward(trade)
    risk = calculate_risk(trade)
    used_fallback = False

    if risk is None and reward > 0:
        risk = reward * fallback_ratio
        used_fallback = True

    ratio: Optional[float] = None
    if risk is not None and risk > 0 and reward > 0:
        value = reward / risk
        if np.isfinite(value):
            ratio = float(value)

    return RiskRewardResult(
        risk=risk,
        reward=reward,
        ratio=ratio,
        used_fallback=used_fallback,
    )


def calculate_risk_reward_ratio(
    trade: Trade,
    fallback_ratio: Optional[float] = None,
) -> Optional[float]:
    """Reward/risk multiple, or None when not computable."""
    return evaluate_risk_reward(trade, fallback_ratio).ratio


def format_ratio(ratio: Optional[float]) -> str:
    """Format as "1:X.XX", or "N/A" when there is no ratio."""
    if ratio is None:
        return "N/A"
    return f"1:{ratio:.2f}"


def calculate_average_risk_reward(
    trades: Sequence[Trade],
    fallback_ratio: Optional[float] = None,
) -> float:
    """Mean ratio across closed trades that have one; 0 when none do."""
    ratios = [
        r
        for r in (
            calculate_risk_reward_ratio(t, fallback_ratio)
            for t in trades
            if t.is_closed
        )
        if r is not None
    ]
    if not ratios:
        return 0.0
    return float(np.mean(ratios))


def calculate_potential_loss(trade: Trade) -> float:
    """
    Loss if an open position were stopped out now.

    Direction-aware and computed on the remaining quantity; negative when
    the stop already locks in a profit. 0 for closed trades or without a stop.
    """
    if not trade.is_open or trade.stop_loss is None or not trade.entry_price:
        return 0.0
    move = trade.type.sign * (trade.entry_price - trade.stop_loss)
    return move * trade.effective_remaining_quantity
