"""
Exposure Module

Capital committed to open positions and how well stop-losses held on
closed ones.

Exposure aggregates use absolute magnitudes, so a short and a long of the
same size add up rather than cancel. The signed net figure is reported
separately for the position-level view.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..config.settings import get_settings
from ..journal.models import Trade, TradeType
from .pnl import calculate_pnl, resolve_exit_price
from .risk_reward import calculate_potential_loss

logger = logging.getLogger(__name__)


@dataclass
class PositionExposure:
    """One open position."""

    trade_id: str
    symbol: str
    type: TradeType
    remaining_quantity: float
    entry_price: float
    market_value: float  # absolute
    potential_loss: float
    exposure_percent: float
    exceeds_risk_limit: bool = False

    @property
    def signed_value(self) -> float:
        return self.type.sign * self.market_value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tradeId": self.trade_id,
            "symbol": self.symbol,
            "type": self.type.value,
            "remainingQuantity": self.remaining_quantity,
            "entryPrice": self.entry_price,
            "marketValue": self.market_value,
            "signedValue": self.signed_value,
            "potentialLoss": self.potential_loss,
            "exposurePercent": self.exposure_percent,
            "exceedsRiskLimit": self.exceeds_risk_limit,
        }


@dataclass
class ExposureSummary:
    """Aggregate exposure of all open positions."""

    total_capital: float
    total_exposure: float = 0.0
    net_exposure: float = 0.0
    long_exposure: float = 0.0
    short_exposure: float = 0.0
    exposure_percent: float = 0.0
    potential_loss: float = 0.0
    potential_loss_percent: float = 0.0
    max_risk_amount: Optional[float] = None
    positions: List[PositionExposure] = field(default_factory=list)

    @property
    def open_positions(self) -> int:
        return len(self.positions)

    @property
    def positions_over_risk_limit(self) -> int:
        return sum(1 for p in self.positions if p.exceeds_risk_limit)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "totalCapital": self.total_capital,
            "totalExposure": self.total_exposure,
            "netExposure": self.net_exposure,
            "longExposure": self.long_exposure,
            "shortExposure": self.short_exposure,
            "exposurePercent": self.exposure_percent,
            "potentialLoss": self.potential_loss,
            "potentialLossPercent": self.potential_loss_percent,
            "openPositions": self.open_positions,
            "maxRiskAmount": self.max_risk_amount,
            "positionsOverRiskLimit": self.positions_over_risk_limit,
            "positions": [p.to_dict() for p in self.positions],
        }


@dataclass
class StopLossStats:
    """How often closed trades with a stop were stopped out."""

    eligible: int = 0
    stopped_out: int = 0
    hit_rate: float = 0.0
    average_loss: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eligible": self.eligible,
            "stoppedOut": self.stopped_out,
            "hitRate": self.hit_rate,
            "averageLoss": self.average_loss,
        }


def _percent_of(value: float, capital: float) -> float:
    if capital <= 0:
        return 0.0
    return value / capital * 100


def calculate_exposure(
    trades: Sequence[Trade],
    total_capital: Optional[float] = None,
    max_risk_amount: Optional[float] = None,
) -> ExposureSummary:
    """
    Exposure of open trades as a share of total capital.

    Each open trade contributes entry_price × remaining quantity; when
    remaining is unset it is the quantity not yet covered by exits.

    Args:
        trades: Trades in any order; closed ones are ignored
        total_capital: Account capital (settings.default_total_capital if None)
        max_risk_amount: Per-trade loss limit in currency; positions whose
            potential loss is above it are flagged. No flagging if None.

    Returns:
        ExposureSummary
    """
    if total_capital is None:
        total_capital = get_settings().default_total_capital

    summary = ExposureSummary(total_capital=total_capital, max_risk_amount=max_risk_amount)

    for trade in trades:
        if not trade.is_open or not trade.entry_price:
            continue
        remaining = trade.effective_remaining_quantity
        if remaining <= 0:
            continue

        value = abs(trade.entry_price * remaining)
        potential_loss = calculate_potential_loss(trade)
        position = PositionExposure(
            trade_id=trade.id,
            symbol=trade.symbol,
            type=trade.type,
            remaining_quantity=remaining,
            entry_price=trade.entry_price,
            market_value=value,
            potential_loss=potential_loss,
            exposure_percent=_percent_of(value, total_capital),
            exceeds_risk_limit=max_risk_amount is not None and potential_loss > max_risk_amount,
        )
        summary.positions.append(position)
        if position.exceeds_risk_limit:
            logger.info(
                f"Trade {trade.id} risks {potential_loss:.2f}, above the "
                f"{max_risk_amount:.2f} per-trade limit",
                extra={"ctx_trade_id": trade.id},
            )

        if trade.type is TradeType.LONG:
            summary.long_exposure += value
        else:
            summary.short_exposure += value
        summary.net_exposure += position.signed_value
        summary.potential_loss += position.potential_loss

    summary.total_exposure = summary.long_exposure + summary.short_exposure
    summary.exposure_percent = _percent_of(summary.total_exposure, total_capital)
    summary.potential_loss_percent = _percent_of(summary.potential_loss, total_capital)

    logger.debug(
        f"Exposure: {summary.open_positions} open positions, "
        f"{summary.exposure_percent:.2f}% of capital"
    )
    return summary


def _is_stopped_out(trade: Trade, exit_price: float) -> bool:
    if trade.type is TradeType.LONG:
        return exit_price <= trade.stop_loss
    return exit_price >= trade.stop_loss


def calculate_stop_loss_effectiveness(trades: Sequence[Trade]) -> StopLossStats:
    """
    Stop-loss hit rate among closed trades that had a stop.

    A long is stopped out when it exited at or below its stop, a short at
    or above. Multi-exit trades are judged by their average exit price.
    average_loss is the mean signed P&L of the stopped-out trades.
    """
    eligible = 0
    stopped_pnls: List[float] = []

    for trade in trades:
        if not trade.is_closed or trade.stop_loss is None or trade.quantity <= 0:
            continue
        exit_price = resolve_exit_price(trade)
        if exit_price is None:
            continue
        eligible += 1
        if _is_stopped_out(trade, exit_price):
            stopped_pnls.append(calculate_pnl(trade))

    if eligible == 0:
        return StopLossStats()

    return StopLossStats(
        eligible=eligible,
        stopped_out=len(stopped_pnls),
        hit_rate=len(stopped_pnls) / eligible * 100,
        average_loss=float(np.mean(stopped_pnls)) if stopped_pnls else 0.0,
    )
