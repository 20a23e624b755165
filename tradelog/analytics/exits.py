"""
Exit Aggregation Module

Combine a trade's partial exits into exited quantity, volume-weighted
average exit price, total exit fees and remaining quantity.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from ..core.errors import DataIntegrityError
from ..journal.models import Trade, TradeExit

logger = logging.getLogger(__name__)

# Float noise allowed when comparing exited quantity to trade quantity
QUANTITY_TOLERANCE = 1e-9


@dataclass
class ExitSummary:
    """Aggregated view of a trade's exits."""

    total_exited_quantity: float
    average_exit_price: Optional[float]  # None when nothing has been exited
    total_exit_fees: float
    remaining_quantity: float
    exit_count: int = 0

    @property
    def is_fully_exited(self) -> bool:
        return self.exit_count > 0 and self.remaining_quantity <= 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "totalExitedQuantity": self.total_exited_quantity,
            "averageExitPrice": self.average_exit_price,
            "totalExitFees": self.total_exit_fees,
            "remainingQuantity": self.remaining_quantity,
            "exitCount": self.exit_count,
        }


def aggregate_exits(
    trade: Trade,
    exits: Optional[Sequence[TradeExit]] = None,
) -> ExitSummary:
    """
    Aggregate the exits of a trade.

    Args:
        trade: Parent trade (supplies the total quantity)
        exits: Exits to aggregate; defaults to trade.exits

    Returns:
        ExitSummary

    Raises:
        DataIntegrityError: If the exits add up to more than the trade quantity
    """
    if exits is None:
        exits = trade.exits

    total_quantity = sum(e.quantity for e in exits)
    total_fees = sum(e.fees or 0.0 for e in exits)

    if total_quantity > 0:
        weighted = sum(e.quantity * e.exit_price for e in exits)
        average_price: Optional[float] = weighted / total_quantity
    else:
        average_price = None

    remaining = trade.quantity - total_quantity
    if abs(remaining) <= QUANTITY_TOLERANCE:
        remaining = 0.0
    if remaining < 0:
        raise DataIntegrityError(
            detail=(
                f"Trade {trade.id} exits total {total_quantity} "
                f"but quantity is {trade.quantity}"
            ),
            context={
                "trade_id": trade.id,
                "quantity": trade.quantity,
                "exited_quantity": total_quantity,
            },
        )

    return ExitSummary(
        total_exited_quantity=total_quantity,
        average_exit_price=average_price,
        total_exit_fees=total_fees,
        remaining_quantity=remaining,
        exit_count=len(exits),
    )
