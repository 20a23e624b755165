"""
Trade Lifecycle

The open/closed state machine of a trade, driven by cumulative exited
quantity, plus validation of exit mutations at the write boundary.

Every exit mutation goes through derive_trade_status(), so status,
remaining quantity and the back-filled exit fields are always derived
the same way.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..analytics.exits import QUANTITY_TOLERANCE, aggregate_exits
from ..config.metrics import MetricNames, get_metrics
from ..core.errors import DataError, ErrorCode, ErrorCodes, ValidationError
from .models import Trade, TradeExit, TradeStatus

logger = logging.getLogger(__name__)


@dataclass
class TradeStatusUpdate:
    """Derived fields to apply to a trade after its exits change."""

    status: TradeStatus
    remaining_quantity: float
    exit_price: Optional[float]
    exit_date: Optional[date]
    average_exit_price: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "remaining_quantity": self.remaining_quantity,
            "exit_price": self.exit_price,
            "exit_date": self.exit_date.isoformat() if self.exit_date else None,
            "average_exit_price": self.average_exit_price,
        }


def _last_exit(exits: Sequence[TradeExit]) -> TradeExit:
    # Latest exit_date wins; on equal dates the later one in input order
    index = max(range(len(exits)), key=lambda i: (exits[i].exit_date, i))
    return exits[index]


def derive_trade_status(
    trade: Trade,
    exits: Optional[Sequence[TradeExit]] = None,
) -> TradeStatusUpdate:
    """
    Derive status and exit fields from a trade's exits.

    - No exits: the legacy exit fields stand; the trade is closed exactly
      when it has a legacy exit price.
    - Exits covering the full quantity: closed, exit_date from the last
      exit, exit_price set to the average exit price.
    - Exits covering less: open, legacy exit_price/exit_date cleared.

    Args:
        trade: Trade being updated
        exits: Its exits after the mutation (trade.exits if None)

    Raises:
        DataIntegrityError: If the exits exceed the trade quantity
    """
    if exits is None:
        exits = trade.exits

    if not exits:
        if trade.exit_price is not None:
            return TradeStatusUpdate(
                status=TradeStatus.CLOSED,
                remaining_quantity=0.0,
                exit_price=trade.exit_price,
                exit_date=trade.exit_date,
            )
        return TradeStatusUpdate(
            status=TradeStatus.OPEN,
            remaining_quantity=trade.quantity,
            exit_price=None,
            exit_date=None,
        )

    summary = aggregate_exits(trade, exits)

    if summary.is_fully_exited:
        return TradeStatusUpdate(
            status=TradeStatus.CLOSED,
            remaining_quantity=0.0,
            exit_price=summary.average_exit_price,
            exit_date=_last_exit(exits).exit_date,
            average_exit_price=summary.average_exit_price,
        )

    return TradeStatusUpdate(
        status=TradeStatus.OPEN,
        remaining_quantity=summary.remaining_quantity,
        exit_price=None,
        exit_date=None,
        average_exit_price=summary.average_exit_price,
    )


def _reject(error_code: ErrorCode, trade: Trade, detail: str, **context) -> ValidationError:
    get_metrics().increment_counter(
        MetricNames.EXITS_REJECTED_TOTAL, labels={"reason": str(error_code)}
    )
    logger.info(
        f"Rejected exit on trade {trade.id}: {detail}",
        extra={"ctx_trade_id": trade.id, "ctx_error_code": str(error_code)},
    )
    return ValidationError(
        error_code,
        detail=detail,
        context={"trade_id": trade.id, **context},
    )


def validate_exit(
    trade: Trade,
    trade_exit: TradeExit,
    replacing_exit_id: Optional[str] = None,
) -> None:
    """
    Validate an exit before it is written.

    Args:
        trade: Parent trade with its current exits
        trade_exit: Exit being added, or the new version of an edited exit
        replacing_exit_id: Id of the exit being edited; its old quantity is
            released before checking

    Raises:
        ValidationError: If the exit belongs to another trade, has a
            non-positive quantity or negative price/fees, or would exit
            more than the remaining quantity. A trade closed through its
            legacy exit price has nothing remaining.
    """
    if trade_exit.trade_id and trade_exit.trade_id != trade.id:
        raise _reject(
            ErrorCodes.VALIDATION_TRADE_MISMATCH,
            trade,
            f"Exit belongs to trade {trade_exit.trade_id}",
            exit_trade_id=trade_exit.trade_id,
        )

    if not np.isfinite(trade_exit.quantity) or trade_exit.quantity <= 0:
        raise _reject(
            ErrorCodes.VALIDATION_INVALID_VALUE,
            trade,
            f"Exit quantity must be positive, got {trade_exit.quantity}",
            field="quantity",
        )
    if not np.isfinite(trade_exit.exit_price) or trade_exit.exit_price < 0:
        raise _reject(
            ErrorCodes.VALIDATION_INVALID_VALUE,
            trade,
            f"Exit price must not be negative, got {trade_exit.exit_price}",
            field="exit_price",
        )
    fees = trade_exit.fees or 0.0
    if not np.isfinite(fees) or fees < 0:
        raise _reject(
            ErrorCodes.VALIDATION_INVALID_VALUE,
            trade,
            f"Exit fees must not be negative, got {trade_exit.fees}",
            field="fees",
        )

    if not trade.has_exits and trade.exit_price is not None:
        raise _reject(
            ErrorCodes.VALIDATION_NO_REMAINING_QUANTITY,
            trade,
            "Trade was closed without itemized exits",
            exited_quantity=trade.quantity,
        )

    exited = sum(e.quantity for e in trade.exits if e.id != replacing_exit_id)
    available = trade.quantity - exited

    if available <= QUANTITY_TOLERANCE:
        raise _reject(
            ErrorCodes.VALIDATION_NO_REMAINING_QUANTITY,
            trade,
            "Trade has no remaining quantity",
            exited_quantity=exited,
        )
    if trade_exit.quantity - available > QUANTITY_TOLERANCE:
        raise _reject(
            ErrorCodes.VALIDATION_EXIT_QUANTITY_EXCEEDED,
            trade,
            f"Exit quantity {trade_exit.quantity} exceeds remaining {available}",
            remaining_quantity=available,
            requested_quantity=trade_exit.quantity,
        )


def apply_exits(trade: Trade, exits: Sequence[TradeExit]) -> Trade:
    """Copy of trade with the given exits and the fields derived from them."""
    if trade.has_exits and not exits:
        # exit fields were back-filled from the exits being dropped
        trade = replace(trade, exit_price=None, exit_date=None)
    update = derive_trade_status(trade, exits)
    return replace(
        trade,
        exits=list(exits),
        status=update.status,
        remaining_quantity=update.remaining_quantity,
        exit_price=update.exit_price,
        exit_date=update.exit_date,
    )


def _attach(trade: Trade, trade_exit: TradeExit) -> TradeExit:
    if trade_exit.trade_id and (trade_exit.user_id or not trade.user_id):
        return trade_exit
    return replace(
        trade_exit,
        trade_id=trade_exit.trade_id or trade.id,
        user_id=trade_exit.user_id or trade.user_id,
    )


def _find_exit(trade: Trade, exit_id: str) -> int:
    for i, existing in enumerate(trade.exits):
        if existing.id == exit_id:
            return i
    raise DataError(
        ErrorCodes.DATA_NOT_FOUND,
        detail=f"Exit {exit_id} not found on trade {trade.id}",
        context={"trade_id": trade.id, "exit_id": exit_id},
    )


def add_exit(trade: Trade, trade_exit: TradeExit) -> Trade:
    """
    Validate and append an exit.

    Returns:
        New Trade; the input trade is not modified
    """
    validate_exit(trade, trade_exit)
    updated = apply_exits(trade, [*trade.exits, _attach(trade, trade_exit)])
    get_metrics().increment_counter(MetricNames.EXITS_ACCEPTED_TOTAL)
    logger.debug(
        f"Added exit {trade_exit.id} to trade {trade.id}; status {updated.status.value}"
    )
    return updated


def update_exit(trade: Trade, trade_exit: TradeExit) -> Trade:
    """
    Validate and replace the exit with the same id.

    Raises:
        DataError: If the trade has no exit with that id
        ValidationError: If the edited exit is invalid
    """
    index = _find_exit(trade, trade_exit.id)
    validate_exit(trade, trade_exit, replacing_exit_id=trade_exit.id)

    exits: List[TradeExit] = list(trade.exits)
    exits[index] = _attach(trade, trade_exit)
    updated = apply_exits(trade, exits)
    get_metrics().increment_counter(MetricNames.EXITS_ACCEPTED_TOTAL)
    return updated


def remove_exit(trade: Trade, exit_id: str) -> Trade:
    """
    Remove an exit; the trade may move back to open.

    Raises:
        DataError: If the trade has no exit with that id
    """
    index = _find_exit(trade, exit_id)
    exits = [e for i, e in enumerate(trade.exits) if i != index]
    updated = apply_exits(trade, exits)
    logger.debug(
        f"Removed exit {exit_id} from trade {trade.id}; status {updated.status.value}"
    )
    return updated
