"""
Trade Journal Models

Canonical Trade and TradeExit records consumed by the analytics core.
Raw storage rows (including legacy column names) are normalized here, once,
so nothing downstream has to reconcile field aliases.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from ..core.errors import DataError, ErrorCodes

logger = logging.getLogger(__name__)


class TradeType(Enum):
    """Position direction."""

    LONG = "long"
    SHORT = "short"

    @property
    def sign(self) -> int:
        """+1 for long, -1 for short. Every P&L formula multiplies by this."""
        return 1 if self is TradeType.LONG else -1


class TradeStatus(Enum):
    """Trade lifecycle state."""

    OPEN = "open"
    CLOSED = "closed"


class Market(Enum):
    """Exchange region a trade was placed in."""

    US = "US"
    IN = "IN"


# Legacy column names seen in older rows and client payloads
_TRADE_ALIASES = {
    "position_size": "quantity",
    "positionSize": "quantity",
    "entryPrice": "entry_price",
    "exitPrice": "exit_price",
    "stopLoss": "stop_loss",
    "takeProfit": "take_profit",
    "entryDate": "entry_date",
    "exitDate": "exit_date",
    "remainingQuantity": "remaining_quantity",
    "userId": "user_id",
    "date": "entry_date",
}

_EXIT_ALIASES = {
    "exitPrice": "exit_price",
    "exitDate": "exit_date",
    "tradeId": "trade_id",
    "userId": "user_id",
    "exitTrigger": "exit_trigger",
}


def _canonical_keys(record: Mapping[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for key, value in record.items():
        canonical = aliases.get(key, key)
        # Canonical names win over aliases when both are present
        if canonical in data and key != canonical:
            continue
        data[canonical] = value
    return data


def parse_date(value: Any, field_name: str = "date") -> Optional[date]:
    """Parse a date, datetime or ISO string. Empty values become None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return pd.Timestamp(value).date()
    except (ValueError, TypeError) as e:
        raise DataError(
            ErrorCodes.DATA_INVALID_FORMAT,
            detail=f"Invalid {field_name}: {value!r}",
            context={"field": field_name},
            original_error=e,
        ) from e


def parse_number(value: Any, field_name: str = "value") -> Optional[float]:
    """Parse a numeric value (decimals and numeric strings included)."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise DataError(
            ErrorCodes.DATA_INVALID_FORMAT,
            detail=f"Invalid {field_name}: {value!r}",
            context={"field": field_name},
        )
    try:
        return float(value)
    except (ValueError, TypeError) as e:
        raise DataError(
            ErrorCodes.DATA_INVALID_FORMAT,
            detail=f"Invalid {field_name}: {value!r}",
            context={"field": field_name},
            original_error=e,
        ) from e


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return pd.Timestamp(value).to_pydatetime()
    except (ValueError, TypeError):
        logger.debug(f"Ignoring unparseable timestamp {value!r}")
        return None


@dataclass
class TradeExit:
    """One partial or full exit from a trade."""

    id: str
    trade_id: str
    exit_date: date
    exit_price: float
    quantity: float
    fees: float = 0.0
    user_id: Optional[str] = None
    notes: str = ""
    exit_trigger: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert exit to dictionary."""
        return {
            "id": self.id,
            "trade_id": self.trade_id,
            "user_id": self.user_id,
            "exit_date": self.exit_date.isoformat(),
            "exit_price": self.exit_price,
            "quantity": self.quantity,
            "fees": self.fees,
            "notes": self.notes,
            "exit_trigger": self.exit_trigger,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "TradeExit":
        """
        Create a TradeExit from a storage row.

        Raises:
            DataError: If a required field is missing or malformed
        """
        data = _canonical_keys(record, _EXIT_ALIASES)
        exit_date = parse_date(data.get("exit_date"), "exit_date")
        exit_price = parse_number(data.get("exit_price"), "exit_price")
        quantity = parse_number(data.get("quantity"), "quantity")

        missing = [
            name
            for name, value in (
                ("exit_date", exit_date),
                ("exit_price", exit_price),
                ("quantity", quantity),
            )
            if value is None
        ]
        if missing:
            raise DataError(
                ErrorCodes.DATA_INVALID_FORMAT,
                detail=f"Exit record missing {', '.join(missing)}",
                context={"exit_id": data.get("id")},
            )

        return cls(
            id=str(data.get("id", "")),
            trade_id=str(data.get("trade_id", "")),
            exit_date=exit_date,
            exit_price=exit_price,
            quantity=quantity,
            fees=parse_number(data.get("fees"), "fees") or 0.0,
            user_id=data.get("user_id"),
            notes=data.get("notes") or "",
            exit_trigger=data.get("exit_trigger"),
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )


@dataclass
class Trade:
    """
    One position lifecycle record.

    The analytics core treats instances as read-only; lifecycle operations
    return modified copies.

    Attributes:
        quantity: Originally intended position size
        remaining_quantity: Quantity not yet exited (None: derived from exits)
        exit_date, exit_price: Legacy single-exit fields, used when a trade
            has no itemized exits
        fees: Legacy aggregate fee for single-exit trades
        exits: Itemized partial exits, in insertion order
    """

    id: str
    symbol: str
    type: TradeType
    entry_date: date
    quantity: float
    entry_price: Optional[float] = None
    user_id: Optional[str] = None
    remaining_quantity: Optional[float] = None
    exit_date: Optional[date] = None
    exit_price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    fees: float = 0.0
    status: TradeStatus = TradeStatus.OPEN
    exits: List[TradeExit] = field(default_factory=list)
    strategy: Optional[str] = None
    notes: str = ""
    market: Market = Market.US
    exit_trigger: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_closed(self) -> bool:
        return self.status is TradeStatus.CLOSED

    @property
    def is_open(self) -> bool:
        return self.status is TradeStatus.OPEN

    @property
    def has_exits(self) -> bool:
        return len(self.exits) > 0

    @property
    def effective_remaining_quantity(self) -> float:
        """
        Remaining quantity; when unset, quantity less the exited quantity.

        Floored at 0 so over-exited records count as fully closed.
        """
        if self.remaining_quantity is not None:
            return self.remaining_quantity
        exited = sum(e.quantity for e in self.exits)
        return max(self.quantity - exited, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert trade to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "symbol": self.symbol,
            "type": self.type.value,
            "entry_date": self.entry_date.isoformat(),
            "entry_price": self.entry_price,
            "quantity": self.quantity,
            "remaining_quantity": self.remaining_quantity,
            "exit_date": self.exit_date.isoformat() if self.exit_date else None,
            "exit_price": self.exit_price,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "fees": self.fees,
            "status": self.status.value,
            "strategy": self.strategy,
            "notes": self.notes,
            "market": self.market.value,
            "exit_trigger": self.exit_trigger,
            "exits": [e.to_dict() for e in self.exits],
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Trade":
        """
        Create a Trade from a storage row or client payload.

        Legacy aliases (position_size, entryPrice, ...) are mapped to
        canonical names, dates and numbers are parsed, and nested exit rows
        are normalized.

        Raises:
            DataError: If a required field is missing or malformed
        """
        data = _canonical_keys(record, _TRADE_ALIASES)

        raw_type = str(data.get("type", "")).strip().lower()
        try:
            trade_type = TradeType(raw_type)
        except ValueError as e:
            raise DataError(
                ErrorCodes.DATA_INVALID_FORMAT,
                detail=f"Invalid trade type: {data.get('type')!r}",
                context={"trade_id": data.get("id")},
                original_error=e,
            ) from e

        entry_date = parse_date(data.get("entry_date"), "entry_date")
        quantity = parse_number(data.get("quantity"), "quantity")
        if entry_date is None or quantity is None:
            raise DataError(
                ErrorCodes.DATA_INVALID_FORMAT,
                detail="Trade record missing entry_date or quantity",
                context={"trade_id": data.get("id")},
            )

        raw_status = str(data.get("status") or "open").strip().lower()
        try:
            status = TradeStatus(raw_status)
        except ValueError as e:
            raise DataError(
                ErrorCodes.DATA_INVALID_FORMAT,
                detail=f"Invalid trade status: {data.get('status')!r}",
                context={"trade_id": data.get("id")},
                original_error=e,
            ) from e

        raw_market = str(data.get("market") or "US").strip().upper()
        try:
            market = Market(raw_market)
        except ValueError as e:
            raise DataError(
                ErrorCodes.DATA_INVALID_FORMAT,
                detail=f"Invalid market: {data.get('market')!r}",
                context={"trade_id": data.get("id")},
                original_error=e,
            ) from e

        exits = [
            e if isinstance(e, TradeExit) else TradeExit.from_record(e)
            for e in (data.get("exits") or [])
        ]

        return cls(
            id=str(data.get("id", "")),
            user_id=data.get("user_id"),
            symbol=str(data.get("symbol", "")).strip().upper(),
            type=trade_type,
            entry_date=entry_date,
            entry_price=parse_number(data.get("entry_price"), "entry_price"),
            quantity=quantity,
            remaining_quantity=parse_number(
                data.get("remaining_quantity"), "remaining_quantity"
            ),
            exit_date=parse_date(data.get("exit_date"), "exit_date"),
            exit_price=parse_number(data.get("exit_price"), "exit_price"),
            stop_loss=parse_number(data.get("stop_loss"), "stop_loss"),
            take_profit=parse_number(data.get("take_profit"), "take_profit"),
            fees=parse_number(data.get("fees"), "fees") or 0.0,
            status=status,
            exits=exits,
            strategy=data.get("strategy") or None,
            notes=data.get("notes") or "",
            market=market,
            exit_trigger=data.get("exit_trigger"),
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )
