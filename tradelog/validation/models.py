"""
Pydantic Validation Models

Request models for the write boundary: client payloads for new trades and
exits are validated here before they become Trade/TradeExit records.
"""

import re
from datetime import date
from typing import Annotated, Any, Dict, Mapping, Optional, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from ..core.errors import ErrorCodes, ValidationError
from ..journal.models import Market, Trade, TradeExit, TradeStatus, TradeType


# =============================================================================
# Custom Field Types with Annotated
# =============================================================================

PriceField = Annotated[
    float,
    Field(ge=0, le=100_000_000, description="Price per unit"),
]

QuantityField = Annotated[
    float,
    Field(gt=0, le=1_000_000_000, description="Number of units"),
]

FeesField = Annotated[
    float,
    Field(ge=0, description="Commission and charges"),
]


class SymbolValidator:
    """Validator for ticker symbols (US and Indian exchanges)."""

    # AAPL, BRK.B, BRK-B, RELIANCE, M&M, RELIANCE.NS
    SYMBOL_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9.&\-]{0,19}$")

    @classmethod
    def validate(cls, symbol: str) -> str:
        symbol = symbol.upper().strip()
        if not cls.SYMBOL_PATTERN.match(symbol):
            raise ValueError(f"Invalid symbol: {symbol!r}")
        return symbol


# =============================================================================
# Base Model with Enhanced Configuration
# =============================================================================


class TradeLogBaseModel(BaseModel):
    """Base Pydantic model for tradelog request models."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
        populate_by_name=True,  # Allow both snake_case and camelCase
    )

    def to_api_response(self) -> Dict[str, Any]:
        """Convert model to response format (camelCase)."""
        return self.model_dump(by_alias=True, exclude_none=True)


M = TypeVar("M", bound=TradeLogBaseModel)


def parse_request(model: Type[M], payload: Mapping[str, Any]) -> M:
    """
    Validate a payload against a request model.

    Raises:
        ValidationError: With the pydantic error summary as detail
    """
    try:
        return model.model_validate(dict(payload))
    except PydanticValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ValidationError(
            ErrorCodes.VALIDATION_INVALID_VALUE,
            detail="; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
                for err in e.errors()
            ),
            context={"model": model.__name__, "fields": fields},
            original_error=e,
        ) from e


# =============================================================================
# Request Validation Models
# =============================================================================


class TradeExitRequest(TradeLogBaseModel):
    """New or edited exit, as submitted by a client."""

    trade_id: Optional[str] = Field(default=None, alias="tradeId")
    exit_date: date = Field(alias="exitDate")
    exit_price: PriceField = Field(alias="exitPrice")
    quantity: QuantityField
    fees: FeesField = 0.0
    notes: str = Field(default="", max_length=5000)
    exit_trigger: Optional[str] = Field(default=None, alias="exitTrigger", max_length=100)

    def to_exit(self, exit_id: str, user_id: Optional[str] = None) -> TradeExit:
        return TradeExit(
            id=exit_id,
            trade_id=self.trade_id or "",
            user_id=user_id,
            exit_date=self.exit_date,
            exit_price=self.exit_price,
            quantity=self.quantity,
            fees=self.fees,
            notes=self.notes,
            exit_trigger=self.exit_trigger,
        )


class TradeRequest(TradeLogBaseModel):
    """New trade, as submitted by a client."""

    symbol: str = Field(min_length=1, max_length=20)
    type: TradeType
    entry_date: date = Field(alias="entryDate")
    entry_price: Optional[PriceField] = Field(default=None, alias="entryPrice")
    quantity: QuantityField
    exit_date: Optional[date] = Field(default=None, alias="exitDate")
    exit_price: Optional[PriceField] = Field(default=None, alias="exitPrice")
    stop_loss: Optional[PriceField] = Field(default=None, alias="stopLoss")
    take_profit: Optional[PriceField] = Field(default=None, alias="takeProfit")
    fees: FeesField = 0.0
    strategy: Optional[str] = Field(default=None, max_length=100)
    notes: str = Field(default="", max_length=10000)
    market: Market = Market.US

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        return SymbolValidator.validate(v)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def validate_exit_fields(self) -> "TradeRequest":
        """A legacy exit needs both a price and a date on or after entry."""
        if (self.exit_price is None) != (self.exit_date is None):
            raise ValueError("exit_price and exit_date must be given together")
        if self.exit_date is not None and self.exit_date < self.entry_date:
            raise ValueError("exit_date must not be before entry_date")
        return self

    def to_trade(self, trade_id: str, user_id: Optional[str] = None) -> Trade:
        closed = self.exit_price is not None
        return Trade(
            id=trade_id,
            user_id=user_id,
            symbol=self.symbol,
            type=self.type,
            entry_date=self.entry_date,
            entry_price=self.entry_price,
            quantity=self.quantity,
            remaining_quantity=0.0 if closed else self.quantity,
            exit_date=self.exit_date,
            exit_price=self.exit_price,
            stop_loss=self.stop_loss,
            take_profit=self.take_profit,
            fees=self.fees,
            status=TradeStatus.CLOSED if closed else TradeStatus.OPEN,
            strategy=self.strategy or None,
            notes=self.notes,
            market=self.market,
        )
