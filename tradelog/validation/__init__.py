"""
Tradelog Validation Module

Pydantic request models for trades and exits submitted by clients.
"""

from .models import (
    FeesField,
    PriceField,
    QuantityField,
    SymbolValidator,
    TradeExitRequest,
    TradeLogBaseModel,
    TradeRequest,
    parse_request,
)

__all__ = [
    "TradeLogBaseModel",
    "SymbolValidator",
    "PriceField",
    "QuantityField",
    "FeesField",
    "TradeExitRequest",
    "TradeRequest",
    "parse_request",
]
