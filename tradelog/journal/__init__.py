"""
Trade Journal Module

Canonical trade and exit records. Lifecycle, filters and the data
provider interface live in their own submodules.
"""

from .models import Market, Trade, TradeExit, TradeStatus, TradeType, parse_date, parse_number

__all__ = [
    "Market",
    "Trade",
    "TradeExit",
    "TradeStatus",
    "TradeType",
    "parse_date",
    "parse_number",
]
