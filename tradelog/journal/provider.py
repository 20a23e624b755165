"""
Trade Data Provider Interface

The analytics core never talks to storage. Callers inject a provider that
returns already-fetched, normalized trades for one user.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import Field

from ..core.errors import DataError
from ..validation.models import TradeLogBaseModel
from .models import Trade

logger = logging.getLogger(__name__)


class UserSettings(TradeLogBaseModel):
    """Per-user account settings."""

    total_capital: Optional[float] = Field(default=None, gt=0, alias="totalCapital")
    risk_per_trade: Optional[float] = Field(
        default=None,
        gt=0,
        le=100,
        alias="riskPerTrade",
        description="Maximum risk per trade, percent of capital",
    )

    def max_risk_amount(self) -> Optional[float]:
        """Currency amount risk_per_trade allows on one trade."""
        if self.total_capital is None or self.risk_per_trade is None:
            return None
        return self.total_capital * self.risk_per_trade / 100


class TradeDataProvider(ABC):
    """
    Abstract base class for trade data providers.

    Implementations wrap whatever backend stores the journal and must
    return canonical Trade records (see Trade.from_record).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    def get_trades(self, user_id: str) -> List[Trade]:
        """
        Get all trades of a user, with their exits attached.

        Args:
            user_id: Owning user

        Returns:
            List of Trade
        """
        pass

    @abstractmethod
    def get_user_settings(self, user_id: str) -> UserSettings:
        """
        Get a user's account settings.

        Returns:
            UserSettings (fields None when the user has not set them)
        """
        pass


class InMemoryTradeProvider(TradeDataProvider):
    """
    Provider over raw records held in memory.

    Rows are normalized with Trade.from_record; rows that cannot be
    normalized are skipped with a warning.
    """

    def __init__(
        self,
        records: Optional[Iterable[Mapping[str, Any]]] = None,
        user_settings: Optional[Dict[str, Mapping[str, Any]]] = None,
    ):
        self._trades: Dict[str, List[Trade]] = {}
        self._settings: Dict[str, UserSettings] = {}
        self.skipped = 0

        for record in records or []:
            self.add_record(record)
        for user_id, values in (user_settings or {}).items():
            self._settings[user_id] = UserSettings.model_validate(dict(values))

    @property
    def name(self) -> str:
        return "memory"

    def add_record(self, record: Mapping[str, Any]) -> Optional[Trade]:
        """Normalize and store one raw trade row; None if it was skipped."""
        try:
            trade = Trade.from_record(record)
        except DataError as e:
            self.skipped += 1
            logger.warning(
                f"Skipping malformed trade record {record.get('id')!r}: {e.technical_message}",
                extra={"ctx_error_code": e.code},
            )
            return None

        self._trades.setdefault(trade.user_id or "", []).append(trade)
        return trade

    def get_trades(self, user_id: str) -> List[Trade]:
        trades = list(self._trades.get(user_id, []))
        logger.debug(f"Loaded {len(trades)} trades for user {user_id}")
        return trades

    def get_user_settings(self, user_id: str) -> UserSettings:
        return self._settings.get(user_id, UserSettings())
