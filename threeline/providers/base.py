"""Base provider interface and data models for market data providers.

This module defines the contract that all market data providers must implement.
Providers hand the engine raw daily bars; ordering, de-duplication and
invalid-value filtering are enforced downstream by the bar normalizer.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any


@dataclass
class PriceDataRequest:
    """Request for daily price history."""

    symbol: str
    start_date: date
    end_date: date


@dataclass(frozen=True)
class Bar:
    """Single trading day OHLCV observation.

    Price and volume fields are None when the source reported a missing or
    unparseable value.
    """

    date: str | date
    open: float | None
    high: float | None
    low: float | None
    close: float | None
    volume: float | None

    @property
    def date_key(self) -> str:
        """Sortable date string (YYYY-MM-DD for both str and date inputs)."""
        return self.date.isoformat() if isinstance(self.date, date) else str(self.date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date_key,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


class MarketDataProviderInterface(ABC):
    """
    Abstract interface for market data providers.

    This interface defines the contract that all market data providers
    (FinMind, Mock) must implement.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider (e.g., 'finmind')."""
        pass

    @abstractmethod
    async def fetch_bars(self, request: PriceDataRequest) -> list[Bar]:
        """
        Fetch daily OHLCV bars for a stock code.

        Args:
            request: PriceDataRequest with code and date range

        Returns:
            List of Bar objects (ordering not guaranteed)

        Raises:
            SymbolNotFoundError: If no data exists for the code
            DataValidationError: If the returned payload is malformed
            APIError: If the provider API fails after retries
        """
        pass

    @abstractmethod
    async def get_stock_name(self, symbol: str) -> str | None:
        """
        Get the display name for a stock code.

        Args:
            symbol: Stock code (e.g., '2330')

        Returns:
            Display name, or None if unavailable. Never raises for lookup misses.
        """
        pass
