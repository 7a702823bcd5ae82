"""Market data provider abstractions and implementations.

This package provides a provider-agnostic interface for fetching daily bars.

Available providers:
- FinMindProvider: Taiwan stock data via the FinMind v4 REST API
- MockMarketDataProvider: Fake or preset data for testing
"""

from threeline.providers.base import (
    Bar,
    MarketDataProviderInterface,
    PriceDataRequest,
)
from threeline.providers.finmind import FinMindProvider
from threeline.providers.mock import MockMarketDataProvider

__all__ = [
    "Bar",
    "MarketDataProviderInterface",
    "PriceDataRequest",
    "FinMindProvider",
    "MockMarketDataProvider",
]
