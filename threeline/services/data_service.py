"""Bar data service with in-memory caching.

Wraps a market data provider behind ``get_bars(code)``. Fetched series are kept
in a TTL cache so repeated lookups of the same code within a short window do
not hit the provider (FinMind rate limits anonymous callers). The evaluation
engine itself owns no cache.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from cachetools import TTLCache

from threeline.core.config import Settings, get_settings
from threeline.providers.base import (
    Bar,
    MarketDataProviderInterface,
    PriceDataRequest,
)

logger = logging.getLogger(__name__)


class CacheHitType(str, Enum):
    """Type of cache hit (for logging)."""
    HIT = "hit"
    MISS = "miss"


@dataclass
class BarFetchResult:
    """Bars for one code plus where they came from."""

    symbol: str
    bars: list[Bar]
    start_date: date
    end_date: date
    source: str
    cache: CacheHitType


class BarDataService:
    """
    Cache-first access to daily bars.

    Flow:
    1. Check the in-memory TTL cache (keyed by code and date range)
    2. On miss: fetch from the provider and store
    """

    def __init__(
        self,
        provider: MarketDataProviderInterface,
        settings: Settings | None = None,
    ) -> None:
        self.provider = provider
        self.settings = settings or get_settings()
        self._cache: TTLCache = TTLCache(
            maxsize=self.settings.bar_cache_size,
            ttl=self.settings.bar_cache_ttl,
        )
        self._names: TTLCache = TTLCache(
            maxsize=self.settings.bar_cache_size,
            ttl=max(self.settings.bar_cache_ttl, 3600),
        )

    def date_range(self, today: date | None = None) -> tuple[date, date]:
        """History window ending today (extra calendar days cover holidays)."""
        end_date = today or date.today()
        start_date = end_date - timedelta(days=self.settings.history_days)
        return start_date, end_date

    def _cache_key(self, symbol: str, start_date: date, end_date: date) -> str:
        return f"{symbol}:{start_date.isoformat()}:{end_date.isoformat()}"

    async def get_bars(self, symbol: str, today: date | None = None) -> BarFetchResult:
        """Get bars for a code, cache first.

        Raises:
            SymbolNotFoundError: If the provider has no data for the code
            APIError: If the provider fails after retries
        """
        start_date, end_date = self.date_range(today)
        key = self._cache_key(symbol, start_date, end_date)

        if key in self._cache:
            logger.debug(f"Bar cache hit: {key}")
            return BarFetchResult(
                symbol=symbol,
                bars=self._cache[key],
                start_date=start_date,
                end_date=end_date,
                source=self.provider.provider_name,
                cache=CacheHitType.HIT,
            )

        bars = await self.provider.fetch_bars(
            PriceDataRequest(symbol=symbol, start_date=start_date, end_date=end_date)
        )
        self._cache[key] = bars
        logger.debug(f"Bar cache miss: {key}, stored {len(bars)} bars")

        return BarFetchResult(
            symbol=symbol,
            bars=bars,
            start_date=start_date,
            end_date=end_date,
            source=self.provider.provider_name,
            cache=CacheHitType.MISS,
        )

    async def get_stock_name(self, symbol: str) -> str | None:
        """Display name passthrough with a longer-lived cache."""
        if symbol in self._names:
            return self._names[symbol]
        name = await self.provider.get_stock_name(symbol)
        if name is not None:
            self._names[symbol] = name
        return name

    def clear_cache(self) -> None:
        self._cache.clear()
        self._names.clear()
