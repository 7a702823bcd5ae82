"""Mock market data provider for testing.

Generates fake but deterministic data without hitting external APIs, or
serves preset bar series per stock code.
Useful for unit tests, API tests, and development environments.
"""
import logging
from datetime import timedelta

from threeline.core.exceptions import SymbolNotFoundError
from threeline.providers.base import (
    Bar,
    MarketDataProviderInterface,
    PriceDataRequest,
)

logger = logging.getLogger(__name__)


class MockMarketDataProvider(MarketDataProviderInterface):
    """
    Mock market data provider for testing.

    Useful for:
    - Unit tests that need predictable data
    - API tests that don't want external dependencies
    - Development environments without API access

    Preset series are returned as-is (including any disorder or bad bars);
    codes listed in ``missing`` raise SymbolNotFoundError; every other code
    gets a generated weekday series.
    """

    def __init__(
        self,
        series: dict[str, list[Bar]] | None = None,
        names: dict[str, str] | None = None,
        missing: set[str] | None = None,
    ) -> None:
        self.series = series or {}
        self.names = names or {}
        self.missing = missing or set()
        self.fetch_count = 0

    @property
    def provider_name(self) -> str:
        return "mock"

    async def fetch_bars(self, request: PriceDataRequest) -> list[Bar]:
        """Return the preset series or generate a steady uptrend."""
        self.fetch_count += 1

        if request.symbol in self.missing:
            raise SymbolNotFoundError(f"No price data for '{request.symbol}'")

        if request.symbol in self.series:
            return list(self.series[request.symbol])

        bars = []
        current_date = request.start_date
        price = 50.0 + sum(ord(char) for char in request.symbol) % 100

        while current_date <= request.end_date:
            if current_date.weekday() < 5:
                bars.append(
                    Bar(
                        date=current_date.isoformat(),
                        open=price,
                        high=round(price * 1.02, 2),
                        low=round(price * 0.98, 2),
                        close=round(price * 1.005, 2),
                        volume=1_000_000.0,
                    )
                )
                price = round(price * 1.005, 2)
            current_date += timedelta(days=1)

        logger.info(f"Generated {len(bars)} mock bars for {request.symbol}")
        return bars

    async def get_stock_name(self, symbol: str) -> str | None:
        """Return the preset name, or a generated one."""
        return self.names.get(symbol, f"Mock {symbol}")
