"""Unit tests for BarDataService caching."""
from datetime import date

import pytest

from threeline.core.config import Settings
from threeline.core.exceptions import SymbolNotFoundError
from threeline.providers.mock import MockMarketDataProvider
from threeline.services.data_service import BarDataService, CacheHitType


@pytest.fixture
def provider() -> MockMarketDataProvider:
    return MockMarketDataProvider(names={"2330": "台積電"}, missing={"9999"})


@pytest.fixture
def service(provider: MockMarketDataProvider) -> BarDataService:
    settings = Settings(environment="test", history_days=60, bar_cache_ttl=30, bar_cache_size=10)
    return BarDataService(provider=provider, settings=settings)


class TestDateRange:
    """Tests for the history window."""

    def test_range_ends_today(self, service: BarDataService) -> None:
        start, end = service.date_range(date(2025, 3, 31))

        assert end == date(2025, 3, 31)
        assert start == date(2025, 1, 30)


class TestGetBars:
    """Tests for cache-first bar access."""

    @pytest.mark.asyncio
    async def test_first_call_misses_second_hits(
        self, service: BarDataService, provider: MockMarketDataProvider
    ) -> None:
        first = await service.get_bars("2330", today=date(2025, 3, 31))
        second = await service.get_bars("2330", today=date(2025, 3, 31))

        assert first.cache == CacheHitType.MISS
        assert second.cache == CacheHitType.HIT
        assert second.bars == first.bars
        assert provider.fetch_count == 1
        assert first.source == "mock"

    @pytest.mark.asyncio
    async def test_cache_is_keyed_by_code_and_range(
        self, service: BarDataService, provider: MockMarketDataProvider
    ) -> None:
        await service.get_bars("2330", today=date(2025, 3, 31))
        await service.get_bars("2317", today=date(2025, 3, 31))
        await service.get_bars("2330", today=date(2025, 4, 1))

        assert provider.fetch_count == 3

    @pytest.mark.asyncio
    async def test_clear_cache_forces_refetch(
        self, service: BarDataService, provider: MockMarketDataProvider
    ) -> None:
        await service.get_bars("2330", today=date(2025, 3, 31))
        service.clear_cache()
        await service.get_bars("2330", today=date(2025, 3, 31))

        assert provider.fetch_count == 2

    @pytest.mark.asyncio
    async def test_missing_code_propagates_and_is_not_cached(
        self, service: BarDataService, provider: MockMarketDataProvider
    ) -> None:
        for _ in range(2):
            with pytest.raises(SymbolNotFoundError):
                await service.get_bars("9999")

        assert provider.fetch_count == 2

    @pytest.mark.asyncio
    async def test_generated_range_covers_weekdays_only(self, service: BarDataService) -> None:
        result = await service.get_bars("2330", today=date(2025, 3, 31))

        assert result.start_date == date(2025, 1, 30)
        assert all(date.fromisoformat(bar.date).weekday() < 5 for bar in result.bars)


class TestGetStockName:
    """Tests for the name passthrough."""

    @pytest.mark.asyncio
    async def test_preset_name(self, service: BarDataService) -> None:
        assert await service.get_stock_name("2330") == "台積電"

    @pytest.mark.asyncio
    async def test_generated_name(self, service: BarDataService) -> None:
        assert await service.get_stock_name("1101") == "Mock 1101"
