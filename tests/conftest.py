"""Shared pytest fixtures for testing infrastructure.

CRITICAL: Environment variables MUST be set before ANY imports.
"""
import os

# ===============================================================================
# CRITICAL: Set test environment variables FIRST, before ANY other imports!
# This ensures Settings and the rate limiter pick up the test configuration.
# ===============================================================================
os.environ["ENVIRONMENT"] = "test"
os.environ["MARKET_DATA_PROVIDER"] = "mock"
os.environ["LOG_LEVEL"] = "WARNING"

# Now import everything else AFTER environment is configured
from collections.abc import AsyncGenerator
from datetime import date, timedelta

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport
from httpx import AsyncClient

from threeline.core.config import Settings
from threeline.core.config import get_settings
from threeline.core.deps import get_data_service
from threeline.core.deps import reset_data_service
from threeline.providers.base import Bar
from threeline.providers.mock import MockMarketDataProvider
from threeline.services.data_service import BarDataService
from threeline.utils.structured_logging import configure_structured_logging


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings.

    Returns:
        Settings: Test configuration
    """
    return Settings(
        environment="test",
        market_data_provider="mock",
        log_level="WARNING",
        debug=True,
        finmind_retry_delay=0.0,
    )


@pytest.fixture(scope="session", autouse=True)
def configure_logging(test_settings: Settings):
    """Configure structured logging for tests."""
    configure_structured_logging(log_level=test_settings.log_level, json_logs=False)


def rising_bars(
    count: int = 40,
    start_price: float = 100.0,
    step: float = 1.0,
    volume: float = 1000.0,
    last_volume: float | None = None,
    start: date = date(2025, 1, 1),
) -> list[Bar]:
    """Daily bars with closes start_price, start_price + step, ...

    The last bar's volume can be raised to trigger a volume surge.
    """
    bars = []
    for i in range(count):
        close = start_price + i * step
        bar_volume = last_volume if last_volume is not None and i == count - 1 else volume
        bars.append(
            Bar(
                date=(start + timedelta(days=i)).isoformat(),
                open=close,
                high=close,
                low=close,
                close=close,
                volume=bar_volume,
            )
        )
    return bars


@pytest.fixture
def mock_provider() -> MockMarketDataProvider:
    """Mock provider with one qualifying code, one flat code and one missing code.

    - 2330: 100..139 ramp with 3x final volume (score 4, qualified)
    - 2317: 40 flat bars (score 1)
    - 9999: no data
    """
    return MockMarketDataProvider(
        series={
            "2330": rising_bars(40, last_volume=3000.0),
            "2317": rising_bars(40, step=0.0),
        },
        names={"2330": "台積電", "2317": "鴻海"},
        missing={"9999"},
    )


@pytest.fixture
def data_service(mock_provider: MockMarketDataProvider, test_settings: Settings) -> BarDataService:
    return BarDataService(provider=mock_provider, settings=test_settings)


@pytest.fixture
def app(test_settings: Settings, data_service: BarDataService):
    """Create FastAPI test application with dependency overrides.

    Returns:
        FastAPI: Test application instance
    """
    from threeline.main import app as main_app

    main_app.dependency_overrides[get_settings] = lambda: test_settings
    main_app.dependency_overrides[get_data_service] = lambda: data_service

    yield main_app

    main_app.dependency_overrides.clear()
    reset_data_service()


@pytest.fixture
def client(app) -> TestClient:
    """Create synchronous test client."""
    return TestClient(app)


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
