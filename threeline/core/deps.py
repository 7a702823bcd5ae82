"""Dependency injection for FastAPI endpoints.

This module provides dependency functions for shared components: settings,
the market data provider, the cached bar data service and the three-line
service.
"""
import asyncio
import logging
from typing import Annotated

from fastapi import Depends
from fastapi import HTTPException
from fastapi import status

from threeline.core.config import Settings, get_settings
from threeline.providers.base import MarketDataProviderInterface
from threeline.providers.finmind import FinMindProvider
from threeline.providers.mock import MockMarketDataProvider
from threeline.services.data_service import BarDataService
from threeline.services.three_line_service import ThreeLineService
from threeline.utils.validation import is_valid_symbol, normalize_symbol

logger = logging.getLogger(__name__)

AppSettings = Annotated[Settings, Depends(get_settings)]


async def get_validated_symbol(code: str) -> str:
    """Validate and normalize a stock code from the URL path.

    Args:
        code: Raw code from URL path

    Returns:
        Stripped code

    Raises:
        HTTPException: 400 if the code is not 4 to 6 digits

    Example:
        ```python
        @router.get("/{code}/three-line")
        async def get_three_line(code: str = Depends(get_validated_symbol)):
            pass
        ```
    """
    code = normalize_symbol(code)
    if not is_valid_symbol(code):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid stock code format: {code}",
        )
    return code


def create_market_data_provider(settings: Settings) -> MarketDataProviderInterface:
    """Build the provider selected by the MARKET_DATA_PROVIDER setting.

    - "finmind": FinMindProvider (FinMind v4 REST API)
    - "mock": MockMarketDataProvider (testing, fake data)

    Raises:
        ValueError: If provider type is unknown
    """
    if settings.market_data_provider == "finmind":
        logger.info("Using FinMindProvider for market data")
        return FinMindProvider(settings=settings)

    elif settings.market_data_provider == "mock":
        logger.info("Using MockMarketDataProvider for market data")
        return MockMarketDataProvider()

    else:
        raise ValueError(
            f"Unknown market data provider: {settings.market_data_provider}. "
            "Valid options: 'finmind', 'mock'"
        )


# BarDataService singleton; its TTL cache must outlive single requests
_data_service: BarDataService | None = None
_data_service_lock = asyncio.Lock()


async def get_data_service() -> BarDataService:
    """Get the shared BarDataService (lazy singleton with lock).

    The service owns the in-memory bar cache, so every request shares one
    instance.
    """
    global _data_service
    if _data_service is None:
        async with _data_service_lock:
            # Check again after acquiring lock
            if _data_service is None:
                settings = get_settings()
                _data_service = BarDataService(
                    provider=create_market_data_provider(settings),
                    settings=settings,
                )
    return _data_service


def reset_data_service() -> None:
    """Drop the shared BarDataService (called on shutdown and in tests)."""
    global _data_service
    _data_service = None


async def get_three_line_service(
    data_service: BarDataService = Depends(get_data_service),
) -> ThreeLineService:
    """Get ThreeLineService with injected dependencies."""
    return ThreeLineService(data_service=data_service)
