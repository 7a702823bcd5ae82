"""FinMind market data provider implementation.

This provider calls the FinMind v4 REST API (``TaiwanStockPrice`` and
``TaiwanStockInfo`` datasets), handling HTTP errors, retries with exponential
backoff, and transformation of the payload into Bars.
"""
import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
import pandas as pd

from threeline.core.config import Settings, get_settings
from threeline.core.exceptions import (
    APIError,
    DataValidationError,
    SymbolNotFoundError,
)
from threeline.providers.base import (
    Bar,
    MarketDataProviderInterface,
    PriceDataRequest,
)

logger = logging.getLogger(__name__)

USER_AGENT = "three-line-scanner/1.0"

# FinMind column -> Bar field
PRICE_COLUMNS = {
    "open": "open",
    "max": "high",
    "min": "low",
    "close": "close",
    "Trading_Volume": "volume",
}


class TransientAPIError(APIError):
    """Provider failure worth retrying (rate limit, 5xx, transport error)."""

    pass


class FinMindProvider(MarketDataProviderInterface):
    """
    FinMind market data provider implementation.

    Handles:
    - Async HTTP calls through httpx
    - Retries with exponential backoff on transient failures
    - Transformation of FinMind rows (string numbers, "max"/"min" naming) to Bars
    """

    PRICE_DATASET = "TaiwanStockPrice"
    INFO_DATASET = "TaiwanStockInfo"
    RETRYABLE_STATUS = {429, 500, 502, 503, 504}

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            settings: Application settings (defaults to get_settings())
            client: Shared AsyncClient; a short-lived client is used per call if None
        """
        self.settings = settings or get_settings()
        self._client = client

    @property
    def provider_name(self) -> str:
        return "finmind"

    async def fetch_bars(self, request: PriceDataRequest) -> list[Bar]:
        """Fetch daily bars from FinMind's TaiwanStockPrice dataset."""
        self._validate_date_range(request)

        params = {
            "dataset": self.PRICE_DATASET,
            "stock_id": request.symbol,
            "start_date": request.start_date.isoformat(),
            "end_date": request.end_date.isoformat(),
        }
        payload = await self._fetch_with_retry(params, request.symbol)

        rows = payload.get("data")
        if not isinstance(rows, list):
            raise DataValidationError(f"Malformed FinMind payload for {request.symbol}")
        if not rows:
            raise SymbolNotFoundError(
                f"No price data for '{request.symbol}' (unknown code or source unavailable)"
            )

        bars = self._transform_data(rows, request.symbol)

        logger.info(
            f"Fetched {len(bars)} bars for {request.symbol} "
            f"from {request.start_date} to {request.end_date}"
        )
        return bars

    async def get_stock_name(self, symbol: str) -> str | None:
        """Look up the display name from FinMind's TaiwanStockInfo dataset."""
        params = {"dataset": self.INFO_DATASET, "stock_id": symbol}
        try:
            payload = await self._fetch_with_retry(params, symbol)
        except APIError as e:
            logger.warning(f"Failed to fetch stock name for {symbol}: {e}")
            return None

        for row in payload.get("data") or []:
            if isinstance(row, dict) and row.get("stock_id") == symbol and row.get("stock_name"):
                return str(row["stock_name"])
        return None

    def _validate_date_range(self, request: PriceDataRequest) -> None:
        """Validate date range constraints."""
        if request.start_date >= request.end_date:
            raise DataValidationError("start_date must be before end_date")

    @asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.settings.finmind_timeout) as client:
            yield client

    async def _request(self, params: dict[str, str]) -> dict[str, Any]:
        """Perform one FinMind call and return the decoded payload."""
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if self.settings.finmind_token:
            headers["Authorization"] = f"Bearer {self.settings.finmind_token}"

        async with self._http_client() as client:
            try:
                response = await client.get(
                    self.settings.finmind_api_url, params=params, headers=headers
                )
            except httpx.TransportError as e:
                raise TransientAPIError(f"FinMind transport error: {e}") from e

        if response.status_code in self.RETRYABLE_STATUS:
            raise TransientAPIError(f"FinMind HTTP {response.status_code}")
        if response.status_code >= 400:
            raise APIError(f"FinMind HTTP {response.status_code}: {response.text[:300]}")

        try:
            payload = response.json()
        except ValueError as e:
            raise DataValidationError(f"FinMind returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise DataValidationError("FinMind returned a non-object payload")
        if payload.get("status", 200) != 200:
            raise APIError(f"FinMind error: {payload.get('msg', 'unknown error')}")
        return payload

    async def _fetch_with_retry(self, params: dict[str, str], symbol: str) -> dict[str, Any]:
        """Fetch data with retry logic and exponential backoff."""
        max_retries = max(1, self.settings.finmind_max_retries)
        last_error: Exception | None = None

        for attempt in range(max_retries):
            try:
                return await self._request(params)
            except TransientAPIError as e:
                last_error = e
                if attempt < max_retries - 1:
                    wait_time = self.settings.finmind_retry_delay * (2**attempt)
                    logger.warning(
                        f"Attempt {attempt + 1} failed for {symbol}, "
                        f"retrying in {wait_time}s: {e}"
                    )
                    await asyncio.sleep(wait_time)
                else:
                    logger.error(f"All {max_retries} attempts failed for {symbol}: {e}")

        raise APIError(f"Failed to fetch data after {max_retries} attempts: {last_error}")

    def _transform_data(self, rows: list[dict[str, Any]], symbol: str) -> list[Bar]:
        """Transform FinMind rows to Bars.

        Numbers arrive as numbers or comma-grouped strings; anything that does
        not parse becomes None and is filtered later by the bar normalizer.
        """
        data = pd.DataFrame(rows)
        if "date" not in data.columns:
            raise DataValidationError(f"FinMind rows for {symbol} have no 'date' column")

        for column in PRICE_COLUMNS:
            if column not in data.columns:
                data[column] = None
            data[column] = pd.to_numeric(
                data[column].astype(str).str.replace(",", "", regex=False),
                errors="coerce",
            )

        data = data.astype(object).where(data.notna(), None)

        return [
            Bar(
                date=str(record["date"]),
                **{field: record[column] for column, field in PRICE_COLUMNS.items()},
            )
            for record in data.to_dict("records")
        ]
