"""Three-line service: fetches bars and runs the evaluator for lookups and scans."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from threeline.core.config import Settings, get_settings
from threeline.providers.base import Bar
from threeline.schemas.rules import RuleConfig, normalize_rule_config
from threeline.services.bar_series import normalize_bars
from threeline.services.data_service import BarDataService
from threeline.services.scan_ranker import ScanResult, scan
from threeline.services.three_line_evaluator import (
    IndicatorSeries,
    ThreeLineEvaluator,
    Verdict,
)
from threeline.utils.numbers import safe_round

logger = logging.getLogger(__name__)


@dataclass
class SymbolAnalysis:
    """Result of a single-code lookup.

    Attributes:
        symbol: Stock code analyzed
        name: Display name, None if the lookup failed
        source: Provider the bars came from
        start_date: First day of the requested range
        end_date: Last day of the requested range
        verdict: Evaluation of the latest bar
        candles: Most recent bars with their MA values, oldest first
    """

    symbol: str
    name: str | None
    source: str
    start_date: date
    end_date: date
    verdict: Verdict
    candles: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "source": self.source,
            "range": {
                "start_date": self.start_date.isoformat(),
                "end_date": self.end_date.isoformat(),
            },
            "verdict": self.verdict.to_dict(),
            "candles": self.candles,
        }


def build_candles(
    bars: tuple[Bar, ...], indicators: IndicatorSeries, limit: int
) -> list[dict[str, Any]]:
    """Last ``limit`` bars with MAs rounded for charting (null when undefined)."""
    start = max(0, len(bars) - limit) if limit > 0 else len(bars)
    return [
        {
            **bars[i].to_dict(),
            "ma_short": safe_round(indicators.ma_short[i], 3),
            "ma_mid": safe_round(indicators.ma_mid[i], 3),
            "ma_long": safe_round(indicators.ma_long[i], 3),
            "volume_ma": safe_round(indicators.volume_ma[i], 0),
        }
        for i in range(start, len(bars))
    ]


class ThreeLineService:
    """Service for three-line convergence lookups and pool scans.

    Delegates evaluation to ThreeLineEvaluator and handles:
    - Fetching bars through BarDataService (cached)
    - Bounded-concurrency fetching with a deadline for scans

    See ThreeLineEvaluator for the checks and gates.
    """

    def __init__(
        self,
        data_service: BarDataService,
        settings: Settings | None = None,
    ) -> None:
        self.data_service = data_service
        self.settings = settings or get_settings()
        self._evaluator = ThreeLineEvaluator()

    async def analyze_symbol(
        self,
        symbol: str,
        rules: RuleConfig | Mapping[str, Any] | None = None,
    ) -> SymbolAnalysis:
        """Fetch bars for one code and evaluate them.

        Raises:
            SymbolNotFoundError: If the provider has no data for the code
            APIError: If the provider fails after retries
        """
        rule_config = normalize_rule_config(rules)
        fetched = await self.data_service.get_bars(symbol)

        series = normalize_bars(fetched.bars)
        verdict = self._evaluator.evaluate_series(series, rule_config)
        indicators = self._evaluator.compute_indicators(series, rule_config)

        try:
            name = await self.data_service.get_stock_name(symbol)
        except Exception as e:
            # Name is cosmetic, the verdict stands without it
            logger.warning(f"Failed to fetch stock name for {symbol}: {e}")
            name = None

        logger.info(
            f"{symbol}: score {verdict.score}/{len(verdict.details)} "
            f"({verdict.label.value}), qualified={verdict.qualified}, "
            f"{verdict.bars_used} bars ({fetched.cache.value})"
        )

        return SymbolAnalysis(
            symbol=symbol,
            name=name,
            source=fetched.source,
            start_date=fetched.start_date,
            end_date=fetched.end_date,
            verdict=verdict,
            candles=build_candles(
                series.bars, indicators, self.settings.candle_history_days
            ),
        )

    async def scan_symbols(
        self,
        symbols: list[str],
        rules: RuleConfig | Mapping[str, Any] | None = None,
    ) -> ScanResult:
        """Fetch bars for every code and rank the qualifying ones.

        Fetches run concurrently, at most ``scan_concurrency`` at a time.
        Codes whose fetch fails or is still running when
        ``scan_timeout_seconds`` elapses are reported in ``skipped``.
        """
        rule_config = normalize_rule_config(rules)
        unique_symbols = list(dict.fromkeys(symbols))
        skipped: dict[str, str] = {}

        if not unique_symbols:
            return ScanResult()

        semaphore = asyncio.Semaphore(max(1, self.settings.scan_concurrency))

        async def fetch(symbol: str) -> list[Bar]:
            async with semaphore:
                return (await self.data_service.get_bars(symbol)).bars

        tasks = {
            symbol: asyncio.create_task(fetch(symbol)) for symbol in unique_symbols
        }
        done, pending = await asyncio.wait(
            tasks.values(), timeout=self.settings.scan_timeout_seconds
        )
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                f"Scan deadline of {self.settings.scan_timeout_seconds}s reached, "
                f"dropping {len(pending)} symbols"
            )

        symbol_bars: dict[str, list[Bar]] = {}
        for symbol, task in tasks.items():
            if task in pending:
                skipped[symbol] = "timeout"
                continue
            error = task.exception()
            if error is not None:
                logger.warning(f"{symbol} fetch failed: {error}")
                skipped[symbol] = str(error) or type(error).__name__
                continue
            symbol_bars[symbol] = task.result()

        result = scan(symbol_bars, rule_config, evaluator=self._evaluator)
        result.skipped = {**skipped, **result.skipped}

        await self._attach_names(result)
        return result

    async def _attach_names(self, result: ScanResult) -> None:
        """Look up display names for the qualifying items only."""
        if not result.items:
            return
        names = await asyncio.gather(
            *(self.data_service.get_stock_name(item.symbol) for item in result.items),
            return_exceptions=True,
        )
        for item, name in zip(result.items, names):
            if isinstance(name, Exception):
                logger.warning(f"Failed to fetch stock name for {item.symbol}: {name}")
                continue
            item.name = name
