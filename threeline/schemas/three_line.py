"""Schemas for the three-line convergence API."""

from typing import Any

from pydantic import ConfigDict, Field

from threeline.schemas.base import StrictBaseModel


class CheckResponse(StrictBaseModel):
    """One baseline check or hard gate."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    passed: bool = Field(..., alias="pass", description="True if the check passed")
    status: str = Field(..., description="passed, failed or unavailable")
    note: str = Field(..., description="Human-readable numbers behind the decision")
    values: dict[str, float | int | None] = Field(default_factory=dict)


class LatestMetricsResponse(StrictBaseModel):
    """Latest bar and its moving average context."""

    date: str
    close: float
    volume: float
    ma_short: float | None = None
    ma_mid: float | None = None
    ma_long: float | None = None
    volume_ma: float | None = None
    volume_ratio: float | None = Field(None, description="Latest volume / volume MA")
    extension_pct: float | None = Field(
        None, description="(close - long MA) / long MA, as a fraction"
    )


class VerdictResponse(StrictBaseModel):
    """Evaluation of the latest bar."""

    score: int = Field(..., ge=0, le=5)
    max_score: int
    label: str = Field(
        ...,
        description="near-convergence-bullish, neutral-bullish, watch, not-formed "
        "or insufficient-data",
    )
    label_text: str
    details: dict[str, CheckResponse]
    gates: dict[str, CheckResponse]
    qualified: bool = Field(..., description="True when every hard gate passed")
    latest: LatestMetricsResponse | None = None
    issues: list[str] = Field(default_factory=list)
    bars_used: int
    min_bars_required: int
    rules: dict[str, Any]


class CandleResponse(StrictBaseModel):
    """Daily bar with moving averages for charting."""

    date: str
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    volume: float | None = None
    ma_short: float | None = None
    ma_mid: float | None = None
    ma_long: float | None = None
    volume_ma: float | None = None


class DateRangeResponse(StrictBaseModel):
    start_date: str
    end_date: str


class ThreeLineResponse(StrictBaseModel):
    """Response for a single-code lookup."""

    symbol: str
    name: str | None = None
    source: str
    range: DateRangeResponse
    verdict: VerdictResponse
    candles: list[CandleResponse]

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "examples": [
                {
                    "symbol": "2330",
                    "name": "台積電",
                    "source": "finmind",
                    "range": {"start_date": "2025-06-01", "end_date": "2025-10-19"},
                    "verdict": {
                        "score": 4,
                        "max_score": 5,
                        "label": "near-convergence-bullish",
                        "label_text": "near three-line convergence (bullish lean)",
                        "details": {},
                        "gates": {},
                        "qualified": True,
                        "latest": None,
                        "issues": [],
                        "bars_used": 95,
                        "min_bars_required": 30,
                        "rules": {},
                    },
                    "candles": [],
                }
            ]
        },
    )


class ScanRequest(StrictBaseModel):
    """Request to scan a pool of stock codes."""

    symbols: list[str] = Field(..., description="Stock codes to scan (4-6 digits each)")
    rules: dict[str, Any] | None = Field(
        None,
        description="Rule overrides; invalid values fall back to defaults",
    )


class ScanItemResponse(StrictBaseModel):
    """A code that passed every hard gate."""

    symbol: str
    name: str | None = None
    score: int
    label: str
    latest: LatestMetricsResponse | None = None


class ScanResponse(StrictBaseModel):
    """Ranked scan output, volume ratio descending."""

    count: int
    items: list[ScanItemResponse]
    evaluated: int
    skipped: dict[str, str] = Field(
        default_factory=dict, description="Code -> reason it was not evaluated"
    )
