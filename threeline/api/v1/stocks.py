"""Single stock code lookup endpoint for the three-line verdict.
"""
import logging
from typing import Any

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query
from fastapi import Request
from fastapi import Response
from fastapi import status

from threeline.core.config import get_settings
from threeline.core.deps import get_three_line_service, get_validated_symbol
from threeline.core.exceptions import APIError
from threeline.core.exceptions import DataValidationError
from threeline.core.exceptions import SymbolNotFoundError
from threeline.core.rate_limit import LOOKUP_RATE_LIMIT, limiter
from threeline.schemas.three_line import ThreeLineResponse
from threeline.services.three_line_service import ThreeLineService

router = APIRouter()
logger = logging.getLogger(__name__)


async def get_rule_overrides(
    ma_short: str | None = Query(None, description="Short MA window (days)"),
    ma_mid: str | None = Query(None, description="Mid MA window (days)"),
    ma_long: str | None = Query(None, description="Long MA window (days)"),
    tangle_lookback_days: str | None = Query(
        None, description="Days the MAs must stay tangled"
    ),
    tangle_max_spread_pct: str | None = Query(
        None, description="Max MA spread as a fraction of close (0.015 = 1.5%)"
    ),
    volume_ma_days: str | None = Query(None, description="Volume MA window (days)"),
    volume_multiplier: str | None = Query(
        None, description="Required latest volume / volume MA ratio"
    ),
    min_volume_ratio: str | None = Query(None, description="Floor for the volume ratio"),
    slope_days: str | None = Query(None, description="Offset used to confirm rising MAs"),
    max_extension_pct: str | None = Query(
        None, description="Max close distance above the long MA, as a fraction"
    ),
    confirm_days: str | None = Query(
        None, description="Recent closes that must stay on all three MAs"
    ),
    min_bars: str | None = Query(None, description="Minimum bars before evaluating"),
    min_score: str | None = Query(None, description="Minimum score for a qualified verdict"),
) -> dict[str, Any]:
    """Collect rule overrides from query parameters.

    Values are passed through as raw strings so that an invalid value falls
    back to its default (reported in the verdict issues) instead of failing
    the request.
    """
    overrides = {
        "ma_short": ma_short,
        "ma_mid": ma_mid,
        "ma_long": ma_long,
        "tangle_lookback_days": tangle_lookback_days,
        "tangle_max_spread_pct": tangle_max_spread_pct,
        "volume_ma_days": volume_ma_days,
        "volume_multiplier": volume_multiplier,
        "min_volume_ratio": min_volume_ratio,
        "slope_days": slope_days,
        "max_extension_pct": max_extension_pct,
        "confirm_days": confirm_days,
        "min_bars": min_bars,
        "min_score": min_score,
    }
    return {name: value for name, value in overrides.items() if value is not None}


@router.get(
    "/{code}/three-line",
    response_model=ThreeLineResponse,
    summary="Get Three-Line Verdict",
    description="Evaluate the three-line convergence pattern for one Taiwan stock code. "
    "Returns the score, label, per-check details, hard gates, latest metrics and "
    "the most recent candles with their moving averages. "
    "Every rule threshold can be overridden with a query parameter.",
    operation_id="get_three_line_verdict",
    responses={
        400: {"description": "Invalid stock code format"},
        404: {"description": "No price data for the code"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Internal Server Error"},
        502: {"description": "Market data source failed"},
    },
)
@limiter.limit(LOOKUP_RATE_LIMIT)
async def get_three_line(
    request: Request,
    response: Response,
    code: str = Depends(get_validated_symbol),
    rules: dict[str, Any] = Depends(get_rule_overrides),
    service: ThreeLineService = Depends(get_three_line_service),
) -> dict[str, Any]:
    """Get the three-line verdict for a stock code.

    Args:
        request: Incoming request (used by the rate limiter)
        response: Outgoing response (for cache headers)
        code: Validated stock code (e.g., 2330)
        rules: Rule overrides from the query string
        service: Three-line service

    Returns:
        Verdict, candles and source metadata

    Raises:
        HTTPException: 404 if the code has no data, 400 on a malformed
            payload, 502 if the data source fails
    """
    try:
        analysis = await service.analyze_symbol(code, rules)
    except SymbolNotFoundError as e:
        logger.warning(f"Stock code not found: {code}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DataValidationError as e:
        logger.warning(f"Data validation error for {code}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except APIError as e:
        logger.error(f"Market data error for {code}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Market data source error: {e}",
        )

    response.headers["Cache-Control"] = f"public, max-age={get_settings().bar_cache_ttl}"
    return analysis.to_dict()
