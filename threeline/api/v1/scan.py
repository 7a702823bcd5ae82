"""Pool scan endpoint: rank stock codes by three-line convergence.
"""
import logging
from typing import Any

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Request
from fastapi import status

from threeline.core.config import get_settings
from threeline.core.deps import get_three_line_service
from threeline.core.rate_limit import SCAN_RATE_LIMIT, limiter
from threeline.schemas.three_line import ScanRequest, ScanResponse
from threeline.services.three_line_service import ThreeLineService
from threeline.utils.validation import is_valid_symbol, normalize_symbol

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=ScanResponse,
    summary="Scan Stock Codes",
    description="Evaluate every code in the pool and return those passing all hard "
    "gates, ordered by volume ratio (highest first). Codes that are malformed, "
    "have no data, or are not fetched before the scan deadline are listed in "
    "`skipped` with a reason.",
    operation_id="scan_three_line",
    responses={
        400: {"description": "Too many symbols"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Internal Server Error"},
    },
)
@limiter.limit(SCAN_RATE_LIMIT)
async def scan_symbols(
    request: Request,
    body: ScanRequest,
    service: ThreeLineService = Depends(get_three_line_service),
) -> dict[str, Any]:
    """Scan a pool of stock codes.

    Args:
        request: Incoming request (used by the rate limiter)
        body: Codes to scan and optional rule overrides
        service: Three-line service

    Returns:
        Ranked qualifying codes plus evaluated and skipped bookkeeping

    Raises:
        HTTPException: 400 if the pool exceeds max_scan_symbols
    """
    settings = get_settings()
    if len(body.symbols) > settings.max_scan_symbols:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many symbols: {len(body.symbols)} (max {settings.max_scan_symbols})",
        )

    valid: list[str] = []
    invalid: dict[str, str] = {}
    for raw in body.symbols:
        code = normalize_symbol(raw)
        if is_valid_symbol(code):
            valid.append(code)
        else:
            invalid[raw] = "invalid stock code format"

    if invalid:
        logger.info(f"Scan ignoring {len(invalid)} malformed codes")

    result = await service.scan_symbols(valid, body.rules)
    result.skipped = {**invalid, **result.skipped}
    return result.to_dict()
