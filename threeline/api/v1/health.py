"""Health check endpoints for monitoring application status.
"""
import asyncio
from datetime import UTC
from datetime import datetime
from typing import Any

from fastapi import APIRouter
from fastapi import HTTPException
from fastapi import status

from threeline.core.config import get_settings
from threeline.core.docs import API_VERSION

router = APIRouter()


@router.get(
    "/health",
    response_model=dict[str, Any],
    summary="Comprehensive Health Check",
    description="Returns health status including application readiness and the "
    "configured market data provider. The data source itself is not probed, "
    "so a healthy response does not guarantee FinMind availability.",
    operation_id="get_health_status",
    responses={
        200: {"description": "Service is healthy"},
        503: {"description": "Service is unhealthy"},
    },
)
async def health_check() -> dict[str, Any]:
    """Comprehensive health check endpoint.

    Returns:
        Dict[str, Any]: Health status information

    Raises:
        HTTPException: If any health check fails (status 503)
    """
    settings = get_settings()
    health_data: dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": API_VERSION,
        "environment": settings.environment,
        "checks": {},
    }

    # Application readiness check
    try:
        await asyncio.sleep(0.001)
        health_data["checks"]["application"] = {"status": "healthy", "message": "Application ready"}
    except Exception as e:
        health_data["status"] = "unhealthy"
        health_data["checks"]["application"] = {
            "status": "unhealthy",
            "message": f"Application not ready: {str(e)}",
        }

    if settings.market_data_provider in ("finmind", "mock"):
        health_data["checks"]["market_data"] = {
            "status": "healthy",
            "message": f"Provider configured: {settings.market_data_provider}",
        }
    else:
        health_data["status"] = "unhealthy"
        health_data["checks"]["market_data"] = {
            "status": "unhealthy",
            "message": f"Unknown market data provider: {settings.market_data_provider}",
        }

    if health_data["status"] == "unhealthy":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=health_data)

    return health_data


@router.get(
    "/health/ready",
    response_model=dict[str, str],
    summary="Readiness Probe",
    description="Simple readiness check for load balancers. "
    "Returns 200 OK when the application is ready to serve traffic.",
    operation_id="get_readiness",
)
async def readiness_check() -> dict[str, str]:
    """Simple readiness check for load balancer probes."""
    return {"status": "ready", "timestamp": datetime.now(UTC).isoformat()}


@router.get(
    "/health/live",
    response_model=dict[str, str],
    summary="Liveness Probe",
    description="Simple liveness check. Returns 200 OK when the process is alive.",
    operation_id="get_liveness",
)
async def liveness_check() -> dict[str, str]:
    """Simple liveness check for container orchestration."""
    return {"status": "alive", "timestamp": datetime.now(UTC).isoformat()}
