"""Main FastAPI application with async support and middleware.
"""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from threeline.api.v1 import health
from threeline.api.v1 import scan
from threeline.api.v1 import stocks
from threeline.core.config import get_settings
from threeline.core.deps import reset_data_service
from threeline.core.docs import API_DESCRIPTION
from threeline.core.docs import API_TITLE
from threeline.core.docs import API_VERSION
from threeline.core.docs import OPENAPI_TAGS
from threeline.core.docs import custom_openapi_schema
from threeline.core.docs import get_swagger_ui_html_config
from threeline.core.exceptions import DataServiceError
from threeline.core.rate_limit import limiter
from threeline.utils.structured_logging import configure_structured_logging
from threeline.utils.structured_logging import get_logger

configure_structured_logging(
    log_level=get_settings().log_level,
    json_logs=not get_settings().is_development,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan management.

    Handles startup and shutdown events for the FastAPI application.
    """
    settings = get_settings()

    logger.info(
        "Starting Three-Line Scanner API",
        environment=settings.environment,
        provider=settings.market_data_provider,
        bar_cache_ttl=settings.bar_cache_ttl,
    )

    try:
        yield
    finally:
        logger.info("Shutting down Three-Line Scanner API")
        reset_data_service()
        logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        openapi_tags=OPENAPI_TAGS,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        debug=settings.debug,
        lifespan=lifespan,
        swagger_ui_parameters=get_swagger_ui_html_config()["swagger_ui_parameters"]
        if settings.is_development
        else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Add rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.exception_handler(DataServiceError)
    async def market_data_exception_handler(
        request: Request, exc: DataServiceError
    ) -> JSONResponse:
        """Map market data failures that escaped a route to 502."""
        logger.warning(
            "Market data failure reached the app handler",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": f"Market data source error: {exc}"},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Last-resort handler; details are only exposed in development."""
        logger.error(
            "Unhandled exception occurred",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
        )

        content: dict[str, str] = {"error": "Internal Server Error"}
        if settings.is_development:
            content.update(detail=str(exc), type=type(exc).__name__)
        else:
            content["detail"] = "An unexpected error occurred"
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    # Include routers
    app.include_router(health.router, prefix=settings.api_v1_prefix, tags=["health"])

    app.include_router(stocks.router, prefix=f"{settings.api_v1_prefix}/stocks", tags=["stocks"])

    app.include_router(scan.router, prefix=f"{settings.api_v1_prefix}/scan", tags=["scan"])

    # Set custom OpenAPI schema with enhanced documentation
    if settings.is_development:
        app.openapi = lambda: custom_openapi_schema(app)

    return app


# Create application instance
app = create_app()


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint.

    Returns:
        dict: Welcome message with links
    """
    settings = get_settings()
    return {
        "message": "Three-Line Scanner API",
        "version": API_VERSION,
        "docs": "/docs" if settings.is_development else "disabled",
        "health": f"{settings.api_v1_prefix}/health",
    }


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "threeline.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
