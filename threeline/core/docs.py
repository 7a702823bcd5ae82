"""FastAPI documentation configuration and metadata.

OpenAPI descriptions, tags and shared error examples for the Three-Line
Scanner API.
"""
from typing import Any

from fastapi.openapi.utils import get_openapi

# API Metadata
API_TITLE = "Three-Line Scanner API"
API_DESCRIPTION = """
## Three-Line Scanner API

Detects the **three-line convergence** (三線合一) pattern on Taiwan stocks:
the short, mid and long simple moving averages tangle together, then turn
bullish with volume confirmation.

### Baseline checks (1 point each)

1. **Tangled** - the three MAs stayed within a spread tolerance over a lookback
2. **Arranged** - short MA > mid MA > long MA
3. **Trending up** - all three MAs higher than a few days ago
4. **Price above** - latest close above all three MAs
5. **Volume surge** - latest volume above its moving average

A score of 4+ is labelled `near-convergence-bullish`, 3 `neutral-bullish`,
2 `watch`, anything lower `not-formed`.

### Scan gates

A scanned code is returned only when it also passes the hard gates
(minimum score, confirmed closes above the MAs, rising long MA, and not
over-extended above the long MA). Results are ordered by volume ratio.

### Rules

Every threshold can be overridden per request. Fractions are fractions
(`0.015` means 1.5%). Invalid values fall back to their defaults and are
reported in the verdict's `issues`.

### Data Sources

- **Primary**: FinMind (`TaiwanStockPrice`, `TaiwanStockInfo`)

### API Versioning

Current version: **v1** - All endpoints are prefixed with `/api/v1`
"""

API_VERSION = "1.0.0"
API_LICENSE = {
    "name": "MIT",
    "url": "https://opensource.org/licenses/MIT",
}

# OpenAPI Tags
OPENAPI_TAGS: list[dict[str, Any]] = [
    {
        "name": "health",
        "description": "**System Health & Monitoring**\n\n"
        "Endpoints for monitoring application health, readiness, and liveness.",
    },
    {
        "name": "stocks",
        "description": "**Single Code Lookup**\n\n"
        "Three-line verdict for one stock code with recent candles and MA values.",
    },
    {
        "name": "scan",
        "description": "**Pool Scan**\n\n"
        "Evaluate a list of stock codes and return the qualifying ones, "
        "ordered by volume ratio.",
    },
]

# Response Examples
COMMON_RESPONSES = {
    400: {
        "description": "Bad Request - Invalid input parameters",
        "content": {
            "application/json": {
                "examples": {
                    "invalid_code": {
                        "summary": "Invalid Stock Code Format",
                        "value": {"detail": "Invalid stock code format: 23A0"},
                    },
                    "too_many_symbols": {
                        "summary": "Scan Pool Too Large",
                        "value": {"detail": "Too many symbols: 500 (max 300)"},
                    },
                }
            }
        },
    },
    404: {
        "description": "Not Found - No price data for the code",
        "content": {
            "application/json": {
                "examples": {
                    "symbol_not_found": {
                        "summary": "Code Not Found",
                        "value": {
                            "detail": "No price data for '9999' (unknown code or source unavailable)"
                        },
                    }
                }
            }
        },
    },
    502: {
        "description": "Bad Gateway - Market data source failed",
        "content": {
            "application/json": {
                "examples": {
                    "finmind_down": {
                        "summary": "FinMind Unavailable",
                        "value": {
                            "detail": "Market data source error: Failed to fetch data after 3 attempts"
                        },
                    }
                }
            }
        },
    },
    500: {
        "description": "Internal Server Error - Server encountered an error",
        "content": {
            "application/json": {
                "examples": {
                    "generic_error": {
                        "summary": "Generic Internal Error",
                        "value": {
                            "error": "Internal Server Error",
                            "detail": "An unexpected error occurred",
                        },
                    }
                }
            }
        },
    },
}


def custom_openapi_schema(app) -> dict[str, Any]:
    """Generate custom OpenAPI schema with enhanced documentation.

    Args:
        app: FastAPI application instance

    Returns:
        Dict[str, Any]: Custom OpenAPI schema
    """
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=API_TITLE,
        version=API_VERSION,
        description=API_DESCRIPTION,
        routes=app.routes,
        tags=OPENAPI_TAGS,
        license_info=API_LICENSE,
    )

    openapi_schema["servers"] = [
        {"url": "http://localhost:8000", "description": "Local Development Server"},
    ]

    openapi_schema["components"] = openapi_schema.get("components", {})
    openapi_schema["components"]["headers"] = {
        "Cache-Control": {
            "description": "Lookup responses are cacheable for the bar cache TTL",
            "schema": {"type": "string", "example": "public, max-age=30"},
        },
    }
    openapi_schema["components"]["responses"] = COMMON_RESPONSES

    app.openapi_schema = openapi_schema
    return app.openapi_schema


def get_swagger_ui_html_config() -> dict[str, Any]:
    """Get Swagger UI HTML configuration.

    Returns:
        Dict[str, Any]: Swagger UI configuration
    """
    return {
        "swagger_ui_parameters": {
            "deepLinking": True,
            "displayRequestDuration": True,
            "defaultModelsExpandDepth": 2,
            "docExpansion": "list",
            "filter": True,
            "tryItOutEnabled": True,
        },
    }
