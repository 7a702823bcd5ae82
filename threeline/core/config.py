"""Configuration management using Pydantic v2 settings.
"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application
    app_name: str = Field(default="Three-Line Convergence API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(
        default="development", description="Environment (development, production, test)"
    )

    # API
    api_v1_prefix: str = Field(default="/api/v1", description="API v1 prefix")
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")

    # Market Data Provider Configuration
    market_data_provider: str = Field(
        default="finmind",
        description="Market data provider: 'finmind', 'mock'"
    )

    # FinMind Configuration
    finmind_api_url: str = Field(
        default="https://api.finmindtrade.com/api/v4/data",
        description="FinMind v4 data endpoint"
    )
    finmind_token: str | None = Field(
        default=None,
        description="Optional FinMind API token (anonymous access is rate limited)"
    )
    finmind_max_retries: int = Field(
        default=3,
        description="Maximum retry attempts for FinMind API calls"
    )
    finmind_retry_delay: float = Field(
        default=1.0,
        description="Initial delay between retries in seconds (uses exponential backoff)"
    )
    finmind_timeout: float = Field(
        default=10.0,
        description="HTTP timeout for FinMind requests in seconds"
    )

    # Data Service Defaults
    history_days: int = Field(
        default=140,
        description="Calendar days of history to fetch (covers MA20 + volume MA with holidays)"
    )
    candle_history_days: int = Field(
        default=120,
        description="Number of most recent candles returned for charting"
    )
    bar_cache_ttl: int = Field(
        default=30,
        description="Seconds fetched bars stay in the in-memory cache"
    )
    bar_cache_size: int = Field(
        default=500,
        description="Maximum number of cached bar series"
    )

    # Scan Configuration
    scan_concurrency: int = Field(
        default=8, description="Number of symbols fetched concurrently during a scan"
    )
    scan_timeout_seconds: float = Field(
        default=60.0,
        description="Wall-clock budget for fetching a scan's bars; late symbols are dropped"
    )
    max_scan_symbols: int = Field(
        default=300, description="Maximum number of symbols accepted in one scan request"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()
