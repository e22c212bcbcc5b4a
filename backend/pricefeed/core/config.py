"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "PriceFeed Backend"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS (Frontend URL)
    frontend_url: str = "http://localhost:3000"
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Provider credentials (a strategy missing a required one is not registered)
    brapi_token: Optional[str] = None
    finnhub_api_key: Optional[str] = None
    twelve_data_key: Optional[str] = None
    alpha_vantage_key: Optional[str] = None

    # Provider endpoints
    brapi_base_url: str = "https://brapi.dev/api"
    yahoo_chart_url: str = "https://query1.finance.yahoo.com/v8/finance/chart"
    yahoo_search_url: str = "https://query1.finance.yahoo.com/v1/finance/search"
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    finnhub_base_url: str = "https://finnhub.io/api/v1"
    twelve_data_base_url: str = "https://api.twelvedata.com"
    alpha_vantage_base_url: str = "https://www.alphavantage.co/query"
    frankfurter_base_url: str = "https://api.frankfurter.app"
    awesomeapi_base_url: str = "https://economia.awesomeapi.com.br/json"

    # Per-call timeouts (seconds)
    quote_timeout: float = 5.0
    history_timeout: float = 10.0
    exchange_rate_timeout: float = 5.0

    # Cache TTLs (seconds)
    quote_cache_ttl: int = 60
    historical_cache_ttl: int = 1800
    failure_cache_ttl: int = 300
    exchange_rate_cache_ttl: int = 300

    # Currency
    fallback_usd_brl_rate: float = 5.8

    # Batch resolution
    batch_size: int = 5
    batch_delay_seconds: float = 0.3

    # Historical date window (days around the target date)
    history_window_days_before: int = 7
    history_window_days_after: int = 3

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
