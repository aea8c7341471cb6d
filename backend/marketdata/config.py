"""
Market Data Hub - Configuration Settings
"""
from typing import Annotated, List
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import field_validator
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # =========================
    # Application Settings
    # =========================
    APP_NAME: str = "Market Data Hub"
    APP_ENV: str = "development"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"

    # =========================
    # Server Configuration
    # =========================
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 8000
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000"]

    # =========================
    # Data Providers - Endpoints
    # =========================
    # Yahoo Finance mirrors, tried in order
    YAHOO_FINANCE_BASE_URLS: Annotated[List[str], NoDecode] = [
        "https://query1.finance.yahoo.com/v8/finance/chart",
        "https://query2.finance.yahoo.com/v8/finance/chart",
    ]
    YAHOO_FINANCE_TIMEOUT: float = 10.0

    ALPHA_VANTAGE_BASE_URL: str = "https://www.alphavantage.co/query"
    ALPHA_VANTAGE_API_KEY: str = "demo"
    ALPHA_VANTAGE_TIMEOUT: float = 15.0

    MUTUAL_FUND_API_BASE_URL: str = "https://api.mfapi.in"
    MUTUAL_FUND_API_TIMEOUT: float = 10.0

    @field_validator("CORS_ORIGINS", "YAHOO_FINANCE_BASE_URLS", "DEFAULT_STOCKS", mode="before")
    @classmethod
    def parse_list(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [item.strip() for item in v.split(",") if item.strip()]
        return v

    # =========================
    # Rate Limit Settings
    # =========================
    YAHOO_FINANCE_MAX_REQUESTS: int = 100
    YAHOO_FINANCE_WINDOW_MS: int = 60_000

    ALPHA_VANTAGE_MAX_REQUESTS: int = 5
    ALPHA_VANTAGE_WINDOW_MS: int = 60_000

    MUTUAL_FUND_API_MAX_REQUESTS: int = 200
    MUTUAL_FUND_API_WINDOW_MS: int = 60_000

    # Used by any provider (including the inbound api-endpoint) without an entry
    DEFAULT_MAX_REQUESTS: int = 60
    DEFAULT_WINDOW_MS: int = 60_000

    @property
    def rate_limit_table(self) -> dict[str, dict[str, int]]:
        """Provider name -> {"max_requests", "window_ms"}."""
        return {
            "yahoo-finance": {
                "max_requests": self.YAHOO_FINANCE_MAX_REQUESTS,
                "window_ms": self.YAHOO_FINANCE_WINDOW_MS,
            },
            "alpha-vantage": {
                "max_requests": self.ALPHA_VANTAGE_MAX_REQUESTS,
                "window_ms": self.ALPHA_VANTAGE_WINDOW_MS,
            },
            "mutual-fund-api": {
                "max_requests": self.MUTUAL_FUND_API_MAX_REQUESTS,
                "window_ms": self.MUTUAL_FUND_API_WINDOW_MS,
            },
        }

    @property
    def default_rate_limit(self) -> dict[str, int]:
        return {
            "max_requests": self.DEFAULT_MAX_REQUESTS,
            "window_ms": self.DEFAULT_WINDOW_MS,
        }

    # =========================
    # Cache Settings
    # =========================
    STOCK_TTL: int = 30             # seconds, quotes are volatile
    MUTUAL_FUND_TTL: int = 300      # seconds, NAVs update at most daily
    SEARCH_TTL: int = 600           # seconds, scheme lists and symbol search
    MAX_STOCK_ENTRIES: int = 500
    MAX_MF_ENTRIES: int = 200
    MAX_GENERAL_ENTRIES: int = 1000
    CACHE_CLEANUP_INTERVAL: float = 300.0

    # =========================
    # Retry Settings
    # =========================
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_BASE_DELAY: float = 1.0   # seconds
    RETRY_MAX_DELAY: float = 10.0   # seconds

    # =========================
    # Market Defaults
    # =========================
    DEFAULT_STOCKS: Annotated[List[str], NoDecode] = [
        "RELIANCE.NS",
        "TCS.NS",
        "INFY.NS",
        "HDFCBANK.NS",
        "ICICIBANK.NS",
        "HINDUNILVR.NS",
        "ITC.NS",
        "SBIN.NS",
        "BHARTIARTL.NS",
        "KOTAKBANK.NS",
    ]

    # =========================
    # Scheduler Settings
    # =========================
    QUOTE_POLL_INTERVAL: float = 5.0  # seconds
    ENABLE_QUOTE_POLLER: bool = False

    # =========================
    # Logging
    # =========================
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"


# Create global settings instance
settings = Settings()
