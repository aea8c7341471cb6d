"""
Market Data Hub - Test Configuration
Shared fixtures and test configuration.
"""
import os
import sys
import random
import pytest
from unittest.mock import AsyncMock, MagicMock

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment
os.environ["APP_ENV"] = "testing"
os.environ["ENABLE_QUOTE_POLLER"] = "false"

from marketdata.config import Settings
from marketdata.data_providers.adapters.base import (
    NormalizedQuote,
    NormalizedFund,
    ProviderConfig,
    ProviderError,
    SOURCE_YAHOO_FINANCE,
    SOURCE_ALPHA_VANTAGE,
    SOURCE_MUTUAL_FUND_API,
)
from marketdata.data_providers.adapters.yahoo_finance import YahooFinanceAdapter
from marketdata.data_providers.adapters.alpha_vantage import AlphaVantageAdapter
from marketdata.data_providers.adapters.mutual_fund_api import MutualFundAdapter
from marketdata.data_providers.aggregator import DataAggregator, AggregatorConfig
from marketdata.data_providers.cache_manager import CacheRegistry
from marketdata.data_providers.rate_limiter import RateLimiter
from marketdata.data_providers.synthetic import SyntheticQuoteGenerator, SyntheticFundGenerator


class FakeClock:
    """Manually advanced time source, in seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_quote(symbol: str, price: float = 100.0, source: str = SOURCE_YAHOO_FINANCE) -> NormalizedQuote:
    return NormalizedQuote(
        symbol=symbol,
        name=f"{symbol} Ltd",
        price=price,
        change=1.0,
        change_percent=1.0,
        volume=1000,
        market_cap=1e9,
        high=price + 1,
        low=price - 1,
        previous_close=price - 1,
        sector="Others",
        source=source,
    )


def make_fund(code: str, name: str, nav: float = 0.0, fund_house: str = "Others") -> NormalizedFund:
    return NormalizedFund(
        scheme_code=code,
        scheme_name=name,
        nav=nav,
        nav_date="",
        fund_house=fund_house,
        category="Others",
        source=SOURCE_MUTUAL_FUND_API,
    )


SAMPLE_SCHEMES = [
    make_fund("100001", "Axis Bluechip Fund - Direct Plan - Growth", fund_house="Axis"),
    make_fund("100002", "Axis Mid Cap Fund - Regular Plan - Growth", fund_house="Axis"),
    make_fund("100003", "HDFC Index Fund - Nifty 50 Plan", fund_house="HDFC"),
    make_fund("100004", "SBI Small Cap Fund - Direct Plan", fund_house="SBI"),
]


# =========================
# Time / Randomness
# =========================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with no retry delays."""
    return Settings(
        APP_ENV="testing",
        RETRY_BASE_DELAY=0.0,
        RETRY_MAX_DELAY=0.0,
        ENABLE_QUOTE_POLLER=False,
        LOG_DIR="logs-test",
    )


# =========================
# Caches / Rate Limiter
# =========================

@pytest.fixture
def caches(test_settings, clock) -> CacheRegistry:
    return CacheRegistry.from_settings(test_settings, clock=clock)


@pytest.fixture
def limiter(clock) -> RateLimiter:
    return RateLimiter(clock=clock)


# =========================
# Stub Adapters
# =========================

@pytest.fixture
def yahoo_stub():
    """Primary provider stub; fails by default."""
    stub = MagicMock(spec=YahooFinanceAdapter)
    stub.name = SOURCE_YAHOO_FINANCE
    stub.get_quotes = AsyncMock(side_effect=ProviderError(SOURCE_YAHOO_FINANCE, "upstream down"))
    stub.health_check = AsyncMock(return_value=True)
    return stub


@pytest.fixture
def alpha_stub():
    """Secondary provider stub; fails by default."""
    stub = MagicMock(spec=AlphaVantageAdapter)
    stub.name = SOURCE_ALPHA_VANTAGE
    stub.get_quote = AsyncMock(side_effect=ProviderError(SOURCE_ALPHA_VANTAGE, "upstream down"))
    stub.search_symbols = AsyncMock(return_value=[])
    stub.health_check = AsyncMock(return_value=True)
    return stub


@pytest.fixture
def funds_adapter():
    """Real fund adapter (for local search) with network calls mocked."""
    adapter = MutualFundAdapter(ProviderConfig(name=SOURCE_MUTUAL_FUND_API, base_url="http://mf.test"))
    adapter.get_all_schemes = AsyncMock(return_value=list(SAMPLE_SCHEMES))
    adapter.get_scheme_details = AsyncMock(
        side_effect=ProviderError(SOURCE_MUTUAL_FUND_API, "upstream down")
    )
    adapter.health_check = AsyncMock(return_value=True)
    return adapter


@pytest.fixture
def aggregator(caches, limiter, yahoo_stub, alpha_stub, funds_adapter, rng) -> DataAggregator:
    return DataAggregator(
        caches=caches,
        rate_limiter=limiter,
        primary=yahoo_stub,
        secondary=alpha_stub,
        funds=funds_adapter,
        quote_generator=SyntheticQuoteGenerator(rng=rng),
        fund_generator=SyntheticFundGenerator(rng=rng),
        config=AggregatorConfig(stock_ttl=30, mutual_fund_ttl=300, search_ttl=600),
    )
