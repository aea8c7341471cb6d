"""
Market Data Providers

Caching, rate limiting, provider adapters, synthetic fallbacks and the
aggregator that ties them together.
"""
from marketdata.data_providers.cache_manager import TTLCache, CacheConfig, CacheRegistry
from marketdata.data_providers.rate_limiter import RateLimiter, RateLimitConfig
from marketdata.data_providers.synthetic import SyntheticQuoteGenerator, SyntheticFundGenerator
from marketdata.data_providers.aggregator import DataAggregator, AggregatorConfig

__all__ = [
    "TTLCache",
    "CacheConfig",
    "CacheRegistry",
    "RateLimiter",
    "RateLimitConfig",
    "SyntheticQuoteGenerator",
    "SyntheticFundGenerator",
    "DataAggregator",
    "AggregatorConfig",
]
