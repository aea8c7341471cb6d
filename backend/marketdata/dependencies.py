"""
Market Data Hub - Dependencies
Dependency injection for FastAPI endpoints
"""
from fastapi import Depends, Request

from marketdata.config import Settings
from marketdata.data_providers.aggregator import DataAggregator
from marketdata.data_providers.cache_manager import CacheRegistry
from marketdata.data_providers.provider_init import MarketDataServices
from marketdata.data_providers.rate_limiter import RateLimiter
from marketdata.utils.exceptions import RateLimitExceededError


# Provider name used to limit inbound clients
API_ENDPOINT_PROVIDER = "api-endpoint"


def get_services(request: Request) -> MarketDataServices:
    """Service container built in the application lifespan."""
    return request.app.state.services


def get_aggregator(services: MarketDataServices = Depends(get_services)) -> DataAggregator:
    return services.aggregator


def get_settings(services: MarketDataServices = Depends(get_services)) -> Settings:
    """Settings the running service graph was built from."""
    return services.settings


def get_caches(services: MarketDataServices = Depends(get_services)) -> CacheRegistry:
    return services.caches


def get_rate_limiter(services: MarketDataServices = Depends(get_services)) -> RateLimiter:
    return services.rate_limiter


def get_client_identifier(request: Request) -> str:
    """
    Identify the caller for inbound rate limiting.

    Uses the first X-Forwarded-For hop, then the socket peer, then "unknown".
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def enforce_client_rate_limit(
    client_id: str = Depends(get_client_identifier),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> str:
    """
    Admit one inbound request for the client.

    Raises:
        RateLimitExceededError: if the client's window is exhausted
    """
    if not limiter.check_limit(API_ENDPOINT_PROVIDER, client_id):
        raise RateLimitExceededError()
    return client_id
