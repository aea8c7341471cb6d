"""
Market Data Hub - Admin Endpoints
Cache and rate limiter statistics and manual resets
"""
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel

from marketdata.data_providers.adapters.base import (
    SOURCE_YAHOO_FINANCE,
    SOURCE_ALPHA_VANTAGE,
    SOURCE_MUTUAL_FUND_API,
)
from marketdata.data_providers.cache_manager import CacheRegistry
from marketdata.data_providers.rate_limiter import RateLimiter
from marketdata.dependencies import get_caches, get_rate_limiter
from marketdata.utils.exceptions import InvalidRequestError

router = APIRouter()

MONITORED_PROVIDERS = [SOURCE_YAHOO_FINANCE, SOURCE_ALPHA_VANTAGE, SOURCE_MUTUAL_FUND_API]


class CacheAction(BaseModel):
    action: str
    cache: Optional[str] = None
    api: Optional[str] = None


@router.get("/cache")
async def get_cache_stats(
    caches: CacheRegistry = Depends(get_caches),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Statistics for every cache and provider rate limit."""
    return {
        "stockCache": caches.stock.get_stats(),
        "mutualFundCache": caches.mutual_fund.get_stats(),
        "generalCache": caches.general.get_stats(),
        "rateLimiter": limiter.get_all_stats(MONITORED_PROVIDERS),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/cache")
async def manage_cache(
    body: CacheAction,
    caches: CacheRegistry = Depends(get_caches),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Clear caches or reset rate limits."""
    if body.action == "clear-cache":
        try:
            caches.clear(body.cache)
        except KeyError:
            raise InvalidRequestError(f"Unknown cache: {body.cache}")
        return {"message": "Cache cleared successfully"}

    if body.action == "reset-rate-limit":
        if body.api is not None and not body.api.strip():
            raise InvalidRequestError("API name must not be blank")
        limiter.reset(body.api)
        return {"message": "Rate limits reset successfully"}

    logger.warning(f"Invalid admin action: {body.action}")
    raise InvalidRequestError("Invalid action")
