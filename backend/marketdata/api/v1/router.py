"""
Market Data Hub - API v1 Router
"""
from fastapi import APIRouter

from marketdata.api.v1.endpoints import market_data, admin

api_router = APIRouter()


# API v1 root endpoint
@api_router.get("/", tags=["API Info"])
async def api_root():
    """API v1 root - returns version info."""
    return {
        "api": "Market Data Hub",
        "version": "v1",
        "status": "operational"
    }


api_router.include_router(market_data.router, prefix="/market-data", tags=["Market Data"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
