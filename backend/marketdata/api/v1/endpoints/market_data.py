"""
Market Data Hub - Market Data Endpoints
Stock quotes and mutual fund data, always answered with displayable data
"""
from datetime import datetime, timezone
from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from marketdata.config import Settings
from marketdata.data_providers.aggregator import DataAggregator
from marketdata.dependencies import enforce_client_rate_limit, get_aggregator, get_settings
from marketdata.utils.exceptions import InvalidRequestError

router = APIRouter()


class MarketDataAction(BaseModel):
    """POST body for single-item lookups and diagnostics."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    action: str
    symbol: Optional[str] = None
    scheme_code: Optional[str] = Field(default=None, alias="schemeCode")
    keywords: Optional[str] = None


@router.get("")
async def get_market_data(
    symbols: Optional[str] = Query(None, description="Comma-separated symbols"),
    query: Optional[str] = Query(None, description="Mutual fund search text"),
    data_type: Literal["stocks", "mutual-funds"] = Query("stocks", alias="type"),
    _client: str = Depends(enforce_client_rate_limit),
    aggregator: DataAggregator = Depends(get_aggregator),
    settings: Settings = Depends(get_settings),
):
    """
    Get stock quotes or search mutual funds.

    Stocks default to the configured watchlist when no symbols are given.
    """
    if data_type == "mutual-funds":
        if not query or not query.strip():
            raise InvalidRequestError("Query parameter required for mutual funds")
        funds = await aggregator.search_mutual_funds(query)
        return {"data": [fund.to_dict() for fund in funds], "source": "api"}

    symbol_list = symbols.split(",") if symbols else list(settings.DEFAULT_STOCKS)
    quotes = await aggregator.get_multiple_stocks(symbol_list)
    return {"data": [quote.to_dict() for quote in quotes], "source": "api"}


@router.post("")
async def post_market_data(
    body: MarketDataAction,
    _client: str = Depends(enforce_client_rate_limit),
    aggregator: DataAggregator = Depends(get_aggregator),
):
    """Dispatch a single action: get-stock, get-mutual-fund, health-check, search-symbols."""
    if body.action == "get-stock":
        if not body.symbol or not body.symbol.strip():
            raise InvalidRequestError("Symbol required")
        quote = await aggregator.get_single_stock(body.symbol)
        return {"data": quote.to_dict() if quote else None, "source": "api"}

    if body.action == "get-mutual-fund":
        if not body.scheme_code or not body.scheme_code.strip():
            raise InvalidRequestError("Scheme code required")
        fund = await aggregator.get_mutual_fund_details(body.scheme_code)
        return {"data": fund.to_dict(), "source": "api"}

    if body.action == "health-check":
        health = await aggregator.check_api_health()
        return {"health": health, "timestamp": datetime.now(timezone.utc).isoformat()}

    if body.action == "search-symbols":
        if not body.keywords or not body.keywords.strip():
            raise InvalidRequestError("Keywords required")
        matches = await aggregator.search_symbols(body.keywords)
        return {"data": matches, "source": "api"}

    raise InvalidRequestError("Invalid action")
