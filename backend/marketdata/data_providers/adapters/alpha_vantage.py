"""
Alpha Vantage Adapter

Secondary stock quote provider and symbol search.
Free tier: 5 requests/minute, one symbol per request.
"""
from typing import Any
from loguru import logger

from marketdata.data_providers.adapters.base import (
    BaseAdapter,
    ProviderConfig,
    NormalizedQuote,
    ProviderError,
    RateLimitError,
    DataNotAvailableError,
    ParseError,
    MALFORMED_RESPONSE_ERRORS,
    SOURCE_ALPHA_VANTAGE,
)
from marketdata.data_providers.baselines import sector_for


HEALTH_CHECK_SYMBOL = "IBM"


def create_alpha_vantage_config(settings) -> ProviderConfig:
    """Create configuration for the Alpha Vantage adapter."""
    return ProviderConfig(
        name=SOURCE_ALPHA_VANTAGE,
        base_url=settings.ALPHA_VANTAGE_BASE_URL,
        api_key=settings.ALPHA_VANTAGE_API_KEY,
        timeout_seconds=settings.ALPHA_VANTAGE_TIMEOUT,
        priority=2,  # Lower priority due to rate limits
    )


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(str(value).rstrip("%"))
    except (TypeError, ValueError):
        return default


class AlphaVantageAdapter(BaseAdapter):
    """
    Alpha Vantage data provider adapter.

    Vendor errors arrive as HTTP 200 with a marker field in the body:
    ``Note``/``Information`` on throttling, ``Error Message`` on an unknown
    symbol.

    Usage:
        adapter = AlphaVantageAdapter(create_alpha_vantage_config(settings))
        quote = await adapter.get_quote("RELIANCE.NS")
        matches = await adapter.search_symbols("reliance")
    """

    async def health_check(self) -> bool:
        """Check API connectivity."""
        try:
            await self.get_quote(HEALTH_CHECK_SYMBOL)
            return True
        except ProviderError as e:
            logger.warning(f"Alpha Vantage health check failed: {e}")
            return False

    async def _query(self, params: dict[str, str], symbol: str, data_type: str) -> dict:
        params = {**params, "apikey": self.config.api_key or "demo"}
        data = await self._get_json(self.config.base_url, params=params)

        if not isinstance(data, dict):
            raise ParseError(self.name, f"expected an object for {data_type}")

        # Check for rate limit
        if "Note" in data or "Information" in data:
            raise RateLimitError(self.name, retry_after=60)

        if "Error Message" in data:
            raise DataNotAvailableError(self.name, symbol, data_type)

        return data

    # ==================== Quote Methods ====================

    async def get_quote(self, symbol: str) -> NormalizedQuote:
        """Get real-time quote for a symbol."""
        data = await self._query(
            {"function": "GLOBAL_QUOTE", "symbol": symbol}, symbol, "quote"
        )

        try:
            quote_data = data.get("Global Quote") or {}
            if not quote_data.get("05. price"):
                raise DataNotAvailableError(self.name, symbol, "quote")
            return self._parse_quote(symbol, quote_data)
        except MALFORMED_RESPONSE_ERRORS as e:
            raise ParseError(self.name, f"unexpected quote for {symbol}: {e}") from e

    def _parse_quote(self, symbol: str, data: dict) -> NormalizedQuote:
        """Parse Alpha Vantage Global Quote response."""
        price = _to_float(data.get("05. price"))
        return NormalizedQuote(
            symbol=symbol,
            name=symbol,
            price=round(price, 2),
            change=round(_to_float(data.get("09. change")), 2),
            change_percent=round(_to_float(data.get("10. change percent")), 2),
            volume=int(_to_float(data.get("06. volume"))),
            market_cap=0.0,
            high=round(_to_float(data.get("03. high"), price), 2),
            low=round(_to_float(data.get("04. low"), price), 2),
            previous_close=round(_to_float(data.get("08. previous close"), price), 2),
            sector=sector_for(symbol),
            source=SOURCE_ALPHA_VANTAGE,
        )

    # ==================== Search Methods ====================

    async def search_symbols(self, keywords: str) -> list[dict[str, str]]:
        """Search for symbols matching keywords."""
        data = await self._query(
            {"function": "SYMBOL_SEARCH", "keywords": keywords}, keywords, "search"
        )

        try:
            return [
                {
                    "symbol": match.get("1. symbol", ""),
                    "name": match.get("2. name", ""),
                    "type": match.get("3. type", ""),
                    "region": match.get("4. region", ""),
                    "currency": match.get("8. currency", ""),
                }
                for match in data.get("bestMatches", [])
            ]
        except MALFORMED_RESPONSE_ERRORS as e:
            raise ParseError(self.name, f"unexpected search result for '{keywords}': {e}") from e
