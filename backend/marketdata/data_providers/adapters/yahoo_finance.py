"""
Yahoo Finance Adapter

Primary stock quote provider, read through the public v8 chart endpoint.
No API key required. Requests rotate across the configured mirror hosts
(query1/query2) with exponential backoff between attempts.
"""
import asyncio
from typing import Any, Optional
from loguru import logger

from marketdata.data_providers.adapters.base import (
    BaseAdapter,
    ProviderConfig,
    NormalizedQuote,
    ProviderError,
    ParseError,
    MALFORMED_RESPONSE_ERRORS,
    DataNotAvailableError,
    SOURCE_YAHOO_FINANCE,
)
from marketdata.data_providers.baselines import sector_for


HEALTH_CHECK_SYMBOL = "RELIANCE.NS"

# Yahoo rejects requests without a browser-like user agent
REQUEST_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; MarketDataHub/1.0)"}


def create_yahoo_finance_config(settings) -> ProviderConfig:
    """Create configuration for the Yahoo Finance adapter."""
    base_url, *mirrors = settings.YAHOO_FINANCE_BASE_URLS
    return ProviderConfig(
        name=SOURCE_YAHOO_FINANCE,
        base_url=base_url,
        mirror_urls=mirrors,
        timeout_seconds=settings.YAHOO_FINANCE_TIMEOUT,
        retry_attempts=settings.RETRY_MAX_ATTEMPTS,
        retry_delay=settings.RETRY_BASE_DELAY,
        retry_max_delay=settings.RETRY_MAX_DELAY,
        priority=1,
    )


class YahooFinanceAdapter(BaseAdapter):
    """
    Yahoo Finance chart API adapter.

    Features:
    - Any symbol Yahoo lists (NSE symbols carry the ``.NS`` suffix)
    - Concurrent batch fetches, one request per symbol

    Limitations:
    - Unofficial endpoint, may throttle or change without notice
    - A batch fails as a whole if any symbol fails

    Usage:
        adapter = YahooFinanceAdapter(create_yahoo_finance_config(settings))
        quotes = await adapter.get_quotes(["RELIANCE.NS", "TCS.NS"])
    """

    async def health_check(self) -> bool:
        """Fetch one well-known symbol."""
        try:
            await self.get_quote(HEALTH_CHECK_SYMBOL)
            return True
        except ProviderError as e:
            logger.warning(f"Yahoo Finance health check failed: {e}")
            return False

    # ==================== Quote Methods ====================

    async def get_quote(self, symbol: str) -> NormalizedQuote:
        """Get the current quote for one symbol."""
        data = await self._fetch_chart(symbol)
        try:
            return self._parse_chart(symbol, data)
        except MALFORMED_RESPONSE_ERRORS as e:
            raise ParseError(self.name, f"unexpected chart for {symbol}: {e}") from e

    async def get_quotes(self, symbols: list[str]) -> list[NormalizedQuote]:
        """
        Get quotes for several symbols concurrently.

        Raises:
            ProviderError: if any single symbol fails
        """
        if not symbols:
            return []
        return list(await asyncio.gather(*(self.get_quote(s) for s in symbols)))

    # ==================== Transport ====================

    def _backoff(self, attempt: int) -> float:
        return min(self.config.retry_delay * 2 ** attempt, self.config.retry_max_delay)

    async def _fetch_chart(self, symbol: str) -> Any:
        """Fetch the chart document, rotating mirrors between attempts."""
        urls = self.config.urls
        if not urls:
            raise ProviderError(self.name, "No base URL configured", recoverable=False)

        attempts = max(1, self.config.retry_attempts)
        last_error: Optional[ProviderError] = None

        for attempt in range(attempts):
            base_url = urls[attempt % len(urls)]
            try:
                return await self._get_json(
                    f"{base_url.rstrip('/')}/{symbol}",
                    params={"interval": "1d", "range": "1d"},
                    headers=REQUEST_HEADERS,
                )
            except ProviderError as e:
                last_error = e
                logger.debug(f"Yahoo Finance attempt {attempt + 1}/{attempts} for {symbol} failed: {e}")
                if attempt + 1 < attempts:
                    await asyncio.sleep(self._backoff(attempt))

        raise last_error

    # ==================== Parsing ====================

    def _parse_chart(self, symbol: str, data: Any) -> NormalizedQuote:
        """Parse ``chart.result[0].meta`` into a NormalizedQuote."""
        try:
            chart = data["chart"]
        except (KeyError, TypeError):
            raise ParseError(self.name, f"missing chart for {symbol}")

        if chart.get("error"):
            raise DataNotAvailableError(self.name, symbol, "quote")

        results = chart.get("result") or []
        if not results:
            raise DataNotAvailableError(self.name, symbol, "quote")

        meta = results[0].get("meta") or {}
        price = meta.get("regularMarketPrice")
        if price is None:
            raise ParseError(self.name, f"no regularMarketPrice for {symbol}")

        price = float(price)
        previous_close = float(
            meta.get("previousClose") or meta.get("chartPreviousClose") or price
        )
        change = price - previous_close
        change_percent = change / previous_close * 100 if previous_close else 0.0

        return NormalizedQuote(
            symbol=symbol,
            name=meta.get("longName") or meta.get("shortName") or symbol,
            price=round(price, 2),
            change=round(change, 2),
            change_percent=round(change_percent, 2),
            volume=int(meta.get("regularMarketVolume") or 0),
            market_cap=float(meta.get("marketCap") or 0),
            high=round(float(meta.get("regularMarketDayHigh") or price), 2),
            low=round(float(meta.get("regularMarketDayLow") or price), 2),
            previous_close=round(previous_close, 2),
            sector=sector_for(symbol),
            source=SOURCE_YAHOO_FINANCE,
        )
