"""
Data Aggregator

Single entry point for market data. Every call walks a strict fallback
chain, each tier attempted at most once:

    cache -> rate limit -> primary provider -> secondary provider -> synthetic

Synthetic generation cannot fail, so the public methods always return
displayable data for well-formed input. Callers tell live data from
synthetic data by the ``source`` tag on each record.
"""
from dataclasses import dataclass
from typing import Optional
from loguru import logger

from marketdata.data_providers.adapters.base import (
    NormalizedQuote,
    NormalizedFund,
    ProviderError,
    SOURCE_YAHOO_FINANCE,
    SOURCE_ALPHA_VANTAGE,
    SOURCE_MUTUAL_FUND_API,
)
from marketdata.data_providers.adapters.yahoo_finance import YahooFinanceAdapter
from marketdata.data_providers.adapters.alpha_vantage import AlphaVantageAdapter
from marketdata.data_providers.adapters.mutual_fund_api import MutualFundAdapter
from marketdata.data_providers.cache_manager import CacheRegistry
from marketdata.data_providers.rate_limiter import RateLimiter
from marketdata.data_providers.synthetic import (
    SyntheticQuoteGenerator,
    SyntheticFundGenerator,
)
from marketdata.utils.exceptions import InvalidRequestError


SCHEME_LIST_KEY = "mf:schemes"


@dataclass
class AggregatorConfig:
    """TTLs (seconds) used when writing results back to the caches."""
    stock_ttl: float = 30.0
    mutual_fund_ttl: float = 300.0
    search_ttl: float = 600.0

    @classmethod
    def from_settings(cls, settings) -> "AggregatorConfig":
        return cls(
            stock_ttl=settings.STOCK_TTL,
            mutual_fund_ttl=settings.MUTUAL_FUND_TTL,
            search_ttl=settings.SEARCH_TTL,
        )


def normalize_symbols(symbols: list[str]) -> list[str]:
    """Strip and upper-case symbols, dropping blanks. Order and duplicates are kept."""
    return [s.strip().upper() for s in symbols if s and s.strip()]


def stocks_cache_key(symbols: list[str]) -> str:
    return "stocks:" + ",".join(sorted(set(symbols)))


class DataAggregator:
    """
    Orchestrates caches, rate limiter, provider adapters and synthetic data.

    All collaborators are injected; nothing here is module-global.

    Usage:
        aggregator = DataAggregator(caches, limiter, yahoo, alpha, funds)
        quotes = await aggregator.get_multiple_stocks(["RELIANCE.NS", "TCS.NS"])
        funds = await aggregator.search_mutual_funds("axis")
    """

    def __init__(
        self,
        caches: CacheRegistry,
        rate_limiter: RateLimiter,
        primary: YahooFinanceAdapter,
        secondary: AlphaVantageAdapter,
        funds: MutualFundAdapter,
        quote_generator: Optional[SyntheticQuoteGenerator] = None,
        fund_generator: Optional[SyntheticFundGenerator] = None,
        config: Optional[AggregatorConfig] = None,
    ):
        self.caches = caches
        self.rate_limiter = rate_limiter
        self.primary = primary
        self.secondary = secondary
        self.funds = funds
        self.quote_generator = quote_generator or SyntheticQuoteGenerator()
        self.fund_generator = fund_generator or SyntheticFundGenerator()
        self.config = config or AggregatorConfig()

    # ==================== Stocks ====================

    async def get_multiple_stocks(self, symbols: list[str]) -> list[NormalizedQuote]:
        """
        Quotes for the requested symbols, in request order.

        Args:
            symbols: Ticker symbols; blanks are ignored, case is normalised

        Returns:
            One record per requested symbol. Records a provider did not return
            are filled with synthetic data.
        """
        requested = normalize_symbols(symbols)
        if not requested:
            return []

        unique = list(dict.fromkeys(requested))
        cache_key = stocks_cache_key(unique)

        cached = self.caches.stock.get(cache_key)
        if cached is not None:
            logger.debug(f"Stock cache hit: {cache_key}")
            return self._arrange(requested, cached)

        records = await self._fetch_stocks(unique)
        result = self._arrange(unique, records)
        self.caches.stock.set(cache_key, result, self.config.stock_ttl)
        return self._arrange(requested, result)

    async def _fetch_stocks(self, symbols: list[str]) -> list[NormalizedQuote]:
        if not self.rate_limiter.check_limit(SOURCE_YAHOO_FINANCE):
            logger.info("Rate limit exceeded for Yahoo Finance, using synthetic data")
            return self.quote_generator.quotes(symbols)

        try:
            return await self.primary.get_quotes(symbols)
        except ProviderError as e:
            logger.warning(f"Primary provider failed, trying secondary: {e}")

        if self.rate_limiter.check_limit(SOURCE_ALPHA_VANTAGE):
            first, rest = symbols[0], symbols[1:]
            try:
                quote = await self.secondary.get_quote(first)
                return [quote, *self.quote_generator.quotes(rest)]
            except ProviderError as e:
                logger.warning(f"Secondary provider failed, using synthetic data: {e}")
        else:
            logger.info("Rate limit exceeded for Alpha Vantage, using synthetic data")

        return self.quote_generator.quotes(symbols)

    def _arrange(self, symbols: list[str], records: list[NormalizedQuote]) -> list[NormalizedQuote]:
        """Order records to match symbols, synthesizing any that are missing."""
        by_symbol = {record.symbol.upper(): record for record in records}
        arranged = []
        for symbol in symbols:
            record = by_symbol.get(symbol)
            if record is None:
                logger.debug(f"No provider record for {symbol}, backfilling")
                record = self.quote_generator.quote(symbol)
                by_symbol[symbol] = record
            arranged.append(record)
        return arranged

    async def get_single_stock(self, symbol: str) -> Optional[NormalizedQuote]:
        """Quote for one symbol, None for a blank symbol."""
        quotes = await self.get_multiple_stocks([symbol])
        return quotes[0] if quotes else None

    async def search_symbols(self, keywords: str) -> list[dict[str, str]]:
        """Symbol search through the secondary provider. Empty on any failure."""
        keywords = keywords.strip()
        if not keywords:
            raise InvalidRequestError("Search keywords are required")

        cache_key = f"symbol-search:{keywords.lower()}"
        cached = self.caches.general.get(cache_key)
        if cached is not None:
            return list(cached)

        if not self.rate_limiter.check_limit(SOURCE_ALPHA_VANTAGE):
            logger.info("Rate limit exceeded for Alpha Vantage symbol search")
            return []

        try:
            matches = await self.secondary.search_symbols(keywords)
        except ProviderError as e:
            logger.warning(f"Symbol search failed for '{keywords}': {e}")
            return []

        self.caches.general.set(cache_key, matches, self.config.search_ttl)
        return list(matches)

    # ==================== Mutual Funds ====================

    async def search_mutual_funds(self, query: str) -> list[NormalizedFund]:
        """
        Schemes matching a query by name or fund house.

        The full scheme list is cached separately, so a new query over a
        cached list costs no network call and no rate-limit unit.

        Raises:
            InvalidRequestError: if the query is blank
        """
        query = query.strip()
        if not query:
            raise InvalidRequestError("Query parameter is required for mutual fund search")

        cache_key = f"mf-search:{query.lower()}"
        cached = self.caches.mutual_fund.get(cache_key)
        if cached is not None:
            logger.debug(f"Mutual fund cache hit: {cache_key}")
            return list(cached)

        result = await self._fetch_fund_search(query)
        self.caches.mutual_fund.set(cache_key, result, self.config.mutual_fund_ttl)
        return list(result)

    async def _fetch_fund_search(self, query: str) -> list[NormalizedFund]:
        schemes = self.caches.general.get(SCHEME_LIST_KEY)
        if schemes is not None:
            return await self.funds.search_schemes(query, schemes)

        if not self.rate_limiter.check_limit(SOURCE_MUTUAL_FUND_API):
            logger.info("Rate limit exceeded for Mutual Fund API, using synthetic data")
            return self.fund_generator.search(query)

        try:
            schemes = await self.funds.get_all_schemes()
        except ProviderError as e:
            logger.warning(f"Mutual Fund API failed, using synthetic data: {e}")
            return self.fund_generator.search(query)

        self.caches.general.set(SCHEME_LIST_KEY, schemes, self.config.search_ttl)
        return await self.funds.search_schemes(query, schemes)

    async def get_mutual_fund_details(self, scheme_code: str) -> NormalizedFund:
        """
        Latest NAV and metadata for one scheme.

        Raises:
            InvalidRequestError: if the scheme code is blank
        """
        scheme_code = str(scheme_code).strip()
        if not scheme_code:
            raise InvalidRequestError("Scheme code is required")

        cache_key = f"mf-details:{scheme_code}"
        cached = self.caches.mutual_fund.get(cache_key)
        if cached is not None:
            return cached

        if not self.rate_limiter.check_limit(SOURCE_MUTUAL_FUND_API):
            logger.info("Rate limit exceeded for Mutual Fund API, using synthetic data")
            fund = self.fund_generator.scheme(scheme_code)
        else:
            try:
                fund = await self.funds.get_scheme_details(scheme_code)
            except ProviderError as e:
                logger.warning(f"Failed to get mutual fund details for {scheme_code}: {e}")
                fund = self.fund_generator.scheme(scheme_code)

        self.caches.mutual_fund.set(cache_key, fund, self.config.mutual_fund_ttl)
        return fund

    # ==================== Health ====================

    async def check_api_health(self) -> dict[str, bool]:
        """
        Probe each provider once.

        A probe is a real request and consumes a rate-limit unit; a provider
        whose limiter denies the probe reports False.
        """
        health = {}
        for adapter in (self.primary, self.secondary, self.funds):
            if not self.rate_limiter.check_limit(adapter.name):
                health[adapter.name] = False
                continue
            health[adapter.name] = await adapter.health_check()
        return health
