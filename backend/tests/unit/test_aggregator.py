"""
Unit Tests - Data Aggregator
Tests for the cache -> rate limit -> primary -> secondary -> synthetic chain.
"""
import pytest
from unittest.mock import AsyncMock

from marketdata.data_providers.adapters.alpha_vantage import AlphaVantageAdapter
from marketdata.data_providers.adapters.base import ProviderConfig, ProviderError
from marketdata.data_providers.adapters.mutual_fund_api import MutualFundAdapter
from marketdata.data_providers.adapters.yahoo_finance import YahooFinanceAdapter
from marketdata.data_providers.aggregator import DataAggregator
from marketdata.data_providers.rate_limiter import RateLimitConfig
from marketdata.data_providers.synthetic import SyntheticFundGenerator, SyntheticQuoteGenerator
from marketdata.utils.exceptions import InvalidRequestError

from conftest import SAMPLE_SCHEMES, make_fund, make_quote


def within_band(price: float, baseline: float, band: float = 0.02) -> bool:
    return baseline * (1 - band) - 0.01 <= price <= baseline * (1 + band) + 0.01


def provider_calls(yahoo_stub, alpha_stub) -> int:
    return yahoo_stub.get_quotes.await_count + alpha_stub.get_quote.await_count


class TestStockWaterfall:
    """Tests for get_multiple_stocks tiers."""

    @pytest.mark.asyncio
    async def test_empty_request(self, aggregator, yahoo_stub):
        assert await aggregator.get_multiple_stocks([]) == []
        assert await aggregator.get_multiple_stocks(["  ", ""]) == []
        yahoo_stub.get_quotes.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_primary_success(self, aggregator, yahoo_stub, alpha_stub):
        yahoo_stub.get_quotes = AsyncMock(return_value=[
            make_quote("RELIANCE.NS", 2900.0), make_quote("TCS.NS", 3950.0),
        ])

        quotes = await aggregator.get_multiple_stocks(["RELIANCE.NS", "TCS.NS"])

        assert [q.symbol for q in quotes] == ["RELIANCE.NS", "TCS.NS"]
        assert all(q.source == "yahoo-finance" for q in quotes)
        alpha_stub.get_quote.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_symbols_normalized(self, aggregator, yahoo_stub):
        yahoo_stub.get_quotes = AsyncMock(return_value=[make_quote("RELIANCE.NS")])

        quotes = await aggregator.get_multiple_stocks([" reliance.ns "])

        yahoo_stub.get_quotes.assert_awaited_once_with(["RELIANCE.NS"])
        assert quotes[0].symbol == "RELIANCE.NS"

    @pytest.mark.asyncio
    async def test_missing_symbol_backfilled(self, aggregator, yahoo_stub):
        """A symbol the provider skipped is filled synthetically."""
        yahoo_stub.get_quotes = AsyncMock(return_value=[make_quote("RELIANCE.NS")])

        quotes = await aggregator.get_multiple_stocks(["RELIANCE.NS", "TCS.NS"])

        assert [q.source for q in quotes] == ["yahoo-finance", "synthetic"]
        assert within_band(quotes[1].price, 3920.0)

    @pytest.mark.asyncio
    async def test_secondary_for_first_symbol_only(self, aggregator, alpha_stub):
        alpha_stub.get_quote = AsyncMock(return_value=make_quote("RELIANCE.NS", 2860.0, "alpha-vantage"))

        quotes = await aggregator.get_multiple_stocks(["RELIANCE.NS", "TCS.NS", "ITC.NS"])

        alpha_stub.get_quote.assert_awaited_once_with("RELIANCE.NS")
        assert [q.source for q in quotes] == ["alpha-vantage", "synthetic", "synthetic"]

    @pytest.mark.asyncio
    async def test_primary_limit_denied_skips_network(self, aggregator, limiter, yahoo_stub, alpha_stub):
        limiter.configure("yahoo-finance", RateLimitConfig(max_requests=0, window_ms=60_000))

        quotes = await aggregator.get_multiple_stocks(["RELIANCE.NS"])

        assert quotes[0].source == "synthetic"
        assert provider_calls(yahoo_stub, alpha_stub) == 0

    @pytest.mark.asyncio
    async def test_output_matches_request_order_and_duplicates(self, aggregator, yahoo_stub):
        yahoo_stub.get_quotes = AsyncMock(return_value=[make_quote("TCS.NS"), make_quote("ITC.NS")])

        quotes = await aggregator.get_multiple_stocks(["ITC.NS", "TCS.NS", "ITC.NS"])

        assert [q.symbol for q in quotes] == ["ITC.NS", "TCS.NS", "ITC.NS"]
        yahoo_stub.get_quotes.assert_awaited_once_with(["ITC.NS", "TCS.NS"])

    @pytest.mark.asyncio
    async def test_single_stock(self, aggregator):
        quote = await aggregator.get_single_stock("sbin.ns")
        assert quote.symbol == "SBIN.NS"
        assert await aggregator.get_single_stock(" ") is None


class TestStockCaching:
    """Tests for cache-first behaviour."""

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, aggregator, yahoo_stub, alpha_stub):
        yahoo_stub.get_quotes = AsyncMock(return_value=[make_quote("RELIANCE.NS"), make_quote("TCS.NS")])

        first = await aggregator.get_multiple_stocks(["RELIANCE.NS", "TCS.NS"])
        second = await aggregator.get_multiple_stocks(["RELIANCE.NS", "TCS.NS"])

        assert first == second
        assert yahoo_stub.get_quotes.await_count == 1

    @pytest.mark.asyncio
    async def test_cache_key_ignores_order(self, aggregator, yahoo_stub):
        yahoo_stub.get_quotes = AsyncMock(return_value=[make_quote("RELIANCE.NS"), make_quote("TCS.NS")])

        await aggregator.get_multiple_stocks(["RELIANCE.NS", "TCS.NS"])
        reordered = await aggregator.get_multiple_stocks(["TCS.NS", "RELIANCE.NS"])

        assert [q.symbol for q in reordered] == ["TCS.NS", "RELIANCE.NS"]
        assert yahoo_stub.get_quotes.await_count == 1

    @pytest.mark.asyncio
    async def test_cache_hit_skips_rate_limiter(self, aggregator, limiter, yahoo_stub):
        yahoo_stub.get_quotes = AsyncMock(return_value=[make_quote("RELIANCE.NS")])

        await aggregator.get_multiple_stocks(["RELIANCE.NS"])
        await aggregator.get_multiple_stocks(["RELIANCE.NS"])

        assert limiter.get_stats("yahoo-finance")["remaining"] == 99


class TestEndToEndScenarios:
    """Failure scenarios across every tier."""

    @pytest.mark.asyncio
    async def test_reliance_tcs_with_failing_providers(self, aggregator, clock, yahoo_stub, alpha_stub):
        """Both providers down: synthetic data in band, then served from cache."""
        quotes = await aggregator.get_multiple_stocks(["RELIANCE.NS", "TCS.NS"])

        assert len(quotes) == 2
        assert all(q.source in ("alpha-vantage", "synthetic") for q in quotes)
        assert within_band(quotes[0].price, 2850.0)
        assert within_band(quotes[1].price, 3920.0)
        calls = provider_calls(yahoo_stub, alpha_stub)

        clock.advance(29)
        again = await aggregator.get_multiple_stocks(["RELIANCE.NS", "TCS.NS"])

        assert again == quotes
        assert provider_calls(yahoo_stub, alpha_stub) == calls

    @pytest.mark.asyncio
    async def test_cache_expires_after_stock_ttl(self, aggregator, clock, yahoo_stub):
        await aggregator.get_multiple_stocks(["RELIANCE.NS"])
        clock.advance(31)
        await aggregator.get_multiple_stocks(["RELIANCE.NS"])

        assert yahoo_stub.get_quotes.await_count == 2

    @pytest.mark.asyncio
    async def test_alpha_vantage_budget_exhausted(self, aggregator, alpha_stub):
        """Five secondary calls per window; the sixth request is synthetic without a call."""
        alpha_stub.get_quote = AsyncMock(
            side_effect=lambda symbol: make_quote(symbol, 500.0, "alpha-vantage")
        )
        symbols = ["RELIANCE.NS", "TCS.NS", "INFY.NS", "ITC.NS", "SBIN.NS", "HDFCBANK.NS"]

        results = [await aggregator.get_multiple_stocks([s]) for s in symbols]

        assert alpha_stub.get_quote.await_count == 5
        assert [r[0].source for r in results] == ["alpha-vantage"] * 5 + ["synthetic"]


class TestMutualFundSearch:
    """Tests for search_mutual_funds."""

    @pytest.mark.asyncio
    async def test_blank_query_rejected(self, aggregator):
        with pytest.raises(InvalidRequestError):
            await aggregator.search_mutual_funds("   ")

    @pytest.mark.asyncio
    async def test_search_from_provider(self, aggregator, funds_adapter):
        funds = await aggregator.search_mutual_funds("axis")

        assert [f.scheme_code for f in funds] == ["100001", "100002"]
        funds_adapter.get_all_schemes.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_scheme_list_reused_across_queries(self, aggregator, limiter, funds_adapter):
        """A new query over the cached scheme list costs no call and no quota."""
        await aggregator.search_mutual_funds("axis")
        remaining = limiter.get_stats("mutual-fund-api")["remaining"]

        funds = await aggregator.search_mutual_funds("hdfc")

        assert [f.scheme_code for f in funds] == ["100003"]
        funds_adapter.get_all_schemes.assert_awaited_once()
        assert limiter.get_stats("mutual-fund-api")["remaining"] == remaining

    @pytest.mark.asyncio
    async def test_search_results_cached(self, aggregator, caches):
        funds = await aggregator.search_mutual_funds("Axis")
        assert caches.mutual_fund.get("mf-search:axis") == funds

    @pytest.mark.asyncio
    async def test_provider_failure_falls_back(self, aggregator, funds_adapter):
        funds_adapter.get_all_schemes = AsyncMock(side_effect=ProviderError("mutual-fund-api", "down"))

        funds = await aggregator.search_mutual_funds("kotak")

        assert [f.scheme_code for f in funds] == ["120507"]
        assert funds[0].source == "synthetic"

    @pytest.mark.asyncio
    async def test_limit_denied_falls_back(self, aggregator, limiter, funds_adapter):
        limiter.configure("mutual-fund-api", RateLimitConfig(max_requests=0, window_ms=60_000))

        funds = await aggregator.search_mutual_funds("sbi")

        assert all(f.source == "synthetic" for f in funds)
        funds_adapter.get_all_schemes.assert_not_awaited()


class TestMutualFundDetails:
    """Tests for get_mutual_fund_details."""

    @pytest.mark.asyncio
    async def test_details_cached(self, aggregator, funds_adapter):
        funds_adapter.get_scheme_details = AsyncMock(
            return_value=make_fund("120465", "Axis Mid Cap Fund", nav=112.3)
        )

        first = await aggregator.get_mutual_fund_details("120465")
        second = await aggregator.get_mutual_fund_details("120465")

        assert first is second
        assert first.nav == 112.3
        funds_adapter.get_scheme_details.assert_awaited_once_with("120465")

    @pytest.mark.asyncio
    async def test_failure_gives_synthetic_for_code(self, aggregator):
        fund = await aggregator.get_mutual_fund_details("555555")

        assert fund.scheme_code == "555555"
        assert fund.source == "synthetic"

    @pytest.mark.asyncio
    async def test_blank_code_rejected(self, aggregator):
        with pytest.raises(InvalidRequestError):
            await aggregator.get_mutual_fund_details("")


class TestSymbolSearch:
    """Tests for search_symbols."""

    @pytest.mark.asyncio
    async def test_search_cached(self, aggregator, alpha_stub):
        alpha_stub.search_symbols = AsyncMock(return_value=[{"symbol": "RELIANCE.BSE"}])

        await aggregator.search_symbols("Reliance")
        matches = await aggregator.search_symbols("reliance")

        assert matches == [{"symbol": "RELIANCE.BSE"}]
        alpha_stub.search_symbols.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self, aggregator, alpha_stub):
        alpha_stub.search_symbols = AsyncMock(side_effect=ProviderError("alpha-vantage", "down"))
        assert await aggregator.search_symbols("tcs") == []


class TestApiHealth:
    """Tests for check_api_health."""

    @pytest.mark.asyncio
    async def test_all_healthy(self, aggregator):
        health = await aggregator.check_api_health()
        assert health == {"yahoo-finance": True, "alpha-vantage": True, "mutual-fund-api": True}

    @pytest.mark.asyncio
    async def test_denied_probe_reports_false(self, aggregator, limiter, alpha_stub):
        limiter.configure("alpha-vantage", RateLimitConfig(max_requests=0, window_ms=60_000))

        health = await aggregator.check_api_health()

        assert health["alpha-vantage"] is False
        alpha_stub.health_check.assert_not_awaited()


class TestResultIsolation:
    """Callers get their own list; mutating it leaves the cache intact."""

    @pytest.mark.asyncio
    async def test_fund_search_list_copied(self, aggregator):
        first = await aggregator.search_mutual_funds("axis")
        first.clear()

        again = await aggregator.search_mutual_funds("axis")

        assert [f.scheme_code for f in again] == ["100001", "100002"]

    @pytest.mark.asyncio
    async def test_symbol_search_list_copied(self, aggregator, alpha_stub):
        alpha_stub.search_symbols = AsyncMock(return_value=[{"symbol": "TCS.BSE"}])

        first = await aggregator.search_symbols("tcs")
        first.append({"symbol": "JUNK"})

        assert await aggregator.search_symbols("tcs") == [{"symbol": "TCS.BSE"}]


@pytest.fixture
def live_aggregator(caches, limiter, rng) -> DataAggregator:
    """Aggregator over real adapters with only the HTTP call mocked."""
    return DataAggregator(
        caches=caches,
        rate_limiter=limiter,
        primary=YahooFinanceAdapter(ProviderConfig(
            name="yahoo-finance", base_url="https://query1.test", retry_attempts=1, retry_delay=0.0,
        )),
        secondary=AlphaVantageAdapter(ProviderConfig(
            name="alpha-vantage", base_url="https://alpha.test/query", api_key="demo",
        )),
        funds=MutualFundAdapter(ProviderConfig(name="mutual-fund-api", base_url="https://mf.test")),
        quote_generator=SyntheticQuoteGenerator(rng=rng),
        fund_generator=SyntheticFundGenerator(rng=rng),
    )


class TestMalformedUpstream:
    """Unexpected response shapes fall back instead of raising."""

    @pytest.mark.asyncio
    async def test_malformed_quotes_fall_back_to_synthetic(self, live_aggregator):
        live_aggregator.primary._get_json = AsyncMock(return_value={"chart": []})
        live_aggregator.secondary._get_json = AsyncMock(return_value={"Global Quote": ["bad"]})

        quotes = await live_aggregator.get_multiple_stocks(["RELIANCE.NS", "TCS.NS"])

        assert [q.source for q in quotes] == ["synthetic", "synthetic"]
        assert within_band(quotes[0].price, 2850.0)

    @pytest.mark.asyncio
    async def test_malformed_details_fall_back_to_synthetic(self, live_aggregator):
        live_aggregator.funds._get_json = AsyncMock(
            return_value={"meta": {"scheme_name": "X"}, "data": {"nav": "1"}}
        )

        fund = await live_aggregator.get_mutual_fund_details("120503")

        assert fund.source == "synthetic"
        assert fund.scheme_code == "120503"
