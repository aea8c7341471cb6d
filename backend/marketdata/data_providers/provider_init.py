"""
Provider Initialization Module

Assembles the market data services once at process start and tears them
down at shutdown. The resulting container is stored on the FastAPI app
state and handed to endpoints through dependencies.
"""
import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Optional
from loguru import logger

from marketdata.config import Settings, settings as default_settings
from marketdata.data_providers.adapters.base import BaseAdapter
from marketdata.data_providers.adapters.yahoo_finance import (
    YahooFinanceAdapter,
    create_yahoo_finance_config,
)
from marketdata.data_providers.adapters.alpha_vantage import (
    AlphaVantageAdapter,
    create_alpha_vantage_config,
)
from marketdata.data_providers.adapters.mutual_fund_api import (
    MutualFundAdapter,
    create_mutual_fund_config,
)
from marketdata.data_providers.aggregator import DataAggregator, AggregatorConfig
from marketdata.data_providers.cache_manager import CacheRegistry
from marketdata.data_providers.rate_limiter import RateLimiter, RateLimitConfig
from marketdata.services.quote_poller import QuotePoller


@dataclass
class MarketDataServices:
    """Everything the API layer needs, with one owner for each lifecycle."""
    settings: Settings
    caches: CacheRegistry
    rate_limiter: RateLimiter
    yahoo: YahooFinanceAdapter
    alpha_vantage: AlphaVantageAdapter
    mutual_funds: MutualFundAdapter
    aggregator: DataAggregator
    poller: QuotePoller
    started: bool = field(default=False)

    @property
    def adapters(self) -> list[BaseAdapter]:
        return [self.yahoo, self.alpha_vantage, self.mutual_funds]

    async def startup(self) -> None:
        """Open HTTP sessions and start background tasks."""
        if self.started:
            return

        results = await asyncio.gather(
            *(adapter.initialize() for adapter in self.adapters),
            return_exceptions=True,
        )
        for adapter, result in zip(self.adapters, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to initialize provider {adapter.name}: {result}")

        self.caches.start()
        if self.settings.ENABLE_QUOTE_POLLER:
            self.poller.start()

        self.started = True
        logger.info(f"Market data services started ({len(self.adapters)} providers)")

    async def shutdown(self) -> None:
        """Cancel background tasks, clear caches and close HTTP sessions."""
        await self.poller.stop()
        await self.caches.destroy()
        await asyncio.gather(
            *(adapter.close() for adapter in self.adapters),
            return_exceptions=True,
        )
        self.started = False
        logger.info("Market data services stopped")


def build_rate_limiter(settings: Settings, clock: Callable[[], float] = time.time) -> RateLimiter:
    """Rate limiter populated from the settings table."""
    return RateLimiter(
        configs={
            provider: RateLimitConfig(**limits)
            for provider, limits in settings.rate_limit_table.items()
        },
        default=RateLimitConfig(**settings.default_rate_limit),
        clock=clock,
    )


def build_services(
    settings: Optional[Settings] = None,
    clock: Callable[[], float] = time.time,
) -> MarketDataServices:
    """
    Construct the full service graph without starting anything.

    Args:
        settings: Application settings (defaults to the global instance)
        clock: Time source shared by caches and the rate limiter
    """
    settings = settings or default_settings

    caches = CacheRegistry.from_settings(settings, clock=clock)
    limiter = build_rate_limiter(settings, clock=clock)

    yahoo = YahooFinanceAdapter(create_yahoo_finance_config(settings))
    alpha = AlphaVantageAdapter(create_alpha_vantage_config(settings))
    funds = MutualFundAdapter(create_mutual_fund_config(settings))

    aggregator = DataAggregator(
        caches=caches,
        rate_limiter=limiter,
        primary=yahoo,
        secondary=alpha,
        funds=funds,
        config=AggregatorConfig.from_settings(settings),
    )
    poller = QuotePoller(
        aggregator,
        symbols=settings.DEFAULT_STOCKS,
        interval=settings.QUOTE_POLL_INTERVAL,
    )

    return MarketDataServices(
        settings=settings,
        caches=caches,
        rate_limiter=limiter,
        yahoo=yahoo,
        alpha_vantage=alpha,
        mutual_funds=funds,
        aggregator=aggregator,
        poller=poller,
    )
