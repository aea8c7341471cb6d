"""
Quote Poller

Pushes fresh quotes for a watchlist to subscribers on a fixed interval.
Each tick goes through the aggregator, so polling within the quote TTL is
served from cache and never exceeds provider rate limits.
"""
import asyncio
import inspect
from typing import Awaitable, Callable, Optional, Union
from loguru import logger

from marketdata.data_providers.adapters.base import NormalizedQuote
from marketdata.data_providers.aggregator import DataAggregator


QuoteCallback = Callable[[list[NormalizedQuote]], Union[None, Awaitable[None]]]


class QuotePoller:
    """
    Periodic quote fetch with subscriber fan-out.

    Usage:
        poller = QuotePoller(aggregator, ["RELIANCE.NS", "TCS.NS"], interval=5.0)
        unsubscribe = poller.subscribe(on_quotes)
        poller.start()
        ...
        unsubscribe()
        await poller.stop()
    """

    def __init__(
        self,
        aggregator: DataAggregator,
        symbols: list[str],
        interval: float = 5.0,
    ):
        self.aggregator = aggregator
        self.symbols = list(symbols)
        self.interval = interval
        self._subscribers: list[QuoteCallback] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: QuoteCallback) -> Callable[[], None]:
        """Register a callback (sync or async). Returns a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def poll_once(self) -> list[NormalizedQuote]:
        """Fetch the watchlist once and notify every subscriber."""
        quotes = await self.aggregator.get_multiple_stocks(self.symbols)

        for callback in list(self._subscribers):
            try:
                result = callback(quotes)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Quote subscriber {callback!r} failed: {e}")

        return quotes

    def start(self) -> None:
        """Start polling. Requires a running event loop."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Quote poller started for {len(self.symbols)} symbols every {self.interval}s")

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception as e:
                logger.exception(f"Quote poll failed: {e}")
            await asyncio.sleep(self.interval)

    async def stop(self) -> None:
        """Cancel polling and wait for the task to finish."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Quote poller stopped")
