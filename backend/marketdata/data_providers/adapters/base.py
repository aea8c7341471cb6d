"""
Base Provider Adapter Interface

Defines the normalized records every adapter produces, the provider error
hierarchy, and the shared HTTP plumbing (aiohttp session, JSON fetch,
status recording).
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict, field
from datetime import datetime
from typing import Optional, Any
import asyncio
import aiohttp
from loguru import logger


# Source tags carried by every normalized record
SOURCE_YAHOO_FINANCE = "yahoo-finance"
SOURCE_ALPHA_VANTAGE = "alpha-vantage"
SOURCE_MUTUAL_FUND_API = "mutual-fund-api"
SOURCE_SYNTHETIC = "synthetic"


@dataclass
class ProviderConfig:
    """Configuration for a data provider."""
    name: str
    base_url: str = ""
    api_key: Optional[str] = None

    # Alternate hosts tried after base_url fails
    mirror_urls: list[str] = field(default_factory=list)

    # Timeouts
    timeout_seconds: float = 10.0

    # Mirror rotation
    retry_attempts: int = 1
    retry_delay: float = 1.0
    retry_max_delay: float = 10.0

    # Priority (lower = higher priority)
    priority: int = 100

    @property
    def urls(self) -> list[str]:
        return [self.base_url, *self.mirror_urls] if self.base_url else list(self.mirror_urls)


@dataclass(frozen=True)
class NormalizedQuote:
    """Normalized stock quote."""
    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    volume: int
    market_cap: float
    high: float
    low: float
    previous_close: float
    sector: str
    source: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass(frozen=True)
class NormalizedFund:
    """Normalized mutual fund scheme."""
    scheme_code: str
    scheme_name: str
    nav: float
    nav_date: str
    fund_house: str
    category: str
    source: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass
class ProviderStatus:
    """Status information for a provider."""
    name: str
    is_healthy: bool = True
    last_success: Optional[datetime] = None
    last_error: Optional[datetime] = None
    last_error_message: Optional[str] = None
    error_count: int = 0
    success_count: int = 0
    avg_latency_ms: float = 0.0


class ProviderError(Exception):
    """Base exception for provider errors."""
    def __init__(self, provider: str, message: str, recoverable: bool = True):
        self.provider = provider
        self.message = message
        self.recoverable = recoverable
        super().__init__(f"[{provider}] {message}")


class RateLimitError(ProviderError):
    """Upstream reported throttling."""
    def __init__(self, provider: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(provider, f"Rate limit exceeded. Retry after: {retry_after}s", recoverable=True)


class DataNotAvailableError(ProviderError):
    """Requested data not available."""
    def __init__(self, provider: str, symbol: str, data_type: str):
        super().__init__(provider, f"Data not available for {symbol} ({data_type})", recoverable=False)


class ParseError(ProviderError):
    """Upstream response did not have the expected shape."""
    def __init__(self, provider: str, message: str):
        super().__init__(provider, f"Malformed response: {message}", recoverable=False)


# Raised by parsers when a field has the wrong type or is missing
MALFORMED_RESPONSE_ERRORS = (KeyError, IndexError, TypeError, ValueError, AttributeError)


class BaseAdapter(ABC):
    """
    Abstract base class for all data provider adapters.

    Subclasses fetch from one upstream and raise ``ProviderError`` on any
    failure; falling back is the aggregator's job.
    """

    def __init__(self, config: ProviderConfig):
        self.config = config
        self.name = config.name
        self._status = ProviderStatus(name=config.name)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def status(self) -> ProviderStatus:
        """Get current provider status."""
        return self._status

    async def initialize(self) -> None:
        """Create the HTTP session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            logger.info(f"{self.name} adapter initialized")

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
        logger.info(f"{self.name} adapter closed")

    @abstractmethod
    async def health_check(self) -> bool:
        """Issue one minimal real request; True if the upstream answered usefully."""
        pass

    async def _get_json(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """
        GET a URL and decode its JSON body.

        Raises:
            ProviderError: on connection errors, timeouts or non-2xx status
            ParseError: if the body is not JSON
        """
        await self.initialize()

        start_time = datetime.now()
        try:
            async with self._session.get(url, params=params, headers=headers) as response:
                if response.status == 429:
                    raise RateLimitError(self.name, retry_after=60)
                if response.status >= 400:
                    raise ProviderError(self.name, f"API error {response.status}")

                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise ParseError(self.name, f"invalid JSON ({e})")

        except aiohttp.ClientError as e:
            self._record_error(e)
            raise ProviderError(self.name, f"Connection error: {e}")
        except asyncio.TimeoutError as e:
            self._record_error(e)
            raise ProviderError(self.name, "Request timed out")
        except ProviderError as e:
            self._record_error(e)
            raise

        latency_ms = (datetime.now() - start_time).total_seconds() * 1000
        self._record_success(latency_ms)
        return data

    # Helper methods
    def _record_success(self, latency_ms: float) -> None:
        """Record a successful request."""
        self._status.success_count += 1
        self._status.last_success = datetime.utcnow()

        # Update average latency (exponential moving average)
        alpha = 0.1
        self._status.avg_latency_ms = (
            alpha * latency_ms + (1 - alpha) * self._status.avg_latency_ms
        )

        # Reset error count on success
        self._status.error_count = 0
        self._status.is_healthy = True

    def _record_error(self, error: Exception) -> None:
        """Record a failed request."""
        self._status.error_count += 1
        self._status.last_error = datetime.utcnow()
        self._status.last_error_message = str(error)

        # Mark as unhealthy after too many consecutive errors
        if self._status.error_count >= 5:
            self._status.is_healthy = False
            logger.warning(f"Provider {self.name} marked as unhealthy after {self._status.error_count} errors")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name}, healthy={self._status.is_healthy})>"
