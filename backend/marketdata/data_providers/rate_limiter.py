"""
Rate Limiter

Fixed-window request counter per (provider, caller) pair.

Each pair gets a counter and a reset time. When the window has passed the
entry is replaced with a fresh one, so bursts of up to 2x the limit are
possible across a window boundary.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional
from loguru import logger


DEFAULT_IDENTIFIER = "default"


@dataclass(frozen=True)
class RateLimitConfig:
    """Configuration for rate limiting."""
    max_requests: int
    window_ms: int

    @property
    def window_seconds(self) -> float:
        return self.window_ms / 1000.0


@dataclass
class RateLimitEntry:
    """Request counter for one window."""
    count: int
    reset_time: float  # clock seconds


DEFAULT_RATE_LIMIT = RateLimitConfig(max_requests=60, window_ms=60_000)

DEFAULT_PROVIDER_LIMITS: dict[str, RateLimitConfig] = {
    "yahoo-finance": RateLimitConfig(max_requests=100, window_ms=60_000),
    "alpha-vantage": RateLimitConfig(max_requests=5, window_ms=60_000),
    "mutual-fund-api": RateLimitConfig(max_requests=200, window_ms=60_000),
}


class RateLimiter:
    """
    Admission control for outbound provider calls and inbound clients.

    Keys are ``"{provider}:{identifier}"`` so one provider can be limited
    independently per caller (client IP at the inbound edge, ``"default"``
    for outbound calls).

    ``check_limit`` is synchronous: the read and the increment must not be
    separated by a suspension point. Callers on several threads need a lock
    around it.
    """

    def __init__(
        self,
        configs: Optional[dict[str, RateLimitConfig]] = None,
        default: RateLimitConfig = DEFAULT_RATE_LIMIT,
        clock: Callable[[], float] = time.time,
    ):
        self._configs: dict[str, RateLimitConfig] = dict(
            DEFAULT_PROVIDER_LIMITS if configs is None else configs
        )
        self._default = default
        self._limits: dict[str, RateLimitEntry] = {}
        self._clock = clock

    @staticmethod
    def _key(provider: str, identifier: str) -> str:
        return f"{provider}:{identifier}"

    def configure(self, provider: str, config: RateLimitConfig) -> None:
        """Configure rate limits for a provider."""
        self._configs[provider] = config
        logger.info(f"Rate limiter configured for {provider}: {config}")

    def get_config(self, provider: str) -> RateLimitConfig:
        """Limits for a provider, falling back to the default entry."""
        return self._configs.get(provider, self._default)

    @property
    def providers(self) -> list[str]:
        """Providers with an explicit configuration."""
        return list(self._configs)

    def check_limit(self, provider: str, identifier: str = DEFAULT_IDENTIFIER) -> bool:
        """
        Admit or deny one request.

        Args:
            provider: Provider name (e.g. "yahoo-finance")
            identifier: Caller identifier

        Returns:
            True if the request is admitted (and counted), False otherwise
        """
        key = self._key(provider, identifier)
        config = self.get_config(provider)
        now = self._clock()

        entry = self._limits.get(key)
        if entry is None or now > entry.reset_time:
            entry = RateLimitEntry(count=0, reset_time=now + config.window_seconds)
            self._limits[key] = entry

        if entry.count >= config.max_requests:
            logger.debug(f"Rate limit exceeded for {key}")
            return False

        entry.count += 1
        return True

    async def wait_for_reset(self, provider: str, identifier: str = DEFAULT_IDENTIFIER) -> None:
        """Suspend the caller until the current window for the pair has passed."""
        entry = self._limits.get(self._key(provider, identifier))
        if entry is None:
            return

        wait_time = entry.reset_time - self._clock()
        if wait_time > 0:
            logger.debug(f"Rate limit: waiting {wait_time:.2f}s for {provider}:{identifier}")
            await asyncio.sleep(wait_time)

    def get_stats(self, provider: str, identifier: str = DEFAULT_IDENTIFIER) -> dict:
        """
        Remaining requests and reset time for a pair.

        An expired or missing window reports a full quota and the reset time
        a fresh window would get.
        """
        config = self.get_config(provider)
        entry = self._limits.get(self._key(provider, identifier))
        now = self._clock()

        if entry is None or now > entry.reset_time:
            return {
                "remaining": config.max_requests,
                "reset_time": now + config.window_seconds,
            }

        return {
            "remaining": max(0, config.max_requests - entry.count),
            "reset_time": entry.reset_time,
        }

    def get_all_stats(self, providers: Optional[Iterable[str]] = None) -> dict[str, dict]:
        """Stats for the default identifier of each provider."""
        names = self.providers if providers is None else providers
        return {name: self.get_stats(name) for name in names}

    def reset(self, provider: Optional[str] = None, identifier: Optional[str] = None) -> None:
        """
        Forget counters.

        With both arguments one entry is removed; with only ``provider`` every
        caller's entry for that provider; with neither (None), everything.
        """
        if provider is not None and identifier is not None:
            self._limits.pop(self._key(provider, identifier), None)
        elif provider is not None:
            prefix = f"{provider}:"
            for key in [k for k in self._limits if k.startswith(prefix)]:
                del self._limits[key]
        else:
            self._limits.clear()

        logger.info(f"Rate limits reset (provider={provider}, identifier={identifier})")
