"""
Cache Manager

In-memory TTL caches for market data.

Entries expire lazily on read and through a periodic sweep. When a cache is
full the oldest-inserted key is evicted (insertion order, not LRU: reads do
not refresh an entry's position).
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar
from loguru import logger


T = TypeVar('T')


@dataclass
class CacheConfig:
    """Cache configuration."""
    max_size: int = 1000
    default_ttl: float = 300.0        # seconds, when set() gets no ttl
    cleanup_interval: float = 300.0   # seconds between background sweeps


@dataclass
class CacheEntry(Generic[T]):
    """A cached value with its insert time and lifetime."""
    value: T
    timestamp: float  # clock seconds at insert
    ttl: float        # seconds

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


class TTLCache:
    """
    Bounded key/value store with per-entry expiry.

    Features:
    - TTL passed per set() call
    - Lazy expiry on get()/has()
    - Capacity eviction by insertion order
    - Hit/miss statistics
    - Cancellable background sweep (start()/destroy())
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        name: str = "cache",
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or CacheConfig()
        self.name = name
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._stats = {"hits": 0, "misses": 0}
        self._cleanup_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def size(self) -> int:
        return len(self._entries)

    # ==================== Core Operations ====================

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Insert or overwrite a value, evicting the oldest key when full."""
        ttl = self.config.default_ttl if ttl_seconds is None else ttl_seconds

        # Overwrites keep the key's original position and never evict
        if key not in self._entries and len(self._entries) >= self.config.max_size:
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]
            logger.debug(f"[{self.name}] evicted {oldest_key} (capacity {self.config.max_size})")

        self._entries[key] = CacheEntry(value=value, timestamp=self._clock(), ttl=ttl)

    def get(self, key: str) -> Optional[Any]:
        """Return the value if present and unexpired, else None."""
        entry = self._entries.get(key)

        if entry is None:
            self._stats["misses"] += 1
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._stats["misses"] += 1
            return None

        self._stats["hits"] += 1
        return entry.value

    def has(self, key: str) -> bool:
        """Expiry-aware membership test that leaves statistics untouched."""
        entry = self._entries.get(key)
        if entry is None:
            return False

        if entry.is_expired(self._clock()):
            del self._entries[key]
            return False

        return True

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it was present."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all entries and reset hit/miss counters."""
        self._entries.clear()
        self._stats = {"hits": 0, "misses": 0}

    def cleanup(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.debug(f"[{self.name}] swept {len(expired)} expired entries")
        return len(expired)

    # ==================== Cache Stats ====================

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / total * 100 if total > 0 else 0

        return {
            "hits": self._stats["hits"],
            "misses": self._stats["misses"],
            "size": len(self._entries),
            "hit_rate": hit_rate,
        }

    # ==================== Background Sweep ====================

    @property
    def is_running(self) -> bool:
        return self._cleanup_task is not None and not self._cleanup_task.done()

    def start(self) -> None:
        """Start the periodic sweep. Requires a running event loop."""
        if self.is_running:
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.debug(f"[{self.name}] cleanup every {self.config.cleanup_interval}s")

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.cleanup_interval)
            self.cleanup()

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._cleanup_task is None:
            return

        self._cleanup_task.cancel()
        try:
            await self._cleanup_task
        except asyncio.CancelledError:
            pass
        self._cleanup_task = None

    async def destroy(self) -> None:
        """Stop the sweep and drop all entries."""
        await self.stop()
        self.clear()


class CacheRegistry:
    """
    The three cache instances used by the market data layer.

    - stock: live quotes, short TTLs
    - mutual_fund: fund searches and NAVs, longer TTLs
    - general: scheme lists, symbol search and anything else
    """

    STOCK = "stock"
    MUTUAL_FUND = "mutual-fund"
    GENERAL = "general"

    def __init__(
        self,
        stock: Optional[TTLCache] = None,
        mutual_fund: Optional[TTLCache] = None,
        general: Optional[TTLCache] = None,
    ):
        self.stock = stock if stock is not None else TTLCache(CacheConfig(max_size=500), name=self.STOCK)
        self.mutual_fund = mutual_fund if mutual_fund is not None else TTLCache(CacheConfig(max_size=200), name=self.MUTUAL_FUND)
        self.general = general if general is not None else TTLCache(CacheConfig(max_size=1000), name=self.GENERAL)

    @classmethod
    def from_settings(cls, settings, clock: Callable[[], float] = time.time) -> "CacheRegistry":
        """Build the registry from application settings."""
        def make(name: str, max_size: int) -> TTLCache:
            return TTLCache(
                CacheConfig(max_size=max_size, cleanup_interval=settings.CACHE_CLEANUP_INTERVAL),
                name=name,
                clock=clock,
            )

        return cls(
            stock=make(cls.STOCK, settings.MAX_STOCK_ENTRIES),
            mutual_fund=make(cls.MUTUAL_FUND, settings.MAX_MF_ENTRIES),
            general=make(cls.GENERAL, settings.MAX_GENERAL_ENTRIES),
        )

    def _all(self) -> dict[str, TTLCache]:
        return {
            self.STOCK: self.stock,
            self.MUTUAL_FUND: self.mutual_fund,
            self.GENERAL: self.general,
        }

    def get(self, name: str) -> TTLCache:
        """Look up a cache by name ("stock", "mutual-fund", "general")."""
        try:
            return self._all()[name]
        except KeyError:
            raise KeyError(f"Unknown cache: {name}") from None

    def clear(self, name: Optional[str] = None) -> None:
        """Clear one cache, or all of them when name is None."""
        if name is None:
            for cache in self._all().values():
                cache.clear()
            logger.info("Cleared all caches")
        else:
            self.get(name).clear()
            logger.info(f"Cleared {name} cache")

    def get_stats(self) -> dict[str, dict[str, Any]]:
        return {name: cache.get_stats() for name, cache in self._all().items()}

    def start(self) -> None:
        for cache in self._all().values():
            cache.start()

    async def destroy(self) -> None:
        for cache in self._all().values():
            await cache.destroy()
