"""
Quote cache keyed by canonical symbol set.

Features:
- Trading-session-aware TTL, evaluated at lookup time
- Request throttling on every miss
- FIFO capacity bound
- Background sweep of entries older than an absolute ceiling
"""
import threading
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from .constants import CACHE_KEY_SEPARATOR, CACHE_MAX_AGE, CACHE_MAX_ENTRIES, CACHE_SWEEP_INTERVAL
from .logger import logger
from .models import CacheEntry, Quote
from .quote_source import QuoteSource
from .throttle import RequestThrottle
from .trading_session import TradingSession
from .validation import sanitize_symbols


def cache_key(symbols: Iterable[str]) -> str:
    """Order-independent key: ``{"2330", "0050"}`` -> ``"0050,2330"``"""
    return CACHE_KEY_SEPARATOR.join(sorted(set(symbols)))


class QuoteCache:
    """Single entry point for quote batches; fetches only on a stale or missing entry"""

    def __init__(
        self,
        source: QuoteSource,
        throttle: RequestThrottle,
        session: TradingSession,
        max_entries: int = CACHE_MAX_ENTRIES,
        max_age: float = CACHE_MAX_AGE,
        sweep_interval: float = CACHE_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.time,
    ):
        self.source = source
        self.throttle = throttle
        self.session = session
        self.max_entries = max_entries
        self.max_age = max_age
        self.sweep_interval = sweep_interval
        self._clock = clock
        # dict keeps insertion order, which is the FIFO eviction order
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._sweeper: threading.Thread | None = None
        self._stop_sweeper = threading.Event()

    def current_ttl(self, now: float | None = None) -> float:
        now = self._clock() if now is None else now
        return self.session.cache_ttl(datetime.fromtimestamp(now, tz=timezone.utc))

    def get_quotes(self, symbols: Iterable[str]) -> list[Quote]:
        """
        Quotes for a symbol set, from cache while fresh.

        Args:
            symbols: Stock codes in any order; duplicates and invalid codes are dropped

        Returns:
            Quote list (possibly empty when the upstream is unavailable)
        """
        valid, invalid = sanitize_symbols(symbols)
        if invalid:
            logger.warning("quote_cache.invalid_symbols", symbols=invalid)
        if not valid:
            return []

        key = cache_key(valid)
        now = self._clock()
        ttl = self.current_ttl(now)

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.age(now) < ttl:
                self._hits += 1
                logger.debug(
                    "quote_cache.hit",
                    key=key,
                    remaining=round(ttl - entry.age(now), 1),
                )
                return entry.data
            self._misses += 1

        logger.debug("quote_cache.miss", key=key, stale=entry is not None, ttl=ttl)
        self.throttle.before_request()
        data = self.source.fetch(sorted(valid))

        if data:
            self._put(CacheEntry(key=key, data=data, cached_at=self._clock()))
        else:
            logger.warning("quote_cache.empty_result", key=key)
        return data

    def _put(self, entry: CacheEntry):
        with self._lock:
            # Overwrite counts as a fresh insertion for FIFO purposes
            self._entries.pop(entry.key, None)
            self._entries[entry.key] = entry

            while len(self._entries) > self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self._evictions += 1
                logger.debug("quote_cache.evicted", key=oldest)

    def sweep(self, now: float | None = None) -> int:
        """Remove entries older than ``max_age``; returns how many were removed"""
        now = self._clock() if now is None else now
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.age(now) > self.max_age]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.info("quote_cache.swept", count=len(expired))
        return len(expired)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def start_sweeper(self):
        """Run ``sweep`` every ``sweep_interval`` seconds on a daemon thread"""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_sweeper.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="quote-cache-sweeper", daemon=True
        )
        self._sweeper.start()
        logger.debug("quote_cache.sweeper_started", interval=self.sweep_interval)

    def stop_sweeper(self):
        self._stop_sweeper.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=self.sweep_interval + 1)
            self._sweeper = None

    def _sweep_loop(self):
        while not self._stop_sweeper.wait(self.sweep_interval):
            try:
                self.sweep()
            except Exception as e:
                logger.error("quote_cache.sweep_failed", error=str(e))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> dict:
        """Cache statistics for the status endpoint"""
        now = self._clock()
        with self._lock:
            details = [
                {
                    "key": key,
                    "age": round(entry.age(now)),
                    "item_count": len(entry.data),
                }
                for key, entry in self._entries.items()
            ]
            return {
                "cache_size": len(self._entries),
                "cache_keys": list(self._entries.keys()),
                "cache_details": details,
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }
