"""Shared fixtures: deterministic clocks, quotes and an in-memory store."""
import os

os.environ.setdefault("LOG_TO_FILE", "0")

from datetime import datetime  # noqa: E402
from zoneinfo import ZoneInfo  # noqa: E402

import pytest  # noqa: E402

from target_monitor.models import Quote, TrackedStock  # noqa: E402
from target_monitor.store import JsonDocumentStore  # noqa: E402
from target_monitor.trading_session import TradingSession  # noqa: E402

TAIPEI = ZoneInfo("Asia/Taipei")


class FakeClock:
    """Callable clock whose sleep advances time instead of blocking"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float):
        self.now += seconds


class FixedTTLSession(TradingSession):
    """TradingSession whose cache TTL is pinned for cache tests"""

    def __init__(self, ttl: float):
        super().__init__()
        self.ttl = ttl

    def cache_ttl(self, now=None) -> float:
        return self.ttl


def taipei(year, month, day, hour=10, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=TAIPEI)


def make_quote(symbol="2330", price=100.0, high=None, low=None, close=95.0, name=None) -> Quote:
    return Quote(
        symbol=symbol,
        name=name or f"Stock{symbol}",
        current_price=price,
        high=high if high is not None else price,
        low=low if low is not None else price,
        yesterday_close=close,
        volume=1000,
        timestamp="10:00:00",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return JsonDocumentStore()


@pytest.fixture
def session():
    return TradingSession()


@pytest.fixture
def tracked(store):
    """Factory adding a TrackedStock to the store"""
    def _add(code="2330", **fields):
        return store.add_tracked_stock(TrackedStock(code=code, **fields))
    return _add


class StubSource:
    """Records fetches; returns one quote per symbol unless results are given"""

    def __init__(self, results=None, price=100.0):
        self.calls = []
        self.results = results
        self.price = price

    def fetch(self, symbols):
        self.calls.append(list(symbols))
        if self.results is not None:
            return self.results
        return [make_quote(s, price=self.price) for s in symbols]
