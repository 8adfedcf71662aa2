"""Tests for the exchange session clock and cache TTL policy."""
from datetime import datetime, timezone

import pytest

from conftest import taipei
from target_monitor.trading_session import (
    CLOSED,
    POST_MARKET,
    TRADING,
    TradingSession,
    parse_clock,
)


class TestSessionState:
    """2024-01-03 is a Wednesday, 2024-01-06 a Saturday"""

    @pytest.mark.parametrize("hour,minute,expected", [
        (8, 59, CLOSED),
        (9, 0, TRADING),
        (10, 30, TRADING),
        (13, 30, TRADING),
        (13, 31, POST_MARKET),
        (17, 59, POST_MARKET),
        (18, 0, CLOSED),
        (23, 0, CLOSED),
    ])
    def test_weekday_windows(self, session, hour, minute, expected):
        assert session.state(taipei(2024, 1, 3, hour, minute)) == expected

    def test_weekend_is_closed(self, session):
        assert session.state(taipei(2024, 1, 6, 10, 0)) == CLOSED
        assert not session.is_trading_hours(taipei(2024, 1, 7, 10, 0))

    def test_aware_datetimes_are_converted(self, session):
        # 02:00 UTC is 10:00 in Taipei
        utc = datetime(2024, 1, 3, 2, 0, tzinfo=timezone.utc)
        assert session.is_trading_hours(utc)

    def test_naive_datetimes_are_exchange_local(self, session):
        assert session.state(datetime(2024, 1, 3, 10, 0)) == TRADING


class TestCacheTTL:
    def test_default_ttls(self, session):
        assert session.cache_ttl(taipei(2024, 1, 3, 10, 0)) == 2.5
        assert session.cache_ttl(taipei(2024, 1, 3, 15, 0)) == 120.0
        assert session.cache_ttl(taipei(2024, 1, 3, 20, 0)) == 300.0
        assert session.cache_ttl(taipei(2024, 1, 6, 10, 0)) == 300.0

    def test_configured_ttls(self):
        session = TradingSession(trading_ttl=1.0, post_market_ttl=30.0, closed_ttl=600.0)

        assert session.cache_ttl(taipei(2024, 1, 3, 10, 0)) == 1.0
        assert session.cache_ttl(taipei(2024, 1, 3, 15, 0)) == 30.0
        assert session.cache_ttl(taipei(2024, 1, 3, 20, 0)) == 600.0

    def test_configured_windows(self):
        session = TradingSession(market_open="08:00", market_close="12:00", post_market_end="12:30")

        assert session.state(taipei(2024, 1, 3, 8, 15)) == TRADING
        assert session.state(taipei(2024, 1, 3, 12, 15)) == POST_MARKET
        assert session.state(taipei(2024, 1, 3, 13, 0)) == CLOSED


class TestDayKey:
    def test_exchange_local_calendar_day(self, session):
        # 17:00 UTC on the 3rd is already the 4th in Taipei
        utc = datetime(2024, 1, 3, 17, 0, tzinfo=timezone.utc)
        assert session.day_key(utc) == "2024-01-04"

    def test_format(self, session):
        assert session.day_key(taipei(2024, 3, 9, 9, 5)) == "2024-03-09"


def test_parse_clock():
    assert parse_clock("13:30").hour == 13
    assert parse_clock("09:05").minute == 5
    with pytest.raises(ValueError):
        parse_clock("noon")
