"""
Exchange trading-session clock and the cache TTL policy derived from it.
"""
from datetime import datetime, time as dtime
from zoneinfo import ZoneInfo

from .constants import (
    CLOSED_TTL,
    EXCHANGE_TIMEZONE,
    MARKET_CLOSE,
    MARKET_OPEN,
    POST_MARKET_END,
    POST_MARKET_TTL,
    TRADING_TTL,
)

TRADING = "trading"
POST_MARKET = "post_market"
CLOSED = "closed"


def parse_clock(value: str) -> dtime:
    """``"13:30"`` -> ``time(13, 30)``"""
    hour, minute = value.split(":")
    return dtime(int(hour), int(minute))


class TradingSession:
    """
    Trading-session state in exchange-local time.

    - trading:     weekday, ``market_open <= t <= market_close``
    - post_market: weekday, after the close and before ``post_market_end``
    - closed:      everything else, weekends included
    """

    def __init__(
        self,
        timezone: str = EXCHANGE_TIMEZONE,
        market_open: str = MARKET_OPEN,
        market_close: str = MARKET_CLOSE,
        post_market_end: str = POST_MARKET_END,
        trading_ttl: float = TRADING_TTL,
        post_market_ttl: float = POST_MARKET_TTL,
        closed_ttl: float = CLOSED_TTL,
    ):
        self.tz = ZoneInfo(timezone)
        self.market_open = parse_clock(market_open)
        self.market_close = parse_clock(market_close)
        self.post_market_end = parse_clock(post_market_end)
        self.ttls = {
            TRADING: trading_ttl,
            POST_MARKET: post_market_ttl,
            CLOSED: closed_ttl,
        }

    def local_now(self, now: datetime | None = None) -> datetime:
        """Exchange-local time; naive datetimes are taken as exchange-local"""
        if now is None:
            return datetime.now(self.tz)
        if now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now.astimezone(self.tz)

    def state(self, now: datetime | None = None) -> str:
        local = self.local_now(now)
        if local.weekday() >= 5:
            return CLOSED

        t = local.time().replace(second=0, microsecond=0)
        if self.market_open <= t <= self.market_close:
            return TRADING
        if self.market_close < t < self.post_market_end:
            return POST_MARKET
        return CLOSED

    def is_trading_hours(self, now: datetime | None = None) -> bool:
        return self.state(now) == TRADING

    def cache_ttl(self, now: datetime | None = None) -> float:
        """Freshness window for cached quotes at ``now`` (seconds)"""
        return self.ttls[self.state(now)]

    def day_key(self, now: datetime | None = None) -> str:
        """Exchange-local calendar day, ``YYYY-MM-DD``"""
        return self.local_now(now).date().isoformat()
