"""System status reporting for the quote layer"""

from datetime import datetime
from typing import Any

from .quote_cache import QuoteCache
from .throttle import RequestThrottle
from .trading_session import TradingSession


def get_system_status(cache: QuoteCache, throttle: RequestThrottle,
                      session: TradingSession, now: datetime | None = None) -> dict[str, Any]:
    """
    Snapshot of cache contents and trading-session state.

    Returns:
        {"timestamp", "cache": {...}, "trading": {...}, "throttle": {...}}
    """
    local_now = session.local_now(now)
    since_last = throttle.seconds_since_last_request()

    return {
        "timestamp": local_now.isoformat(),
        "cache": cache.get_stats(),
        "trading": {
            "is_trading_hours": session.is_trading_hours(local_now),
            "session_state": session.state(local_now),
            "recommended_cache_ttl": session.cache_ttl(local_now),
            "time_since_last_request": round(since_last, 1) if since_last is not None else None,
        },
        "throttle": throttle.get_stats(),
    }
