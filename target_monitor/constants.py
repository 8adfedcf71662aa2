"""
Central constants for the target-hit monitor.
All magic numbers and configurable thresholds are defined here.
"""

# =============================================================================
# UPSTREAM MARKET DATA
# =============================================================================
QUOTE_BASE_URL = "https://mis.twse.com.tw/stock/api/getStockInfo.jsp"
QUOTE_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
)
QUOTE_TIMEOUT = 8.0             # Hard timeout per upstream call (seconds)
QUOTE_MAX_RETRIES = 2           # Retries after the first attempt
QUOTE_RETRY_DELAY = 1.0         # Linear backoff base: delay = base * attempt
VENUE_PREFIXES = ("tse", "otc")  # Primary and secondary listing venues
PRICE_SENTINEL = "-"            # Upstream placeholder for "no value"
LADDER_DELIMITER = "_"          # Bid/ask ladders: "103.5000_103.0000_..."


# =============================================================================
# RETRY DEFAULTS
# =============================================================================
DEFAULT_RETRY_DELAY = 1.0       # Base delay for retries (seconds)
MAX_RETRY_DELAY = 30.0          # Maximum retry delay (seconds)
MAX_RETRY_ATTEMPTS = 3          # Maximum attempts (first call included)


# =============================================================================
# QUOTE CACHE
# =============================================================================
CACHE_MAX_ENTRIES = 50          # FIFO eviction above this many keys
CACHE_SWEEP_INTERVAL = 60.0     # Background sweep period (seconds)
CACHE_MAX_AGE = 300.0           # Absolute age ceiling for the sweep (seconds)
CACHE_KEY_SEPARATOR = ","


# =============================================================================
# REQUEST THROTTLE
# =============================================================================
MIN_REQUEST_INTERVAL = 3.0      # Minimum spacing between upstream calls (seconds)


# =============================================================================
# TRADING SESSION (exchange-local time)
# =============================================================================
EXCHANGE_TIMEZONE = "Asia/Taipei"
MARKET_OPEN = "09:00"
MARKET_CLOSE = "13:30"
POST_MARKET_END = "18:00"
TRADING_TTL = 2.5               # Cache TTL while the market is open (seconds)
POST_MARKET_TTL = 120.0         # Cache TTL after the close, same day (seconds)
CLOSED_TTL = 300.0              # Cache TTL otherwise (seconds)


# =============================================================================
# HIT DETECTION
# =============================================================================
LIMIT_MOVE_RATIO = 0.095        # +/-9.5% vs. prior close marks limit up/down


# =============================================================================
# MONITOR LOOP & NOTIFICATIONS
# =============================================================================
CHECK_INTERVAL = 30             # Seconds between monitoring cycles
DISPATCH_INTERVAL = 300         # Seconds between notification flushes
TELEGRAM_TIMEOUT = 10           # Telegram API timeout (seconds)
TELEGRAM_MAX_MESSAGE = 4096     # Telegram message length limit
