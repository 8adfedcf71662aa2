"""
Raw quote fetch from the exchange's real-time quote endpoint.

One GET covers the whole batch; every code is queried on both listing
venues because the venue is not known in advance. No caching or
throttling here, that is QuoteCache's job.
"""
import time
from collections.abc import Callable
from typing import Any

import requests

from .constants import (
    LADDER_DELIMITER,
    PRICE_SENTINEL,
    QUOTE_BASE_URL,
    QUOTE_MAX_RETRIES,
    QUOTE_RETRY_DELAY,
    QUOTE_TIMEOUT,
    QUOTE_USER_AGENT,
    VENUE_PREFIXES,
)
from .exceptions import TransientUpstreamError, UpstreamError
from .logger import logger
from .models import Quote, to_price, to_volume
from .retry import RetryError, RetryPolicy, is_retryable_http_status, retry_with_backoff


def build_channel_query(symbols: list[str]) -> str:
    """``["2330", "6488"]`` -> ``tse_2330.tw|otc_2330.tw|tse_6488.tw|otc_6488.tw``"""
    return "|".join(
        f"{prefix}_{symbol}.tw" for symbol in symbols for prefix in VENUE_PREFIXES
    )


def first_valid_price(ladder: Any) -> float | None:
    """First valid price in an ``_``-delimited bid/ask ladder"""
    if not ladder or not isinstance(ladder, str) or ladder == PRICE_SENTINEL:
        return None
    for part in ladder.split(LADDER_DELIMITER):
        price = to_price(part)
        if price is not None:
            return price
    return None


def resolve_current_price(record: dict[str, Any]) -> float | None:
    """
    Current price for one upstream record.

    Trade price, else best bid, else best ask, else prior close.
    """
    price = to_price(record.get("z"))
    if price is not None:
        return price

    bid = first_valid_price(record.get("b"))
    if bid is not None:
        return bid

    ask = first_valid_price(record.get("a"))
    if ask is not None:
        return ask

    raw_bid, raw_ask = record.get("b"), record.get("a")
    if (raw_bid and raw_bid != PRICE_SENTINEL) or (raw_ask and raw_ask != PRICE_SENTINEL):
        logger.debug(
            "quote_source.price_fallback_close",
            symbol=record.get("c"),
            z=record.get("z"),
            b=raw_bid,
            a=raw_ask,
        )
    return to_price(record.get("y"))


def parse_record(record: dict[str, Any]) -> Quote | None:
    """Map one ``msgArray`` element to a Quote; None for noise records"""
    symbol = record.get("c")
    name = record.get("n")
    if not symbol or not name:
        return None

    return Quote(
        symbol=str(symbol),
        name=str(name),
        current_price=resolve_current_price(record),
        high=to_price(record.get("h")),
        low=to_price(record.get("l")),
        yesterday_close=to_price(record.get("y")),
        volume=to_volume(record.get("v")),
        timestamp=record.get("t"),
        full_key=record.get("ch"),
    )


class QuoteSource:
    """
    Batched quote fetch with bounded retry.

    Transport failures, error statuses, malformed bodies and empty
    results are retried ``max_retries`` times with linear backoff
    (``retry_delay * attempt``). After that ``fetch`` returns an empty
    list: "temporarily unknown", not "no such symbol".
    """

    # Shared session for connection pooling
    _session: requests.Session | None = None

    @classmethod
    def _get_session(cls) -> requests.Session:
        if cls._session is None:
            cls._session = requests.Session()
            adapter = requests.adapters.HTTPAdapter(
                pool_connections=2,
                pool_maxsize=5,
                max_retries=0
            )
            cls._session.mount("https://", adapter)
            cls._session.mount("http://", adapter)
            logger.debug("quote_source.session_created")
        return cls._session

    def __init__(
        self,
        base_url: str = QUOTE_BASE_URL,
        timeout: float = QUOTE_TIMEOUT,
        max_retries: int = QUOTE_MAX_RETRIES,
        retry_delay: float = QUOTE_RETRY_DELAY,
        user_agent: str = QUOTE_USER_AGENT,
        sleep: Callable[[float], None] | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.user_agent = user_agent
        self.retry_policy = RetryPolicy(
            max_attempts=max_retries + 1,
            base_delay=retry_delay,
            backoff="linear",
            jitter=False,
        )
        self._request_with_retry = retry_with_backoff(
            policy=self.retry_policy,
            retryable_exceptions=(TransientUpstreamError,),
            sleep=sleep or time.sleep,
        )(self._request_batch)

    def fetch(self, symbols: list[str]) -> list[Quote]:
        """
        Fetch quotes for ``symbols`` in one batched request.

        Returns:
            Quotes for every symbol the endpoint recognised, or ``[]``
            when the endpoint stayed unavailable through every retry.
        """
        if not symbols:
            return []

        try:
            records = self._request_with_retry(list(symbols))
        except RetryError as e:
            logger.error(
                "quote_source.unavailable",
                symbols=len(symbols),
                attempts=self.max_retries + 1,
                error=str(e.last_exception)[:100],
            )
            return []
        except UpstreamError as e:
            logger.error("quote_source.rejected", symbols=len(symbols), error=str(e)[:100])
            return []

        quotes = [q for q in (parse_record(r) for r in records) if q is not None]
        logger.info("quote_source.fetched", requested=len(symbols), received=len(quotes))
        return quotes

    def _request_batch(self, symbols: list[str]) -> list[dict[str, Any]]:
        """Single attempt; raises TransientUpstreamError on anything retryable"""
        params = {
            "json": "1",
            "delay": "0",
            "ex_ch": build_channel_query(symbols),
            "_": str(int(time.time() * 1000)),
        }
        context = {"symbols": len(symbols)}

        try:
            response = self._get_session().get(
                self.base_url,
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise TransientUpstreamError("Quote request timed out", context, e)
        except requests.RequestException as e:
            raise TransientUpstreamError("Quote request failed", context, e)

        if response.status_code != 200:
            context["status"] = response.status_code
            if is_retryable_http_status(response.status_code):
                raise TransientUpstreamError("Quote endpoint error status", context)
            raise UpstreamError("Quote endpoint rejected request", context)

        try:
            body = response.json()
        except ValueError as e:
            raise TransientUpstreamError("Quote response is not JSON", context, e)

        records = body.get("msgArray") if isinstance(body, dict) else None
        if not isinstance(records, list):
            raise TransientUpstreamError("Quote response lacks msgArray", context)
        if not records:
            raise TransientUpstreamError("Quote response is empty", context)

        return records
