"""
MonitorService: the composed quote layer and hit detector.

``build_service`` wires every component from a Config; tests construct
the pieces directly with fakes.
"""
from collections.abc import Iterable
from typing import Any

from .config import Config
from .dispatch import HitAggregator
from .exceptions import PersistenceError
from .health import get_system_status
from .hit_detector import HitDetector
from .logger import logger
from .models import HitEvent, Quote, TrackedStock
from .quote_cache import QuoteCache
from .quote_source import QuoteSource
from .store import DocumentStore, JsonDocumentStore
from .target_parser import extract_target_fields
from .telegram_client import TelegramClient
from .throttle import RequestThrottle
from .trading_session import TradingSession


class MonitorService:
    """Entry points used by the CLI loop and any outer API layer"""

    def __init__(
        self,
        cache: QuoteCache,
        detector: HitDetector,
        store: DocumentStore,
        aggregator: HitAggregator | None = None,
    ):
        self.cache = cache
        self.detector = detector
        self.store = store
        self.aggregator = aggregator

    def fetch_stock_data(self, symbols: Iterable[str]) -> list[Quote]:
        """Quotes through cache, throttle and retry"""
        return self.cache.get_quotes(symbols)

    def check_and_log_hits(self, quotes: list[Quote]) -> list[HitEvent]:
        return self.detector.check_and_log_hits(quotes)

    def get_system_status(self) -> dict[str, Any]:
        status = get_system_status(self.cache, self.cache.throttle, self.cache.session)
        if self.aggregator is not None:
            sink = self.aggregator.sink
            if isinstance(sink, TelegramClient):
                name, healthy = "telegram", sink.is_healthy()
            else:
                name, healthy = ("log" if sink is None else type(sink).__name__), True
            status["notifications"] = {
                "sink": name,
                "healthy": healthy,
                "pending": len(self.aggregator.pending),
            }
        return status

    def tracked_codes(self) -> list[str]:
        return sorted({s.code for s in self.store.find_tracked_stocks()})

    def watchlist(self) -> list[tuple[TrackedStock, Quote | None]]:
        """Tracked stocks, newest first, each with its live quote (None if unquoted)"""
        stocks = self.store.find_tracked_stocks()
        codes = sorted({s.code for s in stocks})
        quotes = {q.symbol: q for q in self.fetch_stock_data(codes)} if codes else {}
        return [(s, quotes.get(s.code)) for s in stocks]

    def run_cycle(self) -> list[HitEvent]:
        """
        One monitoring pass: quote every tracked code, log new hits, queue them.

        Returns:
            New hit events from this pass
        """
        try:
            codes = self.tracked_codes()
        except PersistenceError as e:
            logger.error("service.load_tracked_failed", error=str(e))
            return []

        if not codes:
            logger.info("service.nothing_tracked")
            return []

        quotes = self.fetch_stock_data(codes)
        if not quotes:
            logger.warning("service.no_quotes", codes=len(codes))
            return []

        events = self.check_and_log_hits(quotes)
        if self.aggregator is not None:
            self.aggregator.add(events)
        logger.info("service.cycle_done", codes=len(codes), quotes=len(quotes), hits=len(events))
        return events

    def register_recognized(self, text: str, source: str = "system") -> TrackedStock | None:
        """
        Store a tracked stock from image-recognition text.

        Returns:
            The new TrackedStock, or None when no stock code was found
        """
        fields = extract_target_fields(text)
        code = fields.pop("code", None)
        if not code:
            logger.warning("service.recognized_without_code", preview=(text or "")[:80])
            return None

        stock = TrackedStock(code=code, source=source, **fields)
        return self.store.add_tracked_stock(stock)

    def start(self):
        self.cache.start_sweeper()

    def close(self):
        self.cache.stop_sweeper()
        if self.aggregator is not None:
            self.aggregator.flush()


def build_service(cfg: Config) -> MonitorService:
    """Wire a MonitorService from configuration"""
    session = TradingSession(**cfg.session.model_dump())
    source = QuoteSource(**cfg.upstream.model_dump())
    throttle = RequestThrottle(min_interval=cfg.throttle.min_interval)
    cache = QuoteCache(
        source,
        throttle,
        session,
        max_entries=cfg.cache.max_entries,
        max_age=cfg.cache.max_age,
        sweep_interval=cfg.cache.sweep_interval,
    )
    store = JsonDocumentStore(cfg.store.path)
    detector = HitDetector(store, session)

    sink = None
    if cfg.telegram is not None:
        sink = TelegramClient(cfg.telegram.bot_token, cfg.telegram.chat_id)
    aggregator = HitAggregator(sink, interval=cfg.monitor.dispatch_interval)

    logger.info(
        "service.built",
        store=cfg.store.path,
        sink="telegram" if sink else "log",
        min_interval=cfg.throttle.min_interval,
    )
    return MonitorService(cache, detector, store, aggregator)
