"""
Target-hit detection.

Compares each tracked stock's day high/low against its four targets,
applies the wave-over-shortTerm and swap-over-support precedence, and logs
every surviving hit once per exchange-local day.
"""
from collections.abc import Callable, Iterable
from datetime import datetime

from .constants import LIMIT_MOVE_RATIO
from .exceptions import DataAnomaly, DuplicateHitError, PersistenceError
from .logger import logger
from .models import HitEvent, HitLogRecord, Quote, TargetKind, TrackedStock
from .store import DocumentStore
from .trading_session import TradingSession

# When both fire, the key supersedes the value
SUPERSEDES = {
    TargetKind.WAVE: TargetKind.SHORT_TERM,
    TargetKind.SWAP: TargetKind.SUPPORT,
}

LIMIT_UP = "limit_up"
LIMIT_DOWN = "limit_down"


def resolve_range(quote: Quote) -> tuple[float, float]:
    """
    (high, low) for a quote.

    Missing high/low fall back to the current price for both; a quote
    without any usable price is a DataAnomaly.
    """
    if quote.current_price is None:
        raise DataAnomaly("Quote has no usable price", {"symbol": quote.symbol})
    if quote.high is None or quote.low is None:
        return quote.current_price, quote.current_price
    return quote.high, quote.low


def limit_annotation(price: float | None, yesterday_close: float | None,
                     ratio: float = LIMIT_MOVE_RATIO) -> tuple[str | None, float | None]:
    """(limit mark, change percent) relative to the prior close"""
    if price is None or not yesterday_close:
        return None, None
    change = (price - yesterday_close) / yesterday_close
    mark = None
    if change >= ratio:
        mark = LIMIT_UP
    elif change <= -ratio:
        mark = LIMIT_DOWN
    return mark, round(change * 100, 2)


def find_candidates(stock: TrackedStock, high: float, low: float) -> dict[TargetKind, tuple[float, float]]:
    """
    Target kinds whose condition holds.

    Returns:
        {kind: (threshold, trigger_price)}; downside kinds trigger on
        ``low <= threshold``, upside kinds on ``high >= threshold``
    """
    fired = {}
    for target in stock.targets():
        threshold = target.threshold
        if threshold is None:
            continue
        if target.kind.is_downside:
            if low <= threshold:
                fired[target.kind] = (threshold, low)
        elif high >= threshold:
            fired[target.kind] = (threshold, high)
    return fired


def apply_precedence(fired: dict[TargetKind, tuple[float, float]]) -> dict[TargetKind, tuple[float, float]]:
    """Drop shortTerm when wave fired and support when swap fired"""
    kept = dict(fired)
    for stronger, weaker in SUPERSEDES.items():
        if stronger in kept and weaker in kept:
            del kept[weaker]
    return kept


class HitDetector:
    """Turns a quote batch plus tracked stocks into new, logged hit events"""

    def __init__(
        self,
        store: DocumentStore,
        session: TradingSession,
        limit_ratio: float = LIMIT_MOVE_RATIO,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.session = session
        self.limit_ratio = limit_ratio
        self._clock = clock or session.local_now

    def check_and_log_hits(self, quotes: list[Quote]) -> list[HitEvent]:
        """
        Evaluate every stored tracked stock whose code appears in ``quotes``.

        A store failure while loading stocks yields no events for this pass.
        """
        codes = sorted({q.symbol for q in quotes})
        if not codes:
            return []
        try:
            stocks = self.store.find_tracked_stocks({"code": codes})
        except PersistenceError as e:
            logger.error("hit_detector.load_failed", codes=len(codes), error=str(e))
            return []
        return self.evaluate(quotes, stocks)

    def evaluate(self, quotes: list[Quote], stocks: Iterable[TrackedStock]) -> list[HitEvent]:
        """
        New hit events for ``stocks`` against ``quotes``.

        Stocks absent from the batch, or whose quote is anomalous, are
        skipped. Hits already logged today are suppressed.
        """
        by_symbol = {q.symbol: q for q in quotes}
        now = self._clock()
        day_key = self.session.day_key(now)
        events: list[HitEvent] = []

        for stock in stocks:
            quote = by_symbol.get(stock.code)
            if quote is None:
                continue

            try:
                high, low = resolve_range(quote)
            except DataAnomaly as e:
                logger.warning("hit_detector.anomaly", error=str(e))
                continue

            fired = apply_precedence(find_candidates(stock, high, low))
            if not fired:
                continue

            try:
                events.extend(self._log_new_hits(stock, quote, fired, now, day_key))
            except PersistenceError as e:
                logger.error("hit_detector.persistence_failed", code=stock.code, error=str(e))

        if events:
            logger.info("hit_detector.new_hits", count=len(events))
        return events

    def _log_new_hits(self, stock: TrackedStock, quote: Quote,
                      fired: dict[TargetKind, tuple[float, float]],
                      now: datetime, day_key: str) -> list[HitEvent]:
        limit, change_percent = limit_annotation(
            quote.current_price, quote.yesterday_close, self.limit_ratio
        )
        log = logger.bind(code=stock.code, day=day_key)
        events = []

        for kind, (threshold, trigger) in fired.items():
            if self.store.find_hit_log(stock.id, kind, day_key) is not None:
                log.debug("hit_detector.already_logged", type=kind.value)
                continue

            record = HitLogRecord(
                stock_ref=stock.id,
                code=stock.code,
                target_type=kind,
                target_price=threshold,
                trigger_price=trigger,
                happened_at=now,
                day_key=day_key,
            )
            try:
                self.store.create_hit_log(record)
            except DuplicateHitError:
                log.debug("hit_detector.duplicate_suppressed", type=kind.value)
                continue

            log.info(
                "hit_detector.hit",
                type=kind.value,
                target=threshold,
                price=trigger,
            )
            events.append(HitEvent(
                code=stock.code,
                name=quote.name,
                type=kind,
                price=trigger,
                target=threshold,
                stock_ref=stock.id,
                limit=limit,
                change_percent=change_percent,
            ))

        if events:
            self._mark_outcome(stock, [e.type for e in events], now)
        return events

    def _mark_outcome(self, stock: TrackedStock, kinds: list[TargetKind], now: datetime):
        """Upside hits mark the call a success; a swap hit marks it failed"""
        if any(not k.is_downside for k in kinds):
            fields = {"is_success": True, "success_date": now.replace(tzinfo=None)}
        elif TargetKind.SWAP in kinds:
            fields = {"is_success": False}
        else:
            return

        try:
            self.store.update_tracked_stock(stock.id, fields)
        except PersistenceError as e:
            logger.error("hit_detector.outcome_update_failed", code=stock.code, error=str(e))
