"""
Document store for tracked stocks and the hit log.

``DocumentStore`` is the interface the monitor depends on; ``JsonDocumentStore``
keeps both collections in one JSON file (or in memory when no path is given).
The hit log's (stock_ref, target_type, day_key) uniqueness is enforced here,
under the store lock, so it holds no matter how many evaluations race.
"""
import json
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

from .exceptions import DuplicateHitError, PersistenceError
from .logger import logger
from .models import HitLogRecord, TargetKind, TrackedStock

_UPDATABLE_FIELDS = {
    "support", "short_term_profit", "wave_profit", "swap_ref", "current_price",
    "is_success", "success_date", "source", "is_favorite",
}


class DocumentStore(ABC):
    """Persistence operations used by the hit detector and the service"""

    @abstractmethod
    def find_tracked_stocks(self, criteria: dict[str, Any] | None = None) -> list[TrackedStock]:
        """Stocks whose fields equal ``criteria`` values (list/tuple/set values mean "any of")"""

    @abstractmethod
    def add_tracked_stock(self, stock: TrackedStock) -> TrackedStock:
        ...

    @abstractmethod
    def update_tracked_stock(self, stock_id: str, fields: dict[str, Any]) -> TrackedStock | None:
        ...

    @abstractmethod
    def delete_tracked_stock(self, stock_id: str) -> bool:
        """Stop tracking a stock; its hit-log records stay"""

    @abstractmethod
    def refresh_tracked_stock(self, stock_id: str) -> TrackedStock | None:
        """Restart the tracking period: ``created_at`` becomes now"""

    @abstractmethod
    def find_hit_log(self, stock_ref: str, target_type: TargetKind, day_key: str) -> HitLogRecord | None:
        ...

    @abstractmethod
    def create_hit_log(self, record: HitLogRecord) -> HitLogRecord:
        """Insert ``record``; raises DuplicateHitError if its key already exists"""

    @abstractmethod
    def list_hit_logs(self, day_key: str | None = None) -> list[HitLogRecord]:
        ...


def _matches(stock: TrackedStock, criteria: dict[str, Any]) -> bool:
    for name, expected in criteria.items():
        actual = getattr(stock, name, None)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


class JsonDocumentStore(DocumentStore):
    """JSON-file document store with write-through persistence"""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else None
        self._lock = threading.RLock()
        self._stocks: dict[str, TrackedStock] = {}
        self._hits: dict[tuple[str, str, str], HitLogRecord] = {}
        self._load()

    def _load(self):
        """Load both collections from disk"""
        if self.path is None or not self.path.exists():
            return

        try:
            content = self.path.read_text(encoding="utf-8")
            raw = json.loads(content) if content.strip() else {}
            stocks = [TrackedStock.from_dict(d) for d in raw.get("tracked_stocks", [])]
            hits = [HitLogRecord.from_dict(d) for d in raw.get("hit_logs", [])]
        except json.JSONDecodeError as e:
            logger.error("store.load.json_error", path=str(self.path), error=str(e))
            raise PersistenceError("Corrupted store file", {"path": str(self.path)}, e)
        except (OSError, KeyError, ValueError) as e:
            logger.error("store.load.error", path=str(self.path), error=str(e))
            raise PersistenceError("Failed to load store", {"path": str(self.path)}, e)

        self._stocks = {s.id: s for s in stocks}
        self._hits = {h.key: h for h in hits}
        logger.debug("store.loaded", stocks=len(self._stocks), hits=len(self._hits))

    def _save(self):
        """Write both collections to disk (caller holds the lock)"""
        if self.path is None:
            return

        data = {
            "tracked_stocks": [s.to_dict() for s in self._stocks.values()],
            "hit_logs": [h.to_dict() for h in self._hits.values()],
        }
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            logger.error("store.save.error", path=str(self.path), error=str(e))
            raise PersistenceError("Failed to save store", {"path": str(self.path)}, e)

    # --- tracked stocks ---

    def find_tracked_stocks(self, criteria: dict[str, Any] | None = None) -> list[TrackedStock]:
        criteria = criteria or {}
        with self._lock:
            found = [s for s in self._stocks.values() if _matches(s, criteria)]
        return sorted(found, key=lambda s: s.created_at, reverse=True)

    def get_tracked_stock(self, stock_id: str) -> TrackedStock | None:
        with self._lock:
            return self._stocks.get(stock_id)

    def add_tracked_stock(self, stock: TrackedStock) -> TrackedStock:
        with self._lock:
            self._stocks[stock.id] = stock
            try:
                self._save()
            except PersistenceError:
                del self._stocks[stock.id]
                raise
        logger.info("store.stock_added", code=stock.code, id=stock.id)
        return stock

    def update_tracked_stock(self, stock_id: str, fields: dict[str, Any]) -> TrackedStock | None:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")

        with self._lock:
            stock = self._stocks.get(stock_id)
            if stock is None:
                logger.warning("store.stock_not_found", id=stock_id)
                return None

            previous = stock.to_dict()
            for name, value in fields.items():
                setattr(stock, name, value)
            stock.updated_at = datetime.now()
            try:
                self._save()
            except PersistenceError:
                self._stocks[stock_id] = TrackedStock.from_dict(previous)
                raise
            return stock

    def delete_tracked_stock(self, stock_id: str) -> bool:
        with self._lock:
            stock = self._stocks.pop(stock_id, None)
            if stock is None:
                logger.warning("store.stock_not_found", id=stock_id)
                return False
            try:
                self._save()
            except PersistenceError:
                self._stocks[stock_id] = stock
                raise
        logger.info("store.stock_deleted", code=stock.code, id=stock_id)
        return True

    def refresh_tracked_stock(self, stock_id: str) -> TrackedStock | None:
        with self._lock:
            stock = self._stocks.get(stock_id)
            if stock is None:
                logger.warning("store.stock_not_found", id=stock_id)
                return None

            previous = (stock.created_at, stock.updated_at)
            stock.created_at = stock.updated_at = datetime.now()
            try:
                self._save()
            except PersistenceError:
                stock.created_at, stock.updated_at = previous
                raise
        logger.info("store.stock_refreshed", code=stock.code, id=stock_id)
        return stock

    # --- hit log ---

    def find_hit_log(self, stock_ref: str, target_type: TargetKind, day_key: str) -> HitLogRecord | None:
        key = (stock_ref, TargetKind(target_type).value, day_key)
        with self._lock:
            return self._hits.get(key)

    def create_hit_log(self, record: HitLogRecord) -> HitLogRecord:
        with self._lock:
            if record.key in self._hits:
                raise DuplicateHitError(
                    "Hit already logged",
                    {"stock": record.stock_ref, "type": record.key[1], "day": record.day_key},
                )
            self._hits[record.key] = record
            try:
                self._save()
            except PersistenceError:
                del self._hits[record.key]
                raise
        return record

    def list_hit_logs(self, day_key: str | None = None) -> list[HitLogRecord]:
        with self._lock:
            records = [h for h in self._hits.values() if day_key is None or h.day_key == day_key]
        return sorted(records, key=lambda h: h.happened_at)
