"""
Data models shared by the quote layer and the hit detector.

Plain dataclasses; persistence goes through ``to_dict``/``from_dict`` so the
document store never sees anything but JSON-compatible dictionaries.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .constants import PRICE_SENTINEL


def to_price(value: Any) -> float | None:
    """
    Parse an upstream price field.

    A price is invalid when it is missing, the ``-`` placeholder,
    non-numeric, or not strictly positive.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value or value == PRICE_SENTINEL:
            return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if price != price or price <= 0:  # NaN
        return None
    return price


def to_volume(value: Any) -> int | None:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _parse_dt(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _dump_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def new_id() -> str:
    return uuid.uuid4().hex


class TargetKind(str, Enum):
    """Category of price target, with its comparison direction"""

    SUPPORT = "support"
    SHORT_TERM = "shortTerm"
    WAVE = "wave"
    SWAP = "swap"

    @property
    def is_downside(self) -> bool:
        return self in (TargetKind.SUPPORT, TargetKind.SWAP)

    @property
    def field_name(self) -> str:
        """TrackedStock attribute holding the raw target text"""
        return _TARGET_FIELDS[self]


_TARGET_FIELDS = {
    TargetKind.SUPPORT: "support",
    TargetKind.SHORT_TERM: "short_term_profit",
    TargetKind.WAVE: "wave_profit",
    TargetKind.SWAP: "swap_ref",
}

# Display order inside a notification batch
DISPLAY_ORDER = (TargetKind.SHORT_TERM, TargetKind.WAVE, TargetKind.SUPPORT, TargetKind.SWAP)


@dataclass(frozen=True)
class Target:
    """A raw target string tagged with its kind"""

    kind: TargetKind
    raw_text: str

    @property
    def threshold(self) -> float | None:
        from .target_parser import parse

        return parse(self.raw_text, self.kind)


@dataclass
class Quote:
    """One symbol's snapshot from the quote endpoint"""

    symbol: str
    name: str
    current_price: float | None
    high: float | None = None
    low: float | None = None
    yesterday_close: float | None = None
    volume: int | None = None
    timestamp: str | None = None
    full_key: str | None = None


@dataclass
class CacheEntry:
    """Cached quote batch for one canonical symbol-set key"""

    key: str
    data: list[Quote]
    cached_at: float

    def age(self, now: float) -> float:
        return now - self.cached_at


@dataclass
class TrackedStock:
    """A watched stock with its four free-text price targets"""

    code: str
    support: str | None = None
    short_term_profit: str | None = None
    wave_profit: str | None = None
    swap_ref: str | None = None
    current_price: str | None = None
    is_success: bool | None = None
    success_date: datetime | None = None
    source: str = "system"
    is_favorite: bool = False
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def targets(self) -> list[Target]:
        """Targets that carry any text, in TargetKind order"""
        targets = []
        for kind in TargetKind:
            raw = getattr(self, kind.field_name)
            if raw is not None and str(raw).strip():
                targets.append(Target(kind, str(raw)))
        return targets

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "support": self.support,
            "short_term_profit": self.short_term_profit,
            "wave_profit": self.wave_profit,
            "swap_ref": self.swap_ref,
            "current_price": self.current_price,
            "is_success": self.is_success,
            "success_date": _dump_dt(self.success_date),
            "source": self.source,
            "is_favorite": self.is_favorite,
            "created_at": _dump_dt(self.created_at),
            "updated_at": _dump_dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackedStock":
        return cls(
            id=data["id"],
            code=data["code"],
            support=data.get("support"),
            short_term_profit=data.get("short_term_profit"),
            wave_profit=data.get("wave_profit"),
            swap_ref=data.get("swap_ref"),
            current_price=data.get("current_price"),
            is_success=data.get("is_success"),
            success_date=_parse_dt(data.get("success_date")),
            source=data.get("source", "system"),
            is_favorite=data.get("is_favorite", False),
            created_at=_parse_dt(data.get("created_at")) or datetime.now(),
            updated_at=_parse_dt(data.get("updated_at")) or datetime.now(),
        )


@dataclass
class HitLogRecord:
    """One logged hit; unique per (stock_ref, target_type, day_key)"""

    stock_ref: str
    code: str
    target_type: TargetKind
    target_price: float
    trigger_price: float
    happened_at: datetime
    day_key: str
    id: str = field(default_factory=new_id)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.stock_ref, TargetKind(self.target_type).value, self.day_key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "stock_ref": self.stock_ref,
            "code": self.code,
            "target_type": TargetKind(self.target_type).value,
            "target_price": self.target_price,
            "trigger_price": self.trigger_price,
            "happened_at": _dump_dt(self.happened_at),
            "day_key": self.day_key,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HitLogRecord":
        return cls(
            id=data["id"],
            stock_ref=data["stock_ref"],
            code=data["code"],
            target_type=TargetKind(data["target_type"]),
            target_price=data["target_price"],
            trigger_price=data["trigger_price"],
            happened_at=_parse_dt(data["happened_at"]),
            day_key=data["day_key"],
        )


@dataclass
class HitEvent:
    """A fresh (not previously logged) target hit"""

    code: str
    name: str
    type: TargetKind
    price: float
    target: float
    stock_ref: str | None = None
    limit: str | None = None  # "limit_up" / "limit_down"
    change_percent: float | None = None
