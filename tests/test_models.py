"""Tests for price parsing and model serialisation."""
from datetime import datetime

import pytest

from target_monitor.models import HitLogRecord, TargetKind, TrackedStock, to_price


class TestToPrice:
    @pytest.mark.parametrize("raw,expected", [
        ("103.5000", 103.5),
        (42, 42.0),
        ("-", None),
        ("", None),
        ("0.0000", None),
        ("-3", None),
        ("nan", None),
        ("abc", None),
        (None, None),
    ])
    def test_values(self, raw, expected):
        assert to_price(raw) == expected


class TestTargetKind:
    def test_direction(self):
        assert TargetKind.SUPPORT.is_downside
        assert TargetKind.SWAP.is_downside
        assert not TargetKind.SHORT_TERM.is_downside
        assert not TargetKind.WAVE.is_downside

    def test_wire_values(self):
        assert TargetKind("shortTerm") is TargetKind.SHORT_TERM


class TestTrackedStock:
    def test_targets_skip_blank(self):
        stock = TrackedStock(code="2330", support="580", wave_profit="  ", swap_ref="560")

        assert [t.kind for t in stock.targets()] == [TargetKind.SUPPORT, TargetKind.SWAP]

    def test_dict_round_trip_keeps_dates(self):
        stock = TrackedStock(code="2330", is_success=True, success_date=datetime(2024, 1, 3, 10, 0))

        restored = TrackedStock.from_dict(stock.to_dict())

        assert restored == stock


class TestHitLogRecord:
    def test_key_uses_wire_value(self):
        record = HitLogRecord(
            stock_ref="s1", code="2330", target_type=TargetKind.SHORT_TERM,
            target_price=620.0, trigger_price=621.0,
            happened_at=datetime(2024, 1, 3, 10, 0), day_key="2024-01-03",
        )

        assert record.key == ("s1", "shortTerm", "2024-01-03")
        assert record.to_dict()["target_type"] == "shortTerm"
