"""Tests for target text parsing."""
import pytest

from target_monitor.models import Target, TargetKind
from target_monitor.target_parser import extract_target_fields, numeric_tokens, parse


class TestParseDirection:
    """Downside kinds take the max of a range, upside kinds the min"""

    def test_support_range_takes_max(self):
        assert parse("68-70", TargetKind.SUPPORT) == 70

    def test_wave_range_takes_min(self):
        assert parse("68-70", TargetKind.WAVE) == 68

    def test_swap_range_takes_max(self):
        assert parse("55~58.5", TargetKind.SWAP) == 58.5

    def test_short_term_range_takes_min(self):
        assert parse("120,118", TargetKind.SHORT_TERM) == 118

    def test_single_value_same_for_every_kind(self):
        for kind in TargetKind:
            assert parse("101.5", kind) == 101.5

    def test_accepts_kind_value_string(self):
        assert parse("68-70", "support") == 70


class TestParseTolerance:
    """Noisy recognition output still yields a threshold"""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("68～70", 70),        # full-width tilde
            ("68〜70", 70),        # wave dash
            ("68—70", 70),         # em dash
            ("68－70", 70),        # full-width hyphen
            ("68 ~ 70", 70),
            ("68，70", 70),        # full-width comma
            ("  68  70 ", 70),
            ("約68-70元", 70),     # junk around numbers
        ],
    )
    def test_alternate_glyphs(self, raw, expected):
        assert parse(raw, TargetKind.SUPPORT) == expected

    def test_three_values(self):
        assert parse("66-68-70", TargetKind.SUPPORT) == 70
        assert parse("66-68-70", TargetKind.WAVE) == 66

    @pytest.mark.parametrize("raw", [None, "", "   ", "-", "~", "n/a", "無"])
    def test_no_numbers_returns_none(self, raw):
        assert parse(raw, TargetKind.SUPPORT) is None

    def test_numeric_tokens_discards_fragments(self):
        assert numeric_tokens("abc-68-x-70.5") == [68.0, 70.5]


class TestTarget:
    def test_threshold_property(self):
        assert Target(TargetKind.SWAP, "68-70").threshold == 70
        assert Target(TargetKind.SHORT_TERM, "68-70").threshold == 68


class TestExtractTargetFields:
    """Field extraction from recognised text"""

    def test_full_block(self):
        text = """
        2330 台積電
        支撐區間：580-590
        短期停利 620
        波段停利：650
        換股參考 560
        """
        fields = extract_target_fields(text)

        assert fields == {
            "code": "2330",
            "support": "580-590",
            "short_term_profit": "620",
            "wave_profit": "650",
            "swap_ref": "560",
        }

    def test_code_taken_before_first_label(self):
        fields = extract_target_fields("6488 環球晶 支撐 1050 波段 1200")

        assert fields["code"] == "6488"
        assert fields["support"] == "1050"

    def test_missing_fields_left_out(self):
        fields = extract_target_fields("2317 鴻海 支撐 100")

        assert "wave_profit" not in fields
        assert "swap_ref" not in fields

    def test_tilde_range_with_spaces(self):
        fields = extract_target_fields("2454 支撐區問 : 1100 ~ 1150")

        assert fields["support"] == "1100~1150"

    def test_empty_text(self):
        assert extract_target_fields("") == {}
