"""Tests for the command functions behind the CLI."""
from unittest.mock import MagicMock, patch

from conftest import make_quote
from target_monitor import main
from target_monitor.config import Config
from target_monitor.models import HitEvent, TargetKind, TrackedStock
from target_monitor.store import JsonDocumentStore


def mock_service(events=None):
    service = MagicMock()
    service.run_cycle.return_value = events or []
    return service


class TestInitSentry:
    def test_disabled_without_dsn(self, monkeypatch):
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        assert main.init_sentry() is False


class TestRunOnce:
    def test_returns_hit_count_and_closes(self):
        quote = make_quote("2330", price=95)
        events = [HitEvent(code=quote.symbol, name=quote.name, type=TargetKind.WAVE, price=95, target=90)]
        service = mock_service(events)

        with patch("target_monitor.main.build_service", return_value=service):
            assert main.run_once(Config()) == 1

        service.close.assert_called_once()

    def test_close_runs_on_failure(self):
        service = mock_service()
        service.run_cycle.side_effect = RuntimeError("boom")

        with patch("target_monitor.main.build_service", return_value=service):
            try:
                main.run_once(Config())
            except RuntimeError:
                pass

        service.close.assert_called_once()


class TestRegisterText:
    def test_reads_file_and_registers(self, tmp_path):
        path = tmp_path / "ocr.txt"
        path.write_text("2330 支撐 580", encoding="utf-8")
        service = mock_service()
        service.register_recognized.return_value = TrackedStock(code="2330", support="580")

        with patch("target_monitor.main.build_service", return_value=service):
            main.register_text(Config(), str(path))

        service.register_recognized.assert_called_once_with("2330 支撐 580")


class TestShowStatus:
    def test_renders_status(self):
        service = mock_service()
        service.get_system_status.return_value = {
            "trading": {"session_state": "closed", "recommended_cache_ttl": 300.0,
                        "time_since_last_request": None, "is_trading_hours": False},
            "cache": {"cache_size": 0, "max_entries": 50, "hits": 0, "misses": 0, "cache_details": []},
        }
        service.watchlist.return_value = [
            (TrackedStock(code="2330", wave_profit="650"), make_quote("2330", price=640)),
            (TrackedStock(code="6488", support="400"), None),
        ]

        with patch("target_monitor.main.build_service", return_value=service):
            main.show_status(Config())

        service.get_system_status.assert_called_once()
        service.watchlist.assert_called_once()


class TestWatchlistCommands:
    def test_remove_stock(self):
        service = mock_service()
        service.store.delete_tracked_stock.return_value = True

        with patch("target_monitor.main.build_service", return_value=service):
            assert main.remove_stock(Config(), "abc123") is True

        service.store.delete_tracked_stock.assert_called_once_with("abc123")

    def test_remove_unknown_stock(self):
        service = mock_service()
        service.store.delete_tracked_stock.return_value = False

        with patch("target_monitor.main.build_service", return_value=service):
            assert main.remove_stock(Config(), "missing") is False

    def test_extend_stock(self):
        service = mock_service()
        service.store.refresh_tracked_stock.return_value = TrackedStock(code="2330")

        with patch("target_monitor.main.build_service", return_value=service):
            assert main.extend_stock(Config(), "abc123") is True

        service.store.refresh_tracked_stock.assert_called_once_with("abc123")

    def test_extend_unknown_stock(self):
        service = mock_service()
        service.store.refresh_tracked_stock.return_value = None

        with patch("target_monitor.main.build_service", return_value=service):
            assert main.extend_stock(Config(), "missing") is False

    def test_remove_persists(self, tmp_path):
        store = JsonDocumentStore(tmp_path / "store.json")
        stock = store.add_tracked_stock(TrackedStock(code="2330"))
        service = mock_service()
        service.store = store

        with patch("target_monitor.main.build_service", return_value=service):
            main.remove_stock(Config(), stock.id)

        assert JsonDocumentStore(tmp_path / "store.json").find_tracked_stocks() == []
