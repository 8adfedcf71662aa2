"""Tests for key-value log formatting."""
import logging

from target_monitor.logger import StructuredLogger, setup_logger


class TestStructuredLogger:
    def test_key_value_pairs(self):
        log = StructuredLogger(logging.getLogger("test"))

        assert log._format_msg("quote_cache.miss", key="0050,2330", ttl=2.5) == (
            "quote_cache.miss key=0050,2330 ttl=2.5"
        )

    def test_values_with_spaces_are_quoted(self):
        log = StructuredLogger(logging.getLogger("test"))

        assert log._format_msg("dispatch.failed", error="chat not found", code=None) == (
            "dispatch.failed error='chat not found' code=-"
        )

    def test_bind_adds_context(self):
        log = StructuredLogger(logging.getLogger("test")).bind(code="2330")

        assert log._format_msg("hit_detector.hit", type="wave") == "hit_detector.hit code=2330 type=wave"

    def test_bind_does_not_change_parent(self):
        parent = StructuredLogger(logging.getLogger("test"))
        parent.bind(code="2330")

        assert parent._format_msg("event") == "event"


class TestSetupLogger:
    def test_file_logging(self, tmp_path):
        setup_logger(level="WARNING", log_file=True, log_dir=tmp_path)

        assert list(tmp_path.glob("monitor_*.log"))

    def test_set_level_keeps_file_handler_at_debug(self, tmp_path):
        log = setup_logger(level="INFO", log_file=True, log_dir=tmp_path)
        log.set_level("ERROR")

        base = logging.getLogger("target_monitor")
        file_handlers = [h for h in base.handlers if isinstance(h, logging.FileHandler)]
        assert file_handlers[0].level == logging.DEBUG
        assert base.level == logging.DEBUG

    def test_console_only(self):
        setup_logger(level="INFO", log_file=False)

        base = logging.getLogger("target_monitor")
        assert not any(isinstance(h, logging.FileHandler) for h in base.handlers)
