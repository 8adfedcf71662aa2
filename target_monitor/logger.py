import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any


def _format_value(value: Any) -> str:
    if value is None:
        return "-"
    text = str(value)
    if not text or any(c.isspace() for c in text):
        return repr(text)
    return text


class StructuredLogger:
    """
    Key-value logging on top of the standard logging module.

    Messages are dotted event names followed by ``key=value`` pairs:

        logger.info("quote_cache.miss", key="0050,2330", ttl=2.5)
        -> quote_cache.miss key=0050,2330 ttl=2.5

    ``bind`` returns a logger that adds fixed pairs to every message.
    """

    def __init__(self, logger: logging.Logger, context: dict[str, Any] | None = None):
        self._logger = logger
        self._context = dict(context or {})

    def bind(self, **context) -> "StructuredLogger":
        return StructuredLogger(self._logger, {**self._context, **context})

    def _format_msg(self, msg: str, **kwargs) -> str:
        fields = {**self._context, **kwargs}
        if not fields:
            return msg
        kv_str = " ".join(f"{k}={_format_value(v)}" for k, v in fields.items())
        return f"{msg} {kv_str}"

    def debug(self, msg, **kwargs):
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug(self._format_msg(msg, **kwargs))

    def info(self, msg, **kwargs):
        self._logger.info(self._format_msg(msg, **kwargs))

    def warning(self, msg, **kwargs):
        self._logger.warning(self._format_msg(msg, **kwargs))

    def error(self, msg, **kwargs):
        self._logger.error(self._format_msg(msg, **kwargs))

    def exception(self, msg, **kwargs):
        self._logger.exception(self._format_msg(msg, **kwargs))

    def set_level(self, level: str):
        """Change the console level; the file handler keeps DEBUG"""
        numeric_level = getattr(logging, level.upper(), logging.INFO)
        self._logger.setLevel(min(numeric_level, self._file_level()))
        for handler in self._logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(numeric_level)

    def _file_level(self) -> int:
        levels = [h.level for h in self._logger.handlers if isinstance(h, logging.FileHandler)]
        return min(levels) if levels else logging.CRITICAL


def setup_logger(level: str = "INFO", log_file: bool = True, log_dir: str | Path = "logs"):
    """
    Setup logging with console and optional file output

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Whether to also log everything to logs/monitor_YYYYMMDD.log
        log_dir: Directory for the daily log file

    Returns:
        StructuredLogger wrapping the "target_monitor" logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    base_logger = logging.getLogger("target_monitor")
    base_logger.setLevel(numeric_level)
    for handler in list(base_logger.handlers):
        base_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    ))
    base_logger.addHandler(console_handler)

    if log_file:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        log_path = log_dir / f"monitor_{datetime.now():%Y%m%d}.log"
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        base_logger.addHandler(file_handler)
        base_logger.setLevel(logging.DEBUG)

        base_logger.debug(f"Logging to file: {log_path}")

    return StructuredLogger(base_logger)


_log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
_log_to_file = os.environ.get("LOG_TO_FILE", "1") != "0"
logger = setup_logger(level=_log_level, log_file=_log_to_file)
