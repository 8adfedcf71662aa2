"""Target-hit monitor - tracked stocks → quotes → hit log → notifications"""

import os
import time
from pathlib import Path

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from . import __version__
from .config import Config
from .logger import logger
from .service import MonitorService, build_service
from . import ui


def init_sentry() -> bool:
    """Initialise Sentry when SENTRY_DSN is set; only errors are forwarded"""
    dsn = os.getenv('SENTRY_DSN', '')
    if not dsn:
        return False

    environment = os.getenv('ENVIRONMENT', 'production')
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=f"target-monitor@{__version__}",
        traces_sample_rate=0.1,
        send_default_pii=False,
        integrations=[LoggingIntegration(level=None, event_level=None)],
        before_send=lambda event, hint: event if event.get('level') in ('error', 'fatal') else None
    )
    logger.info("sentry.initialized", environment=environment)
    return True


def _prepare(cfg: Config) -> MonitorService:
    logger.set_level(cfg.log_level)
    return build_service(cfg)


def run_once(cfg: Config) -> int:
    """Single monitoring pass; flushes hits immediately. Returns the hit count."""
    service = _prepare(cfg)
    try:
        events = service.run_cycle()
        if events:
            ui.console.print(ui.create_hits_table(events))
        else:
            ui.print_success("No new target hits")
        return len(events)
    finally:
        service.close()


def show_status(cfg: Config) -> None:
    service = _prepare(cfg)
    ui.print_status_panel(service.get_system_status())
    watchlist = service.watchlist()
    quotes = {stock.code: quote for stock, quote in watchlist if quote is not None}
    ui.console.print(ui.create_tracked_table([stock for stock, _ in watchlist], quotes))


def register_text(cfg: Config, path: str) -> None:
    """Register a tracked stock from a recognised-text file"""
    service = _prepare(cfg)
    text = Path(path).read_text(encoding="utf-8")
    stock = service.register_recognized(text)
    if stock is None:
        ui.print_warning("No stock code found in recognised text")
        return
    ui.print_success(f"Tracking {stock.code}")
    ui.console.print(ui.create_tracked_table([stock]))


def remove_stock(cfg: Config, stock_id: str) -> bool:
    """Stop tracking a stock; already-logged hits are kept"""
    service = _prepare(cfg)
    if not service.store.delete_tracked_stock(stock_id):
        ui.print_error(f"No tracked stock with id {stock_id}")
        return False
    ui.print_success(f"Removed {stock_id}")
    return True


def extend_stock(cfg: Config, stock_id: str) -> bool:
    service = _prepare(cfg)
    stock = service.store.refresh_tracked_stock(stock_id)
    if stock is None:
        ui.print_error(f"No tracked stock with id {stock_id}")
        return False
    ui.print_success(f"Tracking period of {stock.code} restarted")
    return True


def run_continuous(cfg: Config, interval: int | None = None) -> None:
    """
    Monitor until interrupted.

    Every ``interval`` seconds: quote tracked codes, log new hits.
    Hits are flushed to the sink every ``monitor.dispatch_interval`` seconds.
    """
    interval = interval or cfg.monitor.check_interval
    service = _prepare(cfg)
    service.start()

    ui.print_header("🎯 Target Monitor", f"Interval {interval}s • Ctrl+C to stop")

    cycle = 1
    try:
        while True:
            logger.info("monitor.cycle_started", cycle=cycle)
            try:
                events = service.run_cycle()
                if events:
                    ui.console.print(ui.create_hits_table(events))
                if service.aggregator is not None:
                    service.aggregator.flush_if_due()
            except Exception as e:
                # Any failure is retried next cycle
                logger.exception("monitor.cycle_failed", cycle=cycle)
                sentry_sdk.capture_exception(e)

            cycle += 1
            time.sleep(interval)
    finally:
        service.close()
        logger.info("monitor.stopped", cycles=cycle - 1)
