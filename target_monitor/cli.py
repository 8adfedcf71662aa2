"""CLI entry point for the target-hit monitor.

Argument parsing and command dispatch; the commands themselves live in main.py.
"""

import argparse
from collections.abc import Callable

from . import __version__
from .config import Config
from .logger import logger


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="target-monitor",
        description="Target-hit monitor: tracked stocks → live quotes → hit notifications",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  target-monitor --once                  Run one monitoring pass
  target-monitor --interval 15           Monitor every 15 seconds
  target-monitor --status                Show cache and session status
  target-monitor --register-text ocr.txt Track a stock from recognised text
  target-monitor --remove ID             Stop tracking a stock
  target-monitor --extend ID             Restart a stock's tracking period
        """
    )

    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Config file path (default: config.yaml)"
    )

    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        metavar="SECONDS",
        help="Seconds between monitoring passes (default: monitor.check_interval)"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Override log_level from the config file"
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--once",
        action="store_true",
        help="Run one pass and exit (default: continuous)"
    )
    mode.add_argument(
        "--status",
        action="store_true",
        help="Print system status and tracked stocks"
    )
    mode.add_argument(
        "--register-text",
        metavar="FILE",
        help="Register a tracked stock from a recognised-text file"
    )
    mode.add_argument(
        "--remove",
        metavar="ID",
        help="Stop tracking the stock with this id (see --status)"
    )
    mode.add_argument(
        "--extend",
        metavar="ID",
        help="Restart the tracking period of the stock with this id"
    )

    return parser


def run_cli(
    argv: list[str] | None = None,
    *,
    once_fn: Callable[[Config], int],
    status_fn: Callable[[Config], None],
    register_fn: Callable[[Config, str], None],
    remove_fn: Callable[[Config, str], bool],
    extend_fn: Callable[[Config, str], bool],
    continuous_fn: Callable[[Config, int | None], None],
) -> int:
    """
    Parse arguments and dispatch to the matching command.

    Returns:
        Exit code (0 for success, 1 for error, 130 on Ctrl+C)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        cfg = Config.load(args.config)
        if args.log_level:
            cfg.log_level = args.log_level

        if args.status:
            status_fn(cfg)
            return 0

        if args.register_text:
            register_fn(cfg, args.register_text)
            return 0

        if args.remove:
            return 0 if remove_fn(cfg, args.remove) else 1

        if args.extend:
            return 0 if extend_fn(cfg, args.extend) else 1

        if args.once:
            once_fn(cfg)
            return 0

        continuous_fn(cfg, args.interval)
        return 0

    except KeyboardInterrupt:
        print("\n\n👋 Interrupted by user")
        return 130

    except Exception as e:
        logger.exception("fatal_error")
        print(f"❌ Fatal error: {e}")
        return 1


def main(argv: list[str] | None = None) -> int:
    """Console-script entry point."""
    # Late import to avoid circular dependency
    from . import main as main_module

    main_module.init_sentry()
    return run_cli(
        argv,
        once_fn=main_module.run_once,
        status_fn=main_module.show_status,
        register_fn=main_module.register_text,
        remove_fn=main_module.remove_stock,
        extend_fn=main_module.extend_stock,
        continuous_fn=main_module.run_continuous,
    )


if __name__ == "__main__":
    raise SystemExit(main())
