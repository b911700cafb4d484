#!/usr/bin/env python3
"""
Balance Watcher - CLI Entry Point
=================================

Runs the balance watch loop: every poll interval the watch-list file is
re-read, each address balance is fetched (Bitcoin via mempool.space, EVM via
JSON-RPC), and a webhook alert is posted for every balance below its
alert_balance.

Usage:
    # Start monitor
    python scripts/run_monitor.py

    # Dry run (alerts logged only, WEBHOOK not required)
    python scripts/run_monitor.py --dry-run

    # Single cycle, then exit
    python scripts/run_monitor.py --once

    # Validate the watch-list file
    python scripts/run_monitor.py --check-config

    # Test webhook configuration
    python scripts/run_monitor.py --test-webhook
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from balance_watch.alerts import WebhookAlerts, send_test_alert
from balance_watch.config import config
from balance_watch.core import BalanceMonitor
from balance_watch.errors import MissingEnvironmentError, WatchlistError
from balance_watch.utils.formatting import format_balance
from balance_watch.watchlist import load_watchlist


def setup_logging(log_level: str = config.log_level, log_file: str = config.log_file):
    """Configure logging for the monitor service."""
    log_path = Path(log_file)
    if not log_path.is_absolute():
        log_path = project_root / log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Create date-stamped log file (e.g., logs/monitor_2026-01-18.log)
    date_str = datetime.now().strftime("%Y-%m-%d")
    dated_log_file = log_path.parent / f"{log_path.stem}_{date_str}{log_path.suffix}"

    # Get root logger and clear any existing handlers
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # File handler (date-stamped)
    file_handler = logging.FileHandler(dated_log_file)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Reduce noise from HTTP libraries
    for name in ("urllib3", "requests", "aiohttp", "web3"):
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging to: {dated_log_file}")


def check_config(watchlist_path: str) -> int:
    """Print the parsed watch-list. Returns the process exit code."""
    try:
        entries = load_watchlist(watchlist_path)
    except WatchlistError as e:
        print(f"Invalid watch-list: {e}")
        return 1

    print(f"\n{len(entries)} watch entries in {watchlist_path}:")
    for entry in entries:
        adapter = "bitcoin" if entry.is_bitcoin else f"evm ({entry.rpc_url})"
        print(
            f"  - {entry.chain:<12} {entry.address}  "
            f"alert below {format_balance(entry.alert_balance, entry.chain)}  [{adapter}]"
        )
    return 0


def main():
    parser = argparse.ArgumentParser(
        description='Crypto Balance Watcher',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_monitor.py                  # Start monitor
  python scripts/run_monitor.py --dry-run        # Log alerts only
  python scripts/run_monitor.py --once           # One cycle, then exit
  python scripts/run_monitor.py --check-config   # Validate watch-list
  python scripts/run_monitor.py --test-webhook   # Test webhook setup
        """
    )

    parser.add_argument(
        '--poll',
        type=float,
        default=config.poll_interval_sec,
        help=f'Seconds between cycles (default: {config.poll_interval_sec})'
    )

    parser.add_argument(
        '--watchlist',
        default=config.watchlist_path,
        help=f'Watch-list TOML file (default: {config.watchlist_path})'
    )

    parser.add_argument(
        '--max-concurrent',
        type=int,
        default=config.max_concurrent_checks,
        help=f'Balance checks in flight at once (default: {config.max_concurrent_checks})'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Log alerts instead of sending them to the webhook'
    )

    parser.add_argument(
        '--once',
        action='store_true',
        help='Run a single cycle and exit'
    )

    parser.add_argument(
        '--check-config',
        action='store_true',
        help='Validate the watch-list file and exit'
    )

    parser.add_argument(
        '--test-webhook',
        action='store_true',
        help='Send a test alert to verify webhook configuration'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=config.log_level.upper(),
        help=f'Log level (default: {config.log_level})'
    )

    args = parser.parse_args()

    if args.check_config:
        sys.exit(check_config(args.watchlist))

    # Setup logging
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    # Test webhook mode
    if args.test_webhook:
        print("Testing webhook configuration...")
        if send_test_alert(dry_run=args.dry_run):
            print("Test alert sent successfully!")
            sys.exit(0)
        print("Failed to send test alert. Check your WEBHOOK environment variable.")
        sys.exit(1)

    # Startup-fatal conditions: missing webhook, unusable watch-list
    try:
        alerts = WebhookAlerts.from_env(dry_run=args.dry_run)
    except (MissingEnvironmentError, ValueError) as e:
        logger.error(f"{e}. Set it in the environment or .env, or use --dry-run.")
        sys.exit(1)

    try:
        entries = load_watchlist(args.watchlist)
    except WatchlistError as e:
        logger.error(f"Cannot start: {e}")
        sys.exit(1)

    # Print configuration
    print("\n" + "=" * 60)
    print("BALANCE WATCHER")
    print("=" * 60)
    print(f"Watch-list:     {args.watchlist} ({len(entries)} entries)")
    print(f"Bitcoin API:    {config.bitcoin_address_api()}")
    print(f"Poll interval:  {args.poll} seconds")
    print(f"Concurrency:    {args.max_concurrent}")
    print(f"Dry run:        {args.dry_run}")
    print(f"Log level:      {args.log_level}")
    print("=" * 60)

    monitor = BalanceMonitor(
        alerts=alerts,
        watchlist_path=args.watchlist,
        poll_interval_seconds=args.poll,
        max_concurrent_checks=args.max_concurrent,
    )

    try:
        if not args.once:
            print("\nStarting monitor service...")
            print("Press Ctrl+C to stop\n")
        asyncio.run(monitor.run(max_cycles=1 if args.once else None))

    except KeyboardInterrupt:
        print("\n\nMonitor stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Monitor service error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
