#!/usr/bin/env python3
"""
Balance Watcher - Add Address
=============================

Adds an address to the watch-list and, optionally, stores the webhook URL
in .env. A running monitor picks the new entry up on its next cycle.

Usage:
    # Watch a Bitcoin address
    python scripts/add_address.py --chain Bitcoin --address tb1q... --alert-balance 50000000

    # Watch a Sepolia address and save the webhook
    python scripts/add_address.py --chain Sepolia --address 0x... \\
        --rpc-url https://rpc.sepolia.org --alert-balance 1000000000000000000 \\
        --webhook https://discord.com/api/webhooks/...

    # Replace the watch-list with a single entry, then start the monitor
    python scripts/add_address.py --chain Bitcoin --address tb1q... \\
        --alert-balance 50000000 --replace --start
"""

import argparse
import logging
import subprocess
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from balance_watch.config import config
from balance_watch.errors import WatchlistError
from balance_watch.registration import (
    KNOWN_NETWORKS,
    add_entry,
    build_entry,
    save_webhook_url,
    validate_webhook_url,
)
from balance_watch.utils.formatting import format_balance

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    templates = "\n".join(
        f"  {name:<10} {url or '(mempool.space, no rpc_url)'}"
        for name, url in KNOWN_NETWORKS.items()
    )
    parser = argparse.ArgumentParser(
        description='Add an address to the balance watch-list',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Networks and RPC URL templates:
{templates}
        """
    )

    parser.add_argument(
        '--chain',
        required=True,
        choices=list(KNOWN_NETWORKS),
        help='Network the address lives on'
    )

    parser.add_argument(
        '--address',
        required=True,
        help='Address to watch (0x... for EVM networks)'
    )

    parser.add_argument(
        '--alert-balance',
        type=int,
        required=True,
        help='Alert when the balance is below this many base units (sats or wei)'
    )

    parser.add_argument(
        '--rpc-url',
        default='',
        help='JSON-RPC endpoint (required for EVM networks)'
    )

    parser.add_argument(
        '--webhook',
        help='Webhook URL to store as WEBHOOK in the .env file'
    )

    parser.add_argument(
        '--watchlist',
        default=config.watchlist_path,
        help=f'Watch-list TOML file (default: {config.watchlist_path})'
    )

    parser.add_argument(
        '--env-file',
        default=str(project_root / '.env'),
        help='.env file to update (default: project root .env)'
    )

    parser.add_argument(
        '--replace',
        action='store_true',
        help='Replace the whole watch-list with this entry'
    )

    parser.add_argument(
        '--start',
        action='store_true',
        help='Start the monitor after saving'
    )

    args = parser.parse_args()

    try:
        entry = build_entry(args.address, args.chain, args.alert_balance, args.rpc_url)
        if args.webhook:
            validate_webhook_url(args.webhook)
        entries = add_entry(args.watchlist, entry, replace=args.replace)
        if args.webhook:
            save_webhook_url(args.env_file, args.webhook)
    except (ValueError, WatchlistError) as e:
        logger.error(f"{e}")
        sys.exit(1)

    print(f"\nWatching {len(entries)} address(es) in {args.watchlist}")
    print(f"  + {entry.label}  alert below {format_balance(entry.alert_balance, entry.chain)}")

    if args.start:
        print("\nStarting monitor service...")
        result = subprocess.run(
            [sys.executable, str(project_root / 'scripts' / 'run_monitor.py'),
             '--watchlist', args.watchlist],
        )
        sys.exit(result.returncode)


if __name__ == "__main__":
    main()
