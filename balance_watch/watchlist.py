"""
Watch-list Loading
==================

Reads the TOML watch-list file into WatchEntry objects.

The file is re-read at the start of every cycle, so edits take effect
without a restart. Expected layout:

    [[addresses]]
    address = "tb1q..."
    chain = "Bitcoin"
    alert_balance = 50000000

    [[addresses]]
    address = "0x..."
    chain = "Sepolia"
    rpc_url = "https://rpc.sepolia.org"
    alert_balance = 1000000000000000000

Addresses and RPC URLs are not validated here; the chain adapters do that.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Union

from balance_watch.config import BITCOIN_CHAIN
from balance_watch.errors import WatchlistError
from balance_watch.models import WatchEntry

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("address", "chain", "alert_balance")


def parse_entry(raw: Dict[str, Any], index: int) -> WatchEntry:
    """
    Build a WatchEntry from one [[addresses]] table.

    Args:
        raw: Table contents
        index: Position in the file (for error messages)

    Returns:
        WatchEntry

    Raises:
        WatchlistError: Missing fields or wrong types
    """
    if not isinstance(raw, dict):
        raise WatchlistError(f"addresses[{index}] must be a table")

    missing = [name for name in REQUIRED_FIELDS if name not in raw]
    if missing:
        raise WatchlistError(f"addresses[{index}] missing required field(s): {', '.join(missing)}")

    address = raw["address"]
    chain = raw["chain"]
    alert_balance = raw["alert_balance"]
    rpc_url = raw.get("rpc_url", "")

    for name, value in (("address", address), ("chain", chain), ("rpc_url", rpc_url)):
        if not isinstance(value, str):
            raise WatchlistError(f"addresses[{index}].{name} must be a string")

    # bool is an int subclass in Python
    if isinstance(alert_balance, bool) or not isinstance(alert_balance, int):
        raise WatchlistError(f"addresses[{index}].alert_balance must be an integer")
    if alert_balance < 0:
        raise WatchlistError(f"addresses[{index}].alert_balance must not be negative")

    if chain != BITCOIN_CHAIN and not rpc_url:
        raise WatchlistError(f"addresses[{index}].rpc_url is required for chain {chain!r}")

    return WatchEntry(
        address=address,
        chain=chain,
        alert_balance=alert_balance,
        rpc_url=rpc_url,
    )


def parse_watchlist(data: Dict[str, Any]) -> List[WatchEntry]:
    """Convert a decoded TOML document into watch entries."""
    if "addresses" not in data:
        raise WatchlistError("Watch-list has no [[addresses]] entries")

    raw_entries = data["addresses"]
    if not isinstance(raw_entries, list):
        raise WatchlistError("'addresses' must be an array of tables")

    return [parse_entry(raw, i) for i, raw in enumerate(raw_entries)]


def load_watchlist(path: Union[str, Path]) -> List[WatchEntry]:
    """
    Load the watch-list from disk.

    Args:
        path: Path to the TOML file

    Returns:
        Entries in file order

    Raises:
        WatchlistError: File missing/unreadable, invalid TOML, or bad structure
    """
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        raise WatchlistError(f"Watch-list file not found: {path}")
    except OSError as e:
        raise WatchlistError(f"Could not read watch-list {path}: {e}")
    except tomllib.TOMLDecodeError as e:
        raise WatchlistError(f"Invalid TOML in {path}: {e}")

    entries = parse_watchlist(data)
    logger.debug(f"Loaded {len(entries)} watch entries from {path}")
    return entries
