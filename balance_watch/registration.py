"""
Watch-list Registration
=======================

Adds addresses to the TOML watch-list and stores the webhook URL in .env.

Used by scripts/add_address.py. New entries are appended as an
[[addresses]] table, so existing entries and comments are kept. The file is
written to a temporary sibling and renamed into place, so the monitor never
reads a half-written watch-list.
"""

import json
import logging
import os
import re
import tomllib
from pathlib import Path
from typing import List, Union
from urllib.parse import urlparse

from dotenv import set_key

from balance_watch.api.evm import validate_rpc_url
from balance_watch.config import BITCOIN_CHAIN, WEBHOOK_ENV_VAR
from balance_watch.errors import InvalidInputError, WatchlistError
from balance_watch.models import WatchEntry
from balance_watch.watchlist import parse_watchlist

logger = logging.getLogger(__name__)

# Networks offered by the setup tool, with an RPC URL template for EVM chains
KNOWN_NETWORKS = {
    BITCOIN_CHAIN: "",
    "Sepolia": "https://sepolia.infura.io/v3/YOUR_INFURA_PROJECT_ID",
    "Arbitrum": "https://arbitrum-mainnet.infura.io/v3/YOUR_INFURA_PROJECT_ID",
}

EVM_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
# Base58 and bech32 addresses are alphanumeric
BITCOIN_ADDRESS_PATTERN = re.compile(r"^[A-Za-z0-9]{14,90}$")


def validate_webhook_url(url: str) -> str:
    """
    Check that a webhook URL is an http(s) URL with a host.

    Raises:
        ValueError: Malformed URL
    """
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Invalid webhook URL")
    return parsed.geturl()


def build_entry(address: str, chain: str, alert_balance: int, rpc_url: str = "") -> WatchEntry:
    """
    Validate user input for a new watch entry.

    Bitcoin entries never carry an rpc_url. Every other network needs one.

    Raises:
        ValueError: Unknown network, bad RPC URL, bad address, or a
            non-positive alert balance
    """
    if chain not in KNOWN_NETWORKS:
        raise ValueError(f"Invalid network: {chain!r} (choose from {', '.join(KNOWN_NETWORKS)})")

    address = address.strip()
    if chain == BITCOIN_CHAIN:
        if not BITCOIN_ADDRESS_PATTERN.match(address):
            raise ValueError(f"Invalid address format: {address!r}")
        rpc_url = ""
    else:
        if not rpc_url:
            raise ValueError(f"Invalid RPC URL: an rpc_url is required for {chain}")
        try:
            rpc_url = validate_rpc_url(rpc_url)
        except InvalidInputError:
            raise ValueError(f"Invalid RPC URL: {rpc_url!r}")
        if not EVM_ADDRESS_PATTERN.match(address):
            raise ValueError(f"Invalid address format: {address!r}")

    if isinstance(alert_balance, bool) or not isinstance(alert_balance, int) or alert_balance <= 0:
        raise ValueError(f"Invalid alert balance: {alert_balance!r}")

    return WatchEntry(address=address, chain=chain, alert_balance=alert_balance, rpc_url=rpc_url)


def _toml_string(value: str) -> str:
    # JSON string escapes are valid TOML basic-string escapes
    return json.dumps(value, ensure_ascii=False)


def format_entry(entry: WatchEntry) -> str:
    """Render one entry as an [[addresses]] table."""
    lines = [
        "[[addresses]]",
        f"address = {_toml_string(entry.address)}",
        f"chain = {_toml_string(entry.chain)}",
    ]
    if entry.rpc_url:
        lines.append(f"rpc_url = {_toml_string(entry.rpc_url)}")
    lines.append(f"alert_balance = {entry.alert_balance}")
    return "\n".join(lines) + "\n"


def _parse_document(text: str, path: Path) -> List[WatchEntry]:
    try:
        return parse_watchlist(tomllib.loads(text))
    except tomllib.TOMLDecodeError as e:
        raise WatchlistError(f"Invalid TOML in {path}: {e}")


def _write_atomic(path: Path, text: str):
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def add_entry(path: Union[str, Path], entry: WatchEntry, replace: bool = False) -> List[WatchEntry]:
    """
    Add an entry to the watch-list file.

    Args:
        path: Watch-list TOML file (created if missing)
        entry: Validated entry
        replace: Discard existing entries and write only this one

    Returns:
        Entries in the file after the write

    Raises:
        WatchlistError: Existing file is invalid, or the address is
            already watched on that chain
    """
    path = Path(path)

    existing = ""
    if path.exists() and not replace:
        existing = path.read_text(encoding="utf-8")

    if existing.strip():
        current = _parse_document(existing, path)
        for watched in current:
            if watched.address == entry.address and watched.chain == entry.chain:
                raise WatchlistError(f"{entry.label} is already in {path}")
        text = existing.rstrip("\n") + "\n\n" + format_entry(entry)
    else:
        text = format_entry(entry)

    # Never write a document the monitor could not load
    entries = _parse_document(text, path)
    if entries[-1] != entry:
        raise WatchlistError(f"Entry for {entry.label} did not round-trip through TOML")

    path.parent.mkdir(parents=True, exist_ok=True)
    _write_atomic(path, text)
    logger.info(f"Added {entry.label} to {path} ({len(entries)} entries)")
    return entries


def save_webhook_url(env_path: Union[str, Path], webhook_url: str) -> None:
    """
    Set WEBHOOK in a .env file, replacing any previous value.

    The URL contains a secret token and is not logged.

    Raises:
        ValueError: Malformed URL
    """
    webhook_url = validate_webhook_url(webhook_url)
    env_path = Path(env_path)
    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.touch(exist_ok=True)
    set_key(str(env_path), WEBHOOK_ENV_VAR, webhook_url)
    logger.info(f"Saved {WEBHOOK_ENV_VAR} to {env_path}")
