"""
Configuration for the Balance Watcher

All settings in one place for easy tuning. Values can be overridden with
environment variables (a .env file in the project root is loaded on import).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

_project_root = Path(__file__).parent.parent
_env_path = _project_root / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


# Exact chain tag that routes an entry to the Bitcoin adapter
BITCOIN_CHAIN = "Bitcoin"

# Environment variable holding the webhook destination
WEBHOOK_ENV_VAR = "WEBHOOK"


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


@dataclass
class Config:
    """All configuration settings."""

    # -------------------------------------------------------------------------
    # Watch Loop
    # -------------------------------------------------------------------------
    # Seconds to sleep between cycles
    default_poll_interval_sec: int = 30

    # Entries checked at the same time within one cycle
    default_max_concurrent_checks: int = 5

    # Watch-list file (relative paths resolve against the working directory)
    default_watchlist_path: str = "AddressAndChain.toml"

    # -------------------------------------------------------------------------
    # Bitcoin API (mempool.space / esplora)
    # -------------------------------------------------------------------------
    default_mempool_api_root: str = "https://mempool.space"

    # "testnet", "signet", or "" for mainnet
    default_bitcoin_network: str = "testnet"

    # -------------------------------------------------------------------------
    # HTTP Settings
    # -------------------------------------------------------------------------
    # Per-request timeout for balance queries (seconds)
    default_request_timeout_sec: float = 20.0

    # Timeout for webhook delivery (seconds)
    webhook_timeout_sec: float = 10.0

    # Minimum gap between two webhook messages (seconds)
    webhook_min_message_interval: float = 0.5

    # Display name of the sending identity
    webhook_username: str = "Account Manager"

    # -------------------------------------------------------------------------
    # Balance Display
    # -------------------------------------------------------------------------
    # Smallest units per whole coin, keyed by chain label
    conversion_factors: Dict[str, int] = field(default_factory=lambda: {
        "BTC": 10**8,
        "Bitcoin": 10**8,
    })
    default_conversion_factor: int = 10**18

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    default_log_level: str = "INFO"
    log_file: str = "logs/monitor.log"

    # -------------------------------------------------------------------------
    # Environment Overrides
    # -------------------------------------------------------------------------
    @property
    def poll_interval_sec(self) -> int:
        return _env_int("POLL_INTERVAL_SECONDS", self.default_poll_interval_sec)

    @property
    def max_concurrent_checks(self) -> int:
        return _env_int("MAX_CONCURRENT_CHECKS", self.default_max_concurrent_checks)

    @property
    def watchlist_path(self) -> str:
        return os.environ.get("WATCHLIST_PATH") or self.default_watchlist_path

    @property
    def mempool_api_root(self) -> str:
        return os.environ.get("MEMPOOL_API_ROOT") or self.default_mempool_api_root

    @property
    def bitcoin_network(self) -> str:
        return os.environ.get("BITCOIN_NETWORK", self.default_bitcoin_network)

    @property
    def request_timeout_sec(self) -> float:
        return _env_float("REQUEST_TIMEOUT_SECONDS", self.default_request_timeout_sec)

    @property
    def log_level(self) -> str:
        return os.environ.get("LOG_LEVEL") or self.default_log_level

    @property
    def webhook_url(self) -> Optional[str]:
        return os.environ.get(WEBHOOK_ENV_VAR)

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    def bitcoin_address_api(self, network: Optional[str] = None) -> str:
        """
        Build the address endpoint base for the Bitcoin API.

        Args:
            network: Network segment ("testnet", "signet", "" for mainnet).
                Defaults to the configured network.

        Returns:
            URL such as https://mempool.space/testnet/api/address
        """
        network = self.bitcoin_network if network is None else network
        parts = [self.mempool_api_root.rstrip("/")]
        if network:
            parts.append(network.strip("/"))
        parts.append("api/address")
        return "/".join(parts)

    def conversion_factor(self, chain: str) -> int:
        """Smallest units per whole coin for a chain label."""
        return self.conversion_factors.get(chain, self.default_conversion_factor)


# Global config instance
config = Config()
