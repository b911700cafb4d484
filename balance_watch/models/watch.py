"""
Watch Models
============

Dataclasses for watch-list entries and per-cycle check results.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from balance_watch.config import BITCOIN_CHAIN
from balance_watch.errors import BalanceWatchError


@dataclass(frozen=True)
class WatchEntry:
    """One monitored account from the watch-list file."""
    address: str
    chain: str
    alert_balance: int  # Smallest unit (satoshi / wei)
    rpc_url: str = ""   # Only used for non-Bitcoin chains

    @property
    def is_bitcoin(self) -> bool:
        """Exact, case-sensitive match on the Bitcoin chain tag."""
        return self.chain == BITCOIN_CHAIN

    @property
    def label(self) -> str:
        return f"{self.chain}:{self.address}"


@dataclass
class BalanceCheck:
    """
    Outcome of checking one entry in a cycle.

    Exactly one of balance / error is set.
    """
    entry: WatchEntry
    balance: Optional[int] = None
    error: Optional[BalanceWatchError] = None
    formatted_balance: Optional[str] = None
    below_threshold: bool = False
    alert_sent: bool = False
    alert_error: Optional[BalanceWatchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class CycleSummary:
    """Counts for one pass over the watch-list."""
    entries: int = 0
    fetch_failures: int = 0
    below_threshold: int = 0
    alerts_sent: int = 0
    alert_failures: int = 0
    watchlist_error: Optional[str] = None
    checks: List[BalanceCheck] = field(default_factory=list)

    @classmethod
    def from_checks(cls, checks: List[BalanceCheck]) -> "CycleSummary":
        return cls(
            entries=len(checks),
            fetch_failures=sum(1 for c in checks if not c.ok),
            below_threshold=sum(1 for c in checks if c.below_threshold),
            alerts_sent=sum(1 for c in checks if c.alert_sent),
            alert_failures=sum(1 for c in checks if c.alert_error is not None),
            checks=list(checks),
        )

    @property
    def skipped(self) -> bool:
        """True when the watch-list could not be loaded this cycle."""
        return self.watchlist_error is not None
