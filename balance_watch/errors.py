"""
Errors
======

Exception types raised across the balance watcher.

Per-entry failures (FetchError and subclasses, NotifyError) are caught and
logged by the monitor loop. WatchlistError and MissingEnvironmentError are
fatal only at startup.
"""


class BalanceWatchError(Exception):
    """Base class for all balance watcher errors."""


class WatchlistError(BalanceWatchError):
    """Watch-list file could not be read or has an invalid structure."""


class MissingEnvironmentError(BalanceWatchError):
    """A required environment variable is not set."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Environment variable {name} is required")


class FetchError(BalanceWatchError):
    """Balance could not be fetched for an address."""

    kind = "fetch"


class NetworkError(FetchError):
    """Transport failure, timeout, or unexpected HTTP status."""

    kind = "network"


class ResponseParseError(FetchError):
    """Response body was unreadable or had an unexpected shape."""

    kind = "parse"


class BalanceValueError(FetchError):
    """Balance values are inconsistent (underflow, negative, non-integer)."""

    kind = "value"


class InvalidInputError(FetchError):
    """Malformed address or RPC URL."""

    kind = "invalid-input"


class NotifyError(BalanceWatchError):
    """Alert could not be delivered to the webhook."""
