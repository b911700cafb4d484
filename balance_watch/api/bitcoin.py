"""
Bitcoin Balance Client

Single responsibility: read address balances from a mempool.space / esplora
style REST API.
"""

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp

from ..config import config
from ..errors import BalanceValueError, InvalidInputError, NetworkError, ResponseParseError

logger = logging.getLogger(__name__)


def _require_amount(stats: dict, name: str) -> int:
    value = stats.get(name)
    # bool is an int subclass in Python
    if isinstance(value, bool) or not isinstance(value, int):
        raise ResponseParseError(f"chain_stats.{name} missing or not an integer")
    if value < 0:
        raise BalanceValueError(f"chain_stats.{name} is negative ({value})")
    return value


def parse_address_balance(body: str) -> int:
    """
    Extract the confirmed balance from an address API response.

    Balance is chain_stats.funded_txo_sum - chain_stats.spent_txo_sum.

    Args:
        body: Response text

    Returns:
        Balance in satoshi

    Raises:
        ResponseParseError: Invalid JSON or missing fields
        BalanceValueError: Spent exceeds funded, or negative sums
    """
    try:
        data: Any = json.loads(body)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Response is not valid JSON: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("chain_stats"), dict):
        raise ResponseParseError("Response has no chain_stats object")

    stats = data["chain_stats"]
    funded = _require_amount(stats, "funded_txo_sum")
    spent = _require_amount(stats, "spent_txo_sum")

    if spent > funded:
        raise BalanceValueError(
            f"spent_txo_sum ({spent}) exceeds funded_txo_sum ({funded})"
        )

    return funded - spent


class BitcoinClient:
    """
    Async client for the Bitcoin address API.

    One GET per balance query: no retries, no caching. The session is shared
    across concurrent queries and closed with close() or the async context.
    """

    def __init__(
        self,
        base_url: str = None,
        timeout_sec: float = None,
    ):
        self.base_url = (base_url or config.bitcoin_address_api()).rstrip("/")
        self.timeout_sec = timeout_sec or config.request_timeout_sec
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        """Create session if needed."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_sec),
            )

    async def close(self):
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    def address_url(self, address: str) -> str:
        return f"{self.base_url}/{address}"

    async def _get_text(self, url: str) -> str:
        """
        GET a URL and return the body as text.

        Raises:
            InvalidInputError: HTTP 400, the API rejected the address
            NetworkError: Transport failure, timeout, or other non-2xx status
            ResponseParseError: Body is not valid UTF-8
        """
        await self._ensure_session()

        try:
            async with self._session.get(url) as response:
                raw = await response.read()
                if response.status >= 400:
                    detail = raw[:200].decode("utf-8", errors="replace").strip()
                    if response.status == 400:
                        # e.g. "Invalid Bitcoin address"
                        raise InvalidInputError(f"HTTP 400: {detail}")
                    raise NetworkError(f"HTTP {response.status}: {detail}")
        except asyncio.TimeoutError:
            raise NetworkError(f"Request timed out after {self.timeout_sec}s")
        except aiohttp.ClientError as e:
            raise NetworkError(f"Request failed: {e}")

        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ResponseParseError(f"Response body is not valid UTF-8: {e}")

    # -------------------------------------------------------------------------
    # Public Methods
    # -------------------------------------------------------------------------

    async def get_balance(self, address: str) -> int:
        """
        Get the confirmed balance for an address.

        Args:
            address: Bitcoin address

        Returns:
            Balance in satoshi (funded minus spent)

        Raises:
            FetchError subclass describing the failure
        """
        body = await self._get_text(self.address_url(address))
        return parse_address_balance(body)
