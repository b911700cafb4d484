"""
EVM Balance Client

Single responsibility: read native balances from EVM JSON-RPC endpoints.
"""

import asyncio
import logging
from typing import Dict, Optional
from urllib.parse import urlparse

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import BadResponseFormat, Web3Exception

from ..config import config
from ..errors import BalanceValueError, InvalidInputError, NetworkError, ResponseParseError

logger = logging.getLogger(__name__)

# eth_getBalance returns a uint256
MAX_UINT256 = 2**256 - 1


def validate_rpc_url(rpc_url: str) -> str:
    """
    Check that an RPC endpoint is an http(s) URL with a host.

    Raises:
        InvalidInputError: Malformed URL
    """
    try:
        parsed = urlparse(rpc_url.strip())
    except ValueError as e:
        raise InvalidInputError(f"Failed to parse RPC URL: {e}")

    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidInputError(f"Failed to parse RPC URL: {rpc_url!r}")

    return parsed.geturl()


def to_checksum(address: str) -> str:
    """
    Validate a 20-byte hex account address and return its checksum form.

    All-lowercase and all-uppercase hex are accepted; mixed case must match
    the EIP-55 checksum.

    Raises:
        InvalidInputError: Malformed address or bad checksum
    """
    if not Web3.is_address(address):
        raise InvalidInputError(f"Invalid EVM address: {address!r}")
    return Web3.to_checksum_address(address)


class EvmClient:
    """
    Async client for EVM native balances.

    Keeps one AsyncWeb3 instance per RPC URL so connections are reused
    across cycles. Call close() on shutdown.
    """

    def __init__(self, timeout_sec: float = None):
        self.timeout_sec = timeout_sec or config.request_timeout_sec
        self._providers: Dict[str, AsyncWeb3] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _get_web3(self, rpc_url: str) -> AsyncWeb3:
        w3 = self._providers.get(rpc_url)
        if w3 is None:
            provider = AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=self.timeout_sec)},
                # one request per balance query, no provider-level retries
                exception_retry_configuration=None,
            )
            w3 = AsyncWeb3(provider)
            self._providers[rpc_url] = w3
        return w3

    async def close(self):
        """Disconnect all cached providers."""
        providers = list(self._providers.values())
        self._providers.clear()
        for w3 in providers:
            try:
                await w3.provider.disconnect()
            except Exception as e:
                logger.debug(f"Error disconnecting RPC provider: {e}")

    async def _query_balance(self, checksum_address: str, rpc_url: str) -> int:
        """Issue eth_getBalance. Separate so tests can replace the RPC call."""
        w3 = self._get_web3(rpc_url)
        return await w3.eth.get_balance(checksum_address)

    # -------------------------------------------------------------------------
    # Public Methods
    # -------------------------------------------------------------------------

    async def get_balance(self, address: str, rpc_url: str) -> int:
        """
        Get the native balance for an address.

        Args:
            address: 0x-prefixed account address
            rpc_url: JSON-RPC endpoint of the chain

        Returns:
            Balance in wei, full uint256 range

        Raises:
            FetchError subclass describing the failure
        """
        rpc_url = validate_rpc_url(rpc_url)
        checksum_address = to_checksum(address)

        try:
            balance: Optional[int] = await self._query_balance(checksum_address, rpc_url)
        except asyncio.TimeoutError:
            raise NetworkError(f"RPC request timed out after {self.timeout_sec}s")
        except aiohttp.ClientError as e:
            raise NetworkError(f"RPC request failed: {e}")
        except BadResponseFormat as e:
            raise ResponseParseError(f"Malformed RPC response: {e}")
        except Web3Exception as e:
            raise NetworkError(f"RPC request failed: {e}")
        except (ValueError, TypeError) as e:
            # Non-JSON body (JSONDecodeError) or a result that is not valid hex
            raise ResponseParseError(f"Malformed RPC response: {e}")

        if isinstance(balance, bool) or not isinstance(balance, int):
            raise BalanceValueError(f"RPC returned a non-integer balance: {balance!r}")
        if balance < 0 or balance > MAX_UINT256:
            raise BalanceValueError(f"RPC returned an out-of-range balance: {balance}")

        return int(balance)
