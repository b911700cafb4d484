"""
API Package
===========

Balance clients for the supported chain families.

Components:
- bitcoin.py: BitcoinClient (mempool.space / esplora REST API)
- evm.py: EvmClient (JSON-RPC eth_getBalance via web3)
"""

from .bitcoin import BitcoinClient, parse_address_balance
from .evm import EvmClient, to_checksum, validate_rpc_url

__all__ = [
    # Bitcoin
    "BitcoinClient",
    "parse_address_balance",
    # EVM
    "EvmClient",
    "to_checksum",
    "validate_rpc_url",
]
