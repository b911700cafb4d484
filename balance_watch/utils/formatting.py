"""
Balance Formatting
==================

Converts smallest-unit integer balances into display strings.
"""

from balance_watch.config import config

BITCOIN_LABELS = {"BTC", "Bitcoin"}


def display_symbol(chain: str) -> str:
    """
    Symbol shown next to a formatted balance.

    Every non-Bitcoin chain is shown as ETH, whatever its label.
    """
    return "BTC" if chain in BITCOIN_LABELS else "ETH"


def format_balance(balance: int, chain: str) -> str:
    """
    Format a smallest-unit balance for display.

    Examples:
        format_balance(100_000_000, "Bitcoin")  -> "1.0000 BTC"
        format_balance(10**18, "Ethereum")      -> "1.0000 ETH"

    Args:
        balance: Balance in satoshi / wei
        chain: Chain label from the watch entry

    Returns:
        Balance with 4 decimals and a symbol suffix
    """
    value = balance / config.conversion_factor(chain)
    return f"{value:.4f} {display_symbol(chain)}"
