from .formatting import display_symbol, format_balance

__all__ = [
    "display_symbol",
    "format_balance",
]
