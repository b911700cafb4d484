"""
Balance Watch
=============

Polls Bitcoin and EVM account balances and posts a webhook alert when a
balance drops below its configured minimum.
"""

__version__ = "0.1.0"
