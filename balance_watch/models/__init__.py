"""
Shared Data Models
==================

This package contains dataclasses used across the project.
"""

from .watch import WatchEntry, BalanceCheck, CycleSummary

__all__ = [
    "WatchEntry",
    "BalanceCheck",
    "CycleSummary",
]
