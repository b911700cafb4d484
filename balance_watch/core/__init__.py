# Core business logic
from .monitor import BalanceMonitor, build_alert_message, is_below_threshold

__all__ = [
    "BalanceMonitor",
    "build_alert_message",
    "is_below_threshold",
]
