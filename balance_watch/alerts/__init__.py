from .webhook import AlertConfig, WebhookAlerts, send_test_alert

__all__ = [
    "AlertConfig",
    "WebhookAlerts",
    "send_test_alert",
]
