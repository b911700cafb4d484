"""
Webhook Alerts
==============

Webhook notification system for the balance watcher.

Messages are posted as {"content": ..., "username": ...}, the shape accepted
by Discord-style incoming webhooks.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import requests

from ..config import WEBHOOK_ENV_VAR, config
from ..errors import MissingEnvironmentError, NotifyError

logger = logging.getLogger(__name__)

# Webhook content limit is 2000 characters
MAX_MESSAGE_LENGTH = 1990


@dataclass
class AlertConfig:
    """Configuration for alert sending."""
    webhook_url: str
    username: str = config.webhook_username
    dry_run: bool = False
    timeout: float = config.webhook_timeout_sec
    min_message_interval: float = config.webhook_min_message_interval


class WebhookAlerts:
    """
    Webhook alert sender for balance monitoring.

    send_message() raises NotifyError on any delivery failure; callers decide
    whether that is fatal. The webhook URL embeds a secret token and is never
    written to the log.
    """

    def __init__(self, config: AlertConfig):
        """
        Initialize webhook alerts.

        Args:
            config: AlertConfig with webhook URL and settings
        """
        self.config = config
        self._validate()

        self._last_message_time: float = 0
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls, dry_run: bool = False) -> "WebhookAlerts":
        """
        Create WebhookAlerts from the WEBHOOK environment variable.

        Raises:
            MissingEnvironmentError: WEBHOOK is not set (unless dry_run)
        """
        import os

        webhook_url = os.environ.get(WEBHOOK_ENV_VAR, "")
        if not webhook_url and not dry_run:
            raise MissingEnvironmentError(WEBHOOK_ENV_VAR)

        return cls(AlertConfig(webhook_url=webhook_url, dry_run=dry_run))

    def _validate(self):
        """Validate configuration."""
        if self.config.dry_run:
            return
        if not self.config.webhook_url:
            raise ValueError(f"{WEBHOOK_ENV_VAR} is required (or use --dry-run)")
        parsed = urlparse(self.config.webhook_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"{WEBHOOK_ENV_VAR} is not a valid http(s) URL")

    def _enforce_message_interval(self):
        """Enforce minimum interval between messages."""
        now = time.time()
        elapsed = now - self._last_message_time

        if elapsed < self.config.min_message_interval:
            time.sleep(self.config.min_message_interval - elapsed)

    @staticmethod
    def format_message(text: str) -> str:
        """Wrap a message in a code span, truncating to the content limit."""
        if len(text) > MAX_MESSAGE_LENGTH:
            text = text[:MAX_MESSAGE_LENGTH - 3] + "..."
        return f"`{text}`"

    def send_message(self, text: str) -> None:
        """
        Send a message to the webhook.

        Args:
            text: Plain message text

        Raises:
            NotifyError: Delivery failed (timeout, connection, non-2xx status)
        """
        content = self.format_message(text)

        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would send webhook message: {content}")
            return

        payload = {
            "content": content,
            "username": self.config.username,
        }

        with self._lock:
            self._enforce_message_interval()

            try:
                response = requests.post(
                    self.config.webhook_url,
                    json=payload,
                    timeout=self.config.timeout,
                )
                self._last_message_time = time.time()
                response.raise_for_status()

            except requests.exceptions.Timeout:
                raise NotifyError("Webhook request timed out")
            except requests.exceptions.HTTPError as e:
                # Log status code without exposing token in URL
                status_code = e.response.status_code if e.response is not None else "unknown"
                if status_code == 429:
                    raise NotifyError("Webhook rate limit hit (429)")
                raise NotifyError(f"Webhook HTTP error: {status_code}")
            except requests.exceptions.ConnectionError:
                raise NotifyError("Webhook connection error - network issue")
            except requests.exceptions.RequestException:
                # Generic request error - don't include details which may contain the URL
                raise NotifyError("Webhook request failed")

        logger.info("Webhook alert sent successfully")


def send_test_alert(webhook_url: Optional[str] = None, dry_run: bool = False) -> bool:
    """
    Send a test alert to verify webhook configuration.

    Args:
        webhook_url: Webhook URL (default: from env)
        dry_run: If True, log message instead of sending

    Returns:
        True if successful
    """
    try:
        if webhook_url is None:
            alerts = WebhookAlerts.from_env(dry_run=dry_run)
        else:
            alerts = WebhookAlerts(AlertConfig(webhook_url=webhook_url, dry_run=dry_run))
        alerts.send_message("Test alert - balance watcher configuration verified.")
    except (MissingEnvironmentError, ValueError, NotifyError) as e:
        logger.error(f"Test alert failed: {e}")
        return False
    return True
