import logging
from typing import Any, Protocol

import httpx

from app.core.config import Settings

logger = logging.getLogger(__name__)

RENTAL_REQUEST_CREATED = "rental_request_created"
RENTAL_REQUEST_UPDATED = "rental_request_updated"
CONTRACT_CREATED = "contract_created"
CONTRACT_SIGNED = "contract_signed"


class Notifier(Protocol):
    def notify(self, event: str, payload: dict[str, Any]) -> None: ...


class LoggingNotifier:
    """Default sink when no webhook is configured."""

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        logger.info("Notification %s: %s", event, payload)


class WebhookNotifier:
    """
    POST every event as JSON to a webhook.

    Delivery errors are logged and swallowed; the caller's transaction has
    already been committed when notify() runs.
    """

    def __init__(self, url: str, timeout: float = 5.0, client: httpx.Client | None = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        body = {"event": event, "payload": payload}
        try:
            if self._client is not None:
                response = self._client.post(self.url, json=body, timeout=self.timeout)
            else:
                with httpx.Client() as client:
                    response = client.post(self.url, json=body, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Webhook rejected %s with status %s", event, e.response.status_code
            )
        except httpx.RequestError as e:
            logger.warning("Webhook delivery of %s failed: %s", event, e)


def publish(notifier: Notifier | None, event: str, payload: dict[str, Any]) -> None:
    """Fire a notification after commit. Never raises."""
    if notifier is None:
        return
    try:
        notifier.notify(event, payload)
    except Exception:
        logger.exception("Notifier failed for event %s", event)


def build_notifier(settings: Settings) -> Notifier:
    if settings.notification_webhook_url:
        return WebhookNotifier(
            settings.notification_webhook_url,
            timeout=settings.notification_timeout_seconds,
        )
    return LoggingNotifier()
