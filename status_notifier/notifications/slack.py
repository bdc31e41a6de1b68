from __future__ import annotations

import json
import logging
from typing import Any

import requests

from ..validation.inputs import WEBHOOK_URL_ERROR, is_valid_webhook_url

logger = logging.getLogger(__name__)


class DeliveryError(RuntimeError):
    pass


class SlackWebhookClient:
    def __init__(
        self,
        webhook_url: str,
        timeout: int = 20,
        session: requests.Session | None = None,
    ) -> None:
        if not is_valid_webhook_url(webhook_url):
            raise ValueError(WEBHOOK_URL_ERROR)
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._session = session or requests.Session()

    def send(self, message_body: dict[str, Any]) -> None:
        logger.info("Message body: %s", json.dumps(message_body, separators=(",", ":")))
        try:
            response = self._session.post(
                self.webhook_url,
                json=message_body,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise DeliveryError(f"Slack webhook delivery failed: {exc}") from exc
