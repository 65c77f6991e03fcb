"""Slack notifier using the chat.postMessage Web API."""

from __future__ import annotations

import json
from urllib.error import URLError
from urllib.request import Request, urlopen

from pipewarden.config.models import NotificationConfig
from pipewarden.core.errors import NotificationError
from pipewarden.core.logging import get_logger
from pipewarden.notify.base import Notifier, NullNotifier

LOGGER = get_logger(__name__)


class SlackNotifier(Notifier):
    """Posts messages with a Slack bot token."""

    def __init__(self, token: str, api_url: str = "https://slack.com/api", timeout: int = 15) -> None:
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "slack"

    def send(self, channel: str, text: str) -> None:
        body = json.dumps({"channel": channel, "text": text}).encode("utf-8")
        request = Request(
            f"{self._api_url}/chat.postMessage",
            data=body,
            method="POST",
            headers={
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/json; charset=utf-8",
            },
        )
        try:
            with urlopen(request, timeout=self._timeout) as response:
                payload = json.loads(response.read().decode("utf-8") or "{}")
        except (URLError, OSError, ValueError) as e:
            raise NotificationError(f"Slack request failed: {e}") from e

        # Slack reports API errors with HTTP 200 and ok=false
        if not payload.get("ok", False):
            raise NotificationError(f"Slack API error: {payload.get('error', 'unknown')}")
        LOGGER.info(f"Sent Slack notification to #{channel}")


def create_notifier(config: NotificationConfig) -> Notifier:
    """Build the configured notifier, or a NullNotifier without a token."""
    if not config.slack_token:
        LOGGER.debug("No Slack token configured, notifications disabled")
        return NullNotifier()
    return SlackNotifier(config.slack_token, api_url=config.api_url)
