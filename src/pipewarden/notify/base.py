"""Notification interface and best-effort delivery helper."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pipewarden.core.logging import get_logger

LOGGER = get_logger(__name__)


class Notifier(ABC):
    """Delivers a short text message to a channel."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Notifier identifier."""

    @abstractmethod
    def send(self, channel: str, text: str) -> None:
        """Send a message.

        Raises:
            NotificationError: If delivery fails.
        """


class NullNotifier(Notifier):
    """Discards messages. Used when no chat token is configured."""

    @property
    def name(self) -> str:
        return "null"

    def send(self, channel: str, text: str) -> None:
        LOGGER.debug(f"Notification to #{channel} suppressed (no notifier configured): {text}")


def notify_safely(notifier: Notifier, channel: str, text: str) -> bool:
    """Attempt a notification, swallowing and logging any failure.

    A failed notification must never alter the result of the job that
    triggered it.

    Returns:
        True if the notifier reported success.
    """
    try:
        notifier.send(channel, text)
        return True
    except Exception as e:
        LOGGER.warning(f"{notifier.name} notification to #{channel} failed: {e}")
        return False
