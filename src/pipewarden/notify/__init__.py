"""Chat notifications. Delivery is always best-effort."""

from pipewarden.notify.base import Notifier, NullNotifier, notify_safely
from pipewarden.notify.slack import SlackNotifier, create_notifier

__all__ = [
    "Notifier",
    "NullNotifier",
    "SlackNotifier",
    "create_notifier",
    "notify_safely",
]
