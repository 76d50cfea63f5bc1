"""Operator notifications: in-memory collector and Slack forwarding."""

from .notifier import (
    CompositeNotifier,
    Notification,
    NotificationCollector,
    NotificationLevel,
    Notifier,
    SlackNotifier,
)
from .slack_service import SlackServiceError, SlackWebhookClient

__all__ = [
    "CompositeNotifier",
    "Notification",
    "NotificationCollector",
    "NotificationLevel",
    "Notifier",
    "SlackNotifier",
    "SlackServiceError",
    "SlackWebhookClient",
]
