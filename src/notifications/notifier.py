"""
Operator notifications ("Booking approved successfully", "Error approving
booking").

The approval workflow only depends on the Notifier interface. The collector
keeps messages for the response/UI layer, and the Slack notifier forwards
them to an operations channel.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .slack_service import SlackWebhookClient


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.level.value, "message": self.message}


class Notifier:
    """Base notifier; subclasses implement notify()."""

    def notify(
        self,
        level: NotificationLevel,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        raise NotImplementedError

    def success(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self.notify(NotificationLevel.SUCCESS, message, context)

    def error(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self.notify(NotificationLevel.ERROR, message, context)


class NotificationCollector(Notifier):
    """Keeps notifications in memory, newest last."""

    def __init__(self) -> None:
        self.notifications: List[Notification] = []

    def notify(self, level, message, context=None) -> None:
        self.notifications.append(Notification(level, message, dict(context or {})))

    def drain(self) -> List[Notification]:
        """Return and clear pending notifications."""
        drained, self.notifications = self.notifications, []
        return drained


class SlackNotifier(Notifier):
    """Forwards notifications to Slack; delivery failures are logged by the client."""

    def __init__(self, client: "SlackWebhookClient") -> None:
        self.client = client

    def notify(self, level, message, context=None) -> None:
        self.client.send_booking_notification(level.value, message, context or {})


class CompositeNotifier(Notifier):
    """Fans one notification out to several notifiers."""

    def __init__(self, *notifiers: Notifier) -> None:
        self.notifiers = list(notifiers)

    def notify(self, level, message, context=None) -> None:
        for notifier in self.notifiers:
            notifier.notify(level, message, context)
