"""
Notification service used by the budget alert evaluator.

The evaluator only depends on the Notifier interface; delivering a real push
notification is left to whatever implementation the host application injects.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """A notification that was handed to a notifier."""
    notification_id: str
    title: str
    body: str


class Notifier(ABC):
    """Interface for user-facing notification delivery."""

    @abstractmethod
    def notify(self, notification_id: str, title: str, body: str) -> bool:
        """
        Deliver a notification.

        Args:
            notification_id: Stable id; re-sending the same id replaces the previous one
            title: Short title
            body: Message body

        Returns:
            True if delivered, False otherwise. Implementations may also raise
            NotificationError.
        """


class LoggingNotifier(Notifier):
    """Writes notifications to the application log (CLI default)."""

    def notify(self, notification_id: str, title: str, body: str) -> bool:
        logger.warning(f"[{notification_id}] {title}: {body}")
        return True


class RecordingNotifier(Notifier):
    """Keeps every notification in memory; useful for previews and tests."""

    def __init__(self) -> None:
        self.sent: List[Notification] = []

    def notify(self, notification_id: str, title: str, body: str) -> bool:
        self.sent.append(Notification(notification_id, title, body))
        return True
