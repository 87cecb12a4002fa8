import logging
from typing import Protocol
from stacks.schemas.notification import Notification

logger = logging.getLogger(__name__)

HOLD_READY = "HOLD_READY"
RESERVATION_EXPIRING = "RESERVATION_EXPIRING"
OVERDUE = "OVERDUE"


class Notifier(Protocol):

    def send(self, notification: Notification) -> None:
        ...


class LogNotifier:
    """Default dispatcher: writes the notice to the log."""

    def send(self, notification: Notification) -> None:
        logger.info(f"[notify {notification.patron_id}] {notification.message}")


def dispatch(notifier, notifications):
    """Fire-and-forget delivery; a failing notifier never propagates."""
    for notification in notifications:
        try:
            notifier.send(notification)
        except Exception as e:
            logger.warning(
                f"Failed to deliver {notification.type} notice to patron "
                f"{notification.patron_id}: {e}"
            )
