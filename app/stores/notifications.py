"""In-memory notification feed for the signed-in user."""

from __future__ import annotations

from typing import Any, Iterable

from ..models import Notification
from .base import LocalFirstStore


class NotificationsStore(LocalFirstStore):
    """Newest-first notifications; nothing is persisted locally."""

    def __init__(self, storage=None):
        self._notifications: list[Notification] = []
        super().__init__(storage)

    @property
    def notifications(self) -> list[Notification]:
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return sum(1 for notification in self._notifications if not notification.is_read)

    def set_notifications(self, notifications: Iterable[Notification]) -> None:
        self._notifications = list(notifications)

    set_from_server = set_notifications

    def add_notification(self, notification: Notification) -> None:
        self._notifications.insert(0, notification)

    def mark_as_read(self, notification_id: int) -> None:
        self._notifications = [
            notification.model_copy(update={"is_read": True})
            if notification.id == notification_id
            else notification
            for notification in self._notifications
        ]
        self._mirror(
            f"notification {notification_id} read",
            lambda remote: remote.mark_notification_read(notification_id),
        )

    def mark_all_as_read(self) -> None:
        self._notifications = [
            notification.model_copy(update={"is_read": True})
            for notification in self._notifications
        ]
        self._mirror(
            "all notifications read",
            lambda remote: remote.mark_all_notifications_read(),
        )

    def clear_all(self) -> None:
        self._notifications = []
        self._mirror("notification clear", lambda remote: remote.clear_notifications())

    def _restore(self, data: Any | None) -> None:
        return None

    def _snapshot(self) -> Any:
        return None
